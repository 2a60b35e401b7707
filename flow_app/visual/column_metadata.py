"""Central column metadata and helpers for table rendering."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

import streamlit as st

# Mapping of raw column keys to (label, help text, format key)
# format key: "int" -> integer, "float1" -> 1 decimal float, "datetime" -> timestamp, None -> text
COLUMN_METADATA: dict[str, tuple[str, str, str | None]] = {
    # Issue fields
    "summary": ("Summary", "Issue summary from Jira.", None),
    "issue_type": ("Type", "Jira issue type.", None),
    "project_key": ("Project", "Jira project key.", None),
    "priority": ("Priority", "Jira priority label assigned to the issue.", None),
    "sprint": ("Sprint", "Most recent sprint the issue belonged to.", None),
    "story_points": ("Points", "Story point estimate (blank when unestimated).", "float1"),
    "status": ("Status", "Resolved when the issue has a resolution date.", None),
    "created": ("Created", "Timestamp when the issue was created.", "datetime"),
    "resolved": ("Resolved", "Timestamp when the issue was resolved.", "datetime"),
    "sub_issue_count": ("Sub-issues", "Number of issues whose parent is this issue.", "int"),
    # Durations
    "lead_time": ("Lead Time (d)", "Days from creation to the final Done transition.", "float1"),
    "cycle_time": ("Cycle Time (d)", "Days from first In Progress to the final Done transition.", "float1"),
    "grooming_cycle_time": (
        "Grooming (d)",
        "Days from first Ready for Grooming to first In Progress.",
        "float1",
    ),
    "dev_cycle_time": ("Dev (d)", "Days from first In Progress to the last QA entry.", "float1"),
    "qa_cycle_time": ("QA (d)", "Days from the last QA entry to the final Done transition.", "float1"),
    # Counters
    "blockers": ("Blockers", "Number of transitions into a blocked status.", "int"),
    "review_churn": ("Review Entries", "Number of transitions into code review.", "int"),
    "qa_churn": ("QA Entries", "Number of transitions into QA.", "int"),
}


def apply_column_metadata(
    columns: Iterable[str],
    existing: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Return a column_config dictionary with human labels and hover help."""

    config: dict[str, Any] = dict(existing or {})
    for col in columns:
        if col in config:
            continue
        meta = COLUMN_METADATA.get(col)
        if not meta:
            continue
        label, help_text, fmt = meta
        if fmt == "int":
            config[col] = st.column_config.NumberColumn(label, help=help_text, format="%d")
        elif fmt == "float1":
            config[col] = st.column_config.NumberColumn(label, help=help_text, format="%.1f")
        elif fmt == "datetime":
            config[col] = st.column_config.DatetimeColumn(label, help=help_text, format="YYYY-MM-DD HH:mm")
        else:
            config[col] = st.column_config.Column(label, help=help_text)
    return config
