"""Central configuration, constants, workflow vocabulary, and shared column definitions."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

# =============================================================================
# Jira Connection Settings
# =============================================================================
JIRA_DEFAULT_SERVER = "https://your-domain.atlassian.net"
TIMEZONE = "UTC"
DEFAULT_PROJECT_KEY = ""
DEFAULT_FETCH_DAYS: int = 180  # Lookback for live Jira fetches (created date)

# =============================================================================
# Workflow Stage Vocabulary
# =============================================================================
# Canonical stage -> raw status strings (case-insensitive exact match).
# "ready for release" intentionally belongs to both READY_FOR_RELEASE and DONE.
# Override per workspace with a ``workflow.yaml`` next to the package.
DEFAULT_STAGE_SYNONYMS: dict[str, Sequence[str]] = {
    "ready_for_grooming": ("ready for grooming",),
    "ready_for_dev": ("ready for dev",),
    "in_progress": ("in progress", "dev in progress", "in development"),
    "in_review": ("in review", "in code review (pr submitted)"),
    "in_qa": ("in qa", "dev test", "in testing"),
    "ready_for_release": ("ready for release", "ready for tranche 0"),
    "blocked": ("blocked", "blocked / on hold"),
    "done": ("done", "ready for release"),
}

# Substrings (lowercase) that mark an issue type as a defect
DEFECT_ISSUE_TYPES: Sequence[str] = ("bug", "defect", "issue", "incident")

# =============================================================================
# Filter Defaults
# =============================================================================
RESOLVED = "resolved"
UNRESOLVED = "unresolved"
STATUS_OPTIONS: Sequence[str] = (RESOLVED, UNRESOLVED)
NO_STORY_POINTS = "none"  # sentinel used by the story points facet
NO_SPRINT = "No Sprint"
NO_PRIORITY = "Unassigned"
UNKNOWN_ISSUE_TYPE = "Unknown"

DEFAULT_ISSUE_TYPES: Sequence[str] = ("Story",)
DEFAULT_STATUSES: Sequence[str] = (RESOLVED,)

# Created/resolved trend granularities
TIME_PERIODS: Sequence[str] = ("daily", "weekly", "biweekly", "monthly", "quarterly")
DEFAULT_TIME_PERIOD = "weekly"

# =============================================================================
# Jira Custom Field IDs
# =============================================================================
# Story points live in different custom fields depending on the Jira site;
# they are tried in this order.
STORY_POINT_FIELD_IDS: Sequence[str] = (
    "customfield_10016",
    "customfield_10002",
    "customfield_10004",
)
SPRINT_FIELD_ID = "customfield_10020"

# Canonical field list for Jira fetches (changelog is requested via expand)
JIRA_FETCH_BASE_FIELDS = [
    "summary",
    "created",
    "resolutiondate",
    "priority",
    "status",
    "issuetype",
    "project",
    "parent",
    SPRINT_FIELD_ID,
    *STORY_POINT_FIELD_IDS,
]

# =============================================================================
# Table Column Sets
# =============================================================================
METRIC_COLUMNS: Sequence[str] = (
    "lead_time",
    "cycle_time",
    "grooming_cycle_time",
    "dev_cycle_time",
    "qa_cycle_time",
    "blockers",
    "review_churn",
    "qa_churn",
)

ISSUE_CORE_COLUMNS: Sequence[str] = (
    "key",
    "summary",
    "issue_type",
    "project_key",
    "priority",
    "sprint",
    "story_points",
    "status",
    "created",
    "resolved",
)

DISPLAY_ORDER_DETAIL: Sequence[str] = (
    "Ticket",
    "summary",
    "issue_type",
    "priority",
    "sprint",
    "story_points",
    "status",
    *METRIC_COLUMNS,
    "sub_issue_count",
    "created",
    "resolved",
)

DISPLAY_ORDER_TICKET_LIST: Sequence[str] = (
    "Ticket",
    "summary",
    "issue_type",
    "story_points",
    "status",
    "lead_time",
    "cycle_time",
    "review_churn",
    "qa_churn",
    "blockers",
    "resolved",
)


@dataclass(slots=True)
class AppSettings:
    max_table_rows: int = 1000
    download_encoding: str = "utf-8"
    log_level: str = "INFO"


SETTINGS = AppSettings()
