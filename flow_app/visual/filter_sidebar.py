"""Sidebar filter widgets producing a FilterSpec."""

from __future__ import annotations

from datetime import date

import pandas as pd
import streamlit as st

from flow_app.analytics.segments.filters import get_filter_counts, get_filter_options, has_active_filters
from flow_app.core.config import DEFAULT_ISSUE_TYPES, DEFAULT_STATUSES, NO_STORY_POINTS
from flow_app.core.models import FilterSpec

FACET_LABELS: dict[str, str] = {
    "issue_types": "Issue type",
    "statuses": "Status",
    "sprints": "Sprint",
    "story_points": "Story points",
    "project_keys": "Project",
    "priorities": "Priority",
}

SESSION_KEY = "flow_filter_spec"


def default_filter_spec(options: dict[str, list]) -> FilterSpec:
    """Initial selection: stories that are resolved, when those options exist."""
    return FilterSpec(
        issue_types=[v for v in DEFAULT_ISSUE_TYPES if v in options.get("issue_types", [])],
        statuses=[v for v in DEFAULT_STATUSES if v in options.get("statuses", [])],
    )


def _format_option(value, counts: dict) -> str:
    label = "No estimate" if value == NO_STORY_POINTS else str(value)
    return f"{label} ({counts.get(value, 0)})"


def _date_range(label: str, key: str, bounds: pd.Series) -> tuple[date | None, date | None]:
    stamps = pd.to_datetime(bounds, utc=True, errors="coerce").dropna()
    enabled = st.sidebar.checkbox(f"Limit {label.lower()} date", key=f"{key}_enabled")
    if not enabled or stamps.empty:
        return None, None
    lo, hi = stamps.min().date(), stamps.max().date()
    picked = st.sidebar.date_input(f"{label} between", value=(lo, hi), key=f"{key}_range")
    if isinstance(picked, tuple | list) and len(picked) == 2:
        return picked[0], picked[1]
    return None, None


def render_filter_sidebar(df: pd.DataFrame) -> FilterSpec:
    """Render facet multiselects with live counts and return the active FilterSpec."""
    options = get_filter_options(df)
    spec: FilterSpec = st.session_state.get(SESSION_KEY) or default_filter_spec(options)
    counts = get_filter_counts(df, spec)

    st.sidebar.markdown("### Filters")
    selections: dict[str, list] = {}
    for dimension, label in FACET_LABELS.items():
        values = options.get(dimension, [])
        if not values:
            selections[dimension] = []
            continue
        current = [v for v in getattr(spec, dimension) if v in values]
        selections[dimension] = st.sidebar.multiselect(
            label,
            options=values,
            default=current,
            format_func=lambda v, c=counts.get(dimension, {}): _format_option(v, c),
            key=f"filter_{dimension}",
            help="Counts show matching issues given the other active filters.",
        )

    empty = pd.Series(dtype=object)
    created_start, created_end = _date_range("Created", "filter_created", df.get("created", empty))
    resolved_start, resolved_end = _date_range("Resolved", "filter_resolved", df.get("resolved", empty))

    new_spec = FilterSpec(
        created_start=created_start,
        created_end=created_end,
        resolved_start=resolved_start,
        resolved_end=resolved_end,
        **selections,
    )
    if new_spec != spec:
        st.session_state[SESSION_KEY] = new_spec
        st.rerun()
    st.session_state[SESSION_KEY] = new_spec

    if has_active_filters(new_spec) and st.sidebar.button("Clear all filters"):
        for dimension in FACET_LABELS:
            st.session_state.pop(f"filter_{dimension}", None)
        for key in ("filter_created_enabled", "filter_resolved_enabled"):
            st.session_state.pop(key, None)
        st.session_state[SESSION_KEY] = new_spec.cleared()
        st.rerun()
    return new_spec
