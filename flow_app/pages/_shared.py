"""Helpers shared by the report pages (not a page itself)."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from flow_app.core.config import DEFAULT_TIME_PERIOD
from flow_app.core.models import FilterSpec
from flow_app.features.flow_report import ReportContext, build_report_context
from flow_app.visual.filter_sidebar import render_filter_sidebar


def loaded_issues() -> pd.DataFrame | None:
    df = st.session_state.get("issues_df")
    if not isinstance(df, pd.DataFrame) or df.empty:
        st.warning("No issues loaded yet. Use the Data Source page to upload an export or fetch from Jira.")
        return None
    return df


def report_context(df: pd.DataFrame, spec: FilterSpec, period: str = DEFAULT_TIME_PERIOD) -> ReportContext:
    """Build (or reuse) the report context for this dataset, filter set and period."""
    cache_key = (id(df), repr(spec), period)
    cached = st.session_state.get("report_context_cache")
    if cached and cached[0] == cache_key:
        return cached[1]
    ctx = build_report_context(df, spec, time_period=period)
    st.session_state["report_context_cache"] = (cache_key, ctx)
    return ctx


def page_context(period: str = DEFAULT_TIME_PERIOD) -> ReportContext | None:
    df = loaded_issues()
    if df is None:
        return None
    spec = render_filter_sidebar(df)
    return report_context(df, spec, period)


def fmt_days(value: float, count: int) -> str:
    return f"{value:.1f} d" if count else "N/A"
