"""Trends and distributions page."""

from __future__ import annotations

import streamlit as st

from flow_app.analytics.metrics.binning import (
    DURATION_LABELS,
    bucket_durations,
    create_histogram_chart,
    determine_bin_step,
    melt_durations,
)
from flow_app.analytics.metrics.stats import resolved_issues
from flow_app.app import register_page
from flow_app.core.config import DEFAULT_TIME_PERIOD, TIME_PERIODS
from flow_app.pages._shared import page_context
from flow_app.visual.charts import correlation_scatter, created_resolved_chart


@register_page("Trends & Distributions")
def charts_page():
    st.title("Trends & Distributions")
    period = st.sidebar.selectbox(
        "Trend period",
        list(TIME_PERIODS),
        index=list(TIME_PERIODS).index(DEFAULT_TIME_PERIOD),
        format_func=str.title,
    )
    ctx = page_context(period)
    if ctx is None:
        return
    if ctx.total_issues == 0:
        st.info("No issues match the current filters.")
        return

    st.markdown("#### Created vs resolved")
    chart, trend = created_resolved_chart(ctx.issues, period)
    if chart is None:
        st.info("No dated issues to plot.")
    else:
        st.altair_chart(chart, width="stretch")
        with st.expander("Trend data"):
            st.dataframe(trend, hide_index=True, width="stretch")

    st.markdown("#### Duration distributions")
    done = resolved_issues(ctx.issues)
    metrics = st.multiselect(
        "Durations",
        options=list(DURATION_LABELS),
        default=["lead_time", "cycle_time"],
        format_func=DURATION_LABELS.get,
    )
    long = melt_durations(done, metrics)
    if long.empty:
        st.info("No positive durations for the selected metrics.")
    else:
        step = determine_bin_step(long["days"])
        hist = create_histogram_chart(long, "days", title="Days per issue", facet_col="metric", bin_step=step)
        if hist is not None:
            st.altair_chart(hist)
        with st.expander("Bucketed counts"):
            for metric in metrics:
                if metric not in done.columns:
                    continue
                buckets = bucket_durations(done[metric])
                if buckets.empty:
                    continue
                st.caption(DURATION_LABELS[metric])
                st.dataframe(buckets, hide_index=True)

    st.markdown("#### Correlations")
    left, right = st.columns(2)
    with left:
        st.caption(f"Story points vs dev time (r = {ctx.story_points_correlation.correlation})")
        estimated = done[done["story_points"] > 0] if "story_points" in done.columns else done
        scatter = correlation_scatter(
            estimated, "story_points", "dev_cycle_time", x_title="Story points", y_title="Dev time (days)"
        )
        if scatter is None:
            st.info("Need at least two estimated issues with dev time.")
        else:
            st.altair_chart(scatter, width="stretch")
    with right:
        st.caption(f"QA churn vs QA time (r = {ctx.qa_churn_correlation.correlation})")
        scatter = correlation_scatter(
            done, "qa_churn", "qa_cycle_time", x_title="QA entries", y_title="QA time (days)"
        )
        if scatter is None:
            st.info("Need at least two issues with QA time.")
        else:
            st.altair_chart(scatter, width="stretch")
