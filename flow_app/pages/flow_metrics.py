"""Flow metrics page: headline cycle times, flow ratios, and defect resolution."""

from __future__ import annotations

import pandas as pd
import streamlit as st

from flow_app.app import register_page
from flow_app.pages._shared import fmt_days, page_context
from flow_app.visual.charts import size_distribution_chart, stage_variability_chart


def _pct(value: float, count: int) -> str:
    return f"{value:.1f}%" if count else "N/A"


def _correlation(value: float, count: int) -> str:
    return f"{value:.3f}" if count else "N/A"


@register_page("Flow Metrics")
def flow_metrics_page():
    st.title("Flow Metrics")
    ctx = page_context()
    if ctx is None:
        return
    st.caption(
        f"{ctx.total_issues} issue(s) match the filters: {ctx.resolved_count} resolved, "
        f"{ctx.unresolved_count} unresolved. Durations are computed over resolved issues."
    )
    if ctx.total_issues == 0:
        st.info("No issues match the current filters.")
        return

    st.markdown("#### Cycle times (median)")
    cols = st.columns(5)
    cols[0].metric(
        "Lead Time",
        fmt_days(ctx.lead_time.median, ctx.lead_time.count),
        help=f"Creation to final Done. Mean {ctx.lead_time.mean} d over {ctx.lead_time.count} issue(s).",
    )
    cols[1].metric(
        "Cycle Time",
        fmt_days(ctx.cycle_time.median, ctx.cycle_time.count),
        help=f"First In Progress to final Done. Mean {ctx.cycle_time.mean} d over {ctx.cycle_time.count}.",
    )
    cols[2].metric(
        "Grooming",
        fmt_days(ctx.grooming_time.median, ctx.grooming_time.count),
        help="First Ready for Grooming to first In Progress.",
    )
    cols[3].metric(
        "Development",
        fmt_days(ctx.dev_time.median, ctx.dev_time.count),
        help="First In Progress to the last QA entry.",
    )
    cols[4].metric(
        "QA",
        fmt_days(ctx.qa_time.median, ctx.qa_time.count),
        help="Last QA entry to final Done.",
    )

    st.markdown("#### Flow")
    fe, ftt, skips, blocked = ctx.flow_efficiency, ctx.first_time_through, ctx.stage_skips, ctx.blocked_impact
    row = st.columns(4)
    row[0].metric(
        "Flow Efficiency",
        _pct(fe.efficiency, fe.count),
        help=(
            "Active time (grooming + dev + QA) as a share of lead time. "
            f"Active {fe.active_time} d, waiting {fe.wait_time} d across {fe.count} issue(s)."
        ),
    )
    row[1].metric(
        "First-Time-Through",
        _pct(ftt.percentage, ftt.total),
        help=f"Resolved without entering review or QA: {ftt.first_time_count} of {ftt.total}.",
    )
    row[2].metric(
        "Skipped Grooming",
        _pct(skips.skipped_grooming_pct, skips.total),
        help=f"{skips.skipped_grooming} of {skips.total} resolved issue(s) have no grooming time.",
    )
    row[3].metric(
        "Skipped Review",
        _pct(skips.skipped_review_pct, skips.total),
        help=f"{skips.skipped_review} of {skips.total} resolved issue(s) never entered review.",
    )

    row = st.columns(4)
    row[0].metric(
        "Blocked Time Impact",
        _pct(blocked.impact_ratio, blocked.blocked_count),
        help=(
            "Extra average lead time of blocked issues relative to unblocked ones, as a share of the "
            f"blocked average ({blocked.avg_blocked_lead_time} d vs {blocked.avg_unblocked_lead_time} d)."
        ),
    )
    row[1].metric(
        "Blocked Issues",
        f"{blocked.blocked_count} / {blocked.total}",
        help="Resolved issues blocked at least once.",
    )
    row[2].metric(
        "Points vs Dev Time",
        _correlation(ctx.story_points_correlation.correlation, ctx.story_points_correlation.count),
        help=f"Pearson correlation over {ctx.story_points_correlation.count} estimated issue(s).",
    )
    row[3].metric(
        "QA Churn vs QA Time",
        _correlation(ctx.qa_churn_correlation.correlation, ctx.qa_churn_correlation.count),
        help=f"Pearson correlation over {ctx.qa_churn_correlation.count} issue(s) with QA time.",
    )

    st.markdown("---")
    left, right = st.columns(2)
    with left:
        st.markdown("#### Stage variability")
        chart = stage_variability_chart(ctx.stage_variability)
        if chart is None:
            st.info("Not enough stage durations to measure variability.")
        else:
            st.altair_chart(chart, width="stretch")
        st.dataframe(
            pd.DataFrame(
                {
                    "Stage": v.stage,
                    "Issues": v.stats.count,
                    "Median (d)": v.stats.median,
                    "Mean (d)": v.stats.mean,
                    "Std dev (d)": v.stats.std_dev,
                    "CV (%)": v.coefficient,
                }
                for v in ctx.stage_variability
            ),
            hide_index=True,
            width="stretch",
        )
    with right:
        st.markdown("#### Story size impact")
        chart = size_distribution_chart(ctx.size_distribution)
        if chart is None:
            st.info("No issues to group by size.")
        else:
            st.altair_chart(chart, width="stretch")
        st.dataframe(
            pd.DataFrame(
                {
                    "Size": b.size,
                    "Issues": b.count,
                    "Completion (%)": b.completion_rate,
                    "Median lead (d)": b.median_lead_time,
                    "Median grooming (d)": b.median_grooming_time,
                    "Median dev (d)": b.median_dev_time,
                    "Median QA (d)": b.median_qa_time,
                }
                for b in ctx.size_distribution
            ),
            hide_index=True,
            width="stretch",
        )

    st.markdown("#### Defect resolution time by priority")
    if not ctx.defect_resolution:
        st.info("No resolved defects (bug, defect, issue, incident) in the current selection.")
        return
    st.dataframe(
        pd.DataFrame(
            {
                "Priority": d.priority,
                "Defects": d.count,
                "Median (d)": d.stats.median,
                "Mean (d)": d.stats.mean,
                "Min (d)": d.stats.min,
                "Max (d)": d.stats.max,
                "Std dev (d)": d.stats.std_dev,
            }
            for d in ctx.defect_resolution
        ),
        hide_index=True,
        width="stretch",
    )
