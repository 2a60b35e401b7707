"""Pure helpers to build the flow report context for testing (no Streamlit)."""

from __future__ import annotations

from dataclasses import dataclass, field

import pandas as pd

from flow_app.analytics.metrics import flow
from flow_app.analytics.metrics.stats import (
    CorrelationResult,
    calculate_stats,
    qa_churn_correlation,
    resolved_issues,
    story_points_correlation,
)
from flow_app.analytics.segments.filters import filtered_issues, get_filter_counts, get_filter_options
from flow_app.core.config import DEFAULT_TIME_PERIOD
from flow_app.core.models import FilterSpec, StatsResult


@dataclass(slots=True)
class ReportContext:
    """Everything the report pages render for one filter selection."""

    spec: FilterSpec
    issues: pd.DataFrame
    total_issues: int = 0
    resolved_count: int = 0
    unresolved_count: int = 0
    # Duration summaries over resolved issues
    lead_time: StatsResult = field(default_factory=StatsResult)
    cycle_time: StatsResult = field(default_factory=StatsResult)
    grooming_time: StatsResult = field(default_factory=StatsResult)
    dev_time: StatsResult = field(default_factory=StatsResult)
    qa_time: StatsResult = field(default_factory=StatsResult)
    review_churn: StatsResult = field(default_factory=StatsResult)
    qa_churn: StatsResult = field(default_factory=StatsResult)
    total_blockers: int = 0
    # Flow metrics
    flow_efficiency: flow.FlowEfficiency = field(default_factory=flow.FlowEfficiency)
    first_time_through: flow.FirstTimeThrough = field(default_factory=flow.FirstTimeThrough)
    stage_skips: flow.StageSkips = field(default_factory=flow.StageSkips)
    blocked_impact: flow.BlockedImpact = field(default_factory=flow.BlockedImpact)
    stage_variability: list[flow.StageVariability] = field(default_factory=list)
    defect_resolution: list[flow.DefectResolution] = field(default_factory=list)
    size_distribution: list[flow.SizeBucket] = field(default_factory=list)
    story_points_correlation: CorrelationResult = field(default_factory=CorrelationResult)
    qa_churn_correlation: CorrelationResult = field(default_factory=CorrelationResult)
    trend: pd.DataFrame = field(default_factory=pd.DataFrame)
    # Sidebar facets
    filter_options: dict[str, list] = field(default_factory=dict)
    filter_counts: dict[str, dict] = field(default_factory=dict)


def build_report_context(
    df: pd.DataFrame,
    spec: FilterSpec | None = None,
    *,
    time_period: str = DEFAULT_TIME_PERIOD,
) -> ReportContext:
    """Apply ``spec`` to the processed issues and compute every report aggregate.

    Parameters
    ----------
    df : pd.DataFrame
        Output of ``IssueService.process`` (one row per issue).
    spec : FilterSpec, optional
        Active filters; None means unfiltered.
    time_period : str
        Granularity of the created/resolved trend.

    Returns
    -------
    ReportContext
        Filtered issues plus all aggregates. Facet options and counts are
        computed against the unfiltered frame.
    """
    spec = spec or FilterSpec()
    if df is None or df.empty:
        return ReportContext(
            spec=spec,
            issues=pd.DataFrame(),
            stage_variability=flow.stage_variability(pd.DataFrame()),
            size_distribution=flow.size_distribution(pd.DataFrame()),
            filter_options=get_filter_options(pd.DataFrame()),
            filter_counts=get_filter_counts(pd.DataFrame(), spec),
        )

    subset = filtered_issues(df, spec)
    done = resolved_issues(subset)
    blockers = pd.to_numeric(done["blockers"], errors="coerce").fillna(0) if not done.empty else pd.Series(dtype=float)

    return ReportContext(
        spec=spec,
        issues=subset,
        total_issues=int(len(subset)),
        resolved_count=int(len(done)),
        unresolved_count=int(len(subset) - len(done)),
        lead_time=calculate_stats(done.get("lead_time", [])),
        cycle_time=calculate_stats(done.get("cycle_time", [])),
        grooming_time=calculate_stats(done.get("grooming_cycle_time", [])),
        dev_time=calculate_stats(done.get("dev_cycle_time", [])),
        qa_time=calculate_stats(done.get("qa_cycle_time", [])),
        review_churn=calculate_stats(done.get("review_churn", [])),
        qa_churn=calculate_stats(done.get("qa_churn", [])),
        total_blockers=int(blockers.sum()) if not blockers.empty else 0,
        flow_efficiency=flow.flow_efficiency(subset),
        first_time_through=flow.first_time_through(subset),
        stage_skips=flow.stage_skips(subset),
        blocked_impact=flow.blocked_time_impact(subset),
        stage_variability=flow.stage_variability(subset),
        defect_resolution=flow.defect_resolution_time(subset),
        size_distribution=flow.size_distribution(subset),
        story_points_correlation=story_points_correlation(subset),
        qa_churn_correlation=qa_churn_correlation(subset),
        trend=flow.created_resolved_trend(subset, time_period),
        filter_options=get_filter_options(df),
        filter_counts=get_filter_counts(df, spec),
    )
