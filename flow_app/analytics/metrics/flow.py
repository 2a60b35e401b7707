"""Flow metric calculators over the processed-issues DataFrame.

Every function takes the (already filtered) per-issue metrics frame produced
by ``IssueService.process`` and returns a small result object that always
carries a sample count so the UI can decide when to show "N/A".
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

import pandas as pd

from flow_app.analytics.metrics.stats import (
    calculate_stats,
    resolved_issues,
    round_half_up,
    round_series_half_up,
)
from flow_app.core.config import DEFECT_ISSUE_TYPES, NO_PRIORITY, TIME_PERIODS, TIMEZONE
from flow_app.core.models import StatsResult

STAGE_DURATION_COLUMNS: dict[str, str] = {
    "Grooming": "grooming_cycle_time",
    "Development": "dev_cycle_time",
    "QA": "qa_cycle_time",
}

SIZE_BUCKETS: tuple[str, ...] = ("Small (1pt)", "Medium (2-3pts)", "Large (4+pts)", "Unestimated")

_PRIORITY_PATTERN = re.compile(r"^p(\d+)$")
_EPOCH_MONDAY = pd.Timestamp("1970-01-05")


@dataclass(slots=True)
class FlowEfficiency:
    efficiency: float = 0.0
    active_time: float = 0.0
    wait_time: float = 0.0
    count: int = 0


@dataclass(slots=True)
class FirstTimeThrough:
    percentage: float = 0.0
    first_time_count: int = 0
    total: int = 0


@dataclass(slots=True)
class StageSkips:
    skipped_grooming_pct: float = 0.0
    skipped_review_pct: float = 0.0
    skipped_grooming: int = 0
    skipped_review: int = 0
    total: int = 0


@dataclass(slots=True)
class BlockedImpact:
    avg_blocked_lead_time: float = 0.0
    avg_unblocked_lead_time: float = 0.0
    estimated_impact: float = 0.0
    impact_ratio: float = 0.0
    blocked_count: int = 0
    total: int = 0


@dataclass(slots=True)
class StageVariability:
    stage: str
    stats: StatsResult = field(default_factory=StatsResult)
    coefficient: float = 0.0


@dataclass(slots=True)
class DefectResolution:
    priority: str
    count: int = 0
    stats: StatsResult = field(default_factory=StatsResult)
    resolution_times: list[float] = field(default_factory=list)


@dataclass(slots=True)
class SizeBucket:
    size: str
    count: int = 0
    completion_rate: float = 0.0
    median_lead_time: float = 0.0
    median_grooming_time: float = 0.0
    median_dev_time: float = 0.0
    median_qa_time: float = 0.0


def _numeric(df: pd.DataFrame, column: str) -> pd.Series:
    if column not in df.columns:
        return pd.Series(float("nan"), index=df.index, dtype=float)
    return pd.to_numeric(df[column], errors="coerce")


def _pct(part: int | float, whole: int | float) -> float:
    if not whole:
        return 0.0
    return round_half_up(part * 100 / whole)


def flow_efficiency(df: pd.DataFrame) -> FlowEfficiency:
    """Share of lead time spent in grooming, development and QA.

    Restricted to resolved issues with a positive lead time; missing stage
    durations count as zero active time.
    """
    done = resolved_issues(df)
    if done.empty:
        return FlowEfficiency()
    lead = _numeric(done, "lead_time")
    sample = done[lead > 0]
    if sample.empty:
        return FlowEfficiency()
    active = sum(_numeric(sample, col).fillna(0).sum() for col in STAGE_DURATION_COLUMNS.values())
    total_lead = float(lead[lead > 0].sum())
    return FlowEfficiency(
        efficiency=_pct(active, total_lead),
        active_time=round_half_up(float(active)),
        wait_time=round_half_up(total_lead - float(active)),
        count=int(len(sample)),
    )


def first_time_through(df: pd.DataFrame) -> FirstTimeThrough:
    done = resolved_issues(df)
    total = int(len(done))
    if total == 0:
        return FirstTimeThrough()
    clean = (_numeric(done, "review_churn").fillna(0) == 0) & (_numeric(done, "qa_churn").fillna(0) == 0)
    first_time = int(clean.sum())
    return FirstTimeThrough(percentage=_pct(first_time, total), first_time_count=first_time, total=total)


def stage_skips(df: pd.DataFrame) -> StageSkips:
    done = resolved_issues(df)
    total = int(len(done))
    if total == 0:
        return StageSkips()
    grooming = _numeric(done, "grooming_cycle_time")
    skipped_grooming = int((grooming.isna() | (grooming == 0)).sum())
    skipped_review = int((_numeric(done, "review_churn").fillna(0) == 0).sum())
    return StageSkips(
        skipped_grooming_pct=_pct(skipped_grooming, total),
        skipped_review_pct=_pct(skipped_review, total),
        skipped_grooming=skipped_grooming,
        skipped_review=skipped_review,
        total=total,
    )


def blocked_time_impact(df: pd.DataFrame) -> BlockedImpact:
    """Lead-time penalty of blocked issues relative to unblocked ones.

    The impact is the blocked group's average lead time minus the unblocked
    group's, clamped at zero, and the ratio expresses it as a percentage of
    the blocked average. Missing lead times count as zero.
    """
    done = resolved_issues(df)
    total = int(len(done))
    if total == 0:
        return BlockedImpact()
    blocked_mask = _numeric(done, "blockers").fillna(0) > 0
    blocked_count = int(blocked_mask.sum())
    if blocked_count == 0:
        return BlockedImpact(total=total)
    lead = _numeric(done, "lead_time").fillna(0)
    avg_blocked = float(lead[blocked_mask].sum()) / blocked_count
    unblocked_count = total - blocked_count
    avg_unblocked = float(lead[~blocked_mask].sum()) / (unblocked_count or 1)
    impact = max(0.0, avg_blocked - avg_unblocked)
    ratio = impact / avg_blocked * 100 if avg_blocked > 0 else 0.0
    return BlockedImpact(
        avg_blocked_lead_time=round_half_up(avg_blocked),
        avg_unblocked_lead_time=round_half_up(avg_unblocked),
        estimated_impact=round_half_up(impact),
        impact_ratio=round_half_up(ratio),
        blocked_count=blocked_count,
        total=total,
    )


def stage_variability(df: pd.DataFrame) -> list[StageVariability]:
    done = resolved_issues(df)
    out: list[StageVariability] = []
    for stage, column in STAGE_DURATION_COLUMNS.items():
        values = _numeric(done, column) if not done.empty else pd.Series(dtype=float)
        stats = calculate_stats(values[values > 0])
        coefficient = round_half_up(stats.std_dev / stats.mean * 100) if stats.mean else 0.0
        out.append(StageVariability(stage=stage, stats=stats, coefficient=coefficient))
    return out


def is_defect_type(issue_type: str | None) -> bool:
    text = str(issue_type or "").lower()
    return any(token in text for token in DEFECT_ISSUE_TYPES)


def priority_sort_key(priority: str) -> tuple[int, int, str]:
    """P-numbered priorities first (numerically), everything else alphabetically."""
    text = str(priority).strip().lower()
    match = _PRIORITY_PATTERN.match(text)
    if match:
        return (0, int(match.group(1)), text)
    return (1, 0, text)


def defect_resolution_time(df: pd.DataFrame) -> list[DefectResolution]:
    done = resolved_issues(df)
    if done.empty or "issue_type" not in done.columns:
        return []
    defects = done[done["issue_type"].apply(is_defect_type)].copy()
    if defects.empty:
        return []
    created = pd.to_datetime(defects["created"], utc=True, errors="coerce")
    resolved = pd.to_datetime(defects["resolved"], utc=True, errors="coerce")
    defects["resolution_days"] = round_series_half_up((resolved - created).dt.total_seconds() / 86400)
    priority = defects["priority"] if "priority" in defects.columns else pd.Series(None, index=defects.index)
    defects["priority_group"] = priority.fillna("").astype(str).str.strip().replace("", NO_PRIORITY)

    groups: list[DefectResolution] = []
    for name, group in defects.groupby("priority_group", sort=False):
        times = group["resolution_days"].dropna().tolist()
        groups.append(
            DefectResolution(
                priority=str(name),
                count=int(len(group)),
                stats=calculate_stats(times),
                resolution_times=times,
            )
        )
    return sorted(groups, key=lambda g: priority_sort_key(g.priority))


def size_bucket(points) -> str:
    try:
        value = float(points)
    except (TypeError, ValueError):
        return "Unestimated"
    if pd.isna(value) or value <= 0:
        return "Unestimated"
    if value == 1:
        return "Small (1pt)"
    if 2 <= value <= 3:
        return "Medium (2-3pts)"
    return "Large (4+pts)"


def _median(series: pd.Series) -> float:
    values = series[series.notna() & (series != 0)]
    if values.empty:
        return 0.0
    return round_half_up(float(values.median()))


def size_distribution(df: pd.DataFrame) -> list[SizeBucket]:
    """Completion rate and median stage times per story size bucket."""
    if df is None or df.empty:
        return [SizeBucket(size=name) for name in SIZE_BUCKETS]
    points = df["story_points"] if "story_points" in df.columns else pd.Series(None, index=df.index)
    buckets = points.apply(size_bucket)
    resolved = df["resolved"].notna() if "resolved" in df.columns else pd.Series(False, index=df.index)
    out: list[SizeBucket] = []
    for name in SIZE_BUCKETS:
        mask = buckets == name
        group = df[mask]
        count = int(mask.sum())
        out.append(
            SizeBucket(
                size=name,
                count=count,
                completion_rate=_pct(int((mask & resolved).sum()), count),
                median_lead_time=_median(_numeric(group, "lead_time")),
                median_grooming_time=_median(_numeric(group, "grooming_cycle_time")),
                median_dev_time=_median(_numeric(group, "dev_cycle_time")),
                median_qa_time=_median(_numeric(group, "qa_cycle_time")),
            )
        )
    return out


def period_keys(values: pd.Series, period: str) -> pd.Series:
    """Bucket timestamps into sortable period labels in the report timezone."""
    if period not in TIME_PERIODS:
        raise ValueError(f"Unknown time period {period!r}; expected one of {', '.join(TIME_PERIODS)}")
    ts = pd.to_datetime(values, utc=True, errors="coerce").dropna()
    ts = ts.dt.tz_convert(TIMEZONE).dt.tz_localize(None)
    day = ts.dt.normalize()
    if period == "daily":
        return day.dt.strftime("%Y-%m-%d")
    if period == "monthly":
        return ts.dt.strftime("%Y-%m")
    if period == "quarterly":
        return ts.dt.year.astype(str) + "-Q" + ts.dt.quarter.astype(str)
    monday = day - pd.to_timedelta(day.dt.weekday, unit="D")
    if period == "biweekly":
        weeks = (monday - _EPOCH_MONDAY).dt.days // 7
        monday = monday - pd.to_timedelta((weeks % 2) * 7, unit="D")
    return monday.dt.strftime("%Y-%m-%d")


def created_resolved_trend(df: pd.DataFrame, period: str = "weekly") -> pd.DataFrame:
    """Created and resolved issue counts per period, sorted by period key."""
    columns = ["period", "created", "resolved"]
    if period not in TIME_PERIODS:
        raise ValueError(f"Unknown time period {period!r}; expected one of {', '.join(TIME_PERIODS)}")
    if df is None or df.empty:
        return pd.DataFrame(columns=columns)
    created = period_keys(df["created"], period).value_counts() if "created" in df.columns else pd.Series(dtype=int)
    resolved = period_keys(df["resolved"], period).value_counts() if "resolved" in df.columns else pd.Series(dtype=int)
    trend = pd.concat([created.rename("created"), resolved.rename("resolved")], axis=1).fillna(0)
    if trend.empty:
        return pd.DataFrame(columns=columns)
    trend = trend.astype(int).sort_index()
    trend.index.name = "period"
    return trend.reset_index()[columns]
