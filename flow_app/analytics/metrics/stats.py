"""Statistical summaries and correlations over per-issue metrics."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

import numpy as np
import pandas as pd

from flow_app.core.models import StatsResult


def round_half_up(value: float, digits: int = 1) -> float:
    """Round with ties going up: 2.25 -> 2.3, 0.25 -> 0.3."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def round_series_half_up(values: pd.Series, digits: int = 1) -> pd.Series:
    return values.map(lambda v: v if pd.isna(v) else round_half_up(v, digits))


@dataclass(slots=True)
class CorrelationResult:
    correlation: float = 0.0
    count: int = 0


def _clean(values: Iterable[float | None]) -> np.ndarray:
    kept: list[float] = []
    for value in values if values is not None else ():
        if value is None:
            continue
        try:
            if pd.isna(value):
                continue
            kept.append(float(value))
        except (TypeError, ValueError):
            continue
    return np.asarray(kept, dtype=float)


def calculate_stats(values: Iterable[float | None]) -> StatsResult:
    """Median, mean, min, max, population std-dev and count of ``values``.

    Missing and NaN values are dropped first. An empty sample yields an
    all-zero result with ``count == 0``; callers check ``count`` before
    trusting the other fields.

    Parameters
    ----------
    values : iterable of float or None
        Raw samples (e.g., a DataFrame column).

    Returns
    -------
    StatsResult
        ``median``, ``mean`` and ``std_dev`` rounded to one decimal;
        ``min``/``max`` as observed.
    """
    arr = _clean(values)
    if arr.size == 0:
        return StatsResult()
    return StatsResult(
        median=round_half_up(float(np.median(arr))),
        mean=round_half_up(float(arr.mean())),
        min=float(arr.min()),
        max=float(arr.max()),
        std_dev=round_half_up(float(arr.std(ddof=0))),
        count=int(arr.size),
    )


def calculate_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson correlation; 0 for mismatched lengths, n < 2, or zero variance."""
    if len(xs) != len(ys) or len(xs) < 2:
        return 0.0
    x = np.asarray(xs, dtype=float)
    y = np.asarray(ys, dtype=float)
    dx = x - x.mean()
    dy = y - y.mean()
    denominator = float(np.sqrt((dx**2).sum() * (dy**2).sum()))
    if denominator == 0:
        return 0.0
    return float((dx * dy).sum() / denominator)


def resolved_issues(df: pd.DataFrame) -> pd.DataFrame:
    if df is None:
        return pd.DataFrame()
    if df.empty or "resolved" not in df.columns:
        return df.iloc[0:0]
    return df[df["resolved"].notna()]


def _paired_correlation(df: pd.DataFrame, x_col: str, y_col: str, mask: pd.Series) -> CorrelationResult:
    pairs = df.loc[mask, [x_col, y_col]].astype(float)
    if len(pairs) < 2:
        return CorrelationResult()
    value = calculate_correlation(pairs[x_col].tolist(), pairs[y_col].tolist())
    return CorrelationResult(correlation=round_half_up(value, 3), count=int(len(pairs)))


def story_points_correlation(df: pd.DataFrame) -> CorrelationResult:
    """Story points vs development cycle time over resolved, estimated issues."""
    done = resolved_issues(df)
    if done.empty:
        return CorrelationResult()
    points = pd.to_numeric(done["story_points"], errors="coerce")
    dev = pd.to_numeric(done["dev_cycle_time"], errors="coerce")
    return _paired_correlation(done, "story_points", "dev_cycle_time", (points > 0) & (dev > 0))


def qa_churn_correlation(df: pd.DataFrame) -> CorrelationResult:
    """QA churn vs QA cycle time over resolved issues that spent time in QA."""
    done = resolved_issues(df)
    if done.empty:
        return CorrelationResult()
    churn = pd.to_numeric(done["qa_churn"], errors="coerce")
    qa = pd.to_numeric(done["qa_cycle_time"], errors="coerce")
    return _paired_correlation(done, "qa_churn", "qa_cycle_time", (churn >= 0) & (qa > 0))
