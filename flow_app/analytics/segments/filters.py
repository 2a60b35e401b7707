"""Filter engine over the processed-issues DataFrame.

Each facet (issue type, sprint, story points, status, project, priority) is a
boolean mask; the active masks are ANDed together. Facet counts are computed
with every *other* active facet applied so an option's count does not depend
on what is selected within its own facet.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date, datetime, time

import numpy as np
import pandas as pd
import pytz

from flow_app.core.config import (
    NO_PRIORITY,
    NO_SPRINT,
    NO_STORY_POINTS,
    RESOLVED,
    STATUS_OPTIONS,
    TIMEZONE,
    UNKNOWN_ISSUE_TYPE,
    UNRESOLVED,
)
from flow_app.core.models import FilterSpec

# FilterSpec field -> DataFrame column
FACET_COLUMNS: dict[str, str] = {
    "issue_types": "issue_type",
    "sprints": "sprint",
    "story_points": "story_points",
    "statuses": "status",
    "project_keys": "project_key",
    "priorities": "priority",
}

_END_OF_DAY = time(23, 59, 59, 999000)


def story_point_key(value) -> float | int | str:
    """Facet value for a story point estimate: the number, or ``"none"``."""
    if isinstance(value, str) and value.strip().lower() == NO_STORY_POINTS:
        return NO_STORY_POINTS
    try:
        number = float(value)
    except (TypeError, ValueError):
        return NO_STORY_POINTS
    if np.isnan(number) or number <= 0:
        return NO_STORY_POINTS
    return int(number) if number.is_integer() else number


def _facet_series(df: pd.DataFrame, dimension: str) -> pd.Series:
    column = FACET_COLUMNS[dimension]
    if dimension == "statuses":
        if "resolved" in df.columns:
            resolved = df["resolved"].notna()
        else:
            resolved = pd.Series(False, index=df.index)
        return pd.Series(np.where(resolved, RESOLVED, UNRESOLVED), index=df.index)
    if dimension == "story_points":
        raw = df[column] if column in df.columns else pd.Series(None, index=df.index, dtype=object)
        return raw.apply(story_point_key)
    fallback = {
        "issue_types": UNKNOWN_ISSUE_TYPE,
        "sprints": NO_SPRINT,
        "priorities": NO_PRIORITY,
        "project_keys": "",
    }[dimension]
    if column not in df.columns:
        return pd.Series(fallback, index=df.index, dtype=object)
    return df[column].fillna(fallback).astype(str).replace("", fallback)


def _localize(value: datetime, tz) -> datetime:
    if value.tzinfo is None:
        return tz.localize(value)
    return value.astimezone(tz)


def range_start(value: date | datetime | None, tz=None) -> datetime | None:
    if value is None:
        return None
    tz = tz or pytz.timezone(TIMEZONE)
    if isinstance(value, datetime):
        return _localize(value, tz)
    return tz.localize(datetime.combine(value, time.min))


def range_end(value: date | datetime | None, tz=None) -> datetime | None:
    """Inclusive end bound: 23:59:59.999 of the given calendar day."""
    if value is None:
        return None
    tz = tz or pytz.timezone(TIMEZONE)
    day = _localize(value, tz).date() if isinstance(value, datetime) else value
    return tz.localize(datetime.combine(day, _END_OF_DAY))


def _date_mask(
    series: pd.Series,
    start: date | datetime | None,
    end: date | datetime | None,
) -> pd.Series | None:
    if start is None and end is None:
        return None
    stamps = pd.to_datetime(series, utc=True, errors="coerce")
    mask = stamps.notna()
    lower = range_start(start)
    upper = range_end(end)
    if lower is not None:
        mask &= stamps >= pd.Timestamp(lower)
    if upper is not None:
        mask &= stamps <= pd.Timestamp(upper)
    return mask


def _normalize_selection(dimension: str, values: Sequence) -> set:
    if dimension == "story_points":
        return {story_point_key(v) for v in values}
    return {str(v) for v in values}


def _facet_masks(df: pd.DataFrame, spec: FilterSpec) -> dict[str, pd.Series]:
    masks: dict[str, pd.Series] = {}
    for dimension in FACET_COLUMNS:
        selected = getattr(spec, dimension) or []
        if not selected:
            continue
        wanted = _normalize_selection(dimension, selected)
        masks[dimension] = _facet_series(df, dimension).isin(wanted)
    return masks


def _date_masks(df: pd.DataFrame, spec: FilterSpec) -> list[pd.Series]:
    out: list[pd.Series] = []
    if "created" in df.columns:
        created = _date_mask(df["created"], spec.created_start, spec.created_end)
        if created is not None:
            out.append(created)
    resolved = pd.Series(None, index=df.index) if "resolved" not in df.columns else df["resolved"]
    # A resolved-date range implicitly drops unresolved issues.
    resolved_mask = _date_mask(resolved, spec.resolved_start, spec.resolved_end)
    if resolved_mask is not None:
        out.append(resolved_mask)
    return out


def _combine(index: pd.Index, masks) -> pd.Series:
    combined = pd.Series(True, index=index)
    for mask in masks:
        combined &= mask
    return combined


def filtered_issues(df: pd.DataFrame, spec: FilterSpec | None) -> pd.DataFrame:
    """Rows of ``df`` satisfying every active dimension of ``spec``."""
    if df is None or df.empty or spec is None:
        return df if df is not None else pd.DataFrame()
    masks = list(_facet_masks(df, spec).values()) + _date_masks(df, spec)
    if not masks:
        return df
    return df[_combine(df.index, masks)]


def _sort_options(dimension: str, values) -> list:
    if dimension == "story_points":
        numbers = sorted(v for v in values if v != NO_STORY_POINTS)
        return numbers + ([NO_STORY_POINTS] if NO_STORY_POINTS in values else [])
    return sorted((v for v in values if v), key=str.lower)


def get_filter_options(df: pd.DataFrame) -> dict[str, list]:
    """Distinct values per facet, sorted for display."""
    options: dict[str, list] = {dimension: [] for dimension in FACET_COLUMNS}
    options["statuses"] = list(STATUS_OPTIONS)
    if df is None or df.empty:
        return options
    for dimension in FACET_COLUMNS:
        if dimension == "statuses":
            continue
        options[dimension] = _sort_options(dimension, set(_facet_series(df, dimension).unique()))
    return options


def get_filter_counts(df: pd.DataFrame, spec: FilterSpec | None) -> dict[str, dict]:
    """Per-facet option counts holding the facet itself unconstrained.

    For each facet, the count of an option is the number of issues having
    that option among the issues matching all other active facets and the
    date ranges. Options absent from that subset report 0.
    """
    spec = spec or FilterSpec()
    options = get_filter_options(df)
    counts: dict[str, dict] = {dimension: dict.fromkeys(values, 0) for dimension, values in options.items()}
    if df is None or df.empty:
        return counts
    masks = _facet_masks(df, spec)
    date_masks = _date_masks(df, spec)
    for dimension in FACET_COLUMNS:
        others = [mask for name, mask in masks.items() if name != dimension] + date_masks
        subset = _facet_series(df, dimension)[_combine(df.index, others)]
        for value, count in subset.value_counts().items():
            if value in counts[dimension]:
                counts[dimension][value] = int(count)
    return counts


def toggle_value(spec: FilterSpec, dimension: str, value) -> FilterSpec:
    """Return a copy of ``spec`` with ``value`` added to or removed from ``dimension``."""
    if dimension not in FACET_COLUMNS:
        raise ValueError(f"Unknown filter dimension {dimension!r}")
    current = list(getattr(spec, dimension) or [])
    if value in current:
        current = [v for v in current if v != value]
    else:
        current.append(value)
    return spec.with_values(**{dimension: current})


def has_active_filters(spec: FilterSpec | None) -> bool:
    if spec is None:
        return False
    if any(getattr(spec, dimension) for dimension in FACET_COLUMNS):
        return True
    return any(
        v is not None for v in (spec.created_start, spec.created_end, spec.resolved_start, spec.resolved_end)
    )
