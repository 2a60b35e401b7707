"""Duration binning and histogram utilities.

Buckets per-issue durations (days) into readable ranges and builds Altair
histograms of the lead/cycle/stage time distributions.
"""

from __future__ import annotations

import math

import altair as alt
import pandas as pd

DURATION_LABELS: dict[str, str] = {
    "lead_time": "Lead Time",
    "cycle_time": "Cycle Time",
    "grooming_cycle_time": "Grooming",
    "dev_cycle_time": "Development",
    "qa_cycle_time": "QA",
}


def determine_bin_step(
    values: pd.Series,
    *,
    target_bins: int = 12,
    min_step: float = 1.0,
) -> float | None:
    """Calculate a whole-day step size giving roughly ``target_bins`` bins.

    Returns None when ``values`` has no numeric entries.
    """
    if values is None:
        return None
    numeric = pd.to_numeric(values, errors="coerce").dropna()
    if numeric.empty:
        return None
    value_range = float(numeric.max() - numeric.min())
    if math.isnan(value_range) or value_range <= 0:
        return float(min_step)
    raw_step = value_range / max(target_bins, 1)
    return float(max(math.ceil(raw_step), min_step))


def build_duration_bucket_spec(
    values: pd.Series,
    *,
    target_bins: int = 12,
    min_step: float = 1.0,
) -> dict | None:
    """Build bin edges and labels such as "0–<3d", "3–<6d", "≥30d".

    Returns
    -------
    dict or None
        ``bins`` (edges, last one infinite), ``labels`` and ``step``;
        None if there are no positive values.
    """
    numeric = pd.to_numeric(values, errors="coerce").dropna() if values is not None else pd.Series(dtype=float)
    if numeric.empty:
        return None
    step = determine_bin_step(numeric, target_bins=target_bins, min_step=min_step)
    max_value = float(numeric.max())
    if step is None or max_value <= 0:
        return None
    max_edge = math.ceil(max_value / step) * step
    edges: list[float] = [0.0]
    current = step
    while current <= max_edge + 1e-9:
        edges.append(round(current, 6))
        current += step
    edges.append(float("inf"))
    labels = [f"{int(edges[i])}–<{int(edges[i + 1])}d" for i in range(len(edges) - 2)]
    labels.append(f"≥{int(edges[-2])}d")
    return {"bins": edges, "labels": labels, "step": step}


def bucket_durations(values: pd.Series, *, target_bins: int = 12) -> pd.DataFrame:
    """Count durations per bucket; empty frame when there is nothing to bin."""
    spec = build_duration_bucket_spec(values, target_bins=target_bins)
    if spec is None:
        return pd.DataFrame(columns=["bucket", "count"])
    numeric = pd.to_numeric(values, errors="coerce").dropna()
    cut = pd.cut(numeric, bins=spec["bins"], labels=spec["labels"], right=False, include_lowest=True)
    counts = cut.value_counts().reindex(spec["labels"], fill_value=0)
    return pd.DataFrame({"bucket": spec["labels"], "count": counts.astype(int).tolist()})


def melt_durations(df: pd.DataFrame, columns: list[str] | None = None) -> pd.DataFrame:
    """Long-form ``key``/``metric``/``days`` rows for the selected duration columns."""
    if df is None or df.empty:
        return pd.DataFrame(columns=["key", "metric", "days"])
    columns = [c for c in (columns or list(DURATION_LABELS)) if c in df.columns]
    if not columns:
        return pd.DataFrame(columns=["key", "metric", "days"])
    id_vars = ["key"] if "key" in df.columns else []
    long = df[id_vars + columns].melt(id_vars=id_vars, var_name="metric", value_name="days")
    long["days"] = pd.to_numeric(long["days"], errors="coerce")
    long = long[long["days"] > 0].copy()
    long["metric"] = long["metric"].map(DURATION_LABELS).fillna(long["metric"])
    return long


def create_histogram_chart(
    data: pd.DataFrame,
    value_col: str,
    *,
    title: str,
    facet_col: str | None = None,
    facet_columns: int = 2,
    bin_step: float | None = None,
    max_bins: int = 20,
) -> alt.Chart | None:
    """Create a histogram of ``value_col`` (days), optionally faceted."""
    if data is None or data.empty or value_col not in data:
        return None

    bin_args: dict[str, float | int] = {}
    if bin_step is not None and bin_step > 0:
        bin_args["step"] = bin_step
    else:
        bin_args["maxbins"] = max_bins

    base = (
        alt.Chart(data)
        .mark_bar()
        .encode(
            x=alt.X(f"{value_col}:Q", bin=alt.Bin(**bin_args), title="Days"),
            y=alt.Y("count()", title="Issues"),
        )
        .properties(title=title, height=240)
    )

    if facet_col and facet_col in data:
        return base.facet(
            facet=alt.Facet(f"{facet_col}:N", title=None),
            columns=facet_columns,
            spacing=12,
        ).resolve_scale(x="independent", y="independent")

    return base
