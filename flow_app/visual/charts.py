"""Chart builders (Altair) for flow trends, stage timing and correlations."""

from __future__ import annotations

import altair as alt
import pandas as pd

from flow_app.analytics.metrics.flow import SizeBucket, StageVariability, created_resolved_trend

CREATED_COLOR = "#1f77b4"
RESOLVED_COLOR = "#2ca02c"


def created_resolved_chart(df: pd.DataFrame, period: str = "weekly"):
    """Line chart of created vs resolved counts per period.

    Returns ``(chart, trend_df)``; the chart is None when there is nothing to plot.
    """
    trend = created_resolved_trend(df, period)
    if trend.empty:
        return None, trend
    long = trend.melt(id_vars=["period"], var_name="series", value_name="count")
    long["series"] = long["series"].str.title()
    color = alt.Color(
        "series:N",
        title=None,
        scale=alt.Scale(domain=["Created", "Resolved"], range=[CREATED_COLOR, RESOLVED_COLOR]),
    )
    line = (
        alt.Chart(long)
        .mark_line()
        .encode(
            x=alt.X("period:O", title="Period", sort=None),
            y=alt.Y("count:Q", title="Issues"),
            color=color,
        )
    )
    points = (
        alt.Chart(long)
        .mark_circle(opacity=0.75, size=60)
        .encode(
            x=alt.X("period:O", sort=None),
            y="count:Q",
            color=color,
            tooltip=[
                alt.Tooltip("period:O", title="Period"),
                alt.Tooltip("series:N", title="Series"),
                alt.Tooltip("count:Q", title="Issues"),
            ],
        )
    )
    return (line + points).properties(height=300), trend


def correlation_scatter(df: pd.DataFrame, x_col: str, y_col: str, *, x_title: str, y_title: str):
    """Scatter plot with a linear regression line for two positive metric columns."""
    if df is None or df.empty or x_col not in df.columns or y_col not in df.columns:
        return None
    data = df[[c for c in ("key", "summary", x_col, y_col) if c in df.columns]].copy()
    data[x_col] = pd.to_numeric(data[x_col], errors="coerce")
    data[y_col] = pd.to_numeric(data[y_col], errors="coerce")
    data = data[(data[x_col] >= 0) & (data[y_col] > 0)]
    if len(data) < 2:
        return None
    tooltip = [alt.Tooltip(f"{x_col}:Q", title=x_title), alt.Tooltip(f"{y_col}:Q", title=y_title, format=".1f")]
    if "key" in data.columns:
        tooltip.insert(0, alt.Tooltip("key:N", title="Ticket"))
    points = (
        alt.Chart(data)
        .mark_circle(size=70, opacity=0.7, color=CREATED_COLOR)
        .encode(
            x=alt.X(f"{x_col}:Q", title=x_title),
            y=alt.Y(f"{y_col}:Q", title=y_title),
            tooltip=tooltip,
        )
    )
    trend_line = points.transform_regression(x_col, y_col).mark_line(color="#d62728")
    return (points + trend_line).properties(height=280)


def stage_variability_chart(variability: list[StageVariability]):
    rows = [
        {
            "stage": item.stage,
            "median": item.stats.median,
            "mean": item.stats.mean,
            "std_dev": item.stats.std_dev,
            "coefficient": item.coefficient,
            "count": item.stats.count,
        }
        for item in variability
        if item.stats.count > 0
    ]
    if not rows:
        return None
    data = pd.DataFrame(rows)
    return (
        alt.Chart(data)
        .mark_bar()
        .encode(
            x=alt.X("stage:N", title="Stage", sort=[r["stage"] for r in rows]),
            y=alt.Y("coefficient:Q", title="Coefficient of variation (%)"),
            color=alt.Color("stage:N", legend=None),
            tooltip=[
                alt.Tooltip("stage:N", title="Stage"),
                alt.Tooltip("median:Q", title="Median (days)"),
                alt.Tooltip("mean:Q", title="Mean (days)"),
                alt.Tooltip("std_dev:Q", title="Std dev (days)"),
                alt.Tooltip("coefficient:Q", title="CV (%)"),
                alt.Tooltip("count:Q", title="Issues"),
            ],
        )
        .properties(height=240)
    )


def size_distribution_chart(buckets: list[SizeBucket]):
    rows = []
    for bucket in buckets:
        if bucket.count == 0:
            continue
        for stage, value in (
            ("Grooming", bucket.median_grooming_time),
            ("Development", bucket.median_dev_time),
            ("QA", bucket.median_qa_time),
        ):
            rows.append({"size": bucket.size, "stage": stage, "days": value, "count": bucket.count})
    if not rows:
        return None
    data = pd.DataFrame(rows)
    return (
        alt.Chart(data)
        .mark_bar()
        .encode(
            x=alt.X("size:N", title="Story size", sort=[b.size for b in buckets]),
            y=alt.Y("days:Q", title="Median days", stack="zero"),
            color=alt.Color("stage:N", title="Stage", sort=["Grooming", "Development", "QA"]),
            tooltip=[
                alt.Tooltip("size:N", title="Size"),
                alt.Tooltip("stage:N", title="Stage"),
                alt.Tooltip("days:Q", title="Median days"),
                alt.Tooltip("count:Q", title="Issues"),
            ],
        )
        .properties(height=280)
    )
