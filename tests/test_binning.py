import altair as alt
import pandas as pd

from flow_app.analytics.metrics.binning import (
    build_duration_bucket_spec,
    bucket_durations,
    create_histogram_chart,
    determine_bin_step,
    melt_durations,
)


def test_determine_bin_step():
    assert determine_bin_step(pd.Series([0, 24])) == 2.0
    assert determine_bin_step(pd.Series([3, 3])) == 1.0
    assert determine_bin_step(pd.Series([None, "x"])) is None


def test_bucket_spec_labels():
    spec = build_duration_bucket_spec(pd.Series([1, 5, 9]))
    assert spec["step"] == 1.0
    assert spec["labels"][0] == "0–<1d"
    assert spec["labels"][-1] == "≥9d"
    assert spec["bins"][-1] == float("inf")
    assert build_duration_bucket_spec(pd.Series([], dtype=float)) is None


def test_bucket_durations_counts():
    buckets = bucket_durations(pd.Series([0.5, 1.5, 1.7, None]))
    assert buckets["bucket"].tolist() == ["0–<1d", "1–<2d", "≥2d"]
    assert buckets["count"].tolist() == [1, 2, 0]


def test_melt_durations_keeps_positive_days():
    df = pd.DataFrame({"key": ["A", "B"], "lead_time": [3.0, None], "cycle_time": [0.0, 2.0]})
    long = melt_durations(df, ["lead_time", "cycle_time"])
    assert set(map(tuple, long[["key", "metric", "days"]].values.tolist())) == {
        ("A", "Lead Time", 3.0),
        ("B", "Cycle Time", 2.0),
    }
    assert melt_durations(pd.DataFrame()).empty


def test_histogram_chart():
    long = pd.DataFrame({"metric": ["Lead Time", "QA"], "days": [3.0, 1.0]})
    assert create_histogram_chart(pd.DataFrame(), "days", title="x") is None
    assert isinstance(create_histogram_chart(long, "days", title="All", bin_step=1.0), alt.Chart)
    faceted = create_histogram_chart(long, "days", title="By stage", facet_col="metric")
    assert isinstance(faceted, alt.FacetChart)
