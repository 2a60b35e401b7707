import pandas as pd
import pytest

from flow_app.analytics.metrics import flow

NAN = float("nan")
DONE = pd.Timestamp("2024-03-01", tz="UTC")


def _sample_df():
    """Four resolved issues plus one unresolved issue that every metric ignores."""
    return pd.DataFrame(
        {
            "key": ["A", "B", "C", "D", "E"],
            "resolved": [DONE, DONE, DONE, DONE, pd.NaT],
            "lead_time": [10.0, 4.0, 4.0, 2.0, NAN],
            "grooming_cycle_time": [2.0, NAN, NAN, 1.0, NAN],
            "dev_cycle_time": [2.0, 2.0, 1.0, NAN, 3.0],
            "qa_cycle_time": [1.0, 1.0, NAN, NAN, NAN],
            "review_churn": [0, 1, 0, 0, 4],
            "qa_churn": [0, 1, 0, 0, 2],
            "blockers": [0, 1, 0, 0, 3],
        }
    )


def test_first_time_through():
    result = flow.first_time_through(_sample_df())
    assert (result.percentage, result.first_time_count, result.total) == (75.0, 3, 4)


def test_flow_efficiency():
    result = flow.flow_efficiency(_sample_df())
    assert result.efficiency == 50.0
    assert result.active_time == 10.0
    assert result.wait_time == 10.0
    assert result.count == 4


def test_stage_skips():
    result = flow.stage_skips(_sample_df())
    assert result.skipped_grooming_pct == 50.0
    assert result.skipped_review_pct == 75.0
    assert (result.skipped_grooming, result.skipped_review, result.total) == (2, 3, 4)


def test_stage_skip_percentage_rounds_half_up():
    df = pd.DataFrame(
        {
            "resolved": [DONE] * 16,
            "grooming_cycle_time": [NAN] + [1.0] * 15,
            "review_churn": [1] * 16,
        }
    )
    result = flow.stage_skips(df)
    assert result.skipped_grooming == 1
    assert result.skipped_grooming_pct == 6.3
    assert result.skipped_review_pct == 0.0


def test_blocked_impact_clamps_at_zero():
    result = flow.blocked_time_impact(_sample_df())
    assert result.blocked_count == 1
    assert result.avg_blocked_lead_time == 4.0
    assert result.avg_unblocked_lead_time == pytest.approx(5.3)
    assert result.estimated_impact == 0.0
    assert result.impact_ratio == 0.0


def test_blocked_impact_ratio():
    df = pd.DataFrame(
        {
            "resolved": [DONE] * 3,
            "lead_time": [12.0, 4.0, 4.0],
            "blockers": [2, 0, 0],
        }
    )
    result = flow.blocked_time_impact(df)
    assert result.estimated_impact == 8.0
    assert result.impact_ratio == 66.7


def test_empty_inputs_report_zero_counts():
    empty = pd.DataFrame()
    assert flow.flow_efficiency(empty).count == 0
    assert flow.first_time_through(empty).total == 0
    assert flow.stage_skips(empty).total == 0
    assert flow.blocked_time_impact(empty).total == 0
    assert flow.defect_resolution_time(empty) == []
    assert [v.stats.count for v in flow.stage_variability(empty)] == [0, 0, 0]


def test_stage_variability_coefficient():
    df = pd.DataFrame(
        {
            "resolved": [DONE] * 3,
            "grooming_cycle_time": [NAN, NAN, NAN],
            "dev_cycle_time": [2.0, 4.0, 0.0],
            "qa_cycle_time": [1.0, 1.0, 1.0],
        }
    )
    by_stage = {v.stage: v for v in flow.stage_variability(df)}
    assert list(by_stage) == ["Grooming", "Development", "QA"]
    assert by_stage["Development"].stats.count == 2
    assert by_stage["Development"].coefficient == 33.3
    assert by_stage["QA"].coefficient == 0.0
    assert by_stage["Grooming"].stats.count == 0


def test_defect_resolution_groups_by_priority():
    created = pd.Timestamp("2024-01-01", tz="UTC")
    df = pd.DataFrame(
        {
            "issue_type": ["Bug", "Bug", "Production Incident", "Bug", "Bug", "Story", "Bug"],
            "priority": ["P2", "P1", "p10", "High", None, "P1", "P1"],
            "created": [created] * 7,
            "resolved": [
                created + pd.Timedelta(days=2),
                created + pd.Timedelta(days=1, hours=6),
                created + pd.Timedelta(days=9),
                created + pd.Timedelta(days=3),
                created + pd.Timedelta(days=4),
                created + pd.Timedelta(days=1),
                pd.NaT,
            ],
        }
    )
    groups = flow.defect_resolution_time(df)
    assert [g.priority for g in groups] == ["P1", "P2", "p10", "High", "Unassigned"]
    p1 = groups[0]
    assert p1.count == 1
    assert p1.resolution_times == [1.3]
    assert p1.stats.median == 1.3


def test_is_defect_type():
    assert flow.is_defect_type("Bug")
    assert flow.is_defect_type("Customer Issue")
    assert not flow.is_defect_type("Story")
    assert not flow.is_defect_type(None)


@pytest.mark.parametrize(
    "points,bucket",
    [
        (1, "Small (1pt)"),
        (2, "Medium (2-3pts)"),
        (3.0, "Medium (2-3pts)"),
        (5, "Large (4+pts)"),
        (2.5, "Medium (2-3pts)"),
        (0, "Unestimated"),
        (None, "Unestimated"),
        (NAN, "Unestimated"),
        ("n/a", "Unestimated"),
    ],
)
def test_size_bucket(points, bucket):
    assert flow.size_bucket(points) == bucket


def test_size_distribution():
    df = pd.DataFrame(
        {
            "story_points": [1.0, 1.0, 3.0, 8.0, NAN],
            "resolved": [DONE, pd.NaT, DONE, DONE, pd.NaT],
            "lead_time": [2.0, NAN, 6.0, 20.0, NAN],
            "grooming_cycle_time": [1.0, NAN, 0.0, 4.0, NAN],
            "dev_cycle_time": [1.0, 3.0, 4.0, 10.0, NAN],
            "qa_cycle_time": [NAN, NAN, 1.0, 5.0, NAN],
        }
    )
    buckets = {b.size: b for b in flow.size_distribution(df)}
    assert list(buckets) == list(flow.SIZE_BUCKETS)
    small = buckets["Small (1pt)"]
    assert (small.count, small.completion_rate) == (2, 50.0)
    assert small.median_dev_time == 2.0
    medium = buckets["Medium (2-3pts)"]
    assert medium.median_grooming_time == 0.0
    assert medium.median_lead_time == 6.0
    assert buckets["Unestimated"].count == 1
    assert buckets["Unestimated"].completion_rate == 0.0


def _trend_df():
    return pd.DataFrame(
        {
            "created": pd.to_datetime(["2024-01-01T10:00Z", "2024-01-03T10:00Z", "2024-01-09T10:00Z"], utc=True),
            "resolved": pd.to_datetime(["2024-01-10T10:00Z", None, None], utc=True),
        }
    )


def test_weekly_trend():
    trend = flow.created_resolved_trend(_trend_df(), "weekly")
    assert trend.to_dict("records") == [
        {"period": "2024-01-01", "created": 2, "resolved": 0},
        {"period": "2024-01-08", "created": 1, "resolved": 1},
    ]


def test_biweekly_trend_uses_fixed_two_week_buckets():
    trend = flow.created_resolved_trend(_trend_df(), "biweekly")
    assert trend["period"].tolist() == ["2023-12-25", "2024-01-08"]
    assert trend["created"].tolist() == [2, 1]


def test_monthly_quarterly_and_daily_keys():
    assert flow.created_resolved_trend(_trend_df(), "monthly").to_dict("records") == [
        {"period": "2024-01", "created": 3, "resolved": 1}
    ]
    assert flow.created_resolved_trend(_trend_df(), "quarterly")["period"].tolist() == ["2024-Q1"]
    daily = flow.created_resolved_trend(_trend_df(), "daily")
    assert daily["period"].tolist() == ["2024-01-01", "2024-01-03", "2024-01-09", "2024-01-10"]


def test_trend_rejects_unknown_period():
    with pytest.raises(ValueError):
        flow.created_resolved_trend(_trend_df(), "hourly")


def test_trend_empty_frame():
    trend = flow.created_resolved_trend(pd.DataFrame(), "weekly")
    assert trend.empty
    assert list(trend.columns) == ["period", "created", "resolved"]


def test_priority_sort_key():
    values = ["Low", "P10", "p2", "Critical", "P1"]
    assert sorted(values, key=flow.priority_sort_key) == ["P1", "p2", "P10", "Critical", "Low"]
