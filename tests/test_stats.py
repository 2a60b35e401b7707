import pandas as pd
import pytest

from flow_app.analytics.metrics.stats import (
    CorrelationResult,
    calculate_correlation,
    calculate_stats,
    qa_churn_correlation,
    resolved_issues,
    round_half_up,
    story_points_correlation,
)
from flow_app.core.models import StatsResult


def _resolved_df():
    done = pd.Timestamp("2024-02-01", tz="UTC")
    return pd.DataFrame(
        {
            "key": ["A", "B", "C", "D", "E"],
            "resolved": [done, done, done, done, pd.NaT],
            "story_points": [1.0, 2.0, 3.0, 0.0, 8.0],
            "dev_cycle_time": [2.0, 4.0, 6.0, 5.0, 1.0],
            "qa_churn": [0, 1, 2, 3, 9],
            "qa_cycle_time": [1.0, 2.0, 3.0, None, 20.0],
        }
    )


def test_empty_sample_is_all_zero():
    assert calculate_stats([]) == StatsResult()
    assert calculate_stats([None, float("nan")]).count == 0


def test_single_value():
    stats = calculate_stats([5])
    assert (stats.median, stats.mean, stats.min, stats.max, stats.std_dev, stats.count) == (5, 5, 5, 5, 0, 1)


def test_even_sample_median_and_population_std():
    stats = calculate_stats([4, 1, 3, 2])
    assert stats.median == 2.5
    assert stats.mean == 2.5
    assert stats.std_dev == 1.1
    assert (stats.min, stats.max, stats.count) == (1, 4, 4)


def test_ties_round_up():
    stats = calculate_stats([0.0, 0.5])
    assert (stats.median, stats.mean, stats.std_dev) == (0.3, 0.3, 0.3)
    assert round_half_up(2.25) == 2.3
    assert round_half_up(0.0625, 3) == 0.063
    assert round_half_up(-0.25) == -0.2


def test_missing_values_are_dropped():
    stats = calculate_stats(pd.Series([None, 2.0, float("nan"), 4.0]))
    assert stats.count == 2
    assert stats.mean == 3.0


def test_correlation_guards():
    assert calculate_correlation([1, 2, 3], [2, 4, 6]) == pytest.approx(1.0)
    assert calculate_correlation([1, 2, 3], [6, 4, 2]) == pytest.approx(-1.0)
    assert calculate_correlation([1], [1]) == 0.0
    assert calculate_correlation([1, 1, 1], [1, 2, 3]) == 0.0
    assert calculate_correlation([1, 2], [1, 2, 3]) == 0.0


def test_resolved_issues_without_column():
    df = pd.DataFrame({"key": ["A"]})
    assert resolved_issues(df).empty
    assert len(resolved_issues(_resolved_df())) == 4


def test_story_points_correlation_uses_estimated_resolved_issues():
    result = story_points_correlation(_resolved_df())
    assert result.count == 3
    assert result.correlation == pytest.approx(1.0)


def test_qa_churn_correlation_requires_qa_time():
    result = qa_churn_correlation(_resolved_df())
    assert result.count == 3
    assert result.correlation == pytest.approx(1.0)


def test_correlation_needs_two_pairs():
    df = _resolved_df().iloc[[0, 4]]
    assert story_points_correlation(df) == CorrelationResult()
    assert qa_churn_correlation(pd.DataFrame()) == CorrelationResult()
