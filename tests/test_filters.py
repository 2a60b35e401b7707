from datetime import date, datetime

import pandas as pd
import pytest
import pytz

from flow_app.analytics.segments.filters import (
    filtered_issues,
    get_filter_counts,
    get_filter_options,
    has_active_filters,
    range_end,
    story_point_key,
    toggle_value,
)
from flow_app.core.models import FilterSpec


def _sample_df():
    return pd.DataFrame(
        {
            "key": ["FLOW-1", "FLOW-2", "FLOW-3", "OPS-4"],
            "issue_type": ["Story", "Task", "Story", "Bug"],
            "sprint": ["Sprint 1", "Sprint 1", "Sprint 2", "No Sprint"],
            "story_points": [3.0, None, 1.0, 5.0],
            "project_key": ["FLOW", "FLOW", "FLOW", "OPS"],
            "priority": ["High", None, "P1", "High"],
            "created": pd.to_datetime(
                ["2024-02-01T09:00Z", "2024-02-05T00:00Z", "2024-02-10T12:00Z", "2024-02-15T08:00Z"], utc=True
            ),
            "resolved": pd.to_datetime(["2024-02-10T10:00Z", None, "2024-02-20T23:30Z", "2024-03-01T10:00Z"], utc=True),
        }
    )


def _keys(df):
    return sorted(df["key"].tolist())


def test_empty_spec_keeps_everything():
    df = _sample_df()
    assert len(filtered_issues(df, FilterSpec())) == 4
    assert len(filtered_issues(df, None)) == 4


def test_issue_type_facet():
    assert _keys(filtered_issues(_sample_df(), FilterSpec(issue_types=["Task"]))) == ["FLOW-2"]


def test_facets_are_anded():
    spec = FilterSpec(issue_types=["Story"], sprints=["Sprint 2"])
    assert _keys(filtered_issues(_sample_df(), spec)) == ["FLOW-3"]
    spec = FilterSpec(project_keys=["OPS"], priorities=["High"])
    assert _keys(filtered_issues(_sample_df(), spec)) == ["OPS-4"]


def test_status_facet_derives_from_resolution():
    assert _keys(filtered_issues(_sample_df(), FilterSpec(statuses=["unresolved"]))) == ["FLOW-2"]
    assert len(filtered_issues(_sample_df(), FilterSpec(statuses=["resolved", "unresolved"]))) == 4


def test_story_points_facet_matches_none_and_numbers():
    df = _sample_df()
    assert _keys(filtered_issues(df, FilterSpec(story_points=["none"]))) == ["FLOW-2"]
    assert _keys(filtered_issues(df, FilterSpec(story_points=[3, 5.0]))) == ["FLOW-1", "OPS-4"]


def test_missing_priority_matches_unassigned():
    assert _keys(filtered_issues(_sample_df(), FilterSpec(priorities=["Unassigned"]))) == ["FLOW-2"]


def test_created_range_is_inclusive():
    spec = FilterSpec(created_start=date(2024, 2, 5), created_end=date(2024, 2, 10))
    assert _keys(filtered_issues(_sample_df(), spec)) == ["FLOW-2", "FLOW-3"]


def test_resolved_end_covers_whole_day_and_drops_unresolved():
    spec = FilterSpec(resolved_start=date(2024, 2, 10), resolved_end=date(2024, 2, 20))
    assert _keys(filtered_issues(_sample_df(), spec)) == ["FLOW-1", "FLOW-3"]
    spec = FilterSpec(resolved_start=date(2024, 1, 1))
    assert "FLOW-2" not in _keys(filtered_issues(_sample_df(), spec))


def test_range_end_is_last_millisecond():
    end = range_end(date(2024, 2, 20))
    assert end == pytz.utc.localize(datetime(2024, 2, 20, 23, 59, 59, 999000))
    assert range_end(None) is None


def test_filter_options():
    options = get_filter_options(_sample_df())
    assert options["issue_types"] == ["Bug", "Story", "Task"]
    assert options["sprints"] == ["No Sprint", "Sprint 1", "Sprint 2"]
    assert options["story_points"] == [1, 3, 5, "none"]
    assert options["statuses"] == ["resolved", "unresolved"]
    assert options["priorities"] == ["High", "P1", "Unassigned"]
    assert options["project_keys"] == ["FLOW", "OPS"]


def test_filter_options_on_empty_frame():
    options = get_filter_options(pd.DataFrame())
    assert options["issue_types"] == []
    assert options["statuses"] == ["resolved", "unresolved"]


def test_counts_ignore_own_facet_selection():
    df = _sample_df()
    counts = get_filter_counts(df, FilterSpec(issue_types=["Story"]))
    assert counts["issue_types"] == {"Bug": 1, "Story": 2, "Task": 1}
    assert counts["sprints"] == {"No Sprint": 0, "Sprint 1": 1, "Sprint 2": 1}
    assert counts["statuses"] == {"resolved": 2, "unresolved": 0}
    assert counts["story_points"] == {1: 1, 3: 1, 5: 0, "none": 0}


def test_counts_apply_date_ranges():
    spec = FilterSpec(created_start=date(2024, 2, 10))
    counts = get_filter_counts(_sample_df(), spec)
    assert counts["issue_types"] == {"Bug": 1, "Story": 1, "Task": 0}


def test_counts_only_cover_listed_options():
    df = _sample_df()
    df.loc[3, "project_key"] = ""
    options = get_filter_options(df)
    counts = get_filter_counts(df, FilterSpec())
    assert options["project_keys"] == ["FLOW"]
    assert counts["project_keys"] == {"FLOW": 3}
    for dimension, values in options.items():
        assert list(counts[dimension]) == values


def test_counts_unchanged_by_selection_within_facet():
    df = _sample_df()
    spec = FilterSpec(sprints=["Sprint 1"])
    baseline = get_filter_counts(df, spec)["issue_types"]
    for selection in (["Story"], ["Task", "Bug"], []):
        counts = get_filter_counts(df, spec.with_values(issue_types=selection))
        assert counts["issue_types"] == baseline


def test_story_point_key():
    assert story_point_key(3.0) == 3
    assert story_point_key("2.5") == 2.5
    assert story_point_key(None) == "none"
    assert story_point_key(0) == "none"
    assert story_point_key("None") == "none"


def test_toggle_value_adds_then_removes():
    spec = FilterSpec()
    added = toggle_value(spec, "issue_types", "Story")
    assert added.issue_types == ["Story"]
    assert spec.issue_types == []
    removed = toggle_value(added, "issue_types", "Story")
    assert removed.issue_types == []
    with pytest.raises(ValueError):
        toggle_value(spec, "assignees", "Alice")


def test_has_active_filters_and_clear():
    assert not has_active_filters(FilterSpec())
    assert has_active_filters(FilterSpec(statuses=["resolved"]))
    spec = FilterSpec(created_start=date(2024, 1, 1))
    assert has_active_filters(spec)
    assert not has_active_filters(spec.cleared())
