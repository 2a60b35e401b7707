"""Per-issue duration metrics and churn/blocker counters."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

import pandas as pd

from flow_app.analytics.metrics.timestamps import extract_stage_timestamps, sort_status_changes
from flow_app.core.models import IssueMetrics, RawIssue, RawStatusChange
from flow_app.core.stages import CanonicalStage, StageClassifier, default_classifier

SECONDS_PER_DAY = 86400.0


def days_between(earlier: datetime | None, later: datetime | None) -> float | None:
    """Fractional days from ``earlier`` to ``later``.

    ``None`` unless both are present and ``later`` strictly follows ``earlier``;
    zero and negative spans are suppressed rather than reported.
    """
    if earlier is None or later is None:
        return None
    try:
        if pd.isna(earlier) or pd.isna(later):
            return None
    except TypeError:
        return None
    delta = (later - earlier).total_seconds()
    if delta <= 0:
        return None
    return delta / SECONDS_PER_DAY


def count_transitions(
    changes: Iterable[RawStatusChange],
    classifier: StageClassifier | None = None,
) -> tuple[int, int, int]:
    """Return ``(blockers, review_churn, qa_churn)``.

    Every transition into the stage counts, including the first one.
    """
    classifier = classifier or default_classifier()
    blockers = review_churn = qa_churn = 0
    for change in sort_status_changes(changes):
        stages = classifier.classify(change.to_value)
        if CanonicalStage.BLOCKED in stages:
            blockers += 1
        if CanonicalStage.IN_REVIEW in stages:
            review_churn += 1
        if CanonicalStage.IN_QA in stages:
            qa_churn += 1
    return blockers, review_churn, qa_churn


def compute_issue_metrics(issue: RawIssue, classifier: StageClassifier | None = None) -> IssueMetrics:
    classifier = classifier or default_classifier()
    stamps = extract_stage_timestamps(issue.status_changes, issue.created_at, classifier)
    blockers, review_churn, qa_churn = count_transitions(issue.status_changes, classifier)
    return IssueMetrics(
        lead_time=days_between(stamps.opened, stamps.done),
        cycle_time=days_between(stamps.in_progress, stamps.done),
        grooming_cycle_time=days_between(stamps.ready_for_grooming, stamps.in_progress),
        dev_cycle_time=days_between(stamps.in_progress, stamps.in_qa),
        qa_cycle_time=days_between(stamps.in_qa, stamps.done),
        blockers=blockers,
        review_churn=review_churn,
        qa_churn=qa_churn,
        timestamps=stamps,
    )
