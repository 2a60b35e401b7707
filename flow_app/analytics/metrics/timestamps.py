"""Canonical stage arrival timestamps derived from an issue's status history.

Each stage has its own arrival rule. Grooming, progress, review, ready-for-dev
and ready-for-release keep the first arrival; QA and done keep the last one so
rework moves them forward.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from flow_app.core.models import CanonicalStageTimestamps, RawStatusChange
from flow_app.core.stages import CanonicalStage, StageClassifier, default_classifier

FIRST_ARRIVAL_STAGES: tuple[CanonicalStage, ...] = (
    CanonicalStage.READY_FOR_GROOMING,
    CanonicalStage.READY_FOR_DEV,
    CanonicalStage.IN_PROGRESS,
    CanonicalStage.IN_REVIEW,
    CanonicalStage.READY_FOR_RELEASE,
)
LAST_ARRIVAL_STAGES: tuple[CanonicalStage, ...] = (
    CanonicalStage.IN_QA,
    CanonicalStage.DONE,
)


def sort_status_changes(changes: Iterable[RawStatusChange]) -> list[RawStatusChange]:
    """Status transitions with a timestamp, ordered by time.

    ``sorted`` is stable, so entries sharing a timestamp keep record order.
    """
    usable = [
        change
        for change in changes
        if change is not None
        and str(change.field_name or "").strip().lower() == "status"
        and change.timestamp is not None
        and change.to_value
    ]
    return sorted(usable, key=lambda change: change.timestamp)


def extract_stage_timestamps(
    changes: Iterable[RawStatusChange],
    created_at: datetime | None,
    classifier: StageClassifier | None = None,
) -> CanonicalStageTimestamps:
    classifier = classifier or default_classifier()
    stamps = CanonicalStageTimestamps(opened=created_at)
    for change in sort_status_changes(changes):
        stages = classifier.classify(change.to_value)
        if not stages:
            continue
        for stage in stages:
            if stage in FIRST_ARRIVAL_STAGES:
                if getattr(stamps, stage.value) is None:
                    setattr(stamps, stage.value, change.timestamp)
            elif stage in LAST_ARRIVAL_STAGES:
                setattr(stamps, stage.value, change.timestamp)
    return stamps
