"""Domain data models for issues, status histories, and derived flow metrics."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime


@dataclass(slots=True, frozen=True)
class RawStatusChange:
    field_name: str
    from_value: str | None
    to_value: str | None
    timestamp: datetime | None


@dataclass(slots=True)
class RawIssue:
    id: str
    key: str
    issue_type: str
    project_key: str
    created_at: datetime | None
    resolved_at: datetime | None = None
    priority: str | None = None
    sprint_name: str | None = None
    story_points: float | None = None
    summary: str | None = None
    parent_key: str | None = None
    status_changes: list[RawStatusChange] = field(default_factory=list)

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None


@dataclass(slots=True)
class CanonicalStageTimestamps:
    opened: datetime | None = None
    ready_for_grooming: datetime | None = None
    ready_for_dev: datetime | None = None
    in_progress: datetime | None = None
    in_review: datetime | None = None
    in_qa: datetime | None = None
    ready_for_release: datetime | None = None
    done: datetime | None = None


@dataclass(slots=True)
class IssueMetrics:
    lead_time: float | None = None
    cycle_time: float | None = None
    grooming_cycle_time: float | None = None
    dev_cycle_time: float | None = None
    qa_cycle_time: float | None = None
    blockers: int = 0
    review_churn: int = 0
    qa_churn: int = 0
    timestamps: CanonicalStageTimestamps = field(default_factory=CanonicalStageTimestamps)


@dataclass(slots=True)
class ProcessedIssue:
    issue: RawIssue
    metrics: IssueMetrics
    sub_issue_count: int = 0


@dataclass(slots=True)
class StatsResult:
    median: float = 0.0
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0
    std_dev: float = 0.0
    count: int = 0


@dataclass(slots=True)
class FilterSpec:
    """Active dashboard filters. An empty list imposes no restriction."""

    issue_types: list[str] = field(default_factory=list)
    sprints: list[str] = field(default_factory=list)
    story_points: list[float | str] = field(default_factory=list)
    statuses: list[str] = field(default_factory=list)
    project_keys: list[str] = field(default_factory=list)
    priorities: list[str] = field(default_factory=list)
    created_start: datetime | None = None
    created_end: datetime | None = None
    resolved_start: datetime | None = None
    resolved_end: datetime | None = None

    def cleared(self) -> FilterSpec:
        return FilterSpec()

    def with_values(self, **changes) -> FilterSpec:
        return replace(self, **changes)
