"""Normalize raw issue exports into RawIssue instances and DataFrames.

Exports come in several shapes: nested Jira REST (``fields.issuetype.name``,
``changelog.histories``), flat snake_case (``issue_type``, ``changelogs``)
and flat camelCase (``issueType``, ``statusChanges``). Every field is read
through an ordered tuple of dotted paths; the first non-empty hit wins.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterable, Sequence
from typing import Any

import pandas as pd

from .config import (
    METRIC_COLUMNS,
    NO_SPRINT,
    RESOLVED,
    SPRINT_FIELD_ID,
    STORY_POINT_FIELD_IDS,
    UNKNOWN_ISSUE_TYPE,
    UNRESOLVED,
)
from .models import ProcessedIssue, RawIssue, RawStatusChange

ISSUE_TYPE_PATHS: Sequence[str] = ("fields.issuetype.name", "issue_type", "issueType", "type")
PROJECT_KEY_PATHS: Sequence[str] = ("fields.project.key", "project_key", "projectKey", "project.key")
STORY_POINT_PATHS: Sequence[str] = (
    *(f"fields.{field_id}" for field_id in STORY_POINT_FIELD_IDS),
    "fields.storyPoints",
    "story_points",
    "storyPoints",
)
SPRINT_PATHS: Sequence[str] = (
    "fields.sprint.name",
    f"fields.{SPRINT_FIELD_ID}",
    "sprint.name",
    "sprint_name",
    "sprintName",
)
PRIORITY_PATHS: Sequence[str] = ("fields.priority.name", "fields.priority", "priority")
SUMMARY_PATHS: Sequence[str] = ("fields.summary", "summary")
CREATED_PATHS: Sequence[str] = ("fields.created", "created", "created_at", "createdAt")
RESOLVED_PATHS: Sequence[str] = (
    "fields.resolutiondate",
    "fields.resolved",
    "resolved",
    "resolved_at",
    "resolvedAt",
)
PARENT_PATHS: Sequence[str] = ("fields.parent.key", "parent_key", "parentKey", "parent.key")

STAGE_TIMESTAMP_FIELDS: Sequence[str] = (
    "ready_for_grooming",
    "ready_for_dev",
    "in_progress",
    "in_review",
    "in_qa",
    "ready_for_release",
    "done",
)


def _dig(raw: Any, path: str) -> Any:
    node = raw
    for part in path.split("."):
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str | list | dict):
        return not value
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def first_value(raw: dict[str, Any], paths: Iterable[str]) -> Any:
    """Value at the first path that resolves to something non-empty."""
    for path in paths:
        value = _dig(raw, path)
        if not _is_empty(value):
            return value
    return None


def _text(value: Any) -> str | None:
    if _is_empty(value):
        return None
    if isinstance(value, dict):
        value = value.get("name") or value.get("value") or value.get("key")
        if _is_empty(value):
            return None
    text = str(value).strip()
    return text or None


def parse_dt(val):
    if _is_empty(val):
        return None
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        return None
    return ts.to_pydatetime()


def parse_story_points(value: Any) -> float | None:
    if _is_empty(value):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _most_recent_sprint(sprints: list[Any]) -> str | None:
    named = [s for s in sprints if isinstance(s, dict) and s.get("name")]
    if not named:
        return None

    def sort_key(sprint: dict[str, Any]):
        start = parse_dt(sprint.get("start_date") or sprint.get("startDate"))
        # Undated sprints rank ahead of dated ones, then newest start first.
        return (start is not None, -(start.timestamp()) if start else 0.0)

    return str(sorted(named, key=sort_key)[0]["name"])


def extract_sprint(raw: dict[str, Any]) -> str:
    sprint_info = raw.get("sprint_info") or raw.get("sprintInfo")
    if isinstance(sprint_info, list):
        name = _most_recent_sprint(sprint_info)
        if name:
            return name
    value = first_value(raw, SPRINT_PATHS)
    if isinstance(value, list):
        return _most_recent_sprint(value) or NO_SPRINT
    return _text(value) or NO_SPRINT


def extract_project_key(raw: dict[str, Any], key: str) -> str:
    project = _text(first_value(raw, PROJECT_KEY_PATHS))
    if project:
        return project
    if key and "-" in key:
        return key.rsplit("-", 1)[0]
    return ""


def extract_status_changes(raw: dict[str, Any]) -> list[RawStatusChange]:
    """Flatten whichever changelog representation the record carries."""
    changes: list[RawStatusChange] = []
    histories = _dig(raw, "changelog.histories")
    if isinstance(histories, list) and histories:
        for history in histories:
            if not isinstance(history, dict):
                continue
            created = parse_dt(history.get("created"))
            for item in history.get("items") or []:
                if not isinstance(item, dict):
                    continue
                changes.append(
                    RawStatusChange(
                        field_name=str(item.get("field") or item.get("fieldId") or "unknown"),
                        from_value=item.get("fromString"),
                        to_value=item.get("toString"),
                        timestamp=created,
                    )
                )
        return changes

    flat = raw.get("changelogs")
    if isinstance(flat, list) and flat:
        for entry in flat:
            if not isinstance(entry, dict):
                continue
            changes.append(
                RawStatusChange(
                    field_name=str(entry.get("field_name") or entry.get("fieldName") or "unknown"),
                    from_value=entry.get("from_string", entry.get("fromString")),
                    to_value=entry.get("to_string", entry.get("toString")),
                    timestamp=parse_dt(entry.get("created")),
                )
            )
        return changes

    status_changes = raw.get("statusChanges") or raw.get("status_changes")
    if isinstance(status_changes, list):
        for entry in status_changes:
            if not isinstance(entry, dict):
                continue
            changes.append(
                RawStatusChange(
                    field_name=str(entry.get("fieldName") or entry.get("field_name") or "status"),
                    from_value=entry.get("fromValue", entry.get("from_value", entry.get("from"))),
                    to_value=entry.get("toValue", entry.get("to_value", entry.get("to"))),
                    timestamp=parse_dt(entry.get("timestamp") or entry.get("created")),
                )
            )
    return changes


def map_issue(raw: dict[str, Any]) -> RawIssue:
    if not isinstance(raw, dict):
        raise ValueError(f"Issue record must be an object, got {type(raw).__name__}")
    key = _text(raw.get("key")) or f"UNKNOWN-{uuid.uuid4().hex[:9]}"
    return RawIssue(
        id=_text(raw.get("id")) or key,
        key=key,
        issue_type=_text(first_value(raw, ISSUE_TYPE_PATHS)) or UNKNOWN_ISSUE_TYPE,
        project_key=extract_project_key(raw, key),
        created_at=parse_dt(first_value(raw, CREATED_PATHS)),
        resolved_at=parse_dt(first_value(raw, RESOLVED_PATHS)),
        priority=_text(first_value(raw, PRIORITY_PATHS)),
        sprint_name=extract_sprint(raw),
        story_points=parse_story_points(first_value(raw, STORY_POINT_PATHS)),
        summary=_text(first_value(raw, SUMMARY_PATHS)),
        parent_key=_text(first_value(raw, PARENT_PATHS)),
        status_changes=extract_status_changes(raw),
    )


def unwrap_payload(payload: Any) -> list[dict[str, Any]]:
    """Return the issue list from a bare list or an ``issues``/``data`` envelope."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("issues", "data"):
            if isinstance(payload.get(key), list):
                return payload[key]
    raise ValueError("Unsupported export format: expected a list of issues or an object with 'issues' or 'data'")


def issues_to_dataframe(processed: Iterable[ProcessedIssue]) -> pd.DataFrame:
    rows = []
    for item in processed:
        issue, metrics = item.issue, item.metrics
        row = {
            "id": issue.id,
            "key": issue.key,
            "summary": issue.summary or "",
            "issue_type": issue.issue_type,
            "project_key": issue.project_key,
            "priority": issue.priority,
            "sprint": issue.sprint_name or NO_SPRINT,
            "story_points": issue.story_points,
            "status": RESOLVED if issue.is_resolved else UNRESOLVED,
            "created": issue.created_at,
            "resolved": issue.resolved_at,
            "parent_key": issue.parent_key,
            "sub_issue_count": item.sub_issue_count,
        }
        for column in METRIC_COLUMNS:
            row[column] = getattr(metrics, column)
        for stage in STAGE_TIMESTAMP_FIELDS:
            row[f"{stage}_at"] = getattr(metrics.timestamps, stage)
        rows.append(row)
    df = pd.DataFrame(rows)
    if df.empty:
        return df
    for col in ["created", "resolved", *(f"{stage}_at" for stage in STAGE_TIMESTAMP_FIELDS)]:
        df[col] = pd.to_datetime(df[col], utc=True, errors="coerce")
    for col in ("lead_time", "cycle_time", "grooming_cycle_time", "dev_cycle_time", "qa_cycle_time"):
        df[col] = pd.to_numeric(df[col], errors="coerce")
    df["story_points"] = pd.to_numeric(df["story_points"], errors="coerce")
    return df
