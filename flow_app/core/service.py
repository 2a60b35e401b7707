"""IssueService: orchestrates loading, normalizing, and metric derivation."""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

import pandas as pd

from flow_app.analytics.metrics.durations import compute_issue_metrics

from .config import JIRA_FETCH_BASE_FIELDS
from .jira_client import JiraAPI
from .mappers import issues_to_dataframe, map_issue, unwrap_payload
from .models import ProcessedIssue, RawIssue
from .stages import StageClassifier, default_classifier

logger = logging.getLogger(__name__)

DEFAULT_FIELDS: Sequence[str] = tuple(JIRA_FETCH_BASE_FIELDS)
ProgressCallback = Callable[[str, int | None, int | None], None]


@dataclass(slots=True)
class ProcessingResult:
    issues: pd.DataFrame
    raw_issues: list[RawIssue] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return 0 if self.issues is None else len(self.issues)


class IssueService:
    """Turns exported or fetched issue records into the per-issue metrics frame.

    A record that fails to map or to process is logged and skipped; the rest
    of the batch is still returned.
    """

    def __init__(self, api: JiraAPI | None = None, classifier: StageClassifier | None = None):
        self.api = api
        self.classifier = classifier or default_classifier()

    # ------------------ Sources ------------------
    def load_export(
        self,
        payload: Any,
        *,
        progress: ProgressCallback | None = None,
    ) -> ProcessingResult:
        """Process an already-decoded JSON export (list or ``issues``/``data`` envelope)."""
        records = unwrap_payload(payload)
        if progress:
            progress(f"Normalizing {len(records)} exported issue(s)", None, None)
        issues, skipped = self._map_records(records)
        result = self.process(issues, progress=progress)
        result.skipped = skipped + result.skipped
        return result

    def load_export_bytes(
        self,
        data: bytes | str,
        *,
        progress: ProgressCallback | None = None,
    ) -> ProcessingResult:
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Export is not valid JSON: {exc}") from exc
        return self.load_export(payload, progress=progress)

    def fetch_project(
        self,
        project_key: str,
        *,
        max_days: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> ProcessingResult:
        """Fetch a project's issues with changelogs from Jira and process them.

        Parameters
        ----------
        project_key : str
            Jira project key.
        max_days : int | None
            If provided, restrict to issues created within the last ``max_days`` days.
        progress : callback, optional
            Progress reporter.
        """
        if self.api is None:
            raise RuntimeError("No Jira connection configured")
        self.api.clear_cache()
        date_clause = ""
        if max_days is not None and max_days > 0:
            since = datetime.now(UTC) - timedelta(days=max_days)
            date_clause = f" AND created >= '{since.strftime('%Y-%m-%d')}'"
        jql = f"project = {project_key}{date_clause} ORDER BY created DESC"
        if progress:
            progress(f"Querying issues for {project_key}", None, None)
        raw = self.api.search_issues_with_changelog(jql, fields=list(DEFAULT_FIELDS))
        logger.info("Fetched %d issue(s) for project %s", len(raw), project_key)
        issues, skipped = self._map_records(raw)
        result = self.process(issues, progress=progress)
        result.skipped = skipped + result.skipped
        return result

    # ------------------ Processing ------------------
    def process(
        self,
        issues: Iterable[RawIssue],
        *,
        progress: ProgressCallback | None = None,
    ) -> ProcessingResult:
        issues = list(issues)
        children = Counter(i.parent_key for i in issues if i.parent_key)
        processed: list[ProcessedIssue] = []
        kept: list[RawIssue] = []
        skipped: list[str] = []
        total = len(issues)
        for idx, issue in enumerate(issues, start=1):
            try:
                metrics = compute_issue_metrics(issue, self.classifier)
            except Exception as exc:
                logger.warning("Skipping issue %s: %s", issue.key, exc)
                skipped.append(issue.key)
                continue
            processed.append(ProcessedIssue(issue, metrics, children.get(issue.key, 0)))
            kept.append(issue)
            if progress and (idx % 100 == 0 or idx == total):
                progress("Calculating flow metrics", idx, total)

        df = issues_to_dataframe(processed)
        if not df.empty:
            df = df.sort_values(by="created", ascending=False, na_position="last").reset_index(drop=True)
        logger.debug("Processed %d issue(s), skipped %d", len(processed), len(skipped))
        return ProcessingResult(issues=df, raw_issues=kept, skipped=skipped)

    def _map_records(self, records: Iterable[Any]) -> tuple[list[RawIssue], list[str]]:
        issues: list[RawIssue] = []
        skipped: list[str] = []
        for idx, record in enumerate(records):
            try:
                issues.append(map_issue(record))
            except Exception as exc:
                label = record.get("key") if isinstance(record, dict) and record.get("key") else f"#{idx}"
                logger.warning("Skipping malformed issue record %s: %s", label, exc)
                skipped.append(str(label))
        return issues, skipped
