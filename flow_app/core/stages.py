"""Workflow stage classification.

Raw Jira status strings vary between boards ("Dev In Progress", "In
Development", ...). ``StageClassifier`` maps them onto a fixed set of
canonical stages using a data-driven synonym table so each workspace can
supply its own vocabulary (``workflow.yaml``) without code changes.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from enum import StrEnum
from pathlib import Path

import yaml

from .config import DEFAULT_STAGE_SYNONYMS
from .models import RawIssue

logger = logging.getLogger(__name__)


class CanonicalStage(StrEnum):
    READY_FOR_GROOMING = "ready_for_grooming"
    READY_FOR_DEV = "ready_for_dev"
    IN_PROGRESS = "in_progress"
    IN_REVIEW = "in_review"
    IN_QA = "in_qa"
    READY_FOR_RELEASE = "ready_for_release"
    BLOCKED = "blocked"
    DONE = "done"


def _normalize(value: str | None) -> str:
    if value is None:
        return ""
    return str(value).strip().lower()


class StageClassifier:
    """Case-insensitive lookup from raw status strings to canonical stages.

    Parameters
    ----------
    mapping : Mapping[str, Iterable[str]]
        Canonical stage name -> recognized raw status strings. A raw value may
        appear under several stages; it then classifies into all of them.
    """

    def __init__(self, mapping: Mapping[str, Iterable[str]] | None = None):
        mapping = DEFAULT_STAGE_SYNONYMS if mapping is None else mapping
        lookup: dict[str, set[CanonicalStage]] = {}
        for stage_name, raw_values in mapping.items():
            stage = _coerce_stage(stage_name)
            for raw in raw_values or ():
                text = _normalize(raw)
                if text:
                    lookup.setdefault(text, set()).add(stage)
        self._lookup: dict[str, frozenset[CanonicalStage]] = {k: frozenset(v) for k, v in lookup.items()}

    def classify(self, raw: str | None) -> frozenset[CanonicalStage]:
        """Return every stage ``raw`` belongs to (empty when unrecognized)."""
        return self._lookup.get(_normalize(raw), frozenset())

    def matches(self, raw: str | None, stage: CanonicalStage) -> bool:
        return stage in self.classify(raw)

    def synonyms(self) -> dict[str, list[str]]:
        """Invert the lookup back into a stage -> raw values table (for display)."""
        out: dict[str, list[str]] = {stage.value: [] for stage in CanonicalStage}
        for raw, stages in sorted(self._lookup.items()):
            for stage in stages:
                out[stage.value].append(raw)
        return out

    def unmapped(self, statuses: Iterable[str]) -> list[str]:
        return sorted({s for s in statuses if s and not self.classify(s)})


def _coerce_stage(name: str) -> CanonicalStage:
    spaced = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", str(name))
    key = _normalize(spaced).replace(" ", "_").replace("-", "_")
    try:
        return CanonicalStage(key)
    except ValueError:
        valid = ", ".join(stage.value for stage in CanonicalStage)
        raise ValueError(f"Unknown workflow stage {name!r}; expected one of: {valid}") from None


def parse_stage_mapping(text: str) -> dict[str, list[str]]:
    """Parse a YAML workflow document into a stage -> raw values mapping.

    The document must contain a ``stages`` mapping. Stages left out keep their
    default synonyms.
    """
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError("Workflow mapping must be a YAML mapping with a 'stages' key")
    stages = data.get("stages") or {}
    if not isinstance(stages, dict):
        raise ValueError("'stages' must map stage names to lists of status names")
    mapping: dict[str, list[str]] = {k: list(v) for k, v in DEFAULT_STAGE_SYNONYMS.items()}
    for name, values in stages.items():
        stage = _coerce_stage(name)
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, list):
            raise ValueError(f"Stage {name!r} must list status names")
        mapping[stage.value] = [str(v) for v in values]
    return mapping


def load_stage_mapping(path: str | Path | None = None) -> dict[str, list[str]]:
    """Load stage synonyms from ``workflow.yaml`` (defaults when the file is absent)."""
    yaml_path = Path(path) if path else Path(__file__).resolve().parent.parent / "workflow.yaml"
    if not yaml_path.exists():
        return {k: list(v) for k, v in DEFAULT_STAGE_SYNONYMS.items()}
    return parse_stage_mapping(yaml_path.read_text())


_CACHE: StageClassifier | None = None


def default_classifier() -> StageClassifier:
    global _CACHE
    if _CACHE is not None:
        return _CACHE
    try:
        _CACHE = StageClassifier(load_stage_mapping())
    except (ValueError, yaml.YAMLError) as exc:
        logger.warning("Ignoring invalid workflow.yaml, using default stages: %s", exc)
        _CACHE = StageClassifier()
    return _CACHE


def extract_status_names(issues: Iterable[RawIssue]) -> list[str]:
    """Distinct raw status names appearing in the issues' status histories."""
    names: set[str] = set()
    for issue in issues:
        for change in issue.status_changes:
            if _normalize(change.field_name) != "status":
                continue
            for value in (change.from_value, change.to_value):
                if value and str(value).strip():
                    names.add(str(value).strip())
    return sorted(names, key=str.lower)
