"""Load and expose table column sets from YAML (with fallbacks)."""

from __future__ import annotations

import logging
from pathlib import Path

import yaml

from .config import DISPLAY_ORDER_DETAIL, DISPLAY_ORDER_TICKET_LIST, ISSUE_CORE_COLUMNS, METRIC_COLUMNS

logger = logging.getLogger(__name__)

_CACHE: dict[str, list[str]] | None = None


def _defaults() -> dict[str, list[str]]:
    return {
        "detail": list(DISPLAY_ORDER_DETAIL),
        "core": list(ISSUE_CORE_COLUMNS),
        "ticket_list": list(DISPLAY_ORDER_TICKET_LIST),
        "metrics": list(METRIC_COLUMNS),
    }


def load_column_sets(base_path: str | Path | None = None, *, refresh: bool = False):
    global _CACHE
    if _CACHE is not None and not refresh:
        return _CACHE
    base = Path(base_path or Path(__file__).resolve().parent.parent)
    yaml_path = base / "columns.yaml"
    sets = _defaults()
    if yaml_path.exists():
        try:
            data = yaml.safe_load(yaml_path.read_text()) or {}
        except (OSError, yaml.YAMLError) as exc:
            logger.warning("Ignoring unreadable %s: %s", yaml_path, exc)
            data = {}
        configured = data.get("sets", {}) if isinstance(data, dict) else {}
        for name, columns in (configured or {}).items():
            if isinstance(columns, list) and columns:
                sets[name] = [str(c) for c in columns]
    _CACHE = sets
    return _CACHE


def get_columns(set_name: str) -> list[str]:
    sets = load_column_sets()
    return sets.get(set_name, [])
