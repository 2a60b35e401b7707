"""Shared pytest setup.

Puts the project root on sys.path so ``import flow_app`` works without an
editable install, and provides fixtures for the module-level YAML caches.
"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def fresh_column_sets():
    """Drop cached column sets before and after the test."""
    from flow_app.core import column_config

    column_config._CACHE = None
    yield column_config.load_column_sets
    column_config._CACHE = None
