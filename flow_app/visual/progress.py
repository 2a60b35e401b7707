"""Progress reporting for long-running Streamlit actions (loading, fetching)."""

from __future__ import annotations

import logging

import streamlit as st

logger = logging.getLogger(__name__)


class ProgressReporter:
    """Banner + progress bar whose ``callback`` matches IssueService progress callbacks.

    Usable as a context manager: an exception escaping the block marks the
    banner as failed and propagates.
    """

    def __init__(self, title: str):
        self._title = title
        self._container = st.container()
        self._container.info(title)
        self._message_placeholder = self._container.empty()
        self._progress_placeholder = self._container.progress(0.0)
        self._total: int | None = None
        self._current: int = 0
        self._finalized: bool = False

    def __enter__(self) -> ProgressReporter:
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc is not None:
            self.error(f"{self._title} failed: {exc}")
        return False

    def callback(self, message: str, current: int | None = None, total: int | None = None) -> None:
        self.update(message, current=current, total=total)

    def update(self, message: str, *, current: int | None = None, total: int | None = None) -> None:
        if self._finalized:
            return
        if total is not None and total > 0:
            self._total = total
        if current is not None:
            self._current = max(0, current)
        logger.debug("%s: %s (%s/%s)", self._title, message, self._current, self._total)
        self._message_placeholder.write(message)
        if self._total:
            self._progress_placeholder.progress(min(max(self._current / self._total, 0.0), 1.0))

    def complete(self, message: str) -> None:
        if self._finalized:
            return
        self._progress_placeholder.progress(1.0)
        self._container.success(message)
        self._finalized = True

    def error(self, message: str) -> None:
        if self._finalized:
            return
        logger.error(message)
        self._container.error(message)
        self._finalized = True
