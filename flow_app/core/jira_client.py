"""Jira REST client wrapper used as an optional live data source.

Only one query shape is needed: a JQL search returning every matching issue
with its changelog expanded, so stage transitions can be replayed.
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from collections.abc import Iterator
from typing import Any

from jira import JIRA, JIRAError

logger = logging.getLogger(__name__)

SEARCH_PATH = "/rest/api/3/search/jql"


class JiraAPI:
    def __init__(self, server: str, email: str, token: str, *, cache_ttl: float = 300.0):
        self.server = server.rstrip("/")
        try:
            self.client = JIRA(basic_auth=(email, token), options={"server": self.server, "rest_api_version": "3"})
        except JIRAError as exc:  # pragma: no cover - network error path
            raise RuntimeError(f"Failed to connect to {self.server}: {exc}") from exc
        self._cache: dict[str, tuple[float, list]] = {}
        self._cache_ttl = cache_ttl

    def clear_cache(self) -> None:
        cache = getattr(self, "_cache", None)
        if isinstance(cache, dict):
            cache.clear()

    @staticmethod
    def _request_hash(jql: str, fields: list[str] | None, page_size: int) -> str:
        body = json.dumps({"jql": jql, "fields": fields, "page_size": page_size}, sort_keys=True)
        return hashlib.sha256(body.encode()).hexdigest()

    def _iter_pages(self, params: dict[str, Any]) -> Iterator[list[dict[str, Any]]]:
        session = getattr(self.client, "_session", None)
        if session is None:
            raise RuntimeError("JIRA session unavailable")
        url = f"{self.server}{SEARCH_PATH}"
        next_token = None
        while True:
            query = dict(params, nextPageToken=next_token) if next_token else params
            resp = session.get(url, params=query)
            if resp.status_code >= 400:
                raise RuntimeError(f"Issue search failed {resp.status_code}: {resp.text[:200]}")
            page = resp.json()
            yield page.get("issues", [])
            next_token = page.get("nextPageToken")
            if not next_token or page.get("isLast") is True:
                return

    def search_issues_with_changelog(
        self,
        jql: str,
        fields: list[str] | None = None,
        page_size: int = 100,
    ) -> list[dict[str, Any]]:
        """All issues matching ``jql`` with ``changelog`` expanded.

        Results are cached per (jql, fields, page size) for ``cache_ttl``
        seconds; ``clear_cache`` forces a refetch.
        """
        request = self._request_hash(jql, fields, page_size)
        hit = self._cache.get(request)
        if hit and (time.time() - hit[0]) < self._cache_ttl:
            logger.debug("Search cache hit for %s", jql)
            return hit[1]

        params: dict[str, Any] = {"jql": jql, "maxResults": page_size, "expand": "changelog"}
        if fields:
            params["fields"] = ",".join(fields)
        issues: list[dict[str, Any]] = []
        for pages, batch in enumerate(self._iter_pages(params), start=1):
            issues.extend(batch)
            logger.debug("Search page %d: %d issue(s) so far", pages, len(issues))
        self._cache[request] = (time.time(), issues)
        return issues
