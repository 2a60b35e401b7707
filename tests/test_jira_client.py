from types import SimpleNamespace

import pytest

from flow_app.core.jira_client import JiraAPI


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.text = str(payload)

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, params=None):
        self.calls.append((url, dict(params or {})))
        return self.responses.pop(0)


def _api(responses):
    api = JiraAPI.__new__(JiraAPI)
    api.server = "https://example.atlassian.net"
    api._cache = {}
    api._cache_ttl = 300.0
    api.client = SimpleNamespace(_session=FakeSession(responses))
    return api


def test_search_follows_page_tokens_and_caches():
    api = _api(
        [
            FakeResponse({"issues": [{"key": "FLOW-1"}], "nextPageToken": "abc"}),
            FakeResponse({"issues": [{"key": "FLOW-2"}], "isLast": True}),
        ]
    )
    issues = api.search_issues_with_changelog("project = FLOW", fields=["summary", "created"])
    assert [i["key"] for i in issues] == ["FLOW-1", "FLOW-2"]
    session = api.client._session
    first_url, first_params = session.calls[0]
    assert first_url.endswith("/rest/api/3/search/jql")
    assert first_params["expand"] == "changelog"
    assert first_params["fields"] == "summary,created"
    assert "nextPageToken" not in first_params
    assert session.calls[1][1]["nextPageToken"] == "abc"

    again = api.search_issues_with_changelog("project = FLOW", fields=["summary", "created"])
    assert again == issues
    assert len(session.calls) == 2


def test_clear_cache_forces_refetch():
    api = _api([FakeResponse({"issues": []}), FakeResponse({"issues": [{"key": "FLOW-9"}]})])
    assert api.search_issues_with_changelog("project = FLOW") == []
    api.clear_cache()
    assert api.search_issues_with_changelog("project = FLOW") == [{"key": "FLOW-9"}]


def test_http_error_raises_runtime_error():
    api = _api([FakeResponse({"errorMessages": ["bad jql"]}, status_code=400)])
    with pytest.raises(RuntimeError):
        api.search_issues_with_changelog("project = ???")
