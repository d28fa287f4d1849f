"""Unit tests for the GitHub traffic fetcher.

Tests response handling against a mocked requests session: successful
payloads, rate limits, HTTP errors, connection failures and bad JSON.
"""

from __future__ import annotations

from datetime import date
from unittest.mock import MagicMock

import threading

import pytest
import requests

from repo_insights.exceptions import DeserializationError, NetworkError, RateLimitError
from repo_insights.github_client import GitHubTrafficFetcher, RateLimitInfo
from repo_insights.models import DailyCloneRecord, DailyViewRecord


def _make_response(status_code: int = 200, json_data: object = None, headers: dict | None = None) -> MagicMock:
    """Build a fake requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.headers = headers or {}
    if isinstance(json_data, Exception):
        response.json.side_effect = json_data
    else:
        response.json.return_value = json_data
    return response


@pytest.fixture
def session() -> MagicMock:
    mock_session = MagicMock(spec=requests.Session)
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def fetcher(session) -> GitHubTrafficFetcher:
    return GitHubTrafficFetcher("test-token", session_factory=lambda: session)


VIEWS_PAYLOAD = {
    "count": 15,
    "uniques": 6,
    "views": [
        {"timestamp": "2024-01-02T00:00:00Z", "count": 5, "uniques": 2},
        {"timestamp": "2024-01-01T00:00:00Z", "count": 10, "uniques": 4},
    ],
}

CLONES_PAYLOAD = {
    "count": 3,
    "uniques": 1,
    "clones": [{"timestamp": "2024-01-01T00:00:00Z", "count": 3, "uniques": 1}],
}


class TestRateLimitInfo:
    def test_detects_exhausted(self):
        info = RateLimitInfo(_make_response(headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"}))

        assert info.is_exhausted is True
        assert info.reset_timestamp == 1700000000

    def test_missing_headers(self):
        info = RateLimitInfo(_make_response(headers={}))

        assert info.is_exhausted is False
        assert info.reset_timestamp is None

    def test_malformed_headers_are_ignored(self):
        info = RateLimitInfo(_make_response(headers={"X-RateLimit-Remaining": "n/a", "X-RateLimit-Reset": "soon"}))

        assert info.is_exhausted is False
        assert info.reset_timestamp is None


class TestGitHubTrafficFetcher:
    def test_session_headers(self, fetcher, session):
        assert fetcher.session is session
        assert session.headers["Authorization"] == "token test-token"
        assert session.headers["Accept"] == "application/vnd.github.v3+json"

    def test_get_views(self, fetcher, session):
        session.get.return_value = _make_response(json_data=VIEWS_PAYLOAD)

        records = fetcher.get_views("octocat", "repo1")

        session.get.assert_called_once_with(
            "https://api.github.com/repos/octocat/repo1/traffic/views", timeout=30
        )
        assert records == [
            DailyViewRecord(date(2024, 1, 2), 5, 2),
            DailyViewRecord(date(2024, 1, 1), 10, 4),
        ]

    def test_get_clones(self, fetcher, session):
        session.get.return_value = _make_response(json_data=CLONES_PAYLOAD)

        assert fetcher.get_clones("octocat", "repo1") == [DailyCloneRecord(date(2024, 1, 1), 3, 1)]

    def test_missing_series_key_is_empty(self, fetcher, session):
        session.get.return_value = _make_response(json_data={"count": 0, "uniques": 0})

        assert fetcher.get_views("octocat", "repo1") == []

    @pytest.mark.parametrize("status_code", [403, 429])
    def test_rate_limit(self, fetcher, session, status_code):
        session.get.return_value = _make_response(
            status_code, headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1700000000"}
        )

        with pytest.raises(RateLimitError) as exc_info:
            fetcher.get_views("octocat", "repo1")

        assert exc_info.value.rate_limit_reset == 1700000000
        assert exc_info.value.status_code == status_code

    def test_forbidden_with_malformed_rate_limit_header(self, fetcher, session):
        session.get.return_value = _make_response(403, headers={"X-RateLimit-Remaining": "unknown"})

        with pytest.raises(NetworkError) as exc_info:
            fetcher.get_views("octocat", "repo1")

        assert exc_info.value.status_code == 403

    @pytest.mark.parametrize("status_code", [401, 403, 404, 500, 502])
    def test_http_errors_are_network_errors(self, fetcher, session, status_code):
        session.get.return_value = _make_response(status_code, headers={"X-RateLimit-Remaining": "42"})

        with pytest.raises(NetworkError) as exc_info:
            fetcher.get_clones("octocat", "repo1")

        assert exc_info.value.status_code == status_code

    def test_connection_error(self, fetcher, session):
        session.get.side_effect = requests.ConnectionError("no route to host")

        with pytest.raises(NetworkError):
            fetcher.get_views("octocat", "repo1")

    def test_invalid_json(self, fetcher, session):
        session.get.return_value = _make_response(json_data=ValueError("Expecting value"))

        with pytest.raises(DeserializationError):
            fetcher.get_views("octocat", "repo1")

    def test_non_object_payload(self, fetcher, session):
        session.get.return_value = _make_response(json_data=["not", "a", "dict"])

        with pytest.raises(DeserializationError):
            fetcher.get_views("octocat", "repo1")

    def test_malformed_entry(self, fetcher, session):
        session.get.return_value = _make_response(json_data={"views": [{"timestamp": "2024-01-01T00:00:00Z"}]})

        with pytest.raises(DeserializationError):
            fetcher.get_views("octocat", "repo1")

    def test_inconsistent_counts_are_malformed(self, fetcher, session):
        session.get.return_value = _make_response(
            json_data={"clones": [{"timestamp": "2024-01-01T00:00:00Z", "count": 1, "uniques": 5}]}
        )

        with pytest.raises(DeserializationError):
            fetcher.get_clones("octocat", "repo1")

    @pytest.mark.asyncio
    async def test_async_fetch_runs_blocking_call(self, fetcher, session):
        session.get.return_value = _make_response(json_data=CLONES_PAYLOAD)

        records = await fetcher.fetch_clones("octocat", "repo1")

        assert records == [DailyCloneRecord(date(2024, 1, 1), 3, 1)]

    @pytest.mark.asyncio
    async def test_async_fetch_propagates_fetch_errors(self, fetcher, session):
        session.get.side_effect = requests.Timeout("timed out")

        with pytest.raises(NetworkError):
            await fetcher.fetch_views("octocat", "repo1")

    def test_close(self, fetcher, session):
        assert fetcher.session is session
        fetcher.close()

        session.close.assert_called_once()


class TestSessionPerThread:
    @staticmethod
    def _session_factory() -> MagicMock:
        def _build():
            mock_session = MagicMock(spec=requests.Session)
            mock_session.headers = {}
            return mock_session
        return MagicMock(side_effect=_build)

    def test_each_thread_gets_its_own_session(self):
        factory = self._session_factory()
        fetcher = GitHubTrafficFetcher("test-token", session_factory=factory)
        seen = {}

        worker = threading.Thread(target=lambda: seen.update(worker=fetcher.session))
        worker.start()
        worker.join()

        assert fetcher.session is fetcher.session
        assert seen["worker"] is not fetcher.session
        assert seen["worker"].headers["Authorization"] == "token test-token"
        assert factory.call_count == 2

    def test_close_closes_every_thread_session(self):
        fetcher = GitHubTrafficFetcher("test-token", session_factory=self._session_factory())
        seen = {}
        worker = threading.Thread(target=lambda: seen.update(worker=fetcher.session))
        worker.start()
        worker.join()
        main_session = fetcher.session

        fetcher.close()

        seen["worker"].close.assert_called_once()
        main_session.close.assert_called_once()

    def test_session_is_created_lazily(self):
        factory = self._session_factory()

        GitHubTrafficFetcher("test-token", session_factory=factory).close()

        factory.assert_not_called()
