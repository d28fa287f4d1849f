#!/usr/bin/env python3
"""
GitHub traffic API client.

Fetches the daily view and clone series for a repository from the
/repos/{owner}/{name}/traffic endpoints and maps failures onto FetchError
subclasses.
"""

import asyncio
import logging
import threading
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from .exceptions import DeserializationError, NetworkError, RateLimitError
from .models import DailyCloneRecord, DailyViewRecord

T = TypeVar("T")


class RateLimitInfo:
    """Rate limit information from a GitHub API response."""

    def __init__(self, response: requests.Response):
        self.remaining = response.headers.get("X-RateLimit-Remaining")
        self.reset = response.headers.get("X-RateLimit-Reset")

    @staticmethod
    def _as_int(value: Optional[str]) -> Optional[int]:
        try:
            return int(value) if value else None
        except ValueError:
            return None

    @property
    def reset_timestamp(self) -> Optional[int]:
        return self._as_int(self.reset)

    @property
    def is_exhausted(self) -> bool:
        """True only for an explicit remaining count of zero; unparsable headers are ignored."""
        return self._as_int(self.remaining) == 0


class GitHubTrafficFetcher:
    """Fetches repository view and clone statistics from the GitHub REST API."""

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        github_token: str,
        timeout: float = 30,
        session_factory: Callable[[], requests.Session] = requests.Session,
    ):
        """
        Initialize the traffic fetcher.

        Args:
            github_token: GitHub Personal Access Token with push access to the repositories
            timeout: Per-request timeout in seconds
            session_factory: Builds the requests session used by each worker thread
        """
        self.timeout = timeout
        self.headers = {
            "Authorization": f"token {github_token}",
            "Accept": "application/vnd.github.v3+json"
        }
        self.session_factory = session_factory
        self.logger = logging.getLogger(__name__)

        self._local = threading.local()
        self._sessions: List[requests.Session] = []
        self._sessions_lock = threading.Lock()

    @property
    def session(self) -> requests.Session:
        """The calling thread's session; requests sessions are not shared between threads."""
        session = getattr(self._local, "session", None)
        if session is None:
            session = self.session_factory()
            session.headers.update(self.headers)
            self._local.session = session
            with self._sessions_lock:
                self._sessions.append(session)
        return session

    def _fetch_traffic_data(self, owner: str, name: str, kind: str) -> Dict[str, Any]:
        """Fetch one traffic payload ('views' or 'clones') from the GitHub API."""
        url = f"{self.BASE_URL}/repos/{owner}/{name}/traffic/{kind}"

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            self.logger.error(f"Error fetching {kind} for {owner}/{name}: {e}")
            raise NetworkError(f"Request for {kind} of {owner}/{name} failed: {e}") from e

        self._check_response(response, f"{owner}/{name}")

        try:
            payload = response.json()
        except ValueError as e:
            raise DeserializationError(
                f"Invalid JSON in {kind} response for {owner}/{name}", response.status_code
            ) from e

        if not isinstance(payload, dict):
            raise DeserializationError(
                f"Unexpected {kind} payload for {owner}/{name}: {type(payload).__name__}",
                response.status_code,
            )
        return payload

    def _check_response(self, response: requests.Response, repo_name: str) -> None:
        """Raise the matching FetchError for a non-success response."""
        if response.status_code == 200:
            return

        rate_info = RateLimitInfo(response)
        if response.status_code in (403, 429) and rate_info.is_exhausted:
            raise RateLimitError(
                "GitHub API rate limit exceeded",
                response.status_code,
                rate_limit_reset=rate_info.reset_timestamp,
            )
        if response.status_code == 401:
            raise NetworkError("Invalid or expired GitHub token", 401)
        if response.status_code == 404:
            raise NetworkError(f"Repository not found or traffic not visible: {repo_name}", 404)
        raise NetworkError(f"GitHub API error: {response.status_code}", response.status_code)

    def _parse_entries(self, payload: Dict[str, Any], key: str, factory: Callable[[Dict[str, Any]], T]) -> List[T]:
        entries = payload.get(key, [])
        if not isinstance(entries, list):
            raise DeserializationError(f"Expected a list under '{key}', got {type(entries).__name__}")
        try:
            return [factory(entry) for entry in entries]
        except (KeyError, TypeError, ValueError) as e:
            raise DeserializationError(f"Malformed '{key}' entry: {e}") from e

    def get_views(self, owner: str, name: str) -> List[DailyViewRecord]:
        """Blocking fetch of the daily view series."""
        payload = self._fetch_traffic_data(owner, name, "views")
        records = self._parse_entries(payload, "views", DailyViewRecord.from_github_entry)
        self.logger.debug(f"Fetched {len(records)} view records for {owner}/{name}")
        return records

    def get_clones(self, owner: str, name: str) -> List[DailyCloneRecord]:
        """Blocking fetch of the daily clone series."""
        payload = self._fetch_traffic_data(owner, name, "clones")
        records = self._parse_entries(payload, "clones", DailyCloneRecord.from_github_entry)
        self.logger.debug(f"Fetched {len(records)} clone records for {owner}/{name}")
        return records

    async def fetch_views(self, owner: str, name: str) -> List[DailyViewRecord]:
        return await asyncio.to_thread(self.get_views, owner, name)

    async def fetch_clones(self, owner: str, name: str) -> List[DailyCloneRecord]:
        return await asyncio.to_thread(self.get_clones, owner, name)

    def close(self) -> None:
        """Close every session opened by this fetcher."""
        with self._sessions_lock:
            sessions, self._sessions = self._sessions, []
        for session in sessions:
            session.close()
        self._local = threading.local()
