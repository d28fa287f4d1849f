"""Shared fixtures for repo-insights tests."""

from __future__ import annotations

import pytest

from repo_insights.cache import InMemoryRepositoryCache
from repo_insights.db_factory import reset_resolved_database_path
from repo_insights.diagnostics import CollectingDiagnosticsReporter
from repo_insights.models import Repository


@pytest.fixture
def repo() -> Repository:
    return Repository("octocat", "repo1")


@pytest.fixture
def cache() -> InMemoryRepositoryCache:
    return InMemoryRepositoryCache()


@pytest.fixture
def reporter() -> CollectingDiagnosticsReporter:
    return CollectingDiagnosticsReporter()


@pytest.fixture(autouse=True)
def _isolate_database_path(monkeypatch, tmp_path):
    """Point the SQLite cache at a per-test file and forget any resolved path."""
    monkeypatch.setenv("DATABASE_PATH", str(tmp_path / "insights.db"))
    monkeypatch.delenv("USE_FIRESTORE", raising=False)
    monkeypatch.delenv("GAE_ENV", raising=False)
    reset_resolved_database_path()
    yield
    reset_resolved_database_path()
