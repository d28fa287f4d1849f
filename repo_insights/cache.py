#!/usr/bin/env python3
"""
Repository cache interface.

The insights engine only reads from a cache. Backends that can also be written
to (SQLite, Firestore, in-memory) expose upsert methods for the sync job.
"""

from datetime import date
from typing import Dict, Iterable, Sequence

from .models import DailyCloneRecord, DailyViewRecord, Repository


class RepositoryCache:
    """Base interface for cached repository traffic series."""

    def cached_views(self, repo: Repository) -> Sequence[DailyViewRecord]:
        raise NotImplementedError

    def cached_clones(self, repo: Repository) -> Sequence[DailyCloneRecord]:
        raise NotImplementedError


class InMemoryRepositoryCache(RepositoryCache):
    """Dictionary-backed cache, keyed by repository full name and day."""

    def __init__(self):
        self._views: Dict[str, Dict[date, DailyViewRecord]] = {}
        self._clones: Dict[str, Dict[date, DailyCloneRecord]] = {}

    def cached_views(self, repo: Repository) -> Sequence[DailyViewRecord]:
        by_day = self._views.get(repo.full_name, {})
        return tuple(by_day[day] for day in sorted(by_day))

    def cached_clones(self, repo: Repository) -> Sequence[DailyCloneRecord]:
        by_day = self._clones.get(repo.full_name, {})
        return tuple(by_day[day] for day in sorted(by_day))

    def upsert_view_records(self, repo: Repository, records: Iterable[DailyViewRecord]) -> None:
        by_day = self._views.setdefault(repo.full_name, {})
        for record in records:
            by_day[record.day] = record

    def upsert_clone_records(self, repo: Repository, records: Iterable[DailyCloneRecord]) -> None:
        by_day = self._clones.setdefault(repo.full_name, {})
        for record in records:
            by_day[record.day] = record
