"""Test doubles and record builders shared across the test modules."""

from __future__ import annotations

import asyncio
from datetime import date

from repo_insights.models import DailyCloneRecord, DailyViewRecord


class FakeFetcher:
    """Async statistics fetcher returning canned series or raising canned errors."""

    def __init__(self, views=None, clones=None, delay: float = 0.0):
        self.views = views if views is not None else []
        self.clones = clones if clones is not None else []
        self.delay = delay
        self.view_calls: list[tuple[str, str]] = []
        self.clone_calls: list[tuple[str, str]] = []

    async def _resolve(self, result):
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(result, BaseException):
            raise result
        return list(result)

    async def fetch_views(self, owner: str, name: str):
        self.view_calls.append((owner, name))
        return await self._resolve(self.views)

    async def fetch_clones(self, owner: str, name: str):
        self.clone_calls.append((owner, name))
        return await self._resolve(self.clones)

    @property
    def call_count(self) -> int:
        return len(self.view_calls) + len(self.clone_calls)


def view(day: str, views: int, uniques: int) -> DailyViewRecord:
    return DailyViewRecord(date.fromisoformat(day), views, uniques)


def clone(day: str, clones: int, uniques: int) -> DailyCloneRecord:
    return DailyCloneRecord(date.fromisoformat(day), clones, uniques)
