#!/usr/bin/env python3
"""
Repository insights aggregator.

Runs fetch cycles for a repository: reads cached series or fetches views and
clones concurrently, merges them into a RepositoryInsights snapshot and keeps
the working flag raised for a minimum duration so loading indicators do not
flicker. Fetch failures are reported and replaced by empty series.
"""

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Set, Tuple

from .cache import RepositoryCache
from .diagnostics import DiagnosticsReporter, LoggingDiagnosticsReporter
from .insights import MINIMUM_SCALE_VALUE, RepositoryInsights, build_insights
from .models import DailyCloneRecord, DailyViewRecord, Repository
from .notifications import InsightsChannel

MINIMUM_WORKING_DURATION = 2.0  # seconds


class InsightsAggregator:
    """
    Orchestrates fetch cycles and publishes the resulting snapshots.

    An aggregator backs a single repository view: it holds one snapshot and one
    working flag, and a newly started cycle supersedes any cycle still in flight,
    whatever repository that cycle was for. Use one aggregator per repository
    when several are shown at once.
    """

    def __init__(
        self,
        fetcher,
        cache: Optional[RepositoryCache] = None,
        reporter: Optional[DiagnosticsReporter] = None,
        channel: Optional[InsightsChannel] = None,
        minimum_duration: float = MINIMUM_WORKING_DURATION,
        minimum_scale_value: int = MINIMUM_SCALE_VALUE,
    ):
        """
        Initialize the aggregator.

        Args:
            fetcher: Object with async fetch_views(owner, name) and fetch_clones(owner, name)
            cache: Read-only source of previously stored series
            reporter: Receives fetch errors that were absorbed
            channel: Where working-flag changes and snapshots are published
            minimum_duration: Seconds a cycle stays in the working state at minimum
            minimum_scale_value: Floor for the chart's maximum value
        """
        self.fetcher = fetcher
        self.cache = cache
        self.reporter = reporter or LoggingDiagnosticsReporter()
        self.channel = channel or InsightsChannel()
        self.minimum_duration = minimum_duration
        self.minimum_scale_value = minimum_scale_value
        self.logger = logging.getLogger(__name__)

        self._cycle_sequence = 0
        self._snapshot: Optional[RepositoryInsights] = None
        self._completed: Optional[RepositoryInsights] = None
        self._is_working = False
        self._pending: Set[asyncio.Task] = set()

    @property
    def snapshot(self) -> Optional[RepositoryInsights]:
        """Latest published snapshot, or None before the first cycle starts."""
        return self._snapshot

    @property
    def is_working(self) -> bool:
        return self._is_working

    def _set_working(self, is_working: bool) -> None:
        if self._is_working != is_working:
            self._is_working = is_working
            self.channel.publish_working(is_working)

    def _publish(self, snapshot: RepositoryInsights) -> None:
        self._snapshot = snapshot
        self.channel.publish_snapshot(snapshot)

    def _report(self, error: BaseException) -> None:
        try:
            self.reporter.report(error)
        except Exception as e:
            self.logger.error(f"Diagnostics reporter failed while reporting {error!r}: {e}")

    async def fetch(self, repository: Repository) -> RepositoryInsights:
        """
        Run one fetch cycle and return its snapshot.

        The snapshot is published only if no newer cycle was started in the
        meantime; a superseded cycle still returns its result to the caller.

        Raises:
            InvalidRepositoryError: If the repository owner or name is empty.
        """
        repository.validate()

        self._cycle_sequence += 1
        cycle = self._cycle_sequence
        fetcher = self.fetcher
        self.logger.info(f"Starting insights cycle {cycle} for {repository}")

        self._set_working(True)
        self._publish(RepositoryInsights.working(repository, self.minimum_scale_value))

        try:
            (views, clones), _ = await asyncio.gather(
                self._load_series(fetcher, repository),
                asyncio.sleep(self.minimum_duration),
            )
        except asyncio.CancelledError:
            if cycle == self._cycle_sequence:
                self.logger.info(f"Insights cycle {cycle} for {repository} was cancelled")
                self._publish(self._settled_snapshot(repository))
                self._set_working(False)
            raise

        snapshot = build_insights(repository, views, clones, self.minimum_scale_value)

        if cycle != self._cycle_sequence:
            self.logger.info(
                f"Discarding insights cycle {cycle} for {repository}; cycle {self._cycle_sequence} is newer"
            )
            return snapshot

        self._completed = snapshot
        self._publish(snapshot)
        self._set_working(False)
        self.logger.info(
            f"Insights cycle {cycle} for {repository} complete: "
            f"{len(snapshot.view_series)} view days, {len(snapshot.clone_series)} clone days, "
            f"empty={snapshot.is_empty}"
        )
        return snapshot

    def _settled_snapshot(self, repository: Repository) -> RepositoryInsights:
        """Last completed snapshot for the repository, or an empty one if there is none."""
        if self._completed is not None and self._completed.repository == repository:
            return self._completed
        return build_insights(repository, (), (), self.minimum_scale_value)

    def start_fetch(self, repository: Repository) -> asyncio.Task:
        """Schedule a fetch cycle on the running loop and return its task."""
        repository.validate()
        task = asyncio.ensure_future(self.fetch(repository))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _load_series(
        self, fetcher, repository: Repository
    ) -> Tuple[Sequence[DailyViewRecord], Sequence[DailyCloneRecord]]:
        """Use cached series when both are present, otherwise fetch both concurrently."""
        cached_views, cached_clones = await self._read_cache(repository)
        if cached_views and cached_clones:
            self.logger.info(f"Using cached series for {repository}")
            return cached_views, cached_clones

        self.logger.info(f"Fetching traffic series for {repository} from GitHub")
        views, clones = await asyncio.gather(
            self._fetch_or_empty(fetcher.fetch_views, repository, "views"),
            self._fetch_or_empty(fetcher.fetch_clones, repository, "clones"),
        )
        return views, clones

    async def _read_cache(
        self, repository: Repository
    ) -> Tuple[Sequence[DailyViewRecord], Sequence[DailyCloneRecord]]:
        """Read both cached series in a worker thread; cache backends do blocking I/O."""
        if self.cache is None:
            return (), ()
        cache = self.cache
        try:
            return await asyncio.to_thread(
                lambda: (cache.cached_views(repository), cache.cached_clones(repository))
            )
        except Exception as e:
            self.logger.error(f"Failed to read cached series for {repository}: {e}")
            self._report(e)
            return (), ()

    async def _fetch_or_empty(
        self,
        fetch: Callable[[str, str], Awaitable[List]],
        repository: Repository,
        kind: str,
    ) -> List:
        try:
            return list(await fetch(repository.owner, repository.name))
        except Exception as e:
            self.logger.error(f"Failed to fetch {kind} for {repository}: {e}")
            self._report(e)
            return []
