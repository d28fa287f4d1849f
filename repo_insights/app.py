#!/usr/bin/env python3
"""
GitHub Repository Traffic Insights

Fetches repository view and clone statistics from the GitHub API, keeps a local
history of them, and aggregates them into chart-ready insights snapshots.
"""

import asyncio
import logging
import os
from contextlib import nullcontext
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .aggregator import MINIMUM_WORKING_DURATION, InsightsAggregator
from .db_factory import get_database_manager
from .diagnostics import LoggingDiagnosticsReporter
from .github_client import GitHubTrafficFetcher
from .insights import MINIMUM_SCALE_VALUE, RepositoryInsights
from .models import Repository


@dataclass
class Configuration:
    """Runtime settings read from the environment."""
    github_token: str
    minimum_duration: float = MINIMUM_WORKING_DURATION
    minimum_scale_value: int = MINIMUM_SCALE_VALUE


def load_configuration() -> Configuration:
    """Load configuration from environment variables."""
    github_token = os.environ.get('GITHUB_TOKEN')
    if not github_token:
        raise ValueError("GITHUB_TOKEN environment variable not set.")

    try:
        minimum_duration = float(os.environ.get('INSIGHTS_MINIMUM_DURATION', MINIMUM_WORKING_DURATION))
        minimum_scale_value = int(os.environ.get('INSIGHTS_MINIMUM_SCALE_VALUE', MINIMUM_SCALE_VALUE))
    except ValueError as e:
        raise ValueError(f"Invalid insights setting: {e}") from e

    if minimum_duration < 0:
        raise ValueError("INSIGHTS_MINIMUM_DURATION must not be negative.")

    return Configuration(github_token, minimum_duration, minimum_scale_value)


class TrafficSync:
    """Copies the latest GitHub traffic series of tracked repositories into the cache."""

    def __init__(self, fetcher: GitHubTrafficFetcher, db_manager, repos: Optional[List[Repository]] = None):
        """
        Initialize the sync job.

        Args:
            fetcher: GitHub traffic fetcher
            db_manager: Writable cache backend (SQLite or Firestore manager)
            repos: Repositories to sync; defaults to the tracked repositories in the cache
        """
        self.fetcher = fetcher
        self.db_manager = db_manager
        self.repos = repos or []
        self.logger = logging.getLogger(__name__)

    def _update_repository(self, repo: Repository) -> None:
        """Fetch and store both traffic series for a single repository."""
        self.logger.info(f"Updating traffic data for {repo}")

        views = self.fetcher.get_views(repo.owner, repo.name)
        self.db_manager.upsert_view_records(repo, views)

        clones = self.fetcher.get_clones(repo.owner, repo.name)
        self.db_manager.upsert_clone_records(repo, clones)

        self.logger.info(f"Update for {repo} completed: {len(views)} view days, {len(clones)} clone days")

    def update_all_repositories(self) -> Tuple[int, int]:
        """Update every repository; returns (succeeded, failed) counts."""
        self.logger.info("Starting update for all repositories")

        repos_to_update = self.repos or self.db_manager.get_tracked_repos()
        succeeded = failed = 0

        for repo in repos_to_update:
            try:
                self._update_repository(repo)
                succeeded += 1
            except Exception as e:
                self.logger.error(f"Failed to update {repo}: {e}")
                failed += 1

        self.logger.info(f"Finished updating all repositories ({succeeded} succeeded, {failed} failed)")
        return succeeded, failed


def run_sync(repos: Optional[List[Repository]] = None) -> Tuple[bool, str]:
    """Runs the GitHub traffic synchronization."""
    logger = logging.getLogger(__name__)
    try:
        config = load_configuration()
        fetcher = GitHubTrafficFetcher(config.github_token)

        try:
            with get_database_manager() as db_manager:
                db_manager.setup_database()
                sync = TrafficSync(fetcher, db_manager, repos)
                succeeded, failed = sync.update_all_repositories()
        finally:
            fetcher.close()

        if failed:
            return False, f"Sync finished with {failed} failed repositories"
        logger.info("Sync successful")
        return True, f"Synced {succeeded} repositories"
    except Exception as e:
        logger.error(f"Application error: {e}")
        return False, str(e)


async def gather_insights(
    repository: Repository,
    config: Configuration,
    use_cache: bool = True,
) -> RepositoryInsights:
    """Run a single insights cycle for a repository with the default collaborators."""
    fetcher = GitHubTrafficFetcher(config.github_token)
    cache_context = get_database_manager() if use_cache else nullcontext()
    try:
        with cache_context as db_manager:
            if db_manager is not None:
                db_manager.setup_database()
            aggregator = InsightsAggregator(
                fetcher,
                cache=db_manager,
                reporter=LoggingDiagnosticsReporter(),
                minimum_duration=config.minimum_duration,
                minimum_scale_value=config.minimum_scale_value,
            )
            return await aggregator.fetch(repository)
    finally:
        fetcher.close()


def run_insights(repository: Repository, use_cache: bool = True) -> RepositoryInsights:
    """Blocking wrapper around gather_insights for command-line use."""
    config = load_configuration()
    return asyncio.run(gather_insights(repository, config, use_cache))
