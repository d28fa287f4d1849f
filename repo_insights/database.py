#!/usr/bin/env python3
"""
SQLite-backed repository cache.

Stores the daily view and clone history of tracked repositories so insights
can be served without a GitHub round-trip.
"""

import logging
import sqlite3
from datetime import date, datetime
from typing import Iterable, List, Sequence

from .cache import RepositoryCache
from .models import DailyCloneRecord, DailyViewRecord, Repository


class DatabaseManager(RepositoryCache):
    """Handles all database operations for repository traffic history."""

    def __init__(self, db_path: str):
        """
        Initialize the database manager.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self.conn = None
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        # Reads may run in a worker thread; calls are never concurrent.
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.conn:
            self.conn.close()
            self.conn = None

    def setup_database(self):
        """Create the necessary tables if they don't exist."""
        try:
            with self.conn:
                self.conn.execute("""
                    CREATE TABLE IF NOT EXISTS view_history (
                        repo TEXT NOT NULL,
                        timestamp TEXT NOT NULL,
                        count INTEGER NOT NULL,
                        uniques INTEGER NOT NULL,
                        PRIMARY KEY (repo, timestamp)
                    )
                """)
                self.conn.execute("""
                    CREATE TABLE IF NOT EXISTS clone_history (
                        repo TEXT NOT NULL,
                        timestamp TEXT NOT NULL,
                        count INTEGER NOT NULL,
                        uniques INTEGER NOT NULL,
                        PRIMARY KEY (repo, timestamp)
                    )
                """)
                self.conn.execute("""
                    CREATE TABLE IF NOT EXISTS tracked_repos (
                        repo_name TEXT PRIMARY KEY,
                        added_at TEXT NOT NULL,
                        is_active INTEGER DEFAULT 1
                    )
                """)
            self.logger.info("Database setup complete.")
        except sqlite3.Error as e:
            self.logger.error(f"Database setup failed: {e}")
            raise

    def _execute_query(self, query: str, params: tuple = ()) -> List[sqlite3.Row]:
        """Execute a read query with consistent error handling."""
        try:
            with self.conn:
                return self.conn.execute(query, params).fetchall()
        except sqlite3.Error as e:
            self.logger.error(f"Database query failed: {e}")
            return []

    def cached_views(self, repo: Repository) -> Sequence[DailyViewRecord]:
        """Return the stored view series for a repository, oldest day first."""
        rows = self._execute_query(
            "SELECT timestamp, count, uniques FROM view_history WHERE repo = ? ORDER BY timestamp",
            (repo.full_name,)
        )
        return [DailyViewRecord(date.fromisoformat(row["timestamp"]), row["count"], row["uniques"]) for row in rows]

    def cached_clones(self, repo: Repository) -> Sequence[DailyCloneRecord]:
        """Return the stored clone series for a repository, oldest day first."""
        rows = self._execute_query(
            "SELECT timestamp, count, uniques FROM clone_history WHERE repo = ? ORDER BY timestamp",
            (repo.full_name,)
        )
        return [DailyCloneRecord(date.fromisoformat(row["timestamp"]), row["count"], row["uniques"]) for row in rows]

    def _upsert(self, table: str, rows: List[tuple]) -> None:
        with self.conn:
            self.conn.executemany(
                f"INSERT OR REPLACE INTO {table} (repo, timestamp, count, uniques) VALUES (?, ?, ?, ?)",
                rows
            )

    def upsert_view_records(self, repo: Repository, records: Iterable[DailyViewRecord]):
        """Insert or update view records; the newest sync wins for a given day."""
        rows = [(repo.full_name, r.day.isoformat(), r.total_views, r.total_unique_views) for r in records]
        if not rows:
            return
        try:
            self._upsert("view_history", rows)
            self.logger.info(f"Upserted {len(rows)} view records for {repo}.")
        except sqlite3.Error as e:
            self.logger.error(f"Failed to upsert view records for {repo}: {e}")
            raise

    def upsert_clone_records(self, repo: Repository, records: Iterable[DailyCloneRecord]):
        """Insert or update clone records; the newest sync wins for a given day."""
        rows = [(repo.full_name, r.day.isoformat(), r.total_clones, r.total_unique_clones) for r in records]
        if not rows:
            return
        try:
            self._upsert("clone_history", rows)
            self.logger.info(f"Upserted {len(rows)} clone records for {repo}.")
        except sqlite3.Error as e:
            self.logger.error(f"Failed to upsert clone records for {repo}: {e}")
            raise

    def get_tracked_repos(self) -> List[Repository]:
        """Get all actively tracked repositories."""
        rows = self._execute_query(
            "SELECT repo_name FROM tracked_repos WHERE is_active = 1 ORDER BY repo_name"
        )
        return [Repository.parse(row["repo_name"]) for row in rows]

    def add_tracked_repo(self, repo: Repository) -> bool:
        """Add a repository to tracking."""
        try:
            with self.conn:
                self.conn.execute(
                    "INSERT OR REPLACE INTO tracked_repos (repo_name, added_at, is_active) VALUES (?, ?, 1)",
                    (repo.full_name, datetime.now().isoformat())
                )
            self.logger.info(f"Added {repo} to tracked repos.")
            return True
        except sqlite3.Error as e:
            self.logger.error(f"Failed to add tracked repo {repo}: {e}")
            return False

    def remove_tracked_repo(self, repo: Repository) -> bool:
        """Remove a repository from tracking."""
        try:
            with self.conn:
                self.conn.execute(
                    "UPDATE tracked_repos SET is_active = 0 WHERE repo_name = ?",
                    (repo.full_name,)
                )
            self.logger.info(f"Removed {repo} from tracked repos.")
            return True
        except sqlite3.Error as e:
            self.logger.error(f"Failed to remove tracked repo {repo}: {e}")
            return False
