#!/usr/bin/env python3
"""
Firestore-backed repository cache for Google App Engine deployment.
"""

import logging
from datetime import date, datetime
from typing import Iterable, List, Sequence

from google.cloud import firestore

from .cache import RepositoryCache
from .models import DailyCloneRecord, DailyViewRecord, Repository


def _document_key(repo: Repository) -> str:
    # Firestore document IDs cannot contain '/'
    return repo.full_name.replace("/", "__")


class FirestoreDatabaseManager(RepositoryCache):
    """Handles all database operations for traffic history using Firestore."""

    def __init__(self, client=None):
        """Initialize the Firestore database manager."""
        self.db = client or firestore.Client()
        self.logger = logging.getLogger(__name__)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        pass

    def setup_database(self):
        """Initialize collections - Firestore creates them automatically."""
        self.logger.info("Firestore collections will be created automatically")

    def _history(self, collection: str, repo: Repository) -> List[dict]:
        docs = (self.db.collection(collection)
                .where('repo', '==', repo.full_name)
                .order_by('timestamp')
                .stream())
        return [doc.to_dict() for doc in docs]

    def cached_views(self, repo: Repository) -> Sequence[DailyViewRecord]:
        """Get the stored view series for a repository."""
        return [
            DailyViewRecord(date.fromisoformat(data['timestamp']), data['count'], data['uniques'])
            for data in self._history('view_history', repo)
        ]

    def cached_clones(self, repo: Repository) -> Sequence[DailyCloneRecord]:
        """Get the stored clone series for a repository."""
        return [
            DailyCloneRecord(date.fromisoformat(data['timestamp']), data['count'], data['uniques'])
            for data in self._history('clone_history', repo)
        ]

    def _upsert(self, collection_name: str, repo: Repository, rows: List[tuple]) -> None:
        batch = self.db.batch()
        collection = self.db.collection(collection_name)

        for day, count, uniques in rows:
            doc_ref = collection.document(f"{_document_key(repo)}_{day}")
            batch.set(doc_ref, {
                'repo': repo.full_name,
                'timestamp': day,
                'count': count,
                'uniques': uniques
            })

        batch.commit()

    def upsert_view_records(self, repo: Repository, records: Iterable[DailyViewRecord]):
        """Insert or update multiple view records."""
        rows = [(r.day.isoformat(), r.total_views, r.total_unique_views) for r in records]
        if rows:
            self._upsert('view_history', repo, rows)
            self.logger.info(f"Upserted {len(rows)} view records for {repo}")

    def upsert_clone_records(self, repo: Repository, records: Iterable[DailyCloneRecord]):
        """Insert or update multiple clone records."""
        rows = [(r.day.isoformat(), r.total_clones, r.total_unique_clones) for r in records]
        if rows:
            self._upsert('clone_history', repo, rows)
            self.logger.info(f"Upserted {len(rows)} clone records for {repo}")

    def get_tracked_repos(self) -> List[Repository]:
        """Get all active tracked repositories."""
        docs = self.db.collection('tracked_repos').where('is_active', '==', True).stream()
        return sorted(
            (Repository.parse(doc.to_dict()['repo_name']) for doc in docs),
            key=lambda repo: repo.full_name
        )

    def add_tracked_repo(self, repo: Repository) -> bool:
        """Add a new repository to track."""
        doc_ref = self.db.collection('tracked_repos').document(_document_key(repo))
        doc_ref.set({
            'repo_name': repo.full_name,
            'added_at': datetime.utcnow().isoformat(),
            'is_active': True
        })
        self.logger.info(f"Added {repo} to tracked repositories")
        return True

    def remove_tracked_repo(self, repo: Repository) -> bool:
        """Mark a repository as inactive."""
        doc_ref = self.db.collection('tracked_repos').document(_document_key(repo))
        doc_ref.update({'is_active': False})
        self.logger.info(f"Marked {repo} as inactive")
        return True
