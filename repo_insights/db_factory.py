#!/usr/bin/env python3
"""
Cache backend factory to switch between SQLite and Firestore based on environment.
"""

import logging
import os

# Global variable to store the resolved database path
_resolved_db_path = None


def _is_writable_directory(path: str) -> bool:
    directory = os.path.dirname(os.path.abspath(path)) or "."
    os.makedirs(directory, mode=0o755, exist_ok=True)
    test_file = os.path.join(directory, ".write_test")
    with open(test_file, 'w') as f:
        f.write("test")
    os.remove(test_file)
    return True


def get_resolved_database_path():
    """
    Get the resolved database path, testing the preferred path first and falling back if needed.
    This ensures all database connections use the same working path.
    """
    global _resolved_db_path

    if _resolved_db_path is not None:
        return _resolved_db_path

    logger = logging.getLogger(__name__)
    primary_path = os.environ.get('DATABASE_PATH', 'repo_insights.db')

    try:
        _is_writable_directory(primary_path)
        _resolved_db_path = os.path.abspath(primary_path)
        logger.info(f"Using primary database path: {_resolved_db_path}")
        return _resolved_db_path
    except OSError as e:
        logger.warning(f"Primary database path {primary_path} is not writable: {e}")

    allow_fallback = os.environ.get("ALLOW_DB_FALLBACK", "").lower() == "true"
    if allow_fallback:
        fallback_path = os.environ.get("DATABASE_FALLBACK_PATH", "/tmp/repo_insights.db")
        try:
            _is_writable_directory(fallback_path)
            _resolved_db_path = os.path.abspath(fallback_path)
            logger.warning(f"Using fallback database path: {_resolved_db_path}. Data may be ephemeral.")
            return _resolved_db_path
        except OSError as e:
            logger.error(f"Fallback database path {fallback_path} also failed: {e}")

    # Let the DatabaseManager surface the error on connect
    _resolved_db_path = os.path.abspath(primary_path)
    logger.error(f"All database paths failed, using primary path anyway: {_resolved_db_path}")
    return _resolved_db_path


def reset_resolved_database_path():
    """Forget the cached path so the next call re-reads the environment."""
    global _resolved_db_path
    _resolved_db_path = None


def get_database_manager():
    """
    Return the appropriate cache backend based on environment.

    Priority:
    1. If USE_FIRESTORE env var is set to 'true', use Firestore
    2. If running on GAE (GAE_ENV is set), use Firestore
    3. Otherwise, use SQLite (default)
    """
    logger = logging.getLogger(__name__)

    use_firestore = os.getenv('USE_FIRESTORE', '').lower() == 'true'
    is_gae = os.getenv('GAE_ENV', '').startswith('standard')

    if use_firestore or is_gae:
        try:
            from .firestore_db import FirestoreDatabaseManager
            logger.info("Using Firestore database")
            return FirestoreDatabaseManager()
        except ImportError as e:
            logger.warning(f"Failed to import Firestore: {e}. Falling back to SQLite.")
        except Exception as e:
            logger.warning(f"Failed to initialize Firestore: {e}. Falling back to SQLite.")

    from .database import DatabaseManager
    logger.info("Using SQLite database")
    return DatabaseManager(get_resolved_database_path())
