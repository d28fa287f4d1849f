"""
GitHub Repository Traffic Insights

Aggregates GitHub repository view and clone statistics into day-ordered,
chart-ready snapshots, backed by a local history of previously fetched data.
"""

__version__ = "1.0.0"

from .aggregator import MINIMUM_WORKING_DURATION, InsightsAggregator
from .cache import InMemoryRepositoryCache, RepositoryCache
from .diagnostics import DiagnosticsReporter, LoggingDiagnosticsReporter
from .exceptions import (
    DeserializationError,
    FetchError,
    InvalidRepositoryError,
    NetworkError,
    RateLimitError,
)
from .github_client import GitHubTrafficFetcher
from .insights import MINIMUM_SCALE_VALUE, RepositoryInsights, abbreviate_count, build_insights, merge_by_day
from .models import DailyCloneRecord, DailyViewRecord, Repository
from .notifications import InsightsChannel, InsightsEvent

__all__ = [
    "InsightsAggregator",
    "MINIMUM_WORKING_DURATION",
    "MINIMUM_SCALE_VALUE",
    "RepositoryCache",
    "InMemoryRepositoryCache",
    "DiagnosticsReporter",
    "LoggingDiagnosticsReporter",
    "FetchError",
    "NetworkError",
    "RateLimitError",
    "DeserializationError",
    "InvalidRepositoryError",
    "GitHubTrafficFetcher",
    "RepositoryInsights",
    "abbreviate_count",
    "build_insights",
    "merge_by_day",
    "DailyViewRecord",
    "DailyCloneRecord",
    "Repository",
    "InsightsChannel",
    "InsightsEvent",
]
