"""
Derived traffic metrics.

Merges raw view and clone series into day-ordered timelines and builds the
immutable RepositoryInsights snapshot handed to presentation code.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, Optional, Tuple, TypeVar, Union

from .models import DailyCloneRecord, DailyViewRecord, Repository

MINIMUM_SCALE_VALUE = 20

_ABBREVIATION_SUFFIXES = (
    (1_000, "K"),
    (1_000_000, "M"),
    (1_000_000_000, "B"),
)

DailyRecord = TypeVar("DailyRecord", DailyViewRecord, DailyCloneRecord)


def merge_by_day(records: Iterable[DailyRecord]) -> Tuple[DailyRecord, ...]:
    """
    Order records ascending by day, keeping one record per day.

    When the same day appears more than once the record that arrived last wins.
    """
    by_day: Dict[date, DailyRecord] = {}
    for record in records:
        by_day[record.day] = record
    return tuple(by_day[day] for day in sorted(by_day))


def abbreviate_count(value: int) -> str:
    """Format a count compactly, e.g. 950 -> '950', 1500 -> '1.5K', 2300000 -> '2.3M'."""
    if abs(value) < 1_000:
        return str(value)

    for threshold, suffix in _ABBREVIATION_SUFFIXES:
        scaled = round(value / threshold, 1)
        # 999_999 rounds to 1000.0K, which reads better as 1M
        if abs(scaled) < 1_000 or suffix == _ABBREVIATION_SUFFIXES[-1][1]:
            text = f"{scaled:.1f}"
            if text.endswith(".0"):
                text = text[:-2]
            return f"{text}{suffix}"
    return str(value)


@dataclass(frozen=True)
class RepositoryInsights:
    """Read-only snapshot of a repository's merged traffic timeline."""

    repository: Repository
    view_series: Tuple[DailyViewRecord, ...] = ()
    clone_series: Tuple[DailyCloneRecord, ...] = ()
    is_working: bool = False
    minimum_scale_value: int = MINIMUM_SCALE_VALUE

    # Totals are filled in by __post_init__ from the series
    views_total: int = field(init=False)
    unique_views_total: int = field(init=False)
    clones_total: int = field(init=False)
    unique_clones_total: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "views_total", sum(r.total_views for r in self.view_series))
        object.__setattr__(self, "unique_views_total", sum(r.total_unique_views for r in self.view_series))
        object.__setattr__(self, "clones_total", sum(r.total_clones for r in self.clone_series))
        object.__setattr__(self, "unique_clones_total", sum(r.total_unique_clones for r in self.clone_series))

    @classmethod
    def working(cls, repository: Repository, minimum_scale_value: int = MINIMUM_SCALE_VALUE) -> 'RepositoryInsights':
        """Placeholder snapshot published when a fetch cycle starts."""
        return cls(repository, is_working=True, minimum_scale_value=minimum_scale_value)

    @property
    def is_empty(self) -> bool:
        total = self.views_total + self.unique_views_total + self.clones_total + self.unique_clones_total
        return total < 1

    @property
    def min_date(self) -> Optional[date]:
        days = self._days()
        return min(days) if days else None

    @property
    def max_date(self) -> Optional[date]:
        days = self._days()
        return max(days) if days else None

    @property
    def max_scale_value(self) -> int:
        """Upper chart bound: the busiest single day, never below the configured minimum."""
        max_views = max((r.total_views for r in self.view_series), default=0)
        max_clones = max((r.total_clones for r in self.clone_series), default=0)
        return max(max_views, max_clones, self.minimum_scale_value)

    @property
    def views_text(self) -> str:
        return abbreviate_count(self.views_total)

    @property
    def unique_views_text(self) -> str:
        return abbreviate_count(self.unique_views_total)

    @property
    def clones_text(self) -> str:
        return abbreviate_count(self.clones_total)

    @property
    def unique_clones_text(self) -> str:
        return abbreviate_count(self.unique_clones_total)

    def _days(self) -> Tuple[date, ...]:
        return tuple(r.day for r in self.view_series) + tuple(r.day for r in self.clone_series)

    def to_dict(self) -> Dict[str, Any]:
        """Export the snapshot as JSON-serialisable data."""
        def _iso(value: Union[date, None]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "repo": self.repository.full_name,
            "is_working": self.is_working,
            "is_empty": self.is_empty,
            "total_views": self.views_total,
            "total_unique_views": self.unique_views_total,
            "total_clones": self.clones_total,
            "total_unique_clones": self.unique_clones_total,
            "min_date": _iso(self.min_date),
            "max_date": _iso(self.max_date),
            "max_scale_value": self.max_scale_value,
            "views": [r.to_dict() for r in self.view_series],
            "clones": [r.to_dict() for r in self.clone_series],
        }


def build_insights(
    repository: Repository,
    views: Iterable[DailyViewRecord],
    clones: Iterable[DailyCloneRecord],
    minimum_scale_value: int = MINIMUM_SCALE_VALUE,
) -> RepositoryInsights:
    """Merge both raw series and wrap them in a completed snapshot."""
    return RepositoryInsights(
        repository=repository,
        view_series=merge_by_day(views),
        clone_series=merge_by_day(clones),
        is_working=False,
        minimum_scale_value=minimum_scale_value,
    )
