#!/usr/bin/env python3
"""
Data models for GitHub repository traffic statistics.

Contains the day-bucketed view and clone records and the repository reference
used throughout the application.
"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Dict

from .exceptions import InvalidRepositoryError


def parse_github_day(timestamp: str) -> date:
    """Convert a GitHub traffic timestamp such as '2024-01-01T00:00:00Z' to its UTC day."""
    if timestamp.endswith("Z"):
        timestamp = timestamp[:-1] + "+00:00"
    parsed = datetime.fromisoformat(timestamp)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def _check_counts(kind: str, total: int, uniques: int) -> None:
    if total < 0 or uniques < 0:
        raise ValueError(f"{kind} counts must be non-negative, got {total}/{uniques}")
    if uniques > total:
        raise ValueError(f"Unique {kind} ({uniques}) cannot exceed total {kind} ({total})")


@dataclass(frozen=True)
class DailyViewRecord:
    """Represents the views a repository received on a single day."""
    day: date
    total_views: int
    total_unique_views: int

    def __post_init__(self):
        _check_counts("views", self.total_views, self.total_unique_views)

    def __str__(self) -> str:
        return f"{self.total_views} {self.day.isoformat()} {self.total_unique_views}"

    @classmethod
    def from_github_entry(cls, entry: Dict[str, Any]) -> 'DailyViewRecord':
        """Create a DailyViewRecord from a GitHub traffic API entry."""
        return cls(parse_github_day(entry["timestamp"]), int(entry["count"]), int(entry["uniques"]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day.isoformat(),
            "total_views": self.total_views,
            "total_unique_views": self.total_unique_views,
        }


@dataclass(frozen=True)
class DailyCloneRecord:
    """Represents the clones a repository received on a single day."""
    day: date
    total_clones: int
    total_unique_clones: int

    def __post_init__(self):
        _check_counts("clones", self.total_clones, self.total_unique_clones)

    def __str__(self) -> str:
        return f"{self.total_clones} {self.day.isoformat()} {self.total_unique_clones}"

    @classmethod
    def from_github_entry(cls, entry: Dict[str, Any]) -> 'DailyCloneRecord':
        """Create a DailyCloneRecord from a GitHub traffic API entry."""
        return cls(parse_github_day(entry["timestamp"]), int(entry["count"]), int(entry["uniques"]))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day.isoformat(),
            "total_clones": self.total_clones,
            "total_unique_clones": self.total_unique_clones,
        }


@dataclass(frozen=True)
class Repository:
    """Reference to a GitHub repository by owner login and name."""
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def __str__(self) -> str:
        return self.full_name

    def validate(self) -> None:
        """Raise InvalidRepositoryError if the owner or name is blank."""
        if not self.owner or not self.owner.strip():
            raise InvalidRepositoryError(f"Repository owner must not be empty: {self!r}")
        if not self.name or not self.name.strip():
            raise InvalidRepositoryError(f"Repository name must not be empty: {self!r}")

    @classmethod
    def parse(cls, slug: str) -> 'Repository':
        """Build a Repository from an 'owner/name' slug."""
        owner, sep, name = slug.strip().partition("/")
        if not sep or "/" in name:
            raise InvalidRepositoryError(f"Expected 'owner/name', got {slug!r}")
        repository = cls(owner, name)
        repository.validate()
        return repository
