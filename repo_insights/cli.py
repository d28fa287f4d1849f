#!/usr/bin/env python3
"""
Command-line interface for repo-insights.
"""

import argparse
import json
import logging
import sys
from typing import Optional

from .app import run_insights, run_sync
from .db_factory import get_database_manager
from .exceptions import InvalidRepositoryError
from .insights import RepositoryInsights
from .models import Repository


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="repo-insights",
        description="GitHub repository traffic insights"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    sync_parser = subparsers.add_parser("sync", help="Store the latest traffic statistics from GitHub")
    sync_parser.add_argument(
        "repos",
        nargs="*",
        help="Repositories to sync as owner/name (default: all tracked repositories)"
    )

    insights_parser = subparsers.add_parser("insights", help="Show view and clone insights for a repository")
    insights_parser.add_argument("repo", help="Repository as owner/name")
    insights_parser.add_argument("--json", action="store_true", help="Print the full snapshot as JSON")
    insights_parser.add_argument(
        "--no-cache",
        action="store_true",
        help="Always fetch from GitHub instead of using stored statistics"
    )

    track_parser = subparsers.add_parser("track", help="Add a repository to the tracked list")
    track_parser.add_argument("repo", help="Repository as owner/name")

    untrack_parser = subparsers.add_parser("untrack", help="Remove a repository from the tracked list")
    untrack_parser.add_argument("repo", help="Repository as owner/name")

    return parser


def format_insights(insights: RepositoryInsights) -> str:
    """Render a snapshot as a short text summary."""
    lines = [f"Traffic for {insights.repository}"]
    if insights.is_empty:
        lines.append("  No views or clones recorded.")
        return "\n".join(lines)

    lines.extend([
        f"  Period:        {insights.min_date.isoformat()} .. {insights.max_date.isoformat()}",
        f"  Views:         {insights.views_text} ({insights.unique_views_text} unique)",
        f"  Clones:        {insights.clones_text} ({insights.unique_clones_text} unique)",
        f"  Chart maximum: {insights.max_scale_value}",
    ])
    return "\n".join(lines)


def _change_tracking(repo: Repository, track: bool) -> bool:
    with get_database_manager() as db_manager:
        db_manager.setup_database()
        if track:
            return db_manager.add_tracked_repo(repo)
        return db_manager.remove_tracked_repo(repo)


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        if args.command == "sync":
            repos = [Repository.parse(slug) for slug in args.repos]
            success, message = run_sync(repos)
            print(message)
            return 0 if success else 1
        elif args.command == "insights":
            insights = run_insights(Repository.parse(args.repo), use_cache=not args.no_cache)
            if args.json:
                print(json.dumps(insights.to_dict(), indent=2))
            else:
                print(format_insights(insights))
            return 0
        elif args.command in ("track", "untrack"):
            repo = Repository.parse(args.repo)
            return 0 if _change_tracking(repo, args.command == "track") else 1
        else:
            parser.print_help()
            return 1
    except (InvalidRepositoryError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
