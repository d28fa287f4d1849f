#!/usr/bin/env python3
"""
Main entry point for the repo-insights command-line tool.
"""

import sys

from repo_insights.cli import main

if __name__ == "__main__":
    sys.exit(main())
