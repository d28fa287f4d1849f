"""Diagnostics reporting for failures that are absorbed instead of raised."""

import logging
from typing import List


class DiagnosticsReporter:
    """Receives errors that the insights engine recovered from."""

    def report(self, error: BaseException) -> None:
        raise NotImplementedError


class LoggingDiagnosticsReporter(DiagnosticsReporter):
    """Reports recovered errors to the application log."""

    def __init__(self, logger: logging.Logger = None):
        self.logger = logger or logging.getLogger(__name__)

    def report(self, error: BaseException) -> None:
        self.logger.error(f"Recovered from {type(error).__name__}: {error}", exc_info=error)


class CollectingDiagnosticsReporter(DiagnosticsReporter):
    """Keeps reported errors in memory; handy for inspection after a run."""

    def __init__(self):
        self.errors: List[BaseException] = []

    def report(self, error: BaseException) -> None:
        self.errors.append(error)
