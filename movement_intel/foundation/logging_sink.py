"""LoggingSink — the side channel for component-level failures.

Engine components never raise collaborator or computation failures to
their callers.  They report them here and return a neutral default.
"""

from __future__ import annotations

import logging
from typing import Protocol


class LoggingSink(Protocol):
    """Protocol for reporting component failures and milestones."""

    def log_error(self, context: str, error: BaseException) -> None:
        ...

    def log_info(self, context: str, message: str) -> None:
        ...


class StdlibLoggingSink:
    """Forwards sink calls to a standard library logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("movement_intel")

    def log_error(self, context: str, error: BaseException) -> None:
        self._logger.error("%s: %s", context, error, exc_info=error)

    def log_info(self, context: str, message: str) -> None:
        self._logger.info("%s: %s", context, message)
