"""Terminal sink receiving structured link events."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Protocol

_LOGGER = logging.getLogger(__name__)


class Severity(StrEnum):
    """Display severity of a terminal line."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_SEVERITY_LEVELS: dict[Severity, int] = {
    Severity.INFO: logging.INFO,
    Severity.SUCCESS: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.ERROR: logging.ERROR,
}


class LogSink(Protocol):
    """Presentation collaborator. Must return promptly and never raise."""

    def emit(self, category: str, text: str, severity: Severity) -> None:
        """Display one terminal line."""


class LoggingSink:
    """Sink that forwards terminal lines to the logging module."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or _LOGGER

    def emit(self, category: str, text: str, severity: Severity) -> None:
        self._logger.log(_SEVERITY_LEVELS[severity], "[%s] %s", category, text)


class MemorySink:
    """Sink that keeps every line, for inspection in tests and demos."""

    def __init__(self) -> None:
        self.lines: list[tuple[str, str, Severity]] = []

    def emit(self, category: str, text: str, severity: Severity) -> None:
        self.lines.append((category, text, severity))

    def texts(self, category: str | None = None) -> list[str]:
        """Return the line texts, optionally restricted to one category."""
        return [
            text for cat, text, _ in self.lines if category is None or cat == category
        ]
