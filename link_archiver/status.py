"""Single-line status surface consumed by the host."""

from __future__ import annotations

from typing import Callable, List, Optional, Protocol

from .logging import get_logger

logger = get_logger(__name__)

LOGGING_IN = "Logging into ArchiveBox..."
LOGIN_FAILED = "ArchiveBox login failed."
SUBMISSION_FAILED = "ArchiveBox submission failed."
DEDUP_CACHE_UNREADABLE = "Dedup cache unreadable, starting empty."
DEDUP_CACHE_NOT_SAVED = "Dedup cache could not be saved."
IDLE = ""


def archiving(count: int) -> str:
    return f"Archiving {count} links..."


class StatusReporter(Protocol):
    """Anything that can display one line of status text."""

    def update(self, text: str) -> None:
        ...


class LoggingStatusReporter:
    """Keeps the latest status and logs every transition."""

    def __init__(self, callback: Optional[Callable[[str], None]] = None) -> None:
        self.current = IDLE
        self.history: List[str] = []
        self._callback = callback

    def update(self, text: str) -> None:
        self.current = text
        self.history.append(text)
        if text:
            logger.info("Status updated", status=text)
        if self._callback is not None:
            self._callback(text)


__all__ = [
    "LOGGING_IN",
    "LOGIN_FAILED",
    "SUBMISSION_FAILED",
    "DEDUP_CACHE_UNREADABLE",
    "DEDUP_CACHE_NOT_SAVED",
    "IDLE",
    "archiving",
    "StatusReporter",
    "LoggingStatusReporter",
]
