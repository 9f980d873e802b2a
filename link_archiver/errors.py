"""Error taxonomy for the archiving pipeline.

None of these are fatal to the host: the pipeline catches them, reflects them
on the status surface and turns the current cycle into a no-op.
"""

from __future__ import annotations


class ArchiverError(Exception):
    """Base class for all pipeline errors."""


class ConfigInvalid(ArchiverError):
    """Settings are unusable; detected before any network call."""


class ExtractionSkip(ArchiverError):
    """A matched link target could not be parsed as a URL."""

    def __init__(self, link: str, reason: str) -> None:
        super().__init__(f"Cannot parse {link!r}: {reason}")
        self.link = link
        self.reason = reason


class LoginFailure(ArchiverError):
    """The login handshake did not yield a session credential."""


class SessionExpired(ArchiverError):
    """The remote service no longer accepts the stored session credential."""


class SubmissionTimeout(ArchiverError):
    """The add endpoint did not answer within the request timeout."""


class SubmissionFailure(ArchiverError):
    """The add endpoint rejected the batch or the request errored."""


__all__ = [
    "ArchiverError",
    "ConfigInvalid",
    "ExtractionSkip",
    "LoginFailure",
    "SessionExpired",
    "SubmissionTimeout",
    "SubmissionFailure",
]
