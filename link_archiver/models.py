"""Core data models for the archiving pipeline."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional


def fingerprint(link: str) -> str:
    """Return the SHA-256 hex digest used as the dedup key for a link."""
    return hashlib.sha256(link.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CandidateURL:
    """A link that parsed as a well-formed http(s) URL."""

    raw: str
    scheme: str
    host: str
    path: str = "/"

    @property
    def fingerprint(self) -> str:
        return fingerprint(self.raw)


class FilterReason(str, Enum):
    """Reason tag attached to every filter decision."""

    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    PENDING = "pending"
    PRIVATE_ADDRESS = "private_address"
    IGNORED_DOMAIN = "ignored_domain"


@dataclass(frozen=True)
class FilterDecision:
    """Outcome of running a candidate through the filter chain."""

    candidate: CandidateURL
    reason: FilterReason

    @property
    def accepted(self) -> bool:
        return self.reason is FilterReason.ACCEPTED


@dataclass
class Batch:
    """Ordered links drained from the scheduler for a single submission."""

    urls: List[str] = field(default_factory=list)
    drained_at: Optional[float] = None

    def __len__(self) -> int:
        return len(self.urls)

    def __iter__(self) -> Iterator[str]:
        return iter(self.urls)

    def __bool__(self) -> bool:
        return bool(self.urls)


class SessionState(str, Enum):
    """Authentication state of the remote session."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"


@dataclass
class Session:
    """Credentials obtained from the login handshake."""

    csrf_token: Optional[str] = None
    session_id: Optional[str] = None
    authenticated_at: Optional[float] = None
    expires_at: Optional[float] = None

    @property
    def state(self) -> SessionState:
        if self.session_id:
            return SessionState.AUTHENTICATED
        return SessionState.UNAUTHENTICATED

    def is_valid(self, now: float) -> bool:
        """Return True while the session credential is usable."""
        if self.state is not SessionState.AUTHENTICATED:
            return False
        return self.expires_at is None or now < self.expires_at


class SubmissionOutcome(str, Enum):
    """Result of one add-endpoint call."""

    SUBMITTED = "submitted"
    TIMED_OUT = "timed_out"


class PipelineStatus(str, Enum):
    """Terminal state of one pipeline invocation."""

    SKIPPED = "skipped"
    EMPTY = "empty"
    CONFIG_INVALID = "config_invalid"
    QUEUED = "queued"
    LOGIN_FAILED = "login_failed"
    SUBMITTED = "submitted"
    TIMED_OUT = "timed_out"
    SUBMISSION_FAILED = "submission_failed"


@dataclass
class PipelineResult:
    """Summary of what one pipeline invocation did."""

    status: PipelineStatus
    decisions: List[FilterDecision] = field(default_factory=list)
    submitted: List[str] = field(default_factory=list)
    dropped: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def accepted(self) -> List[str]:
        return [decision.candidate.raw for decision in self.decisions if decision.accepted]

    @property
    def rejected(self) -> List[FilterDecision]:
        return [decision for decision in self.decisions if not decision.accepted]


__all__ = [
    "fingerprint",
    "CandidateURL",
    "FilterReason",
    "FilterDecision",
    "Batch",
    "SessionState",
    "Session",
    "SubmissionOutcome",
    "PipelineStatus",
    "PipelineResult",
]
