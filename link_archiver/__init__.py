"""Link archiver package exports."""

from __future__ import annotations

from .batching import BatchScheduler
from .config import Settings, load_settings, validate_settings
from .dedup import DedupCache, fingerprint
from .errors import (
    ArchiverError,
    ConfigInvalid,
    ExtractionSkip,
    LoginFailure,
    SessionExpired,
    SubmissionFailure,
    SubmissionTimeout,
)
from .extractor import LinkExtractor, extract_links
from .filters import FilterChain, is_ignored_domain, is_private_address
from .logging import configure_logging, get_logger
from .models import (
    Batch,
    CandidateURL,
    FilterDecision,
    FilterReason,
    PipelineResult,
    PipelineStatus,
    Session,
    SessionState,
    SubmissionOutcome,
)
from .pipeline import ArchivePipeline
from .session import SessionManager
from .status import LoggingStatusReporter, StatusReporter
from .submitter import Submitter

__all__ = [
    "ArchivePipeline",
    "ArchiverError",
    "Batch",
    "BatchScheduler",
    "CandidateURL",
    "ConfigInvalid",
    "DedupCache",
    "ExtractionSkip",
    "FilterChain",
    "FilterDecision",
    "FilterReason",
    "LinkExtractor",
    "LoggingStatusReporter",
    "LoginFailure",
    "PipelineResult",
    "PipelineStatus",
    "Session",
    "SessionExpired",
    "SessionManager",
    "SessionState",
    "Settings",
    "StatusReporter",
    "SubmissionFailure",
    "SubmissionOutcome",
    "SubmissionTimeout",
    "Submitter",
    "configure_logging",
    "extract_links",
    "fingerprint",
    "get_logger",
    "is_ignored_domain",
    "is_private_address",
    "load_settings",
    "validate_settings",
]
