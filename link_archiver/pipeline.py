"""Pipeline object wiring extraction, filtering, batching and submission."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, List, Optional, Union

import httpx

from . import status as status_text
from .batching import BatchScheduler
from .clients import ClientKey, client_key, create_http_client
from .config import Settings, validate_settings
from .dedup import DedupCache
from .errors import ConfigInvalid, LoginFailure, SessionExpired, SubmissionFailure
from .extractor import LinkExtractor
from .filters import FilterChain
from .logging import get_logger
from .models import (
    Batch,
    PipelineResult,
    PipelineStatus,
    SubmissionOutcome,
)
from .session import SessionManager
from .status import LoggingStatusReporter, StatusReporter
from .submitter import Submitter

logger = get_logger(__name__)

SettingsProvider = Callable[[], Settings]
ClientFactory = Callable[[Settings], httpx.AsyncClient]


class ArchivePipeline:
    """Owns the submission pipeline state for one host process.

    Settings are read from the provider at the start of every operation.
    Every operation runs under a single lock, so the batch and the dedup
    cache are never mutated by two invocations at once.
    """

    def __init__(
        self,
        settings: Union[Settings, SettingsProvider],
        *,
        status: Optional[StatusReporter] = None,
        dedup_cache: Optional[DedupCache] = None,
        scheduler: Optional[BatchScheduler] = None,
        session_manager: Optional[SessionManager] = None,
        extractor: Optional[LinkExtractor] = None,
        client_factory: ClientFactory = create_http_client,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if isinstance(settings, Settings):
            snapshot = settings
            self._settings_provider: SettingsProvider = lambda: snapshot
        else:
            self._settings_provider = settings

        self.status = status or LoggingStatusReporter()
        self.dedup_cache = dedup_cache if dedup_cache is not None else self._load_dedup_cache()
        self.scheduler = scheduler or BatchScheduler()
        self.session_manager = session_manager or SessionManager(clock=clock)
        self.extractor = extractor or LinkExtractor()
        self.filters = FilterChain(self.dedup_cache)
        self.submitter = Submitter(self.dedup_cache)

        self._client_factory = client_factory
        self._client: Optional[httpx.AsyncClient] = None
        self._client_key: Optional[ClientKey] = None
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings_provider()

    # Host entry points -----------------------------------------------------

    async def document_changed(self, text: str) -> PipelineResult:
        """Handle a document-modified notification."""
        if not self.settings.auto_submit_on_modify:
            return PipelineResult(status=PipelineStatus.SKIPPED)
        return await self.archive_text(text, force=False)

    async def archive_document(self, text: str) -> PipelineResult:
        """Handle an explicit "archive this document" command."""
        return await self.archive_text(text, force=True)

    async def archive_text(self, text: str, force: bool = False) -> PipelineResult:
        """Extract, filter and queue links from text, flushing when due."""
        async with self._lock:
            settings = self.settings
            try:
                validate_settings(settings)
            except ConfigInvalid as exc:
                return self._config_invalid(exc)

            decisions = self.filters.evaluate_all(
                self.extractor.extract(text),
                settings,
                self.scheduler.pending_fingerprints,
            )
            accepted = [decision.candidate.raw for decision in decisions if decision.accepted]
            for link in accepted:
                logger.info("Adding link", link=link)
            self.scheduler.append(accepted)

            result = await self._flush_locked(settings, force)
            result.decisions = decisions
            return result

    async def flush(self, force: bool = True) -> PipelineResult:
        """Submit whatever is queued, for hosts that flush on a timer."""
        async with self._lock:
            settings = self.settings
            try:
                validate_settings(settings)
            except ConfigInvalid as exc:
                return self._config_invalid(exc)
            return await self._flush_locked(settings, force)

    async def aclose(self) -> None:
        """Release the HTTP client and persist the dedup cache if configured."""
        async with self._lock:
            if self._client is not None:
                await self._client.aclose()
                self._client = None
                self._client_key = None
            path = self.settings.dedup_cache_path
            if path is not None:
                try:
                    self.dedup_cache.save(path)
                except OSError as exc:
                    logger.error("Could not save dedup cache", path=str(path), error=str(exc))
                    self.status.update(status_text.DEDUP_CACHE_NOT_SAVED)

    async def __aenter__(self) -> "ArchivePipeline":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # Internals -----------------------------------------------------------

    def _load_dedup_cache(self) -> DedupCache:
        path = self.settings.dedup_cache_path
        if path is None:
            return DedupCache()
        try:
            return DedupCache.load(path)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable dedup cache", path=str(path), error=str(exc))
            self.status.update(status_text.DEDUP_CACHE_UNREADABLE)
            return DedupCache()

    def _config_invalid(self, exc: ConfigInvalid) -> PipelineResult:
        logger.warning("Invalid settings", error=str(exc))
        self.status.update(str(exc))
        return PipelineResult(status=PipelineStatus.CONFIG_INVALID, error=str(exc))

    async def _get_client(self, settings: Settings) -> httpx.AsyncClient:
        key = client_key(settings)
        if self._client is not None and key == self._client_key:
            return self._client
        if self._client is not None:
            logger.info("Connection settings changed, rebuilding client")
            await self._client.aclose()
        self._client = self._client_factory(settings)
        self._client_key = key
        self.session_manager.reset()
        return self._client

    async def _flush_locked(self, settings: Settings, force: bool) -> PipelineResult:
        now = self._clock()
        if not self.scheduler.should_flush(force, now, settings.batch_every_sec):
            if len(self.scheduler):
                return PipelineResult(status=PipelineStatus.QUEUED)
            return PipelineResult(status=PipelineStatus.EMPTY)

        client = await self._get_client(settings)
        try:
            if not self.session_manager.is_authenticated:
                logger.info("Getting session")
                self.status.update(status_text.LOGGING_IN)
            await self.session_manager.ensure_authenticated(client, settings)
        except LoginFailure as exc:
            self.status.update(status_text.LOGIN_FAILED)
            return PipelineResult(status=PipelineStatus.LOGIN_FAILED, error=str(exc))

        batch = self.scheduler.drain(now)
        self.status.update(status_text.archiving(len(batch)))
        try:
            outcome = await self._submit(client, batch, settings)
        except LoginFailure as exc:
            logger.error("Batch lost, re-login failed", count=len(batch), error=str(exc))
            self.status.update(status_text.LOGIN_FAILED)
            return PipelineResult(
                status=PipelineStatus.LOGIN_FAILED, dropped=list(batch), error=str(exc)
            )
        except SubmissionFailure as exc:
            # the batch is dropped, not requeued
            logger.error("Batch lost", count=len(batch), error=str(exc))
            self.status.update(status_text.SUBMISSION_FAILED)
            return PipelineResult(
                status=PipelineStatus.SUBMISSION_FAILED, dropped=list(batch), error=str(exc)
            )

        self.status.update(status_text.IDLE)
        result_status = (
            PipelineStatus.SUBMITTED
            if outcome is SubmissionOutcome.SUBMITTED
            else PipelineStatus.TIMED_OUT
        )
        return PipelineResult(status=result_status, submitted=list(batch))

    async def _submit(
        self, client: httpx.AsyncClient, batch: Batch, settings: Settings
    ) -> SubmissionOutcome:
        urls: List[str] = list(batch)
        try:
            return await self.submitter.submit(
                client, self.session_manager.session, urls, settings
            )
        except SessionExpired:
            logger.info("Retrying submission with a fresh session", count=len(urls))
            self.session_manager.reset()
            self.status.update(status_text.LOGGING_IN)
            session = await self.session_manager.login(client, settings)
            self.status.update(status_text.archiving(len(urls)))
            try:
                return await self.submitter.submit(client, session, urls, settings)
            except SessionExpired as exc:
                raise SubmissionFailure(str(exc)) from exc


__all__ = ["ArchivePipeline", "SettingsProvider", "ClientFactory"]
