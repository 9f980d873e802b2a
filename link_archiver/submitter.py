"""Authenticated batch submission to the add endpoint."""

from __future__ import annotations

from typing import Sequence

import httpx

from .config import Settings
from .dedup import DedupCache
from .errors import SessionExpired, SubmissionFailure, SubmissionTimeout
from .logging import get_logger
from .models import Session, SubmissionOutcome
from .session import LOGIN_FORM_PATH, is_success_status

logger = get_logger(__name__)

ADD_PATH = "/add/"
PARSER = "url_list"
TAG = "obsidian"
DEPTH = "0"


class Submitter:
    """Posts batches and reconciles successful ones with the dedup cache."""

    def __init__(self, dedup_cache: DedupCache) -> None:
        self.dedup_cache = dedup_cache

    async def submit(
        self,
        client: httpx.AsyncClient,
        session: Session,
        urls: Sequence[str],
        settings: Settings,
    ) -> SubmissionOutcome:
        """Submit links in a single request.

        A timeout is logged and reported as `TIMED_OUT`: the service may still
        be processing the request, so the batch is neither retried nor
        recorded.

        Raises:
            ValueError: If `urls` is empty.
            SessionExpired: If the service no longer accepts the session.
            SubmissionFailure: For any other error.
        """
        if not urls:
            raise ValueError("Cannot submit an empty batch")

        try:
            await self._post(client, session, urls, settings)
        except SubmissionTimeout:
            logger.info("Submission timed out, assuming it was received", count=len(urls))
            return SubmissionOutcome.TIMED_OUT

        added = self.dedup_cache.record_links(urls)
        logger.info("Submitted links", count=len(urls), new_fingerprints=added)
        return SubmissionOutcome.SUBMITTED

    async def _post(
        self,
        client: httpx.AsyncClient,
        session: Session,
        urls: Sequence[str],
        settings: Settings,
    ) -> httpx.Response:
        # the add endpoint does not check the CSRF token, only the session
        try:
            response = await client.post(
                ADD_PATH,
                data={
                    "url": "\n".join(urls),
                    "parser": PARSER,
                    "tag": TAG,
                    "depth": DEPTH,
                },
                headers={
                    "Cookie": f"sessionid={session.session_id}",
                    "Content-Type": "application/x-www-form-urlencoded",
                },
                timeout=settings.submit_timeout,
                follow_redirects=False,
            )
        except httpx.TimeoutException as exc:
            raise SubmissionTimeout(str(exc)) from exc
        except httpx.HTTPError as exc:
            logger.error("Submission request failed", error=str(exc))
            raise SubmissionFailure(f"Submission request failed: {exc}") from exc

        if self._is_login_redirect(response) or response.status_code in (401, 403):
            logger.warning("Session rejected by add endpoint", status=response.status_code)
            raise SessionExpired(f"Add endpoint answered {response.status_code}")

        if not is_success_status(response.status_code):
            logger.error("Submission rejected", status=response.status_code)
            raise SubmissionFailure(f"Submission rejected with status {response.status_code}")

        return response

    @staticmethod
    def _is_login_redirect(response: httpx.Response) -> bool:
        if not response.is_redirect:
            return False
        return LOGIN_FORM_PATH in response.headers.get("location", "")


__all__ = ["ADD_PATH", "PARSER", "TAG", "DEPTH", "Submitter"]
