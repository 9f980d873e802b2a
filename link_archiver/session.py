"""Login handshake against the archiving service and session tracking."""

from __future__ import annotations

import re
import time
from typing import Callable, Iterable, Optional

import httpx

from .config import Settings
from .errors import LoginFailure
from .logging import get_logger
from .models import Session, SessionState

logger = get_logger(__name__)

LOGIN_FORM_PATH = "/admin/login"
LOGIN_SUBMIT_PATH = "/admin/login/"
LOGIN_NEXT = "/add"

CSRF_COOKIE_PATTERN = re.compile(r"^\s*csrftoken=([^;]+)")
SESSION_COOKIE_PATTERN = re.compile(r"^\s*sessionid=([^;]+)")
MAX_AGE_PATTERN = re.compile(r";\s*max-age=(\d+)", re.IGNORECASE)


def is_success_status(status_code: int) -> bool:
    """Success and redirect responses up to 302 count as accepted."""
    return 200 <= status_code <= 302


def find_cookie(set_cookie_headers: Iterable[str], pattern: re.Pattern) -> Optional[str]:
    """Return the first value matching pattern across all cookie directives."""
    for header in set_cookie_headers:
        match = pattern.match(header)
        if match:
            return match.group(1)
    return None


def find_cookie_max_age(set_cookie_headers: Iterable[str], pattern: re.Pattern) -> Optional[int]:
    """Return the Max-Age attribute of the first directive matching pattern."""
    for header in set_cookie_headers:
        if pattern.match(header):
            match = MAX_AGE_PATTERN.search(header)
            return int(match.group(1)) if match else None
    return None


class SessionManager:
    """Tracks the Unauthenticated -> Authenticated session state machine."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.session = Session()

    @property
    def state(self) -> SessionState:
        return self.session.state

    @property
    def is_authenticated(self) -> bool:
        """True while a session credential exists and has not expired."""
        return self.session.is_valid(self._clock())

    def reset(self) -> None:
        """Drop the stored credential; the next operation logs in again."""
        if self.session.state is SessionState.AUTHENTICATED:
            logger.info("Session reset")
        self.session = Session()

    async def ensure_authenticated(self, client: httpx.AsyncClient, settings: Settings) -> Session:
        """Log in unless a valid session is already held."""
        if self.is_authenticated:
            return self.session
        if self.session.state is SessionState.AUTHENTICATED:
            logger.info("Session expired, logging in again")
        return await self.login(client, settings)

    async def login(self, client: httpx.AsyncClient, settings: Settings) -> Session:
        """Run the CSRF/cookie login handshake.

        Raises:
            LoginFailure: On network errors, rejected credentials or missing cookies.
        """
        self.reset()
        try:
            csrf_token = await self._fetch_csrf_token(client)
            response = await client.post(
                LOGIN_SUBMIT_PATH,
                data={
                    "csrfmiddlewaretoken": csrf_token,
                    "username": settings.archivebox_username,
                    "password": settings.archivebox_password,
                    "next": LOGIN_NEXT,
                },
                headers={
                    "Cookie": f"csrftoken={csrf_token};",
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Referer": f"{settings.base_uri}{LOGIN_SUBMIT_PATH}",
                },
                follow_redirects=False,
            )
        except httpx.HTTPError as exc:
            logger.error("Login request failed", error=str(exc))
            raise LoginFailure(f"Login request failed: {exc}") from exc

        if not is_success_status(response.status_code):
            logger.error("Login rejected", status=response.status_code)
            raise LoginFailure(f"Login rejected with status {response.status_code}")

        cookies = response.headers.get_list("set-cookie")
        session_id = find_cookie(cookies, SESSION_COOKIE_PATTERN)
        if not session_id:
            logger.error("Login response carried no session cookie", status=response.status_code)
            raise LoginFailure("No session cookie in login response")

        now = self._clock()
        max_age = find_cookie_max_age(cookies, SESSION_COOKIE_PATTERN)
        if max_age is None and settings.session_max_age is not None:
            max_age = settings.session_max_age
        self.session = Session(
            csrf_token=csrf_token,
            session_id=session_id,
            authenticated_at=now,
            expires_at=now + max_age if max_age is not None else None,
        )
        logger.info("Logged in", expires_in=max_age)
        return self.session

    async def _fetch_csrf_token(self, client: httpx.AsyncClient) -> str:
        response = await client.get(LOGIN_FORM_PATH, follow_redirects=True)
        # the token may be set on a redirect hop (/admin/login -> /admin/login/)
        cookies = [
            header
            for hop in [*response.history, response]
            for header in hop.headers.get_list("set-cookie")
        ]
        token = find_cookie(cookies, CSRF_COOKIE_PATTERN)
        if not token:
            logger.error("Login form carried no CSRF cookie", status=response.status_code)
            raise LoginFailure("No CSRF token in login form response")
        return token


__all__ = [
    "LOGIN_FORM_PATH",
    "LOGIN_SUBMIT_PATH",
    "CSRF_COOKIE_PATTERN",
    "SESSION_COOKIE_PATTERN",
    "is_success_status",
    "find_cookie",
    "find_cookie_max_age",
    "SessionManager",
]
