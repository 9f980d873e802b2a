"""Pytest configuration and fixtures."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional
from urllib.parse import parse_qs

import httpx
import pytest

# Allow running the suite from a checkout without installing the package
sys.path.insert(0, str(Path(__file__).parent.parent))

from link_archiver.clients import create_http_client  # noqa: E402
from link_archiver.config import Settings  # noqa: E402

BASE_URI = "https://archive.example.com/archivebox"

Responder = Callable[[httpx.Request], httpx.Response]


def form_data(request: httpx.Request) -> Dict[str, str]:
    """Decode a form-encoded request body into single values."""
    parsed = parse_qs(request.content.decode(), keep_blank_values=True)
    return {key: values[0] for key, values in parsed.items()}


class FakeArchiveBox:
    """Minimal stand-in for the login and add endpoints."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.login_forms: List[Dict[str, str]] = []
        self.add_forms: List[Dict[str, str]] = []
        self.csrf_cookies = [
            "messages=; Path=/",
            "csrftoken=csrf123; Path=/; SameSite=Lax",
        ]
        self.session_cookies = ["sessionid=sess123; HttpOnly; Path=/; SameSite=Lax"]
        self.login_status = 302
        self.login_error: Optional[Exception] = None
        self.add_responder: Optional[Responder] = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "GET" and path.endswith("/admin/login"):
            if self.login_error is not None:
                raise self.login_error
            return httpx.Response(
                200,
                headers=[("set-cookie", cookie) for cookie in self.csrf_cookies],
                text="<form></form>",
            )

        if request.method == "POST" and path.endswith("/admin/login/"):
            self.login_forms.append(form_data(request))
            headers = [("location", "/add")]
            headers += [("set-cookie", cookie) for cookie in self.session_cookies]
            return httpx.Response(self.login_status, headers=headers)

        if request.method == "POST" and path.endswith("/add/"):
            self.add_forms.append(form_data(request))
            if self.add_responder is not None:
                return self.add_responder(request)
            return httpx.Response(200, text="Added")

        return httpx.Response(404)

    @property
    def add_requests(self) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.endswith("/add/")]

    @property
    def submitted_batches(self) -> List[List[str]]:
        return [form["url"].split("\n") for form in self.add_forms]

    def client_factory(self, settings: Settings) -> httpx.AsyncClient:
        return create_http_client(settings, transport=httpx.MockTransport(self.handler))


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, tmp_path):
    """Keep host environment variables and .env files out of the settings."""
    for key in list(os.environ):
        if key.upper().startswith("LINK_ARCHIVER_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def settings() -> Settings:
    """Valid settings pointing at the fake service."""
    return Settings(
        archivebox_uri=BASE_URI,
        archivebox_username="admin",
        archivebox_password="secret",
    )


@pytest.fixture
def archivebox() -> FakeArchiveBox:
    return FakeArchiveBox()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
