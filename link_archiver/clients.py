"""HTTP client construction for the archiving service."""

from __future__ import annotations

from typing import Optional, Tuple

import httpx

from .config import Settings

ClientKey = Tuple[str, Optional[Tuple[str, str]]]


def client_key(settings: Settings) -> ClientKey:
    """Settings that require a new client when they change."""
    return (settings.base_uri, settings.basic_auth)


def create_http_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Instantiate an asynchronous HTTP client bound to the service URI."""
    return httpx.AsyncClient(
        base_url=settings.base_uri,
        auth=settings.basic_auth,
        timeout=settings.login_timeout,
        follow_redirects=False,
        transport=transport,
    )


__all__ = ["ClientKey", "client_key", "create_http_client"]
