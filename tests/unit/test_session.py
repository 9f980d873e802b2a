"""Unit tests for the login handshake and session tracking."""

import base64

import httpx
import pytest

from link_archiver.config import Settings
from link_archiver.errors import LoginFailure
from link_archiver.models import SessionState
from link_archiver.session import (
    CSRF_COOKIE_PATTERN,
    SESSION_COOKIE_PATTERN,
    SessionManager,
    find_cookie,
    find_cookie_max_age,
    is_success_status,
)

from conftest import BASE_URI


class TestCookieHelpers:
    """Tests for the Set-Cookie parsing helpers."""

    def test_find_cookie_scans_every_directive(self):
        """Test that the token is found in any of several directives."""
        headers = ["messages=; Path=/", " csrftoken=abc; Path=/"]

        assert find_cookie(headers, CSRF_COOKIE_PATTERN) == "abc"
        assert find_cookie(headers, SESSION_COOKIE_PATTERN) is None

    def test_find_cookie_max_age(self):
        """Test reading the Max-Age attribute of the matching directive."""
        headers = ["csrftoken=abc; Max-Age=31449600", "sessionid=xyz; max-age=600; Path=/"]

        assert find_cookie_max_age(headers, SESSION_COOKIE_PATTERN) == 600
        assert find_cookie_max_age(["sessionid=xyz"], SESSION_COOKIE_PATTERN) is None

    @pytest.mark.parametrize("status,expected", [(200, True), (302, True), (303, False), (403, False)])
    def test_success_status(self, status, expected):
        """Test the accepted status range."""
        assert is_success_status(status) is expected


class TestSessionManager:
    """Tests for SessionManager."""

    @pytest.mark.asyncio
    async def test_login_handshake(self, settings, archivebox, clock):
        """Test the CSRF fetch and the credential POST."""
        manager = SessionManager(clock=clock)

        async with archivebox.client_factory(settings) as client:
            session = await manager.login(client, settings)

        assert session.csrf_token == "csrf123"
        assert session.session_id == "sess123"
        assert manager.state is SessionState.AUTHENTICATED
        assert archivebox.login_forms == [
            {
                "csrfmiddlewaretoken": "csrf123",
                "username": "admin",
                "password": "secret",
                "next": "/add",
            }
        ]

        get_request, post_request = archivebox.requests
        assert get_request.url == f"{BASE_URI}/admin/login"
        assert post_request.url == f"{BASE_URI}/admin/login/"
        assert post_request.headers["Cookie"] == "csrftoken=csrf123;"
        assert post_request.headers["Referer"] == f"{BASE_URI}/admin/login/"
        assert post_request.headers["Content-Type"] == "application/x-www-form-urlencoded"

    @pytest.mark.asyncio
    async def test_csrf_cookie_on_redirect_hop(self, settings, clock):
        """Test that the token is found when the form URL redirects."""
        def handler(request):
            if request.method == "GET" and request.url.path.endswith("/admin/login"):
                return httpx.Response(
                    301,
                    headers=[
                        ("location", f"{BASE_URI}/admin/login/"),
                        ("set-cookie", "csrftoken=hop; Path=/"),
                    ],
                )
            if request.method == "GET":
                return httpx.Response(200, text="<form></form>")
            return httpx.Response(302, headers={"set-cookie": "sessionid=s1; Path=/"})

        manager = SessionManager(clock=clock)
        transport = httpx.MockTransport(handler)

        async with httpx.AsyncClient(base_url=BASE_URI, transport=transport) as client:
            session = await manager.login(client, settings)

        assert session.csrf_token == "hop"
        assert session.session_id == "s1"

    @pytest.mark.asyncio
    async def test_missing_csrf_cookie(self, settings, archivebox, clock):
        """Test that a login form without a token fails."""
        archivebox.csrf_cookies = ["messages=; Path=/"]
        manager = SessionManager(clock=clock)

        async with archivebox.client_factory(settings) as client:
            with pytest.raises(LoginFailure):
                await manager.login(client, settings)

        assert archivebox.login_forms == []
        assert manager.state is SessionState.UNAUTHENTICATED

    @pytest.mark.asyncio
    async def test_missing_session_cookie(self, settings, archivebox, clock):
        """Test that rejected credentials fail the login."""
        archivebox.login_status = 200
        archivebox.session_cookies = []
        manager = SessionManager(clock=clock)

        async with archivebox.client_factory(settings) as client:
            with pytest.raises(LoginFailure):
                await manager.login(client, settings)

        assert not manager.is_authenticated

    @pytest.mark.asyncio
    async def test_error_status(self, settings, archivebox, clock):
        """Test that a server error fails the login."""
        archivebox.login_status = 500
        manager = SessionManager(clock=clock)

        async with archivebox.client_factory(settings) as client:
            with pytest.raises(LoginFailure):
                await manager.login(client, settings)

    @pytest.mark.asyncio
    async def test_network_error(self, settings, archivebox, clock):
        """Test that transport errors become LoginFailure."""
        archivebox.login_error = httpx.ConnectError("connection refused")
        manager = SessionManager(clock=clock)

        async with archivebox.client_factory(settings) as client:
            with pytest.raises(LoginFailure):
                await manager.login(client, settings)

    @pytest.mark.asyncio
    async def test_session_reused_until_expiry(self, settings, archivebox, clock):
        """Test that a valid session is reused and an expired one renewed."""
        archivebox.session_cookies = ["sessionid=sess123; Max-Age=60; Path=/"]
        manager = SessionManager(clock=clock)

        async with archivebox.client_factory(settings) as client:
            await manager.ensure_authenticated(client, settings)
            clock.advance(30)
            await manager.ensure_authenticated(client, settings)
            assert len(archivebox.login_forms) == 1

            clock.advance(31)
            assert not manager.is_authenticated
            await manager.ensure_authenticated(client, settings)

        assert len(archivebox.login_forms) == 2

    @pytest.mark.asyncio
    async def test_default_session_lifetime(self, archivebox, clock):
        """Test the fallback lifetime when the cookie has no Max-Age."""
        settings = Settings(
            archivebox_uri=BASE_URI,
            archivebox_username="admin",
            archivebox_password="secret",
            session_max_age=100,
        )
        manager = SessionManager(clock=clock)

        async with archivebox.client_factory(settings) as client:
            session = await manager.login(client, settings)

        assert session.expires_at == clock.now + 100

    @pytest.mark.asyncio
    async def test_basic_auth_header(self, archivebox, clock):
        """Test that basic auth credentials are sent with every request."""
        settings = Settings(
            archivebox_uri=BASE_URI,
            archivebox_username="admin",
            archivebox_password="secret",
            use_basic_auth=True,
            basic_auth_username="proxy",
            basic_auth_password="pw",
        )
        manager = SessionManager(clock=clock)

        async with archivebox.client_factory(settings) as client:
            await manager.login(client, settings)

        expected = "Basic " + base64.b64encode(b"proxy:pw").decode()
        assert all(r.headers["Authorization"] == expected for r in archivebox.requests)

    def test_reset(self, clock):
        """Test that reset returns to the unauthenticated state."""
        manager = SessionManager(clock=clock)
        manager.session.session_id = "abc"

        manager.reset()

        assert manager.state is SessionState.UNAUTHENTICATED
