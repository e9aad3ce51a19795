"""Shared fixtures: a fake Google backend on httpx.MockTransport."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qsl

import httpx
import pytest
import pytest_asyncio

from google_drive_client.auth import AuthController, Credentials, CredentialStore, MemoryStorage
from google_drive_client.config import Config

TOKEN_URL = "https://oauth2.googleapis.com/token"
REVOKE_URL = "https://oauth2.googleapis.com/revoke"
FILES_URL = "https://www.googleapis.com/drive/v3/files"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"

NOW = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def form(request: httpx.Request) -> dict[str, str]:
    """Decode a form-encoded request body."""
    return dict(parse_qsl(request.content.decode()))


class FakeGoogle:
    """Routes requests to canned responses and records every request."""

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}

    def on(self, method: str, url: str, response=None, handler=None):
        self.routes[(method, url)] = handler or (lambda request: response)

    def calls(self, method: str, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and _route(r) == url]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, _route(request)))
        if handler is None:
            return httpx.Response(404, text=f"no route for {request.method} {request.url}")
        return handler(request)


def _route(request: httpx.Request) -> str:
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def config():
    return Config(
        client_id="test-client-id.apps.googleusercontent.com",
        auth_scope="drive_appdata",
        redirect_uri="myapp://callback",
    )


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def store(storage):
    return CredentialStore(storage)


@pytest.fixture
def google():
    return FakeGoogle()


@pytest.fixture
def clock():
    return FakeClock()


@pytest_asyncio.fixture
async def http(google):
    async with httpx.AsyncClient(transport=httpx.MockTransport(google)) as client:
        yield client


@pytest.fixture
def opened_urls():
    return []


@pytest.fixture
def auth(config, store, http, opened_urls, clock):
    return AuthController(
        config,
        store,
        http,
        open_url=opened_urls.append,
        state_factory=lambda: "abc123",
        clock=clock,
    )


@pytest.fixture
def valid_credentials():
    return Credentials(
        access_token="stored-access-token",
        refresh_token="stored-refresh-token",
        expiry_date=NOW + timedelta(hours=1),
    )


@pytest.fixture
def expired_credentials():
    return Credentials(
        access_token="expired-access-token",
        refresh_token="stored-refresh-token",
        expiry_date=NOW - timedelta(minutes=5),
    )
