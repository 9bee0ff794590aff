"""Shared fixtures for the lookerapi test suite.

FakeLooker is an in-process stand-in for a Looker instance, served through
httpx.MockTransport: it issues tokens on /login, tracks the workspace of
each token on /session and lets tests register extra routes.
"""

import asyncio
import inspect
import json
from collections.abc import Callable
from urllib.parse import parse_qs

import httpx
import pytest

from lookerapi.client import LookerClient
from lookerapi.config.settings import Settings, get_settings

BASE_URL = "https://looker.test/api/"
CLIENT_ID = "api-client-1"
CLIENT_SECRET = "sk-looker-secret"


class FakeClock:
    """Manually advanced time source for token expiry."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeLooker:
    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], Callable] = {}
        self.login_count = 0
        self.expires_in = 3600
        self.valid_secret = CLIENT_SECRET
        self.workspaces: dict[str, str] = {}  # token -> workspace_id
        self.forced_workspace: str | None = None
        self.login_delay = 0.0

        self.route("POST", "4.0/login", self._login)
        self.route("GET", "4.0/session", self._get_session)
        self.route("PATCH", "4.0/session", self._patch_session)
        self.route("DELETE", "4.0/logout", self._logout)

    def route(self, method: str, path: str, handler: Callable) -> None:
        self.routes[(method, "/api/" + path)] = handler

    def respond(self, method: str, path: str, payload=None, status: int = 200, headers: dict | None = None) -> None:
        """Register a fixed JSON response."""
        def handler(request):
            if payload is None:
                return httpx.Response(status, headers=headers)
            return httpx.Response(status, json=payload, headers=headers)
        self.route(method, path, handler)

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == "/api/" + path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        # Yield so concurrent callers interleave as they would over a network
        await asyncio.sleep(0)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"message": "Not found", "documentation_url": "https://docs.looker.test"})
        result = handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    def token_of(self, request: httpx.Request) -> str | None:
        header = request.headers.get("Authorization", "")
        token = header.removeprefix("Bearer ")
        return token if token in self.workspaces else None

    async def _login(self, request):
        self.login_count += 1
        if self.login_delay:
            await asyncio.sleep(self.login_delay)
        form = parse_qs(request.content.decode())
        if form.get("client_secret") != [self.valid_secret]:
            return httpx.Response(404, json={"message": "Not found"})
        token = f"token-{self.login_count}"
        self.workspaces[token] = "production"
        return httpx.Response(
            200,
            json={"access_token": token, "token_type": "Bearer", "expires_in": self.expires_in},
        )

    def _get_session(self, request):
        token = self.token_of(request)
        if token is None:
            return httpx.Response(401, json={"message": "Requires authentication."})
        workspace = self.forced_workspace or self.workspaces[token]
        return httpx.Response(200, json={"workspace_id": workspace, "sudo_user_id": None})

    def _patch_session(self, request):
        token = self.token_of(request)
        if token is None:
            return httpx.Response(401, json={"message": "Requires authentication."})
        self.workspaces[token] = json.loads(request.content)["workspace_id"]
        return httpx.Response(200, json={"workspace_id": self.workspaces[token], "sudo_user_id": None})

    def _logout(self, request):
        token = self.token_of(request)
        if token is None:
            return httpx.Response(404, json={"message": "Not found"})
        del self.workspaces[token]
        return httpx.Response(204)


def paged_handler(pages: list[list[dict]], base: str = "https://looker.test/api/4.0/items"):
    """Serve `pages` using ?page=N and a Link rel="next" header."""
    def handler(request):
        index = int(request.url.params.get("page", 0))
        headers = {}
        if index + 1 < len(pages):
            headers["Link"] = f'<{base}?page={index + 1}>; rel="next"'
        return httpx.Response(200, json=pages[index], headers=headers)
    return handler


@pytest.fixture
def fake_looker() -> FakeLooker:
    return FakeLooker()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        base_url=BASE_URL,
        client_id=CLIENT_ID,
        client_secret=CLIENT_SECRET,
        _env_file=None,
    )


@pytest.fixture
async def http_client(fake_looker):
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_looker.handler)) as client:
        yield client


@pytest.fixture
def looker(settings, http_client, clock) -> LookerClient:
    return LookerClient(settings, http_client=http_client, clock=clock)


@pytest.fixture
async def connected(looker) -> LookerClient:
    await looker.connect()
    return looker


@pytest.fixture
def override_settings(monkeypatch):
    """Factory fixture: set env vars and clear settings cache.

    Usage:
        override_settings(LOOKER_BASE_URL="https://x/api/", LOOKER_PAGE_SIZE=50)
    """
    def _override(**kwargs):
        for key, value in kwargs.items():
            monkeypatch.setenv(key.upper(), str(value))
        # Clear lru_cache so Settings re-reads env
        get_settings.cache_clear()

    yield _override

    # Always clear cache on teardown so other tests get fresh settings
    get_settings.cache_clear()
