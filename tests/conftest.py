"""Shared fixtures: isolated credential store and fake HTTP transports."""
import asyncio
import json
from typing import Callable, List

import httpx
import pytest

from oauth import OAuthSessionManager
from utils.credentials import OAuthCredential, now_millis
from utils.storage import CredentialStore

PROVIDER = "anthropic"

TOKEN_RESPONSE = {
    "access_token": "sk-ant-oat01-access-new",
    "refresh_token": "sk-ant-ort01-refresh-new",
    "expires_in": 3600,
}


@pytest.fixture(autouse=True)
def no_api_key_env(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)


@pytest.fixture()
def store(tmp_path) -> CredentialStore:
    return CredentialStore(str(tmp_path / "auth"))


def valid_oauth_credential(access: str = "sk-ant-oat01-valid") -> OAuthCredential:
    return OAuthCredential(access=access, refresh="sk-ant-ort01-refresh", expires=now_millis() + 3_600_000)


def expired_oauth_credential() -> OAuthCredential:
    return OAuthCredential(access="sk-ant-oat01-old", refresh="sk-ant-ort01-refresh-old", expires=now_millis() - 1000)


class RecordingTransport(httpx.AsyncBaseTransport):
    """Answers every request through ``handler`` and keeps the requests.

    ``delay`` makes each request suspend, so concurrent callers interleave.
    """

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response], delay: float = 0.0):
        self.handler = handler
        self.delay = delay
        self.requests: List[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.handler(request)

    def json_bodies(self) -> List[dict]:
        return [json.loads(request.content) for request in self.requests]


def token_ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json=TOKEN_RESPONSE)


class BrowserSpy:
    def __init__(self, result: bool = True):
        self.result = result
        self.urls: List[str] = []

    def __call__(self, url: str) -> bool:
        self.urls.append(url)
        return self.result


@pytest.fixture()
def browser() -> BrowserSpy:
    return BrowserSpy()


@pytest.fixture()
def token_transport() -> RecordingTransport:
    return RecordingTransport(token_ok)


@pytest.fixture()
def manager(store, token_transport, browser) -> OAuthSessionManager:
    return OAuthSessionManager(
        storage=store,
        provider=PROVIDER,
        transport=token_transport,
        browser_opener=browser,
        lock_wait_seconds=0.01,
    )
