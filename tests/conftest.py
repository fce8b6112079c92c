from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest
from fastapi.testclient import TestClient

from wa_sender.config import get_settings
from wa_sender.db import create_session_factory
from wa_sender.history import KeyValueStore, MessageHistory
from wa_sender.main import app, get_provider
from wa_sender.wasender_client import WasenderClient

PROVIDER_BASE = "https://wasender.test/api"

ProviderHandler = Callable[[httpx.Request], httpx.Response]


class FakeProvider:
    """Records requests sent to WasenderAPI and answers with a canned response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: ProviderHandler = lambda request: httpx.Response(200, json={"message": "ok"})

    def respond_with(self, status_code: int, body: object) -> None:
        self.handler = lambda request: httpx.Response(status_code, json=body)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    @property
    def last_json(self) -> dict[str, object]:
        return json.loads(self.requests[-1].content)

    def client(self) -> WasenderClient:
        return WasenderClient(PROVIDER_BASE, transport=httpx.MockTransport(self._handle))


@pytest.fixture(autouse=True)
def _fresh_settings() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def provider() -> Iterator[FakeProvider]:
    fake = FakeProvider()
    app.dependency_overrides[get_provider] = fake.client
    yield fake
    app.dependency_overrides.pop(get_provider, None)


@pytest.fixture
def relay_app(provider: FakeProvider) -> TestClient:
    return TestClient(app)


@pytest.fixture
def history(tmp_path: Path) -> MessageHistory:
    session_factory = create_session_factory(f"sqlite:///{tmp_path / 'history.db'}")
    return MessageHistory(KeyValueStore(session_factory))
