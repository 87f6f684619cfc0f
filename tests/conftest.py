# stockdash test configuration

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest
from fastapi.testclient import TestClient

from stockdash.config import Settings
from stockdash.main import create_app
from stockdash.services import Services

# Wednesday Feb 25 2026, 10:00 ET (EST = UTC-5)
WED_10AM_ET = datetime(2026, 2, 25, 15, 0, tzinfo=UTC)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class WallClock:
    """Settable wall clock returning aware datetimes."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class FakeUpstream:
    """httpx.MockTransport handler serving canned responses per URL path.

    A route may be a (status, json payload) pair, a raw text body, or a callable
    taking the request (e.g. to raise httpx.ConnectError).
    """

    def __init__(self) -> None:
        self.routes: dict[str, Any] = {}
        self.calls: list[httpx.Request] = []

    def reply(self, path: str, payload: Any = None, status: int = 200) -> None:
        self.routes[path] = (status, json.dumps(payload))

    def reply_text(self, path: str, text: str, status: int = 200) -> None:
        self.routes[path] = (status, text)

    def reply_with(self, path: str, fn: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[path] = fn

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, text="no such route")
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, text=body, headers={"content-type": "application/json"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def wall() -> WallClock:
    return WallClock(WED_10AM_ET)


@pytest.fixture
def settings() -> Settings:
    return Settings(finnhub_api_key="test-key-123", sweep_interval_s=0)


@pytest.fixture
def finnhub() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def yahoo() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def services(settings, clock, wall, finnhub, yahoo) -> Services:
    return Services.build(
        settings,
        clock=clock,
        now=wall,
        finnhub_transport=finnhub.transport(),
        yahoo_transport=yahoo.transport(),
    )


@pytest.fixture
def client(services):
    """TestClient over an app with isolated stores and mocked providers."""
    app = create_app(services=services)
    with TestClient(app) as c:
        yield c
