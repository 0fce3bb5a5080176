# tests/conftest.py
from __future__ import annotations

from collections.abc import Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import Response

from secure_stream.core.settings import Settings
from secure_stream.main import create_app
from secure_stream.models import ClientContext
from secure_stream.services import (
    MemoryStreamStateStore,
    PlaybackService,
    StreamServices,
    build_stream_services,
)

ALLOWED_ORIGIN = "http://localhost:3000"
PLAYER_REFERER = f"{ALLOWED_ORIGIN}/watch"
TEST_SECRET = "test-signing-secret"
START_TIME = 1_700_000_000.0

DEVICE_A = {"User-Agent": "Mozilla/5.0 (DeviceA)", "X-Forwarded-For": "203.0.113.10"}
DEVICE_B = {"User-Agent": "Mozilla/5.0 (DeviceB)", "X-Forwarded-For": "198.51.100.20"}

CLIENT_A = ClientContext(user_agent=DEVICE_A["User-Agent"], client_ip=DEVICE_A["X-Forwarded-For"])
CLIENT_B = ClientContext(user_agent=DEVICE_B["User-Agent"], client_ip=DEVICE_B["X-Forwarded-For"])


class FakeClock:
    """Manually advanced clock shared by the services under test."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with the documented defaults and a fixed secret."""
    return Settings(
        signing_secret=TEST_SECRET,
        allowed_origin=ALLOWED_ORIGIN,
        token_ttl_seconds=45,
        token_grace_seconds=10,
        session_idle_seconds=120,
        token_rate_limit_per_minute=12,
        rate_window_seconds=60,
        sweep_interval_seconds=3600,
        state_backend="memory",
        catalog_path=None,
    )


@pytest.fixture()
def store() -> MemoryStreamStateStore:
    return MemoryStreamStateStore()


@pytest.fixture()
def services(
    test_settings: Settings, clock: FakeClock, store: MemoryStreamStateStore
) -> StreamServices:
    return build_stream_services(test_settings, clock=clock, store=store)


@pytest.fixture()
def playback(services: StreamServices) -> PlaybackService:
    return services.playback


@pytest.fixture()
def app(test_settings: Settings, clock: FakeClock, services: StreamServices) -> FastAPI:
    return create_app(test_settings, clock=clock, services=services)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def request_token(
    client: TestClient,
    *,
    movie_id: Any = "106",
    uid: Any = "u1",
    device: dict[str, str] = DEVICE_A,
    origin: str | None = ALLOWED_ORIGIN,
) -> Response:
    headers = dict(device)
    if origin is not None:
        headers["Origin"] = origin
    return client.post(
        "/api/stream/token",
        json={"movieId": movie_id, "uid": uid},
        headers=headers,
    )


def redeem(
    client: TestClient,
    playback_url: str,
    *,
    device: dict[str, str] = DEVICE_A,
    referer: str | None = PLAYER_REFERER,
) -> Response:
    headers = dict(device)
    if referer is not None:
        headers["Referer"] = referer
    return client.get(playback_url, headers=headers, follow_redirects=False)


def session_call(
    client: TestClient,
    action: str,
    *,
    uid: str,
    sid: str,
    device: dict[str, str] = DEVICE_A,
    origin: str | None = ALLOWED_ORIGIN,
) -> Response:
    headers = dict(device)
    if origin is not None:
        headers["Origin"] = origin
    return client.post(f"/api/stream/{action}", json={"uid": uid, "sid": sid}, headers=headers)
