from __future__ import annotations

import asyncio
import logging

import pytest

from secure_stream.models import PlaybackSession
from secure_stream.services import (
    IdleSweeper,
    MemoryStreamStateStore,
    PlaybackService,
    StreamServices,
    SweepResult,
)
from tests.conftest import ALLOWED_ORIGIN, CLIENT_A, PLAYER_REFERER, FakeClock


def _fast_sweeper(services: StreamServices) -> IdleSweeper:
    playback = services.playback
    return IdleSweeper(
        playback.registry,
        playback.replay,
        playback.rate_limiter,
        interval_seconds=0.01,
    )


async def _wait_for_calls(mock, count: int) -> None:
    for _ in range(500):
        if mock.call_count >= count:
            return
        await asyncio.sleep(0.01)
    raise AssertionError(f"expected {count} sweeps, saw {mock.call_count}")


def test_sweep_once_reclaims_abandoned_state(
    services: StreamServices,
    playback: PlaybackService,
    store: MemoryStreamStateStore,
    clock: FakeClock,
) -> None:
    issued = playback.issue_token("106", "u1", origin=ALLOWED_ORIGIN, client=CLIENT_A)
    playback.redeem(issued.token, referer=PLAYER_REFERER, client=CLIENT_A)
    playback.registry.put(
        "u2", PlaybackSession(sid="s2", ua_hash="ua", ip_hash="ip", updated_at=int(clock()))
    )

    clock.advance(30)
    assert services.sweeper.sweep_once() == SweepResult()

    clock.advance(100)
    result = services.sweeper.sweep_once()

    assert result == SweepResult(sessions=2, nonces=1, windows=1)
    assert playback.registry.get("u1") is None
    assert playback.registry.get("u2") is None
    assert store.session_count == 0


def test_sweep_once_keeps_active_sessions(
    services: StreamServices, playback: PlaybackService, clock: FakeClock
) -> None:
    issued = playback.issue_token("106", "u1", origin=ALLOWED_ORIGIN, client=CLIENT_A)
    playback.redeem(issued.token, referer=PLAYER_REFERER, client=CLIENT_A)

    clock.advance(120)
    assert services.sweeper.sweep_once().sessions == 0
    assert playback.registry.get("u1") is not None


@pytest.mark.asyncio
async def test_start_and_stop(services: StreamServices, mocker) -> None:
    sweeper = _fast_sweeper(services)
    sweep = mocker.patch.object(sweeper, "sweep_once", return_value=SweepResult())

    await sweeper.start()
    assert sweeper.running
    await _wait_for_calls(sweep, 2)
    await sweeper.stop()

    assert not sweeper.running
    calls = sweep.call_count
    await asyncio.sleep(0.05)
    assert sweep.call_count == calls


@pytest.mark.asyncio
async def test_start_is_idempotent(services: StreamServices) -> None:
    sweeper = _fast_sweeper(services)
    await sweeper.start()
    task = sweeper._task
    await sweeper.start()
    assert sweeper._task is task
    await sweeper.stop()


@pytest.mark.asyncio
async def test_stop_without_start_is_noop(services: StreamServices) -> None:
    sweeper = _fast_sweeper(services)
    await sweeper.stop()
    assert not sweeper.running


@pytest.mark.asyncio
async def test_failed_tick_is_logged_and_loop_continues(
    services: StreamServices, mocker, caplog: pytest.LogCaptureFixture
) -> None:
    sweeper = _fast_sweeper(services)
    outcomes = iter([RuntimeError("store unavailable")])

    def flaky_sweep() -> SweepResult:
        error = next(outcomes, None)
        if error is not None:
            raise error
        return SweepResult()

    sweep = mocker.patch.object(sweeper, "sweep_once", side_effect=flaky_sweep)

    with caplog.at_level(logging.ERROR, logger="secure_stream.services.sweeper"):
        await sweeper.start()
        await _wait_for_calls(sweep, 3)
        await sweeper.stop()

    assert "IdleSweeper tick failed" in caplog.text
