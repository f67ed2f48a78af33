from __future__ import annotations

import asyncio

import pytest

from conftest import FakeClock
from forum.ratelimit import RateLimiter


def test_calls_under_threshold_do_not_wait():
    clock = FakeClock()
    rl = RateLimiter(2, clock=clock, sleep=clock.sleep)

    async def scenario():
        await rl.acquire()
        rl.record()
        await rl.acquire()
        rl.record()

    asyncio.run(scenario())
    assert clock.sleeps == []
    assert rl.count == 2


def test_call_over_threshold_waits_until_window_boundary():
    clock = FakeClock()
    rl = RateLimiter(2, clock=clock, sleep=clock.sleep)

    async def scenario():
        await rl.acquire()
        rl.record()
        clock.t = 10
        await rl.acquire()
        rl.record()
        clock.t = 20
        await rl.acquire()

    asyncio.run(scenario())
    assert clock.sleeps == [40.0]
    assert clock.t == 60
    assert rl.count == 0
    assert rl.window_start == 60


def test_elapsed_window_resets_without_waiting():
    clock = FakeClock()
    rl = RateLimiter(1, clock=clock, sleep=clock.sleep)

    async def scenario():
        await rl.acquire()
        rl.record()
        clock.t = 61
        await rl.acquire()

    asyncio.run(scenario())
    assert clock.sleeps == []
    assert rl.window_start == 61
    assert rl.count == 0


def test_unrecorded_calls_do_not_consume_budget():
    clock = FakeClock()
    rl = RateLimiter(1, clock=clock, sleep=clock.sleep)

    async def scenario():
        for _ in range(3):
            await rl.acquire()

    asyncio.run(scenario())
    assert clock.sleeps == []


def test_threshold_must_be_positive():
    with pytest.raises(ValueError):
        RateLimiter(0)
