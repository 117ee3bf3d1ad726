"""
Tests for TimerGroup
"""
import asyncio

import pytest

from uid_monitor.timers import TimerGroup


@pytest.mark.asyncio
async def test_fired_timers_leave_the_group():
    fired = []
    timers = TimerGroup()

    timers.call_later(0.01, fired.append, "x")
    assert len(timers) == 1
    await asyncio.sleep(0.05)

    assert fired == ["x"]
    assert len(timers) == 0


@pytest.mark.asyncio
async def test_close_cancels_and_refuses():
    fired = []
    timers = TimerGroup()
    timers.call_later(0.01, fired.append, "early")

    timers.close()
    assert timers.call_later(0.01, fired.append, "late") is None
    await asyncio.sleep(0.05)

    assert fired == []
    assert timers.closed


@pytest.mark.asyncio
async def test_cancel_single_handle():
    fired = []
    timers = TimerGroup()
    keep = timers.call_later(0.01, fired.append, "keep")
    drop = timers.call_later(0.01, fired.append, "drop")

    timers.cancel(drop)
    timers.cancel(None)
    await asyncio.sleep(0.05)

    assert keep is not None
    assert fired == ["keep"]
