"""
Tests for the AudioAlert state machine
"""
import asyncio

import pytest

from uid_monitor.audio import AudioAlert
from uid_monitor.models import AudioState

from conftest import FAST, FakeToneBackend


class BrokenBackend:

    def open_tone(self, frequency, volume):
        raise RuntimeError("device busy")


def test_stop_when_idle_is_a_noop(tone_backend):
    alert = AudioAlert(tone_backend, FAST)

    alert.stop()
    alert.stop()

    assert alert.state is AudioState.IDLE
    assert tone_backend.tones == []


@pytest.mark.asyncio
async def test_start_rings_an_800hz_tone(tone_backend):
    alert = AudioAlert(tone_backend, FAST)

    alert.start()

    assert alert.state is AudioState.RINGING
    assert len(tone_backend.live) == 1
    assert tone_backend.tones[0].frequency == 800.0
    alert.stop()


@pytest.mark.asyncio
async def test_tone_pulses_between_on_and_silent(tone_backend):
    alert = AudioAlert(tone_backend, FAST)
    alert.start()

    await asyncio.sleep(0.2)
    volumes = tone_backend.tones[0].volumes
    alert.stop()

    assert 0.0 in volumes
    assert volumes.count(0.3) >= 2


@pytest.mark.asyncio
async def test_start_while_ringing_keeps_one_live_tone(tone_backend):
    alert = AudioAlert(tone_backend, FAST)

    alert.start()
    alert.start()

    assert len(tone_backend.tones) == 2
    assert tone_backend.tones[0].closed
    assert len(tone_backend.live) == 1
    alert.stop()


@pytest.mark.asyncio
async def test_restart_resets_the_ceiling(tone_backend):
    alert = AudioAlert(tone_backend, FAST)
    alert.start()

    await asyncio.sleep(0.3)
    alert.start()
    await asyncio.sleep(0.3)

    # 0.6s after the first start, but only 0.3s after the second
    assert alert.ringing
    await asyncio.sleep(0.3)
    assert alert.state is AudioState.IDLE
    assert tone_backend.live == []


@pytest.mark.asyncio
async def test_ceiling_returns_to_idle(tone_backend):
    alert = AudioAlert(tone_backend, FAST)
    alert.start()

    await asyncio.sleep(FAST.ring_ceiling + 0.1)

    assert alert.state is AudioState.IDLE
    assert tone_backend.tones[0].closed


@pytest.mark.asyncio
async def test_stop_releases_the_tone_and_cancels_pulses(tone_backend):
    alert = AudioAlert(tone_backend, FAST)
    alert.start()

    alert.stop()
    seen = list(tone_backend.tones[0].volumes)
    await asyncio.sleep(0.15)

    assert tone_backend.tones[0].closed
    assert tone_backend.tones[0].volumes == seen
    assert alert.state is AudioState.IDLE


@pytest.mark.asyncio
async def test_fallback_rings_bells_up_to_the_limit():
    bells = []
    alert = AudioAlert(FakeToneBackend(available=False), FAST, bell=lambda: bells.append(1))

    alert.start()
    assert alert.using_fallback
    await asyncio.sleep(0.4)

    assert len(bells) == FAST.fallback_bells
    # still inside the ceiling
    assert alert.ringing
    await asyncio.sleep(0.2)
    assert alert.state is AudioState.IDLE


@pytest.mark.asyncio
async def test_fallback_stop_is_idempotent():
    bells = []
    alert = AudioAlert(FakeToneBackend(available=False), FAST, bell=lambda: bells.append(1))
    alert.start()

    alert.stop()
    alert.stop()
    await asyncio.sleep(0.15)

    assert bells == []
    assert alert.state is AudioState.IDLE


@pytest.mark.asyncio
async def test_backend_error_degrades_to_bells():
    bells = []
    alert = AudioAlert(BrokenBackend(), FAST, bell=lambda: bells.append(1))

    alert.start()
    await asyncio.sleep(0.12)
    alert.stop()

    assert bells


@pytest.mark.asyncio
async def test_start_after_close_stays_idle(tone_backend):
    bells = []
    alert = AudioAlert(tone_backend, FAST, bell=lambda: bells.append(1))
    alert.start()

    alert.close()
    alert.start()

    assert alert.state is AudioState.IDLE
    assert len(tone_backend.tones) == 1
    assert tone_backend.live == []
    await asyncio.sleep(FAST.pulse_interval * 2)
    assert bells == []


@pytest.mark.asyncio
async def test_reopen_allows_ringing_again(tone_backend):
    alert = AudioAlert(tone_backend, FAST)
    alert.close()

    alert.reopen()
    alert.start()

    assert alert.ringing
    alert.close()
    assert tone_backend.live == []
