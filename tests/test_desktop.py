"""
Tests for the pygame tone backend and the plyer desktop notifier
"""
import asyncio

import numpy as np
import pygame
import pytest

from uid_monitor import desktop
from uid_monitor.audio import AudioAlert, ToneUnavailable
from uid_monitor.desktop import DesktopNotifier, PygameToneBackend, sine_wave
from uid_monitor.models import PermissionState

from conftest import FAST


class FakeChannel:

    def __init__(self):
        self.volumes = []
        self.stopped = False

    def set_volume(self, volume):
        self.volumes.append(volume)

    def stop(self):
        self.stopped = True


class FakeSound:

    def __init__(self, samples, channel):
        self.samples = samples
        self.channel = channel
        self.loops = None

    def play(self, loops=0):
        self.loops = loops
        return self.channel


@pytest.fixture
def mixer(monkeypatch):
    """A mixer that is already initialised at 44.1 kHz mono."""
    channel = FakeChannel()
    sounds = []

    def make_sound(samples):
        sound = FakeSound(samples, channel)
        sounds.append(sound)
        return sound

    monkeypatch.setattr(desktop.pygame.mixer, "get_init", lambda: (44100, -16, 1))
    monkeypatch.setattr(desktop.pygame.sndarray, "make_sound", make_sound)
    return channel, sounds


class TestSineWave:

    def test_one_second_of_int16(self):
        wave = sine_wave(800, 8000)

        assert wave.dtype == np.int16
        assert wave.shape == (8000,)
        assert wave[0] == 0
        assert np.abs(wave).max() > 30000

    def test_stereo_duplicates_the_channel(self):
        wave = sine_wave(800, 8000, channels=2)

        assert wave.shape == (8000, 2)
        assert np.array_equal(wave[:, 0], wave[:, 1])


class TestPygameToneBackend:

    def test_open_tone_loops_at_volume(self, mixer):
        channel, sounds = mixer

        tone = PygameToneBackend().open_tone(800, 0.3)

        assert sounds[0].loops == -1
        assert sounds[0].samples.shape == (44100,)
        assert channel.volumes == [0.3]

        tone.set_volume(0.0)
        tone.close()
        assert channel.volumes == [0.3, 0.0]
        assert channel.stopped

    def test_no_audio_device(self, monkeypatch):
        def fail(**kwargs):
            raise pygame.error("No available audio device")

        monkeypatch.setattr(desktop.pygame.mixer, "get_init", lambda: None)
        monkeypatch.setattr(desktop.pygame.mixer, "init", fail)

        with pytest.raises(ToneUnavailable, match="no audio device"):
            PygameToneBackend().open_tone(800, 0.3)

    def test_no_free_channel(self, mixer, monkeypatch):
        monkeypatch.setattr(FakeSound, "play", lambda self, loops=0: None)

        with pytest.raises(ToneUnavailable):
            PygameToneBackend().open_tone(800, 0.3)

    @pytest.mark.asyncio
    async def test_alert_pulses_the_channel(self, mixer):
        channel, _ = mixer
        bells = []
        alert = AudioAlert(PygameToneBackend(), FAST, bell=lambda: bells.append(1))

        alert.start()
        assert not alert.using_fallback
        await asyncio.sleep(FAST.pulse_interval + FAST.pulse_on / 2)
        alert.stop()

        assert channel.volumes[:3] == [0.3, 0.0, 0.3]
        assert channel.stopped
        assert bells == []

    @pytest.mark.asyncio
    async def test_alert_falls_back_without_device(self, monkeypatch):
        def fail(**kwargs):
            raise pygame.error("No available audio device")

        monkeypatch.setattr(desktop.pygame.mixer, "get_init", lambda: None)
        monkeypatch.setattr(desktop.pygame.mixer, "init", fail)
        alert = AudioAlert(PygameToneBackend(), FAST, bell=lambda: None)

        alert.start()

        assert alert.using_fallback
        alert.stop()


class FakePlyer:

    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def notify(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error


async def drain(notifier_calls, count=1, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while len(notifier_calls) < count:
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("notification never sent")
        await asyncio.sleep(0.01)
    # let the done callback run on the loop
    await asyncio.sleep(0.05)


class TestDesktopNotifier:

    @pytest.mark.asyncio
    async def test_sends_through_plyer(self, monkeypatch, capsys):
        plyer = FakePlyer()
        monkeypatch.setattr(desktop, "plyer_notification", plyer)
        notifier = DesktopNotifier(app_name="Test Monitor")

        notifier.show("New user registered!", "UID: user_1", tag="new-uid-user_1", require_interaction=True)
        notifier.show("Background notifications stopped", "bye")
        await drain(plyer.calls, 2)

        by_title = {call["title"]: call for call in plyer.calls}
        sticky = by_title["New user registered!"]
        expiring = by_title["Background notifications stopped"]
        assert sticky == {"title": "New user registered!", "message": "UID: user_1",
                          "app_name": "Test Monitor", "timeout": 0}
        assert expiring["timeout"] > 0
        assert "[notification]" not in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_click_command_still_works(self, monkeypatch):
        monkeypatch.setattr(desktop, "plyer_notification", FakePlyer())
        clicks = []
        notifier = DesktopNotifier()

        notification = notifier.show("New user registered!", "UID: user_1", on_click=lambda: clicks.append(1))

        assert notifier.last is notification
        notification.click()
        assert clicks == [1]
        assert notification.closed

    @pytest.mark.asyncio
    async def test_unsupported_platform_prints_instead(self, monkeypatch, capsys):
        plyer = FakePlyer(error=NotImplementedError())
        monkeypatch.setattr(desktop, "plyer_notification", plyer)
        notifier = DesktopNotifier()

        notifier.show("first", "one")
        await drain(plyer.calls)
        notifier.show("second", "two")

        out = capsys.readouterr().out
        assert "first | one" in out
        assert "second | two" in out
        assert len(plyer.calls) == 1

    @pytest.mark.asyncio
    async def test_permission_follows_configuration(self):
        notifier = DesktopNotifier(PermissionState.DENIED)

        assert await notifier.request_permission() is PermissionState.DENIED
