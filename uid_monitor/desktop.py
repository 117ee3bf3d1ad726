
# desktop adapters: real sound and real notifications on the host machine.

# PygameToneBackend:
#   builds one second of a sine wave with numpy and loops it on a
#   pygame.mixer channel. The channel volume is what AudioAlert pulses.
#   A host without an audio device raises ToneUnavailable, and AudioAlert
#   falls back to the terminal bell.
#
# DesktopNotifier:
#   shows notifications through plyer (libnotify / Notification Center /
#   Windows toasts). plyer has no click or close hooks, so the returned
#   handle is the same ConsoleNotification the console notifier uses and the
#   operator's 'click' command stands in for a click on the bubble. When
#   plyer has no backend for the platform, the text goes to stdout instead.

import asyncio
import logging
import os

# silence pygame's import banner on stdout
os.environ.setdefault("PYGAME_HIDE_SUPPORT_PROMPT", "1")

import numpy as np
import pygame
from plyer import notification as plyer_notification

from uid_monitor.audio import ToneUnavailable
from uid_monitor.config import APP_NAME, AUDIO_SAMPLE_RATE, DESKTOP_NOTIFICATION_TIMEOUT
from uid_monitor.models import PermissionState
from uid_monitor.notifications import ClickCallback, ConsoleNotification, ConsoleNotifier

log = logging.getLogger(__name__)


def sine_wave(frequency: float, sample_rate: int, channels: int = 1) -> np.ndarray:
    """
    One second of 16-bit samples. A whole second holds a whole number of
    cycles for any integer frequency, so the buffer loops without a click.
    """
    t = np.arange(sample_rate) / sample_rate
    wave = (np.sin(2 * np.pi * frequency * t) * 32767).astype(np.int16)
    if channels > 1:
        wave = np.ascontiguousarray(np.repeat(wave[:, np.newaxis], channels, axis=1))
    return wave


class PygameTone:

    def __init__(self, sound, channel) -> None:
        self._sound = sound
        self._channel = channel

    def set_volume(self, volume: float) -> None:
        self._channel.set_volume(volume)

    def close(self) -> None:
        self._channel.stop()


class PygameToneBackend:

    def __init__(self, sample_rate: int = AUDIO_SAMPLE_RATE) -> None:
        self._sample_rate = sample_rate

    def _mixer(self) -> tuple[int, int, int]:
        settings = pygame.mixer.get_init()
        if settings:
            return settings
        try:
            pygame.mixer.init(frequency=self._sample_rate, size=-16, channels=1)
        except pygame.error as exc:
            raise ToneUnavailable(f"no audio device: {exc}") from exc
        return pygame.mixer.get_init()

    def open_tone(self, frequency: float, volume: float) -> PygameTone:
        rate, _, channels = self._mixer()
        try:
            sound = pygame.sndarray.make_sound(sine_wave(frequency, rate, channels))
            channel = sound.play(loops=-1)
        except pygame.error as exc:
            raise ToneUnavailable(str(exc)) from exc
        if channel is None:
            raise ToneUnavailable("no free mixer channel")

        channel.set_volume(volume)
        log.debug("Tone %.0f Hz playing at %d Hz/%d ch", frequency, rate, channels)
        return PygameTone(sound, channel)


class DesktopNotifier(ConsoleNotifier):
    """
    Permission handling is inherited: plyer cannot ask the OS for a grant,
    so the configured NOTIFICATION_PERMISSION answers instead.
    """

    def __init__(self, configured: PermissionState = PermissionState.GRANTED, app_name: str = APP_NAME) -> None:
        super().__init__(configured)
        self._app_name = app_name
        self._console_only = False

    def show(
        self,
        title: str,
        body: str,
        *,
        tag: str | None = None,
        require_interaction: bool = False,
        on_click: ClickCallback | None = None,
    ) -> ConsoleNotification:
        if self._console_only:
            return super().show(title, body, tag=tag, require_interaction=require_interaction, on_click=on_click)

        self.last = ConsoleNotification(title, body, on_click)
        # libnotify reads a timeout of 0 as "stay until dismissed"
        timeout = 0 if require_interaction else DESKTOP_NOTIFICATION_TIMEOUT
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, self._notify, title, body, timeout)
        future.add_done_callback(lambda f: self._after_notify(f, title, body))
        return self.last

    def _notify(self, title: str, body: str, timeout: int) -> None:
        plyer_notification.notify(title=title, message=body, app_name=self._app_name, timeout=timeout)

    def _after_notify(self, future: asyncio.Future, title: str, body: str) -> None:
        if future.cancelled():
            return
        exc = future.exception()
        if exc is None:
            return
        if isinstance(exc, NotImplementedError):
            log.warning("No desktop notification backend on this platform, printing notifications instead")
            self._console_only = True
        else:
            log.warning("Desktop notification %r failed: %s", title, exc)
        print(f"\033[1m[notification]\033[0m {title} | {body}", flush=True)
