
# AudioAlert: the pulsed alarm that rings when a new identifier shows up.

# state machine:
#   IDLE --start()--> RINGING --stop() / 20s ceiling--> IDLE
#
# while RINGING with a tone:
#   every 500ms the tone volume is put back to its "on" level and a drop to
#   silence is scheduled 300ms later, which gives a beep-beep pattern rather
#   than a continuous drone.
#
# when the host cannot synthesise a tone, the same lifecycle rings the
# terminal bell instead: 40 bells, 500ms apart, same 20s ceiling.
#
# The tone handle and every timer belong to one AudioAlert instance.
# start() always stops first, so there is never more than one live tone.

import logging
import sys
from typing import Callable, Protocol

from uid_monitor.config import TONE_FREQUENCY_HZ, TONE_VOLUME, AlertTimings
from uid_monitor.models import AudioState
from uid_monitor.timers import TimerGroup

log = logging.getLogger(__name__)


class ToneUnavailable(Exception):
    """The runtime has no way to synthesise a tone."""


class ToneHandle(Protocol):

    def set_volume(self, volume: float) -> None: ...

    def close(self) -> None: ...


class ToneBackend(Protocol):

    def open_tone(self, frequency: float, volume: float) -> ToneHandle:
        """Start a sine tone and return a handle to it. Raises ToneUnavailable."""
        ...


def terminal_bell() -> None:
    sys.stdout.write("\a")
    sys.stdout.flush()


class AudioAlert:

    def __init__(
        self,
        backend: ToneBackend,
        timings: AlertTimings = AlertTimings(),
        bell: Callable[[], None] = terminal_bell,
        timers: TimerGroup | None = None,
    ) -> None:
        self._backend = backend
        self._timings = timings
        self._bell = bell
        self._timers = timers if timers is not None else TimerGroup()
        self._tone: ToneHandle | None = None
        self._bells_rung = 0
        self.state = AudioState.IDLE

    @property
    def ringing(self) -> bool:
        return self.state is AudioState.RINGING

    @property
    def using_fallback(self) -> bool:
        return self.ringing and self._tone is None

    def start(self) -> None:
        if self._timers.closed:
            log.debug("Audio alert is closed, not ringing")
            return
        if self.ringing:
            self.stop()

        self.state = AudioState.RINGING
        self._bells_rung = 0
        self._tone = self._open_tone()

        if self._tone is not None:
            self._timers.call_later(self._timings.pulse_on, self._drop)
        else:
            log.info("Tone synthesis unavailable, using fallback beep")

        self._timers.call_later(self._timings.pulse_interval, self._pulse)
        self._timers.call_later(self._timings.ring_ceiling, self.stop)

    def stop(self) -> None:
        if not self.ringing:
            return

        self._timers.cancel_all()

        if self._tone is not None:
            try:
                self._tone.close()
            except Exception:
                log.warning("Failed to release tone", exc_info=True)
            self._tone = None

        self.state = AudioState.IDLE

    def close(self) -> None:
        """Stop and refuse to schedule anything further."""
        self.stop()
        self._timers.close()

    def reopen(self) -> None:
        self._timers.reopen()

    def _open_tone(self) -> ToneHandle | None:
        try:
            return self._backend.open_tone(TONE_FREQUENCY_HZ, TONE_VOLUME)
        except ToneUnavailable as exc:
            log.debug("Tone backend unavailable: %s", exc)
        except Exception:
            log.warning("Tone backend failed to start", exc_info=True)
        return None

    def _pulse(self) -> None:
        if not self.ringing:
            return

        if self._tone is None:
            self._ring_bell()
            if self._bells_rung >= self._timings.fallback_bells:
                # bells exhausted; the ceiling timer returns us to IDLE
                return
        else:
            try:
                self._tone.set_volume(TONE_VOLUME)
            except Exception:
                log.warning("Tone pulse failed, switching to fallback beep", exc_info=True)
                self._release_tone()
            else:
                self._timers.call_later(self._timings.pulse_on, self._drop)

        self._timers.call_later(self._timings.pulse_interval, self._pulse)

    def _drop(self) -> None:
        if self._tone is None:
            return
        try:
            self._tone.set_volume(0.0)
        except Exception:
            log.warning("Tone drop failed, switching to fallback beep", exc_info=True)
            self._release_tone()

    def _release_tone(self) -> None:
        tone, self._tone = self._tone, None
        if tone is None:
            return
        try:
            tone.close()
        except Exception:
            log.debug("Ignoring error while closing a failed tone", exc_info=True)

    def _ring_bell(self) -> None:
        self._bells_rung += 1
        try:
            self._bell()
        except OSError:
            log.debug("Terminal bell failed", exc_info=True)
