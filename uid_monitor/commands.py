
# operator commands read from stdin, one per line.

# each command maps onto one AlertController action. dispatch() returns
# the text to show the operator, or None when the action prints its own
# output through the event handler.

import logging

from uid_monitor.handlers import format_identifiers
from uid_monitor.models import NotificationPermissionError
from uid_monitor.notifications import ConsoleNotifier
from uid_monitor.watcher import AlertController

log = logging.getLogger(__name__)

HELP = """\
commands:
  test         ring the alert sound
  stop         silence the alert sound
  sound        toggle sound alerts on/off
  background   toggle background notifications on/off
  dismiss      clear the new-user alert
  open         show the detail panel
  close        hide the detail panel
  click        click the most recent notification
  status       one-line summary
  list         print every user ID, newest flagged NEW!
  help         this text"""


class CommandDispatcher:

    def __init__(self, controller: AlertController, notifier: ConsoleNotifier | None = None) -> None:
        self._controller = controller
        self._notifier = notifier

    async def dispatch(self, line: str) -> str | None:
        command = line.strip().lower()
        if not command:
            return None

        c = self._controller

        if command == "test":
            c.test_sound()
            return "Ringing." if c.audio.ringing else "Sound is OFF; enable it with 'sound'."
        if command == "stop":
            c.stop_sound()
            return "Sound stopped."
        if command == "sound":
            return f"Sound: {'ON' if c.toggle_sound_enabled() else 'OFF'}"
        if command == "background":
            try:
                enabled = await c.toggle_background_mode()
            except NotificationPermissionError as exc:
                return f"Background mode not enabled: {exc}"
            return f"Background notifications: {'ON' if enabled else 'OFF'}"
        if command == "dismiss":
            c.dismiss_alert()
            return "Alert dismissed."
        if command == "open":
            c.open_detail()
            return None
        if command == "close":
            c.close_detail()
            return "Detail panel closed."
        if command == "click":
            last = self._notifier.last if self._notifier else None
            if last is None or last.closed:
                return "No open notification."
            last.click()
            return None
        if command == "status":
            return self._status()
        if command == "list":
            return format_identifiers(c.state())
        if command == "help":
            return HELP

        log.debug("Unknown command %r", command)
        return f"Unknown command {command!r}. Type 'help'."

    def _status(self) -> str:
        s = self._controller.state()
        return (
            f"Total={s.total} | New={s.alert_count} | Pending={s.pending_alert or '-'} | "
            f"Audio={s.audio_state.value} | Sound={'ON' if s.sound_enabled else 'OFF'} | "
            f"Background={'ON' if s.background_mode_enabled else 'OFF'} | "
            f"Error={s.error or '-'}"
        )
