
# AlertController: watches the registration document and raises alerts.

# responsibilities:
#   - hold exactly one live subscription to the watched document
#   - diff every snapshot's identifier list against the previous one
#   - on a newly registered identifier: flag it, ring, notify, and clear
#     the flag again after the display window
#   - expose the operator actions and a read-only WidgetState
#
# everything here runs on one asyncio loop: snapshots, timer callbacks and
# operator actions never interleave. stop() cancels the subscription task
# and every pending timer in one step.

import asyncio
import logging
from typing import Callable

from uid_monitor.audio import AudioAlert, ToneBackend, terminal_bell
from uid_monitor.config import VALID_FORMAT_MARKER, WATCH_FIELD, AlertTimings
from uid_monitor.desktop import PygameToneBackend
from uid_monitor.differ import IdentifierDiffer
from uid_monitor.handlers import ConsoleEventHandler, EventHandler
from uid_monitor.kv_store import KeyValueStore
from uid_monitor.models import Snapshot, SubscriptionError, WidgetState
from uid_monitor.notifications import BackgroundNotifications, NotificationFacility
from uid_monitor.parser import extract_identifiers
from uid_monitor.store import DocumentStore
from uid_monitor.timers import TimerGroup

log = logging.getLogger(__name__)


def _focus_nothing() -> None:
    log.debug("No host surface to focus")


class AlertController:

    def __init__(
        self,
        store: DocumentStore,
        path: str,
        kv_store: KeyValueStore,
        notifier: NotificationFacility | None = None,
        tone_backend: ToneBackend | None = None,
        handler: EventHandler | None = None,
        field: str = WATCH_FIELD,
        timings: AlertTimings = AlertTimings(),
        focus_host: Callable[[], None] = _focus_nothing,
        bell: Callable[[], None] = terminal_bell,
    ) -> None:
        self.path = path
        self._store = store
        self._field = field
        self._timings = timings
        self._handler = handler or ConsoleEventHandler()
        self._focus_host = focus_host
        self._differ = IdentifierDiffer()
        self._timers = TimerGroup()
        self._clear_handle: asyncio.TimerHandle | None = None
        self._task: asyncio.Task | None = None
        self._stopped = False

        self.audio = AudioAlert(tone_backend or PygameToneBackend(), timings, bell)
        self.background = BackgroundNotifications(notifier, kv_store, self._timers, timings)

        self.identifiers: list[str] = []
        self.pending_alert: str | None = None
        self.alert_count = 0
        self.sound_enabled = True
        self.detail_open = False
        self.loading = True
        self.error: str | None = None

    # ─── lifecycle ───────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        """Open the subscription in a background task. Idempotent while running."""
        if self.running:
            return self._task
        self._stopped = False
        self._timers.reopen()
        self.audio.reopen()
        self._task = asyncio.create_task(self.run(), name=f"watcher-{self.path}")
        return self._task

    def stop(self) -> None:
        """Release the subscription, cancel every timer, silence audio. Safe to repeat."""
        if self._stopped:
            return
        self._stopped = True

        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._clear_handle = None
        self._timers.close()
        self.audio.close()
        self.background.close_all()
        log.info("Watcher for %s stopped", self.path)

    async def run(self) -> None:
        # a fresh subscription starts a fresh diff; the alert count survives
        self._differ.reset()
        self.background.load()
        self.loading = True
        self.error = None
        log.info("Watching %s (field %r)", self.path, self._field)

        try:
            async for snapshot in self._store.subscribe(self.path):
                self.process_snapshot(snapshot)

        except SubscriptionError as exc:
            self._record_error(str(exc))

        except asyncio.CancelledError:
            log.info("Watcher for %s cancelled.", self.path)
            raise

        except Exception as exc:
            log.exception("Unexpected error in watcher for %s: %s", self.path, exc)
            self._record_error(str(exc) or exc.__class__.__name__)

    # ─── snapshot processing ─────────────────────────────────────────

    def process_snapshot(self, snapshot: Snapshot) -> None:
        self.loading = False
        identifiers = extract_identifiers(snapshot, self._field)

        if identifiers is None:
            if snapshot.exists:
                log.warning("Field %r in %s is missing or not a list of strings", self._field, snapshot.path)
            else:
                log.info("Document %s does not exist", snapshot.path)
            self.identifiers = []
            self._drop_stale_alert()
            self._handler.on_identifiers(self.state())
            return

        new_uid = self._differ.diff(identifiers)
        self.identifiers = identifiers

        if new_uid is not None:
            self._fire(new_uid)
        else:
            self._drop_stale_alert()

        self._handler.on_identifiers(self.state())

    def _fire(self, identifier: str) -> None:
        log.info("New UID detected: %s", identifier)
        self.pending_alert = identifier
        self.alert_count += 1

        if self.sound_enabled:
            self.audio.start()
        self.background.announce(identifier, on_click=self._on_notification_click)

        self._timers.cancel(self._clear_handle)
        self._clear_handle = self._timers.call_later(self._timings.alert_display, self._auto_clear)
        self._handler.on_alert(self.state())

    def _auto_clear(self) -> None:
        self._clear_handle = None
        if self.pending_alert is not None:
            self.pending_alert = None
            self._handler.on_alert_cleared(self.state())

    def _drop_stale_alert(self) -> None:
        # the flagged identifier must still be in the list
        if self.pending_alert is not None and self.pending_alert not in self.identifiers:
            self._timers.cancel(self._clear_handle)
            self._clear_handle = None
            self.pending_alert = None
            self._handler.on_alert_cleared(self.state())

    def _record_error(self, message: str) -> None:
        log.error("Real-time listener error for %s: %s", self.path, message)
        self.error = message
        self.loading = False
        self._handler.on_error(self.state())

    def _on_notification_click(self) -> None:
        self._focus_host()
        self.open_detail()

    # ─── operator actions ────────────────────────────────────────────

    def test_sound(self) -> None:
        if not self.sound_enabled:
            log.info("Sound is off; test ignored")
            return
        self.audio.start()

    def stop_sound(self) -> None:
        self.audio.stop()

    def toggle_sound_enabled(self) -> bool:
        self.sound_enabled = not self.sound_enabled
        log.info("Sound alerts %s", "on" if self.sound_enabled else "off")
        return self.sound_enabled

    async def toggle_background_mode(self) -> bool:
        """
        Flip background notifications. Enabling asks for notification
        permission first and raises NotificationPermissionError, leaving
        the mode off, when it is refused.
        """
        return await self.background.toggle()

    def dismiss_alert(self) -> None:
        self.audio.stop()
        if self.pending_alert is None:
            return
        self._timers.cancel(self._clear_handle)
        self._clear_handle = None
        self.pending_alert = None
        self._handler.on_alert_cleared(self.state())

    def open_detail(self) -> None:
        self.detail_open = True
        self._handler.on_detail(self.state())

    def close_detail(self) -> None:
        self.detail_open = False

    def state(self) -> WidgetState:
        return WidgetState(
            identifiers=tuple(self.identifiers),
            pending_alert=self.pending_alert,
            alert_count=self.alert_count,
            valid_format_count=sum(1 for uid in self.identifiers if VALID_FORMAT_MARKER in uid),
            sound_enabled=self.sound_enabled,
            background_mode_enabled=self.background.enabled,
            notification_permission=self.background.permission,
            audio_state=self.audio.state,
            detail_open=self.detail_open,
            loading=self.loading,
            error=self.error,
        )
