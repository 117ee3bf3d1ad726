
# Background notifications: platform notifications that fire for new
# registrations even when the operator is looking at something else.

# The mode is an operator toggle persisted in the key-value store, so it
# survives restarts. Turning it on needs notification permission first;
# turning it off never does.

import logging
from typing import Callable, Protocol

from uid_monitor.config import BACKGROUND_MODE_KEY, AlertTimings
from uid_monitor.kv_store import KeyValueStore
from uid_monitor.models import NotificationPermissionError, PermissionState
from uid_monitor.timers import TimerGroup

log = logging.getLogger(__name__)

ClickCallback = Callable[[], None]


class Notification(Protocol):

    def close(self) -> None: ...


class NotificationFacility(Protocol):

    def permission(self) -> PermissionState: ...

    async def request_permission(self) -> PermissionState: ...

    def show(
        self,
        title: str,
        body: str,
        *,
        tag: str | None = None,
        require_interaction: bool = False,
        on_click: ClickCallback | None = None,
    ) -> Notification: ...


class ConsoleNotification:

    def __init__(self, title: str, body: str, on_click: ClickCallback | None) -> None:
        self.title = title
        self.body = body
        self.closed = False
        self._on_click = on_click

    def click(self) -> None:
        if self.closed:
            return
        if self._on_click is not None:
            self._on_click()
        self.close()

    def close(self) -> None:
        if not self.closed:
            self.closed = True
            log.debug("Notification closed: %s", self.title)


class ConsoleNotifier:
    """
    Prints notifications to stdout. The permission answer is fixed by
    configuration since a terminal has nothing to ask.
    """

    def __init__(self, configured: PermissionState = PermissionState.GRANTED) -> None:
        self._configured = configured
        self._state = configured
        self.last: ConsoleNotification | None = None

    def permission(self) -> PermissionState:
        return self._state

    async def request_permission(self) -> PermissionState:
        if self._configured is PermissionState.DEFAULT:
            # nobody to ask; an unanswered prompt counts as granted
            self._state = PermissionState.GRANTED
        else:
            self._state = self._configured
        return self._state

    def show(
        self,
        title: str,
        body: str,
        *,
        tag: str | None = None,
        require_interaction: bool = False,
        on_click: ClickCallback | None = None,
    ) -> ConsoleNotification:
        print(f"\033[1m[notification]\033[0m {title} | {body}", flush=True)
        self.last = ConsoleNotification(title, body, on_click)
        return self.last


class BackgroundNotifications:

    def __init__(
        self,
        facility: NotificationFacility | None,
        store: KeyValueStore,
        timers: TimerGroup,
        timings: AlertTimings = AlertTimings(),
        key: str = BACKGROUND_MODE_KEY,
    ) -> None:
        self._facility = facility
        self._store = store
        self._timers = timers
        self._timings = timings
        self._key = key
        self._open: set[Notification] = set()
        self.enabled = False
        self.permission = PermissionState.DEFAULT

    @property
    def supported(self) -> bool:
        return self._facility is not None

    @property
    def open_count(self) -> int:
        return len(self._open)

    @property
    def active(self) -> bool:
        return self.enabled and self.permission is PermissionState.GRANTED

    def load(self) -> None:
        """Re-read the persisted toggle and the current permission grant."""
        self.enabled = self._store.get(self._key) == "true"
        self.permission = self._facility.permission() if self._facility else PermissionState.DENIED
        log.debug("Background mode %s, permission %s", self.enabled, self.permission.value)

    async def toggle(self) -> bool:
        if self.enabled:
            self.disable()
        else:
            await self.enable()
        return self.enabled

    async def enable(self) -> None:
        if self._facility is None:
            raise NotificationPermissionError("Notifications are not supported on this host.")

        try:
            self.permission = await self._facility.request_permission()
        except Exception as exc:
            log.warning("Notification permission request failed: %s", exc)
            self.permission = PermissionState.DENIED

        if self.permission is not PermissionState.GRANTED:
            raise NotificationPermissionError(
                "Notification permission was not granted. Allow notifications "
                "for this app to enable background mode."
            )

        self._store.set(self._key, "true")
        self.enabled = True
        log.info("Background notifications enabled")
        self._show(
            "Background notifications enabled",
            "You will be notified of new registrations while this window is in the background.",
        )

    def disable(self) -> None:
        self._store.set(self._key, "false")
        self.enabled = False
        log.info("Background notifications disabled")
        if self.permission is PermissionState.GRANTED:
            self._show("Background notifications stopped", "New registrations will only alert in the app.")

    def announce(self, identifier: str, on_click: ClickCallback) -> Notification | None:
        if not self.active:
            return None

        notification = None

        def clicked() -> None:
            if notification is not None:
                self._close(notification)
            on_click()

        notification = self._show(
            "New user registered!",
            f"UID: {identifier}",
            tag=f"new-uid-{identifier}",
            require_interaction=True,
            on_click=clicked,
        )
        return notification

    def close_all(self) -> None:
        for notification in list(self._open):
            self._close(notification)

    def _show(self, title: str, body: str, **options) -> Notification | None:
        if self._facility is None:
            return None
        try:
            notification = self._facility.show(title, body, **options)
        except Exception:
            log.warning("Could not show notification %r", title, exc_info=True)
            return None
        self._open.add(notification)
        self._timers.call_later(self._timings.notification_close, self._close, notification)
        return notification

    def _close(self, notification: Notification) -> None:
        self._open.discard(notification)
        try:
            notification.close()
        except Exception:
            log.debug("Ignoring error while closing notification", exc_info=True)
