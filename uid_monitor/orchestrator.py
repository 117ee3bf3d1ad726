
# UIDMonitor: the top-level orchestrator.

# Responsibilities:
#   - Create the aiohttp session and the Firestore client on top of it
#   - Wire the store, the key-value store, the desktop notifier, the pygame
#     tone backend and the console handler into one AlertController
#   - Keep running until stop(), even when the live feed has failed, so the
#     operator can still read the error and use the controls
#   - Provide a clean stop() method for graceful shutdown

import asyncio
import logging

import aiohttp

from uid_monitor.commands import CommandDispatcher
from uid_monitor.config import (
    FIRESTORE_API_KEY,
    FIRESTORE_PROJECT_ID,
    NOTIFICATION_PERMISSION,
    STATE_FILE,
    watch_path,
)
from uid_monitor.desktop import DesktopNotifier, PygameToneBackend
from uid_monitor.handlers import ConsoleEventHandler
from uid_monitor.http_client import FirestoreHTTPClient
from uid_monitor.kv_store import JsonKeyValueStore
from uid_monitor.models import PermissionState
from uid_monitor.store import FirestoreDocumentStore
from uid_monitor.watcher import AlertController

log = logging.getLogger(__name__)


def _configured_permission(value: str) -> PermissionState:
    try:
        return PermissionState(value.strip().lower())
    except ValueError:
        log.warning("Unknown NOTIFICATION_PERMISSION %r, treating as 'default'", value)
        return PermissionState.DEFAULT


class UIDMonitor:

    def __init__(
        self,
        path: str | None = None,
        state_file: str = STATE_FILE,
        permission: str = NOTIFICATION_PERMISSION,
    ) -> None:
        self._path = path or watch_path()
        self._state_file = state_file
        self._permission = _configured_permission(permission)
        self._done = asyncio.Event()
        self.controller: AlertController | None = None
        self.commands: CommandDispatcher | None = None

    async def run(self) -> None:
        connector = aiohttp.TCPConnector(limit=10)
        async with aiohttp.ClientSession(
            connector=connector,
            headers={"User-Agent": "UIDMonitor/1.0 (registration-watcher)"},
        ) as session:

            http_client = FirestoreHTTPClient(session, FIRESTORE_PROJECT_ID, FIRESTORE_API_KEY)
            notifier = DesktopNotifier(self._permission)

            self.controller = AlertController(
                store=FirestoreDocumentStore(http_client),
                path=self._path,
                kv_store=JsonKeyValueStore(self._state_file),
                notifier=notifier,
                tone_backend=PygameToneBackend(),
                handler=ConsoleEventHandler(),
            )
            self.commands = CommandDispatcher(self.controller, notifier)
            task = self.controller.start()

            log.info("UIDMonitor running — watching %s. Type 'help' for commands, Ctrl+C to stop.", self._path)

            try:
                await self._done.wait()
            finally:
                self.controller.stop()
                # let the cancelled feed unwind before the session closes
                await asyncio.gather(task, return_exceptions=True)

    def stop(self) -> None:
        """Tear down the controller and let run() return."""
        if self.controller is not None:
            self.controller.stop()
        self._done.set()
