import asyncio
import logging
from typing import Any, Callable

log = logging.getLogger(__name__)


class TimerGroup:
    """
    A set of loop.call_later handles that can be cancelled together.

    Every handle removes itself from the group when it fires, so the
    group only ever holds timers that are still pending. After close()
    the group refuses new timers: nothing scheduled through it can run
    once teardown has begun.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handles: set[asyncio.TimerHandle] = set()
        self._closed = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._handles)

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle | None:
        if self._closed:
            log.debug("Timer group closed, dropping %r", callback)
            return None

        handle: asyncio.TimerHandle

        def _fire() -> None:
            self._handles.discard(handle)
            callback(*args)

        handle = self.loop.call_later(delay, _fire)
        self._handles.add(handle)
        return handle

    def cancel(self, handle: asyncio.TimerHandle | None) -> None:
        if handle is None:
            return
        handle.cancel()
        self._handles.discard(handle)

    def cancel_all(self) -> None:
        for handle in list(self._handles):
            handle.cancel()
        self._handles.clear()

    def close(self) -> None:
        self._closed = True
        self.cancel_all()

    def reopen(self) -> None:
        self._closed = False
