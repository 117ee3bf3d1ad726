
# Document stores: where the watched identifier list lives.

# A store offers one live feed per document path plus one-shot reads and
# writes. The feed is an async iterator of Snapshot objects; it ends by
# raising SubscriptionError when the store gives up on it. Leaving the
# `async for` (break, cancellation, aclose) releases the subscription.
#
# FirestoreDocumentStore: Firestore REST over aiohttp. REST has no push
#   channel, so the feed polls and only yields when
#   the document's updateTime (or existence) changes.
# MemoryDocumentStore: in-process store. Writers may run on any thread;
#   snapshots are handed to each subscriber's event
#   loop with call_soon_threadsafe.

import asyncio
import logging
import threading
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Protocol

import aiohttp

from uid_monitor.config import (
    MAX_RETRIES,
    MAX_RETRY_DELAY_SECONDS,
    POLL_INTERVAL_SECONDS,
    RETRY_BASE_DELAY_SECONDS,
)
from uid_monitor.http_client import FirestoreHTTPClient
from uid_monitor.models import Snapshot, SubscriptionError
from uid_monitor.parser import encode_fields, parse_document

log = logging.getLogger(__name__)

# rate limiting and server-side trouble are worth waiting out
RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class DocumentStore(Protocol):

    def subscribe(self, path: str) -> AsyncIterator[Snapshot]: ...

    async def get(self, path: str) -> Snapshot: ...

    async def update(self, path: str, fields: dict[str, Any]) -> None: ...

    async def delete(self, path: str) -> None: ...


def _backoff_delay(retry_count: int) -> int:
    return min(RETRY_BASE_DELAY_SECONDS * (2 ** retry_count), MAX_RETRY_DELAY_SECONDS)


class FirestoreDocumentStore:
    """
    Backoff formula: delay = RETRY_BASE_DELAY_SECONDS * 2^retry_count,
    capped at MAX_RETRY_DELAY_SECONDS. retry_count itself is capped at
    MAX_RETRIES so very long outages keep retrying at the ceiling.
    """

    def __init__(self, http_client: FirestoreHTTPClient, poll_interval: float = POLL_INTERVAL_SECONDS) -> None:
        self._http = http_client
        self._poll_interval = poll_interval

    async def subscribe(self, path: str) -> AsyncIterator[Snapshot]:
        retry_count = 0
        last_seen: tuple | None = None
        log.info("Started watching %s", self._http.document_url(path))

        try:
            while True:
                try:
                    data = await self._http.get_document(path)
                    retry_count = 0

                except aiohttp.ClientResponseError as exc:
                    if exc.status not in RETRYABLE_STATUSES:
                        raise SubscriptionError(f"{exc.status} {exc.message}") from exc
                    retry_count = min(retry_count + 1, MAX_RETRIES)
                    delay = _backoff_delay(retry_count)
                    log.warning("Server error %s for %s. Retry %d/%d in %ds.",
                                exc.status, path, retry_count, MAX_RETRIES, delay)
                    await asyncio.sleep(delay)
                    continue

                except (aiohttp.ClientError, asyncio.TimeoutError):
                    retry_count = min(retry_count + 1, MAX_RETRIES)
                    delay = _backoff_delay(retry_count)
                    log.warning("Transient error for %s. Retry %d/%d in %ds.",
                                path, retry_count, MAX_RETRIES, delay)
                    await asyncio.sleep(delay)
                    continue

                snapshot = parse_document(path, data) if data is not None else Snapshot.absent(path)
                marker = (snapshot.exists, snapshot.update_time or repr(snapshot.fields))

                if marker != last_seen:
                    last_seen = marker
                    yield snapshot
                else:
                    log.debug("No change for %s", path)

                await asyncio.sleep(self._poll_interval)

        finally:
            log.info("Stopped watching %s", path)

    async def get(self, path: str) -> Snapshot:
        data = await self._http.get_document(path)
        if data is None:
            return Snapshot.absent(path)
        return parse_document(path, data)

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        await self._http.patch_document(path, encode_fields(fields))
        log.info("Updated %s (%s)", path, ", ".join(fields))

    async def delete(self, path: str) -> None:
        await self._http.delete_document(path)
        log.info("Deleted %s", path)


class _Subscriber:

    def __init__(self, loop: asyncio.AbstractEventLoop) -> None:
        self.loop = loop
        self.queue: asyncio.Queue = asyncio.Queue()

    def deliver(self, item: Snapshot | SubscriptionError) -> bool:
        try:
            self.loop.call_soon_threadsafe(self.queue.put_nowait, item)
        except RuntimeError:
            # subscriber's loop is closed
            return False
        return True


class MemoryDocumentStore:

    def __init__(self) -> None:
        self._docs: dict[str, Snapshot] = {}
        self._subscribers: dict[str, list[_Subscriber]] = {}
        self._lock = threading.Lock()

    def subscriber_count(self, path: str) -> int:
        with self._lock:
            return len(self._subscribers.get(path, []))

    def set(self, path: str, fields: dict[str, Any]) -> Snapshot:
        """Replace the document. Safe to call from any thread."""
        snapshot = Snapshot(path=path, exists=True, fields=dict(fields),
                            update_time=datetime.now(tz=timezone.utc))
        with self._lock:
            self._docs[path] = snapshot
        self._publish(path, snapshot)
        return snapshot

    def remove(self, path: str) -> None:
        with self._lock:
            self._docs.pop(path, None)
        self._publish(path, Snapshot.absent(path))

    def fail(self, path: str, message: str) -> None:
        """End every live feed on `path` with a SubscriptionError."""
        self._publish(path, SubscriptionError(message))

    def _current(self, path: str) -> Snapshot:
        with self._lock:
            return self._docs.get(path) or Snapshot.absent(path)

    def _publish(self, path: str, item: Snapshot | SubscriptionError) -> None:
        with self._lock:
            subscribers = list(self._subscribers.get(path, []))
        dead = [sub for sub in subscribers if not sub.deliver(item)]
        if dead:
            with self._lock:
                live = self._subscribers.get(path, [])
                self._subscribers[path] = [sub for sub in live if sub not in dead]

    async def subscribe(self, path: str) -> AsyncIterator[Snapshot]:
        sub = _Subscriber(asyncio.get_running_loop())
        with self._lock:
            self._subscribers.setdefault(path, []).append(sub)
            # like a real listener, the current state arrives first
            sub.queue.put_nowait(self._docs.get(path) or Snapshot.absent(path))

        try:
            while True:
                item = await sub.queue.get()
                if isinstance(item, SubscriptionError):
                    raise item
                yield item
        finally:
            with self._lock:
                subscribers = self._subscribers.get(path, [])
                if sub in subscribers:
                    subscribers.remove(sub)

    async def get(self, path: str) -> Snapshot:
        return self._current(path)

    async def update(self, path: str, fields: dict[str, Any]) -> None:
        current = self._current(path)
        merged = dict(current.fields)
        merged.update(fields)
        self.set(path, merged)

    async def delete(self, path: str) -> None:
        self.remove(path)
