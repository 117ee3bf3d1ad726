
# Firestore REST client.

# Thin wrapper over the documents endpoint of the Firestore v1 REST API:
#   GET    .../documents/{path}                     read one document
#   PATCH  .../documents/{path}?updateMask.fieldPaths=a&updateMask.fieldPaths=b
#   DELETE .../documents/{path}
#
# Values stay in Firestore's typed wire form here; parser.py converts them.
# A missing document is reported as None on read, never as an exception.

import asyncio
import logging
from typing import Any

import aiohttp

from uid_monitor.config import FIRESTORE_API_BASE, REQUEST_TIMEOUT_SECONDS

log = logging.getLogger(__name__)


class FirestoreHTTPClient:
    """
    Wraps an aiohttp.ClientSession bound to one Firestore project.

    The session is owned by the caller; the client never closes it.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        project_id: str,
        api_key: str | None = None,
        api_base: str = FIRESTORE_API_BASE,
    ) -> None:
        self._session = session
        self._api_key = api_key
        self._root = f"{api_base.rstrip('/')}/projects/{project_id}/databases/(default)/documents"

    def document_url(self, path: str) -> str:
        return f"{self._root}/{path.strip('/')}"

    def _params(self, extra: list[tuple[str, str]] | None = None) -> list[tuple[str, str]]:
        params = list(extra or [])
        if self._api_key:
            params.append(("key", self._api_key))
        return params

    async def get_document(self, path: str) -> dict[str, Any] | None:
        """
        Returns:
            the document resource  — {"name", "fields", "createTime", "updateTime"}
            None                   — the document does not exist (404)

        Raises:
            aiohttp.ClientResponseError  on any other non-2xx response
            asyncio.TimeoutError         on request timeout
        """
        url = self.document_url(path)
        try:
            async with self._session.get(
                url,
                params=self._params(),
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
            ) as resp:
                if resp.status == 404:
                    return None
                resp.raise_for_status()
                return await resp.json()

        except aiohttp.ClientResponseError as exc:
            log.warning("HTTP error fetching %s: %s %s", url, exc.status, exc.message)
            raise
        except asyncio.TimeoutError:
            log.warning("Timeout fetching %s", url)
            raise

    async def patch_document(self, path: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Overwrite only the named top-level fields; `fields` is already encoded."""
        url = self.document_url(path)
        mask = [("updateMask.fieldPaths", name) for name in fields]
        try:
            async with self._session.patch(
                url,
                params=self._params(mask),
                json={"fields": fields},
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
            ) as resp:
                resp.raise_for_status()
                return await resp.json()

        except aiohttp.ClientResponseError as exc:
            log.warning("HTTP error updating %s: %s %s", url, exc.status, exc.message)
            raise
        except asyncio.TimeoutError:
            log.warning("Timeout updating %s", url)
            raise

    async def delete_document(self, path: str) -> None:
        url = self.document_url(path)
        try:
            async with self._session.delete(
                url,
                params=self._params(),
                timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT_SECONDS),
            ) as resp:
                resp.raise_for_status()

        except aiohttp.ClientResponseError as exc:
            log.warning("HTTP error deleting %s: %s %s", url, exc.status, exc.message)
            raise
        except asyncio.TimeoutError:
            log.warning("Timeout deleting %s", url)
            raise
