
# local key-value store for flags that must survive a restart.

# values are strings, the same shape as a browser's localStorage. The JSON
# file is rewritten on every set/remove; a missing or corrupt file starts
# empty rather than stopping the monitor.

import json
import logging
from pathlib import Path
from typing import Protocol

log = logging.getLogger(__name__)


class KeyValueStore(Protocol):

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def remove(self, key: str) -> None: ...


class JsonKeyValueStore:

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._data: dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            log.warning("Could not read state file %s: %s", self.path, exc)
            return
        if not isinstance(data, dict):
            log.warning("Ignoring state file %s: expected an object", self.path)
            return
        self._data = {str(k): str(v) for k, v in data.items()}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._save()
