import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

log = logging.getLogger(__name__)

_FRACTION = re.compile(r"\.(\d+)")

def parse_dt(value: str | None) -> datetime | None:
    """
    Parse an ISO 8601 timestamp string into an aware UTC datetime.

    Firestore returns strings like '2024-11-03T14:32:00.123456789Z' with
    anywhere up to nine fractional digits; Python 3.10
    only parses exactly three or six, so the fraction is normalised to six.
    """
    if not value:
        return None

    text = value.replace("Z", "+00:00")
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)

    try:
        return datetime.fromisoformat(text).astimezone(timezone.utc)
    except ValueError:
        log.warning("Could not parse datetime string: %r", value)
        return None


def format_dt(dt: datetime | None) -> str:
    """Human-readable UTC timestamp for console display."""
    if dt is None:
        return "Unknown"
    return dt.strftime("%Y-%m-%d %H:%M:%S UTC")


class MonitorError(Exception):
    """Base class for errors raised by the monitor."""


class SubscriptionError(MonitorError):
    """The live document feed ended with an error."""


class NotificationPermissionError(MonitorError):
    """Background mode could not be enabled because notifications are not allowed."""


class PermissionState(str, Enum):
    DEFAULT = "default"   # not determined yet
    GRANTED = "granted"
    DENIED = "denied"


class AudioState(str, Enum):
    IDLE = "idle"
    RINGING = "ringing"


@dataclass(frozen=True)
class Snapshot:
    """
    One delivered state of a watched document.

    An absent document has exists=False and no fields. update_time is
    the store's own modification stamp and is None for absent documents.
    """
    path: str
    exists: bool
    fields: dict[str, Any] = field(default_factory=dict)
    update_time: datetime | None = None

    @classmethod
    def absent(cls, path: str) -> "Snapshot":
        return cls(path=path, exists=False)


@dataclass(frozen=True)
class WidgetState:
    """Read-only view of the controller, consumed by the presentation layer."""
    identifiers: tuple[str, ...]
    pending_alert: str | None
    alert_count: int
    valid_format_count: int
    sound_enabled: bool
    background_mode_enabled: bool
    notification_permission: PermissionState
    audio_state: AudioState
    detail_open: bool
    loading: bool
    error: str | None

    @property
    def total(self) -> int:
        return len(self.identifiers)
