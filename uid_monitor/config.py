import os
from dataclasses import dataclass

POLL_INTERVAL_SECONDS: float = float(os.getenv("POLL_INTERVAL_SECONDS", "2"))
REQUEST_TIMEOUT_SECONDS: int = 10
MAX_RETRIES: int = 5
RETRY_BASE_DELAY_SECONDS: int = 2   # delay = base * 2^n, capped at MAX_RETRY_DELAY_SECONDS
MAX_RETRY_DELAY_SECONDS: int = 300  # 5 minutes

FIRESTORE_API_BASE: str = os.getenv("FIRESTORE_API_BASE", "https://firestore.googleapis.com/v1")
FIRESTORE_PROJECT_ID: str = os.getenv("FIRESTORE_PROJECT_ID", "lawn-caree")
FIRESTORE_API_KEY: str | None = os.getenv("FIRESTORE_API_KEY")

# the watched document: users/userid { uids: [...] }
WATCH_COLLECTION: str = os.getenv("WATCH_COLLECTION", "users")
WATCH_DOCUMENT: str = os.getenv("WATCH_DOCUMENT", "userid")
WATCH_FIELD: str = os.getenv("WATCH_FIELD", "uids")

STATE_FILE: str = os.getenv("STATE_FILE", "data/state.json")
BACKGROUND_MODE_KEY: str = "backgroundModeEnabled"

# default | granted | denied: what the console notifier answers when asked
NOTIFICATION_PERMISSION: str = os.getenv("NOTIFICATION_PERMISSION", "granted")

# identifiers containing this marker count as "valid format" in the stats
VALID_FORMAT_MARKER: str = "user_"


@dataclass(frozen=True)
class AlertTimings:
    """All alert durations, in seconds."""

    pulse_interval: float = 0.5
    pulse_on: float = 0.3
    ring_ceiling: float = 20.0
    fallback_bells: int = 40
    alert_display: float = 25.0
    notification_close: float = 10.0


TONE_FREQUENCY_HZ: float = 800.0
TONE_VOLUME: float = 0.3
AUDIO_SAMPLE_RATE: int = 44100

APP_NAME: str = "UID Monitor"
DESKTOP_NOTIFICATION_TIMEOUT: int = 10  # seconds, for notifications that may expire on their own


def watch_path() -> str:
    return f"{WATCH_COLLECTION}/{WATCH_DOCUMENT}"
