"""
Shared fakes and fixtures for the monitor tests.

All alert timings are shrunk to fractions of a second so the timer-driven
behaviour can be observed with short asyncio.sleep calls.
"""
import pytest

from uid_monitor.audio import ToneUnavailable
from uid_monitor.config import AlertTimings
from uid_monitor.kv_store import JsonKeyValueStore
from uid_monitor.models import PermissionState
from uid_monitor.store import MemoryDocumentStore
from uid_monitor.watcher import AlertController

FAST = AlertTimings(
    pulse_interval=0.05,
    pulse_on=0.03,
    ring_ceiling=0.5,
    fallback_bells=4,
    alert_display=0.3,
    notification_close=0.2,
)

PATH = "users/userid"


class FakeTone:

    def __init__(self, frequency, volume):
        self.frequency = frequency
        self.volumes = [volume]
        self.closed = False

    def set_volume(self, volume):
        self.volumes.append(volume)

    def close(self):
        self.closed = True


class FakeToneBackend:

    def __init__(self, available=True):
        self.available = available
        self.tones = []

    def open_tone(self, frequency, volume):
        if not self.available:
            raise ToneUnavailable("no audio in tests")
        tone = FakeTone(frequency, volume)
        self.tones.append(tone)
        return tone

    @property
    def live(self):
        return [t for t in self.tones if not t.closed]


class FakeNotification:

    def __init__(self, title, body, options):
        self.title = title
        self.body = body
        self.options = options
        self.closed = False

    def click(self):
        on_click = self.options.get("on_click")
        if on_click:
            on_click()

    def close(self):
        self.closed = True


class FakeNotifier:

    def __init__(self, current=PermissionState.DEFAULT, answer=PermissionState.GRANTED):
        self.current = current
        self.answer = answer
        self.requests = 0
        self.shown = []

    def permission(self):
        return self.current

    async def request_permission(self):
        self.requests += 1
        self.current = self.answer
        return self.answer

    def show(self, title, body, **options):
        notification = FakeNotification(title, body, options)
        self.shown.append(notification)
        return notification


class RecordingHandler:

    def __init__(self):
        self.events = []

    def on_identifiers(self, state):
        self.events.append(("identifiers", state))

    def on_alert(self, state):
        self.events.append(("alert", state))

    def on_alert_cleared(self, state):
        self.events.append(("cleared", state))

    def on_error(self, state):
        self.events.append(("error", state))

    def on_detail(self, state):
        self.events.append(("detail", state))

    def names(self):
        return [name for name, _ in self.events]


@pytest.fixture
def kv(tmp_path):
    return JsonKeyValueStore(tmp_path / "state.json")


@pytest.fixture
def tone_backend():
    return FakeToneBackend()


@pytest.fixture
def notifier():
    return FakeNotifier(current=PermissionState.GRANTED)


@pytest.fixture
def handler():
    return RecordingHandler()


@pytest.fixture
def store():
    return MemoryDocumentStore()


@pytest.fixture
def bells():
    return []


@pytest.fixture
def controller(store, kv, notifier, tone_backend, handler, bells):
    focused = []
    c = AlertController(
        store=store,
        path=PATH,
        kv_store=kv,
        notifier=notifier,
        tone_backend=tone_backend,
        handler=handler,
        timings=FAST,
        focus_host=lambda: focused.append(True),
        bell=lambda: bells.append(True),
    )
    c.focused = focused
    yield c
    c.stop()
