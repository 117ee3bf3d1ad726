
# event handlers: the presentation layer of the monitor.

# the controller owns all state; a handler only gets told when something
# observable changed and decides how to show it. All formatting lives here.

# to add a new output target, implement a class with the EventHandler
# methods and pass it into AlertController.
#
# each method is called on the event loop and must not block.

import logging
from datetime import datetime, timezone
from typing import Protocol

from uid_monitor.models import WidgetState

log = logging.getLogger(__name__)

# ─── ANSI colours (safe to strip if plain output is needed) ───────

_R = "\033[0m"   # reset
_GREEN = "\033[32m"
_RED = "\033[31m"
_YELLOW = "\033[33m"
_BOLD = "\033[1m"


def _ts() -> str:
    """ISO 8601 UTC timestamp, e.g. 2026-02-21T12:39:08Z"""
    return datetime.now(tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _on_off(flag: bool) -> str:
    return f"{_GREEN}ON{_R}" if flag else f"{_RED}OFF{_R}"


def format_identifiers(s: WidgetState, limit: int | None = None) -> str:
    """The numbered identifier list, with the pending identifier marked NEW!."""
    if s.loading:
        return "  Loading..."
    if not s.identifiers:
        return "  No UIDs found in the database. Waiting for new registrations..."

    lines = [f"  User IDs ({s.total}):"]
    shown = s.identifiers[:limit] if limit else s.identifiers
    for index, uid in enumerate(shown, start=1):
        marker = f"  {_YELLOW}NEW!{_R}" if uid == s.pending_alert else ""
        lines.append(f"  #{index:<4} {uid}{marker}")
    if s.total > len(shown):
        lines.append(f"  … {s.total - len(shown)} more")
    return "\n".join(lines)


class EventHandler(Protocol):

    def on_identifiers(self, state: WidgetState) -> None: ...

    def on_alert(self, state: WidgetState) -> None: ...

    def on_alert_cleared(self, state: WidgetState) -> None: ...

    def on_error(self, state: WidgetState) -> None: ...

    def on_detail(self, state: WidgetState) -> None: ...


class ConsoleEventHandler:
    """
    One line per event on stdout:

        [2026-02-21T12:39:08Z] UIDs | Total=42 | New=3
        [2026-02-21T12:39:08Z] NEW USER REGISTERED | UID=user_abc123 | New=4

    Opening the detail panel prints the stats block and the full list,
    with the pending identifier marked NEW!.
    """

    # keeps the detail listing scannable in a terminal
    _MAX_LISTED = 200

    def on_identifiers(self, state: WidgetState) -> None:
        print(f"[{_ts()}] UIDs | Total={state.total} | New={state.alert_count}", flush=True)

    def on_alert(self, state: WidgetState) -> None:
        print(
            f"[{_ts()}] {_BOLD}{_GREEN}NEW USER REGISTERED{_R} | "
            f"UID={state.pending_alert} | New={state.alert_count}",
            flush=True,
        )

    def on_alert_cleared(self, state: WidgetState) -> None:
        log.debug("Alert cleared")

    def on_error(self, state: WidgetState) -> None:
        print(f"[{_ts()}] {_RED}ERROR{_R} | {state.error}", flush=True)

    def on_detail(self, state: WidgetState) -> None:
        print(self._format_detail(state), flush=True)

    def _format_detail(self, s: WidgetState) -> str:
        lines = [
            f"{_BOLD}Real-time UIDs Monitor{_R}",
            f"  Total Users={s.total} | New Today={s.alert_count} | "
            f"Valid Format={s.valid_format_count} | Sound={_on_off(s.sound_enabled)} | "
            f"Background={_on_off(s.background_mode_enabled)} ({s.notification_permission.value})",
        ]
        if s.pending_alert:
            lines.append(f"  {_GREEN}NEW USER REGISTERED!{_R} UID: {s.pending_alert}")
        if s.error:
            lines.append(f"  {_RED}Error{_R}: {s.error}")

        lines.append(format_identifiers(s, self._MAX_LISTED))
        return "\n".join(lines)
