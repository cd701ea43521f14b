"""Event log — bounded store of burrow diagnostics.

Keeps the most recent registration, reload and swap events so a running
server can answer "what happened to this file?" without a debugger::

    log = burrow.events
    log.query(event_type=ModuleReloadFailed, limit=5)
    log.history("app/users/[id]/get.py")

Thread Safety:
    Guarded by one ``threading.Lock``; the watcher thread appends while
    request threads read.

"""

import threading
from collections import deque
from typing import Any

from burrow.observability.events import (
    BurrowEvent,
    HandlerSwapped,
    ModuleReloaded,
    ModuleReloadFailed,
)


def _event_path(event: BurrowEvent) -> str:
    """Source file an event refers to (route events carry ``source``)."""
    return getattr(event, "path", None) or getattr(event, "source", "")


class EventLog:
    """Ring buffer of :data:`BurrowEvent` objects; oldest entries fall off.

    Args:
        max_events: Capacity of the buffer.

    """

    __slots__ = ("_events", "_lock", "_max_events")

    def __init__(self, max_events: int = 10_000) -> None:
        self._max_events = max_events
        self._events: deque[BurrowEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    def append(self, event: BurrowEvent) -> None:
        with self._lock:
            self._events.append(event)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        path: str | None = None,
        limit: int = 100,
    ) -> list[BurrowEvent]:
        """Newest-first events matching every given filter.

        *path* is a substring match against the event's file, so a
        relative fragment such as ``"users/[id]"`` is enough.

        """
        with self._lock:
            snapshot = tuple(self._events)

        matches: list[BurrowEvent] = []
        for event in reversed(snapshot):
            if len(matches) == limit:
                break
            if event_type is not None and not isinstance(event, event_type):
                continue
            if since_ns and event.timestamp_ns < since_ns:
                continue
            if path is not None and path not in _event_path(event):
                continue
            matches.append(event)
        return matches

    def history(self, path: str) -> list[BurrowEvent]:
        """Every retained event for files matching *path*, oldest first."""
        with self._lock:
            return [event for event in self._events if path in _event_path(event)]

    def recent(self, n: int = 20) -> list[BurrowEvent]:
        """The last *n* events, oldest first."""
        with self._lock:
            snapshot = list(self._events)
        return snapshot[-n:]

    def clear(self) -> int:
        """Drop everything; returns how many events were dropped."""
        with self._lock:
            dropped = len(self._events)
            self._events.clear()
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def stats(self) -> dict[str, Any]:
        """Counts by event class plus reload and swap totals."""
        with self._lock:
            snapshot = tuple(self._events)

        by_type: dict[str, int] = {}
        reloads = failures = swapped = 0
        for event in snapshot:
            name = type(event).__name__
            by_type[name] = by_type.get(name, 0) + 1
            if isinstance(event, ModuleReloaded):
                reloads += 1
            elif isinstance(event, ModuleReloadFailed):
                failures += 1
            elif isinstance(event, HandlerSwapped):
                swapped += event.swapped

        return {
            "total": len(snapshot),
            "max_events": self._max_events,
            "by_type": by_type,
            "reloads": reloads,
            "reload_failures": failures,
            "handlers_swapped": swapped,
        }
