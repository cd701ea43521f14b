"""Diagnostic events for route building and hot reload.

One frozen dataclass per thing that can happen to a route file: it was
registered or skipped at startup, its module was reloaded or failed to
reload, or handlers from it were swapped.  Each carries a monotonic
``timestamp_ns`` so events from the watcher thread order correctly
against startup events.
"""

import time
from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Route building events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RouteRegistered:
    """A route handler chain was registered with the dispatcher.

    Attributes:
        method: Upper-case HTTP method.
        pattern: URL pattern (e.g. ``/users/:id``).
        group: Route group label.
        source: Route file path.
        middleware: Middleware file path, or empty string.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    method: str
    pattern: str
    group: str
    source: str
    middleware: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class RouteSkipped:
    """A route file failed to load or register and was skipped.

    Attributes:
        method: Upper-case HTTP method.
        source: Route file path.
        error: Human-readable cause.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    method: str
    source: str
    error: str
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Hot reload events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ModuleReloaded:
    """A watched module was re-imported after a content change.

    Attributes:
        path: Module source path.
        exports: Number of exported callables in the new module.
        duration_ms: Time spent re-importing in milliseconds.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    exports: int
    duration_ms: float
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class ModuleReloadFailed:
    """A watched module failed to re-import; the old module keeps serving."""

    path: str
    error: str
    timestamp_ns: int


@dataclass(frozen=True, slots=True)
class HandlerSwapped:
    """Installed dispatcher handlers were replaced after a reload.

    Attributes:
        path: Module source path.
        swapped: Number of handler slots replaced.
        exports: Export names that were swapped in.
        timestamp_ns: Monotonic nanosecond timestamp.

    """

    path: str
    swapped: int
    exports: tuple[str, ...]
    timestamp_ns: int


# ---------------------------------------------------------------------------
# Union type
# ---------------------------------------------------------------------------

type BurrowEvent = (
    RouteRegistered
    | RouteSkipped
    | ModuleReloaded
    | ModuleReloadFailed
    | HandlerSwapped
)


def now_ns() -> int:
    """Return the current monotonic clock value in nanoseconds."""
    return time.monotonic_ns()
