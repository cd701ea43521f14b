"""Dispatcher interface and the in-memory reference dispatcher.

Burrow does not serve HTTP.  It registers handler chains with a dispatcher
and, during hot reload, replaces handler references inside the chains the
dispatcher already holds.  Any router that satisfies :class:`Dispatcher`
works; :class:`HandlerStack` is a minimal one that matches method and path
and hands back the chain for the caller to run::

    stack = HandlerStack()
    stack.register_handler("GET", "/users/:id", [auth, get_user])
    match = stack.resolve("GET", "/users/42")
    match.params    # {"id": "42"}
    match.handlers  # (auth, get_user)
"""

from __future__ import annotations

import re
import threading
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import MutableSequence

    from burrow._types import Handler

HTTP_METHODS: frozenset[str] = frozenset({"GET", "POST", "PUT", "DELETE"})

_PARAM_SEGMENT = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


@runtime_checkable
class RouteEntry(Protocol):
    """One registered route as seen by the hot swapper.

    ``handlers`` must be mutable in place: the swapper assigns single slots.
    """

    method: str
    pattern: str
    handlers: MutableSequence[Handler]


@runtime_checkable
class Dispatcher(Protocol):
    """What burrow needs from the external request router."""

    def register_handler(
        self, method: str, pattern: str, handlers: Sequence[Handler],
    ) -> None:
        """Register a handler chain for (method, pattern)."""
        ...

    @property
    def entries(self) -> Sequence[RouteEntry]:
        """Registered entries, in registration order."""
        ...


def compile_pattern(pattern: str) -> re.Pattern[str]:
    """Compile a ``/users/:id`` pattern into an anchored regex.

    Each ``:name`` matches one non-empty path segment.

    """
    parts: list[str] = []
    pos = 0
    for match in _PARAM_SEGMENT.finditer(pattern):
        parts.append(re.escape(pattern[pos:match.start()]))
        parts.append(f"(?P<{match.group(1)}>[^/]+)")
        pos = match.end()
    parts.append(re.escape(pattern[pos:]))
    return re.compile("^" + "".join(parts) + "/?$")


@dataclass(slots=True, eq=False)
class StackEntry:
    """A registered route in a :class:`HandlerStack`.

    Attributes:
        method: Upper-case HTTP method.
        pattern: URL pattern with ``:name`` parameters.
        handlers: Installed handler chain; slots are replaced in place.

    """

    method: str
    pattern: str
    handlers: list[Handler]
    regex: re.Pattern[str] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.regex = compile_pattern(self.pattern)


@dataclass(frozen=True, slots=True)
class ResolvedRoute:
    """A successful match: the entry, its path params, and a chain snapshot.

    The snapshot is taken once, so a request never sees a chain that is half
    old and half new while a hot swap is in progress.

    """

    entry: StackEntry
    params: dict[str, str]
    handlers: tuple[Handler, ...]


class HandlerStack:
    """Ordered, mutable list of route entries; first registered match wins.

    Thread Safety:
        Registration is serialized by a lock.  Matching reads the entry list
        without locking; handler slots are replaced by single assignments.

    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: list[StackEntry] = []
        self._lock = threading.Lock()

    def register_handler(
        self, method: str, pattern: str, handlers: Sequence[Handler],
    ) -> None:
        """Append an entry for (method, pattern).

        Raises:
            ValueError: On an unknown method, a malformed pattern, or an
                empty or non-callable chain.

        """
        method = method.upper()
        if method not in HTTP_METHODS:
            msg = f"Unsupported method {method!r}; expected one of {sorted(HTTP_METHODS)}"
            raise ValueError(msg)
        if not pattern.startswith("/"):
            msg = f"Pattern must start with '/': {pattern!r}"
            raise ValueError(msg)
        if not handlers:
            msg = f"{method} {pattern}: handler chain is empty"
            raise ValueError(msg)
        for index, handler in enumerate(handlers):
            if not callable(handler):
                msg = f"{method} {pattern}: handler at index {index} is not callable"
                raise ValueError(msg)

        entry = StackEntry(method=method, pattern=pattern, handlers=list(handlers))
        with self._lock:
            self._entries.append(entry)

    @property
    def entries(self) -> list[StackEntry]:
        """Registered entries, in registration order (live list)."""
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def find(self, method: str, pattern: str) -> StackEntry | None:
        """Return the first entry registered for exactly (method, pattern)."""
        method = method.upper()
        for entry in self._entries:
            if entry.method == method and entry.pattern == pattern:
                return entry
        return None

    def resolve(self, method: str, path: str) -> ResolvedRoute | None:
        """Match a request path; returns None when no entry matches."""
        method = method.upper()
        for entry in tuple(self._entries):
            if entry.method != method:
                continue
            match = entry.regex.match(path)
            if match is not None:
                return ResolvedRoute(
                    entry=entry,
                    params=match.groupdict(),
                    handlers=tuple(entry.handlers),
                )
        return None
