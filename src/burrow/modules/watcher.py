"""File watcher — feeds source changes to the hot module registry.

Uses watchfiles to monitor the app root recursively (Python files only) and
yields :class:`ChangeEvent` objects.  The registry decides which events
concern loaded modules.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from watchfiles import Change, PythonFilter, awatch

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Iterable


type ChangeKind = Literal["created", "modified", "deleted"]


@dataclass(frozen=True, slots=True)
class ChangeEvent:
    """A file change detected by the watcher.

    Attributes:
        path: Absolute path to the changed file.
        kind: Type of filesystem change.

    """

    path: Path
    kind: ChangeKind

    @property
    def is_content_change(self) -> bool:
        """Whether the file may have new content (created or modified)."""
        return self.kind != "deleted"


# Mapping from watchfiles Change enum to our kind literals.
_CHANGE_KIND_MAP: dict[Change, ChangeKind] = {
    Change.added: "created",
    Change.modified: "modified",
    Change.deleted: "deleted",
}


def to_change_event(change: Change, raw_path: str) -> ChangeEvent | None:
    """Convert one watchfiles change into a ChangeEvent.

    Returns None for events without a usable file name.

    """
    if not raw_path:
        return None
    path = Path(raw_path)
    if not path.name:
        return None
    return ChangeEvent(path=path, kind=_CHANGE_KIND_MAP.get(change, "modified"))


class ModuleWatcher:
    """Watches one or more root directories for Python source changes.

    ``changes()`` must be iterated inside the event loop that will later call
    ``stop()`` (or use ``stop_threadsafe()`` from another thread).

    Args:
        roots: Directories to watch recursively.
        debounce: Milliseconds to group rapid changes into one batch.
        step: Milliseconds between polls of the underlying notifier.

    """

    def __init__(
        self,
        roots: Iterable[Path],
        *,
        debounce: int = 50,
        step: int = 50,
    ) -> None:
        self._roots = tuple(roots)
        self._debounce = debounce
        self._step = step
        self._stop_event: asyncio.Event | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def roots(self) -> tuple[Path, ...]:
        """Watched root directories."""
        return self._roots

    def covers(self, path: Path) -> bool:
        """Whether *path* lies under one of the watched roots."""
        return any(path.is_relative_to(root) for root in self._roots)

    @property
    def is_running(self) -> bool:
        """Whether ``changes()`` is currently being iterated."""
        return self._stop_event is not None and not self._stop_event.is_set()

    def bind(self) -> None:
        """Attach the stop signal to the running event loop.

        Called implicitly by ``changes()``; call it earlier when another
        thread may need ``stop_threadsafe()`` before iteration starts.

        """
        loop = asyncio.get_running_loop()
        if self._loop is not loop or self._stop_event is None:
            self._loop = loop
            self._stop_event = asyncio.Event()

    async def changes(self) -> AsyncIterator[ChangeEvent]:
        """Async iterator yielding ChangeEvents until ``stop()`` is called."""
        self.bind()
        assert self._stop_event is not None

        async for raw_changes in awatch(
            *self._roots,
            watch_filter=PythonFilter(),
            stop_event=self._stop_event,
            debounce=self._debounce,
            step=self._step,
        ):
            for change_type, path_str in sorted(raw_changes, key=lambda c: (c[1], c[0])):
                event = to_change_event(change_type, path_str)
                if event is not None:
                    yield event

    def stop(self) -> None:
        """Stop iteration; must be called from the watcher's event loop."""
        if self._stop_event is not None:
            self._stop_event.set()

    def stop_threadsafe(self) -> None:
        """Stop iteration from any thread."""
        if self._loop is not None and self._stop_event is not None:
            self._loop.call_soon_threadsafe(self._stop_event.set)
