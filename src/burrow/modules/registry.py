"""Hot module registry — watch loaded modules and reload them on change.

Wraps a :class:`ModuleCache` with filesystem watching.  The first ``load()``
of a path registers it for watching; later content changes re-import it and
publish a ``module:updated`` notification carrying the old and the new
module to every subscriber.

Flow::

    ModuleWatcher event -> handle_change(path)     (per-path asyncio.Lock)
        old = cache.get(path)
        unchanged content hash?  -> ignored
        new = cache.reload(path) -> ModuleUpdate(path, old, new) -> subscribers
        import failed?           -> ModuleReloadFailure -> failure subscribers

Reloads of one path never interleave and run in event order; reloads of
different paths are independent.  Subscriber errors are logged and never
reach the watcher.
"""

from __future__ import annotations

import asyncio
import inspect
import os
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from burrow._errors import ModuleLoadError, ModuleReloadError, WatchSetupError
from burrow.banner import console, display_path
from burrow.modules.cache import LoadedModule, ModuleCache, hash_source, resolve_path
from burrow.modules.watcher import ChangeEvent, ModuleWatcher
from burrow.observability.events import ModuleReloaded, ModuleReloadFailed, now_ns

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from burrow._types import Logger
    from burrow.modules.cache import ProvenanceTable
    from burrow.observability.log import EventLog

    type Subscriber = Callable[[Any], Any]


MODULE_UPDATED = "module:updated"
MODULE_FAILED = "module:failed"


@dataclass(frozen=True, slots=True)
class ModuleUpdate:
    """Payload of a ``module:updated`` notification.

    Attributes:
        file_path: Resolved path of the reloaded file.
        old_module: The instance that was serving before the reload.
        new_module: The freshly imported instance.

    """

    file_path: Path
    old_module: LoadedModule
    new_module: LoadedModule


@dataclass(frozen=True, slots=True)
class ModuleReloadFailure:
    """Payload of a ``module:failed`` notification.

    The old module stays cached and installed.

    """

    file_path: Path
    old_module: LoadedModule
    error: ModuleReloadError


class HotModuleRegistry:
    """Owns one watch entry per loaded path and republishes reloads.

    Constructed once per server instance; nothing is shared between
    registries, so several servers can live in one process.

    Args:
        roots: Directories watched recursively; only files below them can be
            hot reloaded.
        cache: Module cache to wrap (a fresh one by default).
        logger: Sink for diagnostic lines.
        display_root: Base directory for shortening paths in log lines.
        debounce: Watcher debounce window in milliseconds.
        event_log: Optional event store for reload diagnostics.

    """

    def __init__(
        self,
        roots: Iterable[Path],
        *,
        cache: ModuleCache | None = None,
        logger: Logger = console,
        display_root: Path | None = None,
        debounce: int = 50,
        event_log: EventLog | None = None,
    ) -> None:
        self._cache = cache if cache is not None else ModuleCache()
        self._watcher = ModuleWatcher(
            [resolve_path(root) for root in roots], debounce=debounce,
        )
        self._logger = logger
        self._display_root = display_root or Path.cwd()
        self._event_log = event_log

        self._watched: set[Path] = set()
        self._unwatchable: set[Path] = set()
        self._subscribers: list[Subscriber] = []
        self._failure_subscribers: list[Subscriber] = []
        self._locks: dict[Path, asyncio.Lock] = {}
        self._tasks: set[asyncio.Task[Any]] = set()

        self._thread: threading.Thread | None = None
        self._bound = threading.Event()

    # -- accessors --

    @property
    def cache(self) -> ModuleCache:
        """The wrapped module cache."""
        return self._cache

    @property
    def provenance(self) -> ProvenanceTable:
        """Provenance side table shared with the cache."""
        return self._cache.provenance

    @property
    def watcher(self) -> ModuleWatcher:
        """The underlying filesystem watcher."""
        return self._watcher

    @property
    def watched_paths(self) -> frozenset[Path]:
        """Paths that will be reloaded when they change."""
        return frozenset(self._watched)

    def is_watched(self, path: Path | str) -> bool:
        """Whether *path* is registered for hot reload."""
        return resolve_path(path) in self._watched

    # -- loading --

    def load(self, path: Path | str) -> LoadedModule:
        """Load *path* through the cache and register it for watching.

        A path that cannot be watched is still loaded; hot reload is only
        disabled for that path.

        Raises:
            ModuleLoadError: If the file cannot be imported.

        """
        key = resolve_path(path)
        loaded = self._cache.load(key)
        if key not in self._watched and key not in self._unwatchable:
            try:
                self._ensure_watch(key)
            except WatchSetupError as exc:
                self._unwatchable.add(key)
                self._logger(f"  Watch error: {exc} (hot reload disabled for this file)")
        return loaded

    def _ensure_watch(self, path: Path) -> None:
        if not self._watcher.covers(path):
            msg = f"{path} is outside the watched directories"
            raise WatchSetupError(msg)
        if not path.is_file():
            msg = f"{path} is not a file"
            raise WatchSetupError(msg)
        if not os.access(path, os.R_OK):
            msg = f"{path} is not readable"
            raise WatchSetupError(msg)
        self._watched.add(path)

    # -- subscriptions --

    def subscribe(self, callback: Subscriber) -> None:
        """Call *callback* with a :class:`ModuleUpdate` after each reload.

        Plain functions and coroutine functions are both accepted.

        """
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        """Remove a ``module:updated`` subscriber (no-op if absent)."""
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def subscribe_failures(self, callback: Subscriber) -> None:
        """Call *callback* with a :class:`ModuleReloadFailure` on failed reloads."""
        self._failure_subscribers.append(callback)

    def on(self, event: str, callback: Subscriber) -> None:
        """Subscribe by event name (``module:updated`` or ``module:failed``)."""
        if event == MODULE_UPDATED:
            self.subscribe(callback)
        elif event == MODULE_FAILED:
            self.subscribe_failures(callback)
        else:
            msg = f"Unknown event {event!r}; expected {MODULE_UPDATED!r} or {MODULE_FAILED!r}"
            raise ValueError(msg)

    # -- change handling --

    async def handle_change(self, path: Path | str) -> ModuleUpdate | None:
        """Reload *path* if its content changed and notify subscribers.

        Returns the published update, or None when nothing was reloaded
        (unknown path, unchanged content, vanished file, failed import).

        """
        key = resolve_path(path)
        lock = self._locks.setdefault(key, asyncio.Lock())

        async with lock:
            old = self._cache.get(key)
            if old is None:
                return None

            try:
                data = key.read_bytes()
            except OSError:
                # Deleted or mid-rename; the next event carries the new file.
                return None
            if hash_source(data) == old.source_hash:
                return None

            t0 = time.perf_counter()
            try:
                new = self._cache.reload(key)
            except ModuleLoadError as exc:
                await self._report_failure(old, ModuleReloadError(key, exc.cause))
                return None
            duration_ms = (time.perf_counter() - t0) * 1000

            if self._event_log is not None:
                self._event_log.append(ModuleReloaded(
                    path=str(key),
                    exports=len(new.exports),
                    duration_ms=duration_ms,
                    timestamp_ns=now_ns(),
                ))

            update = ModuleUpdate(file_path=key, old_module=old, new_module=new)
            await self._publish(self._subscribers, update)
            return update

    async def handle_event(self, event: ChangeEvent) -> ModuleUpdate | None:
        """Handle one watcher event; non-content events are ignored."""
        if not event.is_content_change:
            return None
        key = resolve_path(event.path)
        if key not in self._watched:
            return None
        return await self.handle_change(key)

    async def _report_failure(self, old: LoadedModule, error: ModuleReloadError) -> None:
        rel = display_path(error.path, self._display_root)
        self._logger(
            f"  Reload error: {rel}: {type(error.cause).__name__}: {error.cause} "
            f"(keeping previous version)"
        )
        if self._event_log is not None:
            self._event_log.append(ModuleReloadFailed(
                path=str(error.path),
                error=f"{type(error.cause).__name__}: {error.cause}",
                timestamp_ns=now_ns(),
            ))
        failure = ModuleReloadFailure(file_path=error.path, old_module=old, error=error)
        await self._publish(self._failure_subscribers, failure)

    async def _publish(self, subscribers: list[Subscriber], payload: object) -> None:
        for callback in tuple(subscribers):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                name = getattr(callback, "__qualname__", repr(callback))
                self._logger(f"  Subscriber error ({name}): {type(exc).__name__}: {exc}")

    # -- watch loop --

    def _spawn(self, event: ChangeEvent) -> None:
        task = asyncio.create_task(self.handle_event(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def run(self) -> None:
        """Consume watcher events until ``stop()`` is called.

        Each relevant event gets its own task; per-path locks keep reloads of
        the same file ordered.  In-flight reloads finish before this returns.

        """
        self._watcher.bind()
        self._bound.set()
        try:
            async for event in self._watcher.changes():
                self._spawn(event)
        except OSError as exc:
            error = WatchSetupError(f"cannot watch {self._watcher.roots}: {exc}")
            self._logger(f"  Watch error: {error} (hot reload disabled)")
        finally:
            if self._tasks:
                await asyncio.gather(*tuple(self._tasks), return_exceptions=True)

    @property
    def is_running(self) -> bool:
        """Whether the background watch thread is active."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Run the watch loop on a background thread with its own event loop."""
        if self.is_running:
            return
        self._bound.clear()
        self._thread = threading.Thread(
            target=asyncio.run,
            args=(self.run(),),
            name="burrow-watcher",
            daemon=True,
        )
        self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop delivering events and wait for in-flight reloads to finish."""
        if self._thread is None:
            self._watcher.stop()
            return
        if self._bound.wait(timeout):
            self._watcher.stop_threadsafe()
        self._thread.join(timeout=timeout)
        self._thread = None
