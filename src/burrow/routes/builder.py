"""Route table builder — walk the app tree and register handler chains.

Every ``get.py`` / ``post.py`` / ``put.py`` / ``delete.py`` below the app
root becomes one dispatcher registration::

    app/
    ├── middlewares.py          (runs before every route below app/)
    ├── get.py                  -> GET  /
    ├── (admin)/
    │   └── stats/get.py        -> GET  /stats          group "admin"
    └── users/
        ├── middlewares.py      (overrides app/middlewares.py here)
        ├── post.py             -> POST /users
        └── [id]/get.py         -> GET  /users/:id

Handler convention — a route file exports ``handler``, or a function named
after its method::

    async def handler(request): ...     # preferred
    async def get(request): ...         # also accepted in get.py

A route that fails to import or register is logged and skipped; the rest of
the tree still loads.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from burrow._errors import ConfigError, RouteLoadError
from burrow.banner import console, display_path
from burrow.observability.events import RouteRegistered, RouteSkipped, now_ns
from burrow.routes.conventions import (
    HANDLER_EXPORT,
    ROOT_GROUP,
    route_method,
    to_group_label,
    to_route_pattern,
)
from burrow.routes.middleware import (
    MIDDLEWARE_EXPORT,
    MiddlewareIndex,
    discover_middlewares,
)

if TYPE_CHECKING:
    from burrow._types import GroupLabel, Handler, HTTPMethod, Logger, RoutePattern, SourcePath
    from burrow.dispatch import Dispatcher
    from burrow.modules.cache import LoadedModule
    from burrow.observability.log import EventLog

_SKIP_DIRS: frozenset[str] = frozenset({"__pycache__"})


class ModuleLoader(Protocol):
    """Anything that turns a source path into a LoadedModule."""

    def load(self, path: Path) -> LoadedModule: ...


@dataclass(frozen=True, slots=True)
class RouteRecord:
    """One registered route, kept for reporting.

    Attributes:
        method: Upper-case HTTP method.
        pattern: URL pattern (e.g. ``/users/:id``).
        middleware: Bound middleware file, or None.
        source: The route file.

    """

    method: HTTPMethod
    pattern: RoutePattern
    middleware: SourcePath | None
    source: SourcePath


@dataclass(slots=True)
class RouteTable:
    """Group label -> registered routes, plus the routes that were skipped.

    Reporting only; dispatch order belongs to the dispatcher.

    """

    groups: dict[GroupLabel, list[RouteRecord]] = field(default_factory=dict)
    skipped: list[RouteLoadError] = field(default_factory=list)

    def add(self, group: GroupLabel, record: RouteRecord) -> None:
        """Append *record* under *group*."""
        self.groups.setdefault(group, []).append(record)

    def items(self) -> Iterator[tuple[str, list[RouteRecord]]]:
        """Iterate (group, records) pairs in insertion order."""
        return iter(self.groups.items())

    def records(self) -> list[RouteRecord]:
        """Every record across groups."""
        return [record for records in self.groups.values() for record in records]

    def __len__(self) -> int:
        return sum(len(records) for records in self.groups.values())


@dataclass(frozen=True, slots=True)
class _RouteFile:
    path: Path
    method: str
    group: str


def walk_app_tree(app_root: Path) -> list[_RouteFile]:
    """Collect route files with their inherited group labels.

    Uses an explicit stack of ``(directory, group)`` so deep trees never hit
    the recursion limit.  Entries are visited in sorted order.

    """
    routes: list[_RouteFile] = []
    pending: list[tuple[Path, str]] = [(app_root, ROOT_GROUP)]

    while pending:
        current, group = pending.pop()
        subdirs: list[tuple[Path, str]] = []
        for entry in sorted(current.iterdir()):
            if entry.is_dir():
                if entry.name in _SKIP_DIRS or entry.name.startswith("."):
                    continue
                subdirs.append((entry, to_group_label(entry.name) or group))
                continue

            method = route_method(entry.name)
            if method is not None:
                routes.append(_RouteFile(path=entry, method=method, group=group))

        # Reverse so the stack pops subdirectories in sorted order
        pending.extend(reversed(subdirs))

    return routes


class RouteTableBuilder:
    """Walks the app tree and registers routes with a dispatcher.

    Args:
        app_root: The app root directory (``<directory>/app``).
        dispatcher: Receives ``register_handler`` calls.
        loader: ModuleCache, or HotModuleRegistry when hot reload is on.
        logger: Sink for skipped-route warnings.
        display_root: Base directory for shortening paths in log lines.
        event_log: Optional event store for registration diagnostics.

    """

    def __init__(
        self,
        app_root: Path,
        dispatcher: Dispatcher,
        loader: ModuleLoader,
        *,
        logger: Logger = console,
        display_root: Path | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        self._app_root = app_root
        self._dispatcher = dispatcher
        self._loader = loader
        self._logger = logger
        self._display_root = display_root or app_root.parent
        self._event_log = event_log
        self.index = MiddlewareIndex(app_root)

    def build(self) -> RouteTable:
        """Register every route below the app root and return the table.

        Raises:
            ConfigError: If the app root does not exist.

        """
        if not self._app_root.is_dir():
            msg = f"App directory not found: {self._app_root}"
            raise ConfigError(msg)

        # Middleware bindings are resolved against the full index, so build it first
        self.index.build(discover_middlewares(self._app_root))
        route_files = walk_app_tree(self._app_root)

        table = RouteTable()
        for route_file in route_files:
            try:
                record = self._register(route_file)
            except RouteLoadError as exc:
                self._skip(table, exc)
                continue
            table.add(route_file.group, record)
            if self._event_log is not None:
                self._event_log.append(RouteRegistered(
                    method=record.method,
                    pattern=record.pattern,
                    group=route_file.group,
                    source=str(record.source),
                    middleware=str(record.middleware or ""),
                    timestamp_ns=now_ns(),
                ))
        return table

    def _register(self, route_file: _RouteFile) -> RouteRecord:
        path, method = route_file.path, route_file.method.upper()
        pattern = to_route_pattern(path, self._app_root)
        middleware_path = self.index.resolve(path)

        try:
            handler = route_handler(self._loader.load(path), route_file.method)
            chain: list[Handler] = []
            if middleware_path is not None:
                chain.extend(middleware_handlers(self._loader.load(middleware_path)))
            chain.append(handler)
            self._dispatcher.register_handler(method, pattern, chain)
        except Exception as exc:
            raise RouteLoadError(path, method, exc, pattern=pattern) from exc

        return RouteRecord(
            method=method,
            pattern=pattern,
            middleware=middleware_path,
            source=path,
        )

    def _skip(self, table: RouteTable, error: RouteLoadError) -> None:
        table.skipped.append(error)
        rel = display_path(error.path, self._display_root)
        self._logger(f"  Route skipped: {error.method} {error.pattern} ({rel}): {error.cause}")
        if self._event_log is not None:
            self._event_log.append(RouteSkipped(
                method=error.method,
                source=str(error.path),
                error=str(error.cause),
                timestamp_ns=now_ns(),
            ))


def route_handler(module: LoadedModule, method: str) -> Handler:
    """Pick the route handler export from a loaded route file.

    Raises:
        LookupError: If the module exports neither ``handler`` nor *method*.

    """
    for name in (HANDLER_EXPORT, method.lower()):
        func = module.get(name)
        if func is not None:
            return func
    msg = f"{module.path.name} must export '{HANDLER_EXPORT}' or '{method.lower()}'"
    raise LookupError(msg)


def middleware_handlers(module: LoadedModule) -> tuple[Handler, ...]:
    """Return the middleware chain exported by a middleware file.

    Raises:
        TypeError: If ``middlewares`` is missing, not a sequence, or holds a
            non-callable.

    """
    chain = getattr(module.module, MIDDLEWARE_EXPORT, None)
    if not isinstance(chain, Sequence) or isinstance(chain, (str, bytes)):
        msg = (
            f"{module.path.name} must define '{MIDDLEWARE_EXPORT}' as a list of "
            f"callables, got {type(chain).__name__}"
        )
        raise TypeError(msg)
    for index, func in enumerate(chain):
        if not callable(func):
            msg = f"{module.path.name}: '{MIDDLEWARE_EXPORT}' holds a non-callable at index {index}"
            raise TypeError(msg)
    return module.middleware_chain()
