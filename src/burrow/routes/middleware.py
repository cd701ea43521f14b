"""Middleware index — nearest enclosing ``middlewares.py`` for each route.

Middleware inherits down the directory tree and the most specific file wins::

    app/middlewares.py               applies to every route ...
    app/users/middlewares.py         ... except those under app/users/
    app/users/[id]/get.py            -> app/users/middlewares.py
    app/posts/get.py                 -> app/middlewares.py

A middleware module exports an ordered ``middlewares`` sequence of
callables; the route builder runs them before the route handler.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

from burrow.routes.conventions import relative_parts

MIDDLEWARE_FILENAME = "middlewares.py"

# Name of the exported sequence inside a middleware module
MIDDLEWARE_EXPORT = "middlewares"

_SKIP_DIRS: frozenset[str] = frozenset({"__pycache__"})


def discover_middlewares(app_root: Path) -> list[Path]:
    """Return every middleware file below *app_root*, in sorted walk order."""
    found: list[Path] = []
    pending: list[Path] = [app_root]

    while pending:
        current = pending.pop()
        for entry in sorted(current.iterdir(), reverse=True):
            if entry.is_dir():
                if not _skip_dir(entry.name):
                    pending.append(entry)
            elif entry.name == MIDDLEWARE_FILENAME:
                found.append(entry)

    return found


class MiddlewareIndex:
    """Resolves a route file to its nearest enclosing middleware file.

    Args:
        app_root: The app root directory all paths are relative to.
        middlewares: Known middleware file paths, in enumeration order.

    """

    __slots__ = ("_app_root", "_entries")

    def __init__(self, app_root: Path, middlewares: Iterable[Path] = ()) -> None:
        self._app_root = app_root
        self._entries: list[tuple[Path, tuple[str, ...]]] = []
        self.build(middlewares)

    def build(self, middlewares: Iterable[Path]) -> None:
        """Replace the index contents with *middlewares*."""
        self._entries = [
            (path, relative_parts(path, self._app_root)) for path in middlewares
        ]

    @property
    def paths(self) -> tuple[Path, ...]:
        """Indexed middleware files, in enumeration order."""
        return tuple(path for path, _ in self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def resolve(self, route_file: Path) -> Path | None:
        """Return the deepest middleware whose directory encloses *route_file*.

        The shared prefix is measured in directory segments, stopping one short
        of each path's own final segment (the file name).  A middleware only
        qualifies when the prefix reaches its own directory.  Ties go to the
        last one enumerated.

        """
        route_parts = relative_parts(route_file, self._app_root)
        selected: Path | None = None
        max_depth = 0

        for path, parts in self._entries:
            depth = 0
            while (
                depth < len(parts) - 1
                and depth < len(route_parts) - 1
                and parts[depth] == route_parts[depth]
            ):
                depth += 1

            if parts[depth] == MIDDLEWARE_FILENAME and depth >= max_depth:
                max_depth = depth
                selected = path

        return selected


def _skip_dir(name: str) -> bool:
    return name in _SKIP_DIRS or name.startswith(".")
