"""Module cache — isolated loading of route and middleware source files.

Each file is compiled from the bytes on disk (no bytecode cache, so rapid
edits are never masked by a stale ``.pyc``) and executed into a fresh module
registered under a synthetic name inside the ``burrow_modules`` namespace.
Every exported callable is recorded in a :class:`ProvenanceTable` with the
file it came from and the name it was exported under; that record is the
join key used later to find which installed dispatcher handlers a reload
must replace.

Route files are not packages: ``from . import helpers`` fails with
``ImportError``.  Code shared between route files lives in a regular
package importable from ``sys.path``; edits to it are not hot reloaded.

Thread Safety:
    Writes to the cache map are protected by a ``threading.Lock``.  Readers
    never lock: a :class:`LoadedModule` is immutable and replaced wholesale
    on reload, so a reader holding the previous instance keeps a complete,
    valid snapshot.

"""

from __future__ import annotations

import hashlib
import importlib.machinery
import importlib.util
import inspect
import linecache
import sys
import threading
import time
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType, ModuleType
from typing import Any

from burrow._errors import ModuleLoadError
from burrow.routes.conventions import HANDLER_EXPORT, METHOD_NAMES
from burrow.routes.middleware import MIDDLEWARE_EXPORT

_MODULE_PREFIX = "burrow_modules"

# Exported whenever callable, wherever the object was defined
_ROUTE_EXPORTS: tuple[str, ...] = (HANDLER_EXPORT, *sorted(METHOD_NAMES))


class _SourceBytesLoader(importlib.machinery.SourceFileLoader):
    """Source loader that runs the bytes it was given and never a ``.pyc``."""

    def __init__(self, fullname: str, path: str, data: bytes) -> None:
        super().__init__(fullname, path)
        self._data = data

    def get_code(self, fullname: str) -> Any:
        return self.source_to_code(self._data, self.path)

    def get_source(self, fullname: str) -> str:
        return self._data.decode("utf-8", errors="replace")


@dataclass(frozen=True, slots=True)
class Provenance:
    """Where an installed handler came from.

    Attributes:
        source_path: Resolved absolute path of the defining file.
        export_name: Name the callable was exported under.

    """

    source_path: Path
    export_name: str


class ProvenanceTable:
    """Side table mapping callable identity to its :class:`Provenance`.

    Callables are never mutated.  The table keeps a strong reference to each
    tagged callable so an ``id()`` can never be recycled while its entry lives.

    """

    __slots__ = ("_entries", "_lock")

    def __init__(self) -> None:
        self._entries: dict[int, tuple[object, Provenance]] = {}
        self._lock = threading.Lock()

    def tag(self, obj: object, provenance: Provenance) -> None:
        """Record *provenance* for *obj*, replacing any previous record."""
        with self._lock:
            self._entries[id(obj)] = (obj, provenance)

    def lookup(self, obj: object) -> Provenance | None:
        """Return the provenance recorded for *obj*, if any."""
        entry = self._entries.get(id(obj))
        if entry is None or entry[0] is not obj:
            return None
        return entry[1]

    def forget(self, source_path: Path, keep: Callable[[object], bool]) -> int:
        """Drop records for *source_path* whose callable fails *keep*.

        Returns the number of records removed.

        """
        with self._lock:
            stale = [
                key
                for key, (obj, prov) in self._entries.items()
                if prov.source_path == source_path and not keep(obj)
            ]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True, slots=True)
class LoadedModule:
    """Immutable snapshot of one imported source file.

    Attributes:
        path: Resolved absolute path of the source file.
        name: Synthetic module name used in ``sys.modules``.
        module: The executed module object.
        exports: Exported callables by name, in definition order.
        fingerprints: SHA-256 of each export's source text.
        source_hash: SHA-256 of the file bytes that were executed.
        loaded_at: Wall-clock time the module was (re)loaded.

    """

    path: Path
    name: str
    module: ModuleType = field(compare=False, repr=False)
    exports: Mapping[str, Callable[..., Any]] = field(compare=False, repr=False)
    fingerprints: Mapping[str, str] = field(compare=False, repr=False)
    source_hash: str
    loaded_at: float = field(compare=False)

    def get(self, export_name: str) -> Callable[..., Any] | None:
        """Return the export named *export_name*, or None."""
        return self.exports.get(export_name)

    def middleware_chain(self) -> tuple[Callable[..., Any], ...]:
        """Return the ``middlewares[i]`` exports in order."""
        chain: list[Callable[..., Any]] = []
        index = 0
        while (func := self.exports.get(f"{MIDDLEWARE_EXPORT}[{index}]")) is not None:
            chain.append(func)
            index += 1
        return tuple(chain)


def hash_source(data: bytes) -> str:
    """Content hash used to tell real edits from metadata-only touches."""
    return hashlib.sha256(data).hexdigest()


def resolve_path(path: Path | str) -> Path:
    """Resolve *path* to the absolute key used by the cache."""
    return Path(path).resolve()


class ModuleCache:
    """Loads source files as isolated modules and caches them by path.

    Each server instance owns its own cache (and provenance table); nothing
    is shared at module level.

    """

    def __init__(self, provenance: ProvenanceTable | None = None) -> None:
        self.provenance = provenance if provenance is not None else ProvenanceTable()
        self._modules: dict[Path, LoadedModule] = {}
        self._reloaded_at: dict[Path, float] = {}
        self._lock = threading.Lock()

    def __contains__(self, path: object) -> bool:
        if not isinstance(path, (str, Path)):
            return False
        return resolve_path(path) in self._modules

    def __len__(self) -> int:
        return len(self._modules)

    @property
    def paths(self) -> tuple[Path, ...]:
        """Resolved paths of every cached module."""
        return tuple(self._modules)

    def get(self, path: Path | str) -> LoadedModule | None:
        """Return the cached module for *path* without importing."""
        return self._modules.get(resolve_path(path))

    def last_reload(self, path: Path | str) -> float | None:
        """Timestamp of the last successful reload of *path*, if any."""
        return self._reloaded_at.get(resolve_path(path))

    def load(self, path: Path | str) -> LoadedModule:
        """Import *path* once and return the cached module on later calls.

        Raises:
            ModuleLoadError: If the file cannot be read or executed.

        """
        key = resolve_path(path)
        cached = self._modules.get(key)
        if cached is not None:
            return cached

        with self._lock:
            cached = self._modules.get(key)
            if cached is None:
                cached = self._import(key)
                self._modules[key] = cached
        return cached

    def reload(self, path: Path | str) -> LoadedModule:
        """Re-import *path* from its current bytes and replace the cached module.

        On failure the previously cached module stays in place.

        Raises:
            ModuleLoadError: If the file cannot be read or executed.

        """
        key = resolve_path(path)
        fresh = self._import(key)
        with self._lock:
            self._modules[key] = fresh
            self._reloaded_at[key] = fresh.loaded_at
        return fresh

    # -- import machinery --

    def _import(self, path: Path) -> LoadedModule:
        name = _module_name(path)
        try:
            data = path.read_bytes()
        except OSError as exc:
            raise ModuleLoadError(path, exc) from exc

        _ensure_namespace()
        loader = _SourceBytesLoader(name, str(path), data)
        spec = importlib.util.spec_from_file_location(name, path, loader=loader)
        if spec is None or spec.loader is None:
            raise ModuleLoadError(path, ImportError(f"no import spec for {path}"))
        module = importlib.util.module_from_spec(spec)

        # Evict the previous instance so nothing resolves to stale code, and
        # register the exact executed lines so tracebacks and inspect agree.
        previous = sys.modules.pop(name, None)
        previous_lines = linecache.cache.get(str(path))
        _register_source(path, data)
        sys.modules[name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException as exc:
            if previous is not None:
                sys.modules[name] = previous
            else:
                sys.modules.pop(name, None)
            if previous_lines is not None:
                linecache.cache[str(path)] = previous_lines
            if not isinstance(exc, Exception):
                raise
            raise ModuleLoadError(path, exc) from exc

        exports = _collect_exports(module, name)
        fingerprints = {key: _fingerprint(func) for key, func in exports.items()}
        for export_name, func in exports.items():
            self.provenance.tag(func, Provenance(path, export_name))

        return LoadedModule(
            path=path,
            name=name,
            module=module,
            exports=MappingProxyType(exports),
            fingerprints=MappingProxyType(fingerprints),
            source_hash=hash_source(data),
            loaded_at=time.time(),
        )


def _module_name(path: Path) -> str:
    """Build a stable, unique module name for *path*."""
    digest = hashlib.sha1(str(path).encode(), usedforsecurity=False).hexdigest()[:12]
    stem = "".join(c if c.isalnum() else "_" for c in path.stem)
    return f"{_MODULE_PREFIX}.{stem}_{digest}"


def _ensure_namespace() -> None:
    """Register the ``burrow_modules`` parent so synthetic names resolve."""
    if _MODULE_PREFIX not in sys.modules:
        spec = importlib.machinery.ModuleSpec(_MODULE_PREFIX, None, is_package=True)
        sys.modules.setdefault(_MODULE_PREFIX, importlib.util.module_from_spec(spec))


def _register_source(path: Path, data: bytes) -> None:
    text = data.decode("utf-8", errors="replace")
    lines = text.splitlines(keepends=True)
    if lines and not lines[-1].endswith("\n"):
        lines[-1] += "\n"
    # mtime None: linecache.checkcache() leaves the entry alone
    linecache.cache[str(path)] = (len(data), None, lines, str(path))


def _collect_exports(module: ModuleType, name: str) -> dict[str, Callable[..., Any]]:
    """Gather exported callables in definition order.

    ``__all__`` wins when present; otherwise public callables defined in the
    module itself.  ``handler`` and method-named callables are always
    exported, even a ``functools.partial`` or an imported function.  A
    ``middlewares`` sequence is exported item by item.

    """
    namespace = module.__dict__
    exports: dict[str, Callable[..., Any]] = {}

    declared = namespace.get("__all__")
    if declared is not None:
        for key in declared:
            value = namespace.get(key)
            if callable(value):
                exports[key] = value
    else:
        for key, value in namespace.items():
            if key.startswith("_") or not callable(value):
                continue
            if key in _ROUTE_EXPORTS or getattr(value, "__module__", None) == name:
                exports[key] = value

    for key in _ROUTE_EXPORTS:
        value = namespace.get(key)
        if key not in exports and callable(value):
            exports[key] = value

    chain = namespace.get(MIDDLEWARE_EXPORT)
    if isinstance(chain, Sequence) and not isinstance(chain, (str, bytes)):
        for index, value in enumerate(chain):
            if callable(value):
                exports[f"{MIDDLEWARE_EXPORT}[{index}]"] = value

    return exports


def _fingerprint(func: object) -> str:
    """Hash the source text of *func*, falling back to its repr."""
    try:
        text = inspect.getsource(func)  # type: ignore[arg-type]
    except (OSError, TypeError):
        text = repr(func)
    return hashlib.sha256(text.encode()).hexdigest()
