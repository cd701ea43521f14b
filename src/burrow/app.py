"""Burrow application — file-system routes wired into a dispatcher.

Burrow owns one module cache, one provenance table, and (with hot reload)
one registry and swapper.  Nothing lives at module level, so several
instances can share a process without sharing reload state.

Quick start::

    from burrow import HandlerStack, init

    stack = HandlerStack()
    burrow = init(stack, directory=Path(__file__).parent, hot_reload=True)
    ...
    burrow.close()
"""

from __future__ import annotations

import time
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING

from burrow.banner import loading, print_routes
from burrow.config import BurrowConfig
from burrow.modules.cache import ModuleCache
from burrow.observability.log import EventLog
from burrow.routes.builder import RouteTable, RouteTableBuilder

if TYPE_CHECKING:
    from burrow.dispatch import Dispatcher
    from burrow.modules.registry import HotModuleRegistry
    from burrow.swapper import LiveSwapper


class Burrow:
    """Loads the ``app/`` tree into a dispatcher and keeps it hot.

    Args:
        dispatcher: External router receiving ``register_handler`` calls.
        config: Resolved configuration.

    """

    def __init__(self, dispatcher: Dispatcher, config: BurrowConfig | None = None) -> None:
        self.dispatcher = dispatcher
        self.config = config or BurrowConfig()
        self.app_path = self.config.app_path.resolve()
        self.events = EventLog()
        self.cache = ModuleCache()
        self.routes = RouteTable()
        self.registry: HotModuleRegistry | None = None
        self.swapper: LiveSwapper | None = None
        self.load_ms = 0.0

    def initialize(self, *, watch: bool = True) -> RouteTable:
        """Register every route; start watching when hot reload is enabled.

        Returns only after the whole tree is registered.  With *watch* False
        the registry is set up but its background watcher is not started;
        changes can then be fed through ``registry.handle_change()``.

        Raises:
            ConfigError: If the app directory does not exist.

        """
        config = self.config
        logger = config.logger
        t0 = time.perf_counter()

        if config.hot_reload:
            self._setup_hot_reload()

        builder = RouteTableBuilder(
            self.app_path,
            self.dispatcher,
            self.registry if self.registry is not None else self.cache,
            logger=logger,
            display_root=config.directory,
            event_log=self.events,
        )
        if config.verbose:
            with loading("Loading app routes…"):
                self.routes = builder.build()
        else:
            self.routes = builder.build()
        self.load_ms = (time.perf_counter() - t0) * 1000

        if config.verbose:
            print_routes(self.routes, config.directory, logger)
        else:
            logger("\nBURROW APP ROUTES LOADED")

        if self.registry is not None and watch:
            self.registry.start()
        return self.routes

    def _setup_hot_reload(self) -> None:
        from burrow.modules.registry import HotModuleRegistry
        from burrow.swapper import LiveSwapper

        config = self.config
        self.registry = HotModuleRegistry(
            [self.app_path],
            cache=self.cache,
            logger=config.logger,
            display_root=config.directory,
            debounce=config.debounce,
            event_log=self.events,
        )
        self.swapper = LiveSwapper(
            self.dispatcher,
            self.cache.provenance,
            granularity=config.swap_granularity,
            logger=config.logger,
            display_root=config.directory,
            event_log=self.events,
        )
        self.registry.subscribe(self.swapper.on_module_updated)

    def close(self) -> None:
        """Stop watching; in-flight reloads are allowed to finish."""
        if self.registry is not None:
            self.registry.stop()

    def __enter__(self) -> Burrow:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def init(
    dispatcher: Dispatcher,
    config: BurrowConfig | None = None,
    **overrides: object,
) -> Burrow:
    """Create a :class:`Burrow` for *dispatcher* and initialize it.

    Keyword overrides replace fields of *config* (or of the defaults), e.g.
    ``init(stack, directory=Path("site"), hot_reload=True)``.

    """
    base = config or BurrowConfig()
    if overrides:
        if "directory" in overrides and not isinstance(overrides["directory"], Path):
            overrides["directory"] = Path(str(overrides["directory"]))
        base = replace(base, **overrides)  # type: ignore[arg-type]
    burrow = Burrow(dispatcher, base)
    burrow.initialize()
    return burrow
