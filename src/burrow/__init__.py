"""Burrow — file-system routing with live handler hot reload.

Derives routes, URL parameters, and middleware from the layout of an
``app/`` directory, registers them with a dispatcher, and swaps handlers in
place when their source files change.

Quick start::

    from burrow import HandlerStack, init

    stack = HandlerStack()
    init(stack, directory="my-project", verbose=True, hot_reload=True)

Layout conventions::

    app/get.py                  GET    /
    app/users/[id]/put.py       PUT    /users/:id
    app/(admin)/stats/get.py    GET    /stats        (group "admin")
    app/users/middlewares.py    middlewares = [auth, audit]

"""

__version__ = "0.1.0"
__all__ = [
    "Burrow",
    "BurrowConfig",
    "HandlerStack",
    "HotModuleRegistry",
    "LiveSwapper",
    "ModuleCache",
    "RouteTableBuilder",
    "__version__",
    "init",
    "load_config",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import burrow`` fast while providing a clean top-level API.
    """
    if name == "Burrow":
        from burrow.app import Burrow

        return Burrow

    if name == "init":
        from burrow.app import init

        return init

    if name == "BurrowConfig":
        from burrow.config import BurrowConfig

        return BurrowConfig

    if name == "load_config":
        from burrow.config_loader import load_config

        return load_config

    if name == "HandlerStack":
        from burrow.dispatch import HandlerStack

        return HandlerStack

    if name == "HotModuleRegistry":
        from burrow.modules.registry import HotModuleRegistry

        return HotModuleRegistry

    if name == "ModuleCache":
        from burrow.modules.cache import ModuleCache

        return ModuleCache

    if name == "LiveSwapper":
        from burrow.swapper import LiveSwapper

        return LiveSwapper

    if name == "RouteTableBuilder":
        from burrow.routes.builder import RouteTableBuilder

        return RouteTableBuilder

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
