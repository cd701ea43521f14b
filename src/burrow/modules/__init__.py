"""Module layer — isolated loading, provenance, and hot reload.

Public API::

    from burrow.modules import HotModuleRegistry, ModuleCache

    registry = HotModuleRegistry([app_root])
    loaded = registry.load(app_root / "users" / "get.py")
    registry.subscribe(on_update)
    registry.start()
"""

from burrow.modules.cache import (
    LoadedModule,
    ModuleCache,
    Provenance,
    ProvenanceTable,
)
from burrow.modules.registry import (
    HotModuleRegistry,
    ModuleReloadFailure,
    ModuleUpdate,
)
from burrow.modules.watcher import ChangeEvent, ModuleWatcher

__all__ = [
    "ChangeEvent",
    "HotModuleRegistry",
    "LoadedModule",
    "ModuleCache",
    "ModuleReloadFailure",
    "ModuleUpdate",
    "ModuleWatcher",
    "Provenance",
    "ProvenanceTable",
]
