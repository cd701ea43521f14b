"""Live swapper — replace installed handlers after a module reload.

Subscribes to ``module:updated``.  For every dispatcher slot whose handler
came from the reloaded file, the export with the same name is looked up in
the new module and assigned into the slot.  Slots whose export did not
change are left alone.

What counts as a change depends on the granularity:

- ``"file"``: any content change of the file replaces every export from it,
  so handlers never keep calling stale helpers of the old module.
- ``"export"``: only exports whose own source text changed are replaced.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from burrow.banner import console, hot_reload_message
from burrow.observability.events import HandlerSwapped, now_ns

if TYPE_CHECKING:
    from burrow._types import Logger, SwapGranularity
    from burrow.dispatch import Dispatcher
    from burrow.modules.cache import LoadedModule, ProvenanceTable
    from burrow.modules.registry import ModuleUpdate
    from burrow.observability.log import EventLog


def export_changed(
    old: LoadedModule, new: LoadedModule, name: str, granularity: SwapGranularity,
) -> bool:
    """Decide whether export *name* must be swapped from *old* to *new*."""
    if granularity == "file":
        return old.source_hash != new.source_hash
    return old.fingerprints.get(name) != new.fingerprints.get(name)


class LiveSwapper:
    """Rewires a dispatcher's handler chains after reloads.

    Args:
        dispatcher: The router whose entries are patched in place.
        provenance: Side table identifying where installed handlers came from.
        granularity: ``"file"`` or ``"export"`` change detection.
        logger: Sink for the per-file ``HOT RELOAD`` line.
        display_root: Base directory for shortening paths in log lines.
        event_log: Optional event store for swap diagnostics.

    """

    def __init__(
        self,
        dispatcher: Dispatcher,
        provenance: ProvenanceTable,
        *,
        granularity: SwapGranularity = "file",
        logger: Logger = console,
        display_root: Path | None = None,
        event_log: EventLog | None = None,
    ) -> None:
        self._dispatcher = dispatcher
        self._provenance = provenance
        self._granularity = granularity
        self._logger = logger
        self._display_root = display_root or Path.cwd()
        self._event_log = event_log

    def __call__(self, update: ModuleUpdate) -> int:
        return self.on_module_updated(update)

    def on_module_updated(self, update: ModuleUpdate) -> int:
        """Swap handlers from ``update.file_path``; returns the slots replaced."""
        old, new = update.old_module, update.new_module
        swapped = 0
        names: list[str] = []
        installed: set[int] = set()

        for entry in self._dispatcher.entries:
            handlers = entry.handlers
            for index in range(len(handlers)):
                current = handlers[index]
                prov = self._provenance.lookup(current)
                if prov is None or prov.source_path != update.file_path:
                    continue

                replacement = new.get(prov.export_name)
                if replacement is None or replacement is current:
                    installed.add(id(current))
                    continue
                if not export_changed(old, new, prov.export_name, self._granularity):
                    installed.add(id(current))
                    continue

                handlers[index] = replacement
                installed.add(id(replacement))
                swapped += 1
                if prov.export_name not in names:
                    names.append(prov.export_name)

        self._forget_stale(update, installed)

        if swapped:
            self._logger(hot_reload_message(update.file_path, self._display_root, swapped))
            if self._event_log is not None:
                self._event_log.append(HandlerSwapped(
                    path=str(update.file_path),
                    swapped=swapped,
                    exports=tuple(names),
                    timestamp_ns=now_ns(),
                ))
        return swapped

    def _forget_stale(self, update: ModuleUpdate, installed: set[int]) -> None:
        """Drop provenance of callables from this file that nothing uses anymore."""
        current: set[int] = {id(func) for func in update.new_module.exports.values()}
        keep_ids = current | installed

        def _keep(obj: object) -> bool:
            return id(obj) in keep_ids

        self._provenance.forget(update.file_path, _keep)
