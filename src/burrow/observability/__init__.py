"""Observability — diagnostic events for route building and hot reload.

Quick Start:
    >>> from burrow.observability import EventLog, ModuleReloaded
    >>> log = EventLog()
    >>> # pass log to Burrow / HotModuleRegistry / LiveSwapper
    >>> log.query(event_type=ModuleReloaded)

"""

from burrow.observability.events import (
    BurrowEvent,
    HandlerSwapped,
    ModuleReloaded,
    ModuleReloadFailed,
    RouteRegistered,
    RouteSkipped,
    now_ns,
)
from burrow.observability.log import EventLog

__all__ = [
    "BurrowEvent",
    "EventLog",
    "HandlerSwapped",
    "ModuleReloadFailed",
    "ModuleReloaded",
    "RouteRegistered",
    "RouteSkipped",
    "now_ns",
]
