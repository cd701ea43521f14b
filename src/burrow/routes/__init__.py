"""Route discovery — file-system conventions to dispatcher registrations.

Public API::

    from burrow.routes import RouteTableBuilder, to_route_pattern

    to_route_pattern(app / "users" / "[id]" / "get.py", app)   # "/users/:id"
    table = RouteTableBuilder(app, dispatcher, cache).build()
"""

from burrow.routes.builder import (
    RouteRecord,
    RouteTable,
    RouteTableBuilder,
    middleware_handlers,
    route_handler,
    walk_app_tree,
)
from burrow.routes.conventions import (
    METHOD_NAMES,
    ROOT_GROUP,
    resolve_group,
    route_method,
    to_group_label,
    to_route_pattern,
)
from burrow.routes.middleware import (
    MIDDLEWARE_FILENAME,
    MiddlewareIndex,
    discover_middlewares,
)

__all__ = [
    "METHOD_NAMES",
    "MIDDLEWARE_FILENAME",
    "ROOT_GROUP",
    "MiddlewareIndex",
    "RouteRecord",
    "RouteTable",
    "RouteTableBuilder",
    "discover_middlewares",
    "middleware_handlers",
    "resolve_group",
    "route_handler",
    "route_method",
    "to_group_label",
    "to_route_pattern",
    "walk_app_tree",
]
