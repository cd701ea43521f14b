"""Burrow error hierarchy.

All burrow-specific errors inherit from BurrowError for easy catching.
"""

from pathlib import Path


class BurrowError(Exception):
    """Base error for all burrow operations."""


class ConfigError(BurrowError):
    """Invalid configuration or missing app root (fatal at startup)."""


class InvalidPathError(BurrowError):
    """A path handed to the path codec does not live under the app root."""


class ModuleLoadError(BurrowError):
    """A source file could not be imported."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Failed to load {path}: {type(cause).__name__}: {cause}")


class RouteLoadError(BurrowError):
    """A single route file failed to import or register.

    Recovered locally: the route is skipped and the tree walk continues.
    """

    def __init__(
        self,
        path: Path,
        method: str,
        cause: BaseException,
        *,
        pattern: str | None = None,
    ) -> None:
        self.path = path
        self.method = method
        self.pattern = pattern
        self.cause = cause
        target = f"{method.upper()} {pattern}" if pattern else method.upper()
        super().__init__(f"{target} ({path}): {cause}")


class WatchSetupError(BurrowError):
    """A path cannot be watched; hot reload is disabled for that path only."""


class ModuleReloadError(BurrowError):
    """A hot-reloaded module failed to import; the previous module keeps serving."""

    def __init__(self, path: Path, cause: BaseException) -> None:
        self.path = path
        self.cause = cause
        super().__init__(f"Reload of {path} failed: {cause}")
