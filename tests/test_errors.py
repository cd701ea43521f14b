"""Tests for burrow._errors — error hierarchy and messages."""

from pathlib import Path

import pytest

from burrow._errors import (
    BurrowError,
    ConfigError,
    InvalidPathError,
    ModuleLoadError,
    ModuleReloadError,
    RouteLoadError,
    WatchSetupError,
)


class TestHierarchy:
    """Every burrow error is catchable as BurrowError."""

    @pytest.mark.parametrize(
        "error",
        [
            ConfigError("bad"),
            InvalidPathError("bad"),
            WatchSetupError("bad"),
            ModuleLoadError(Path("/app/get.py"), ValueError("bad")),
            ModuleReloadError(Path("/app/get.py"), ValueError("bad")),
            RouteLoadError(Path("/app/get.py"), "get", ValueError("bad")),
        ],
    )
    def test_is_burrow_error(self, error: BurrowError) -> None:
        assert isinstance(error, BurrowError)
        assert isinstance(error, Exception)


class TestMessages:
    """Error attributes and rendered messages."""

    def test_module_load_error(self) -> None:
        cause = SyntaxError("invalid syntax")
        err = ModuleLoadError(Path("/app/get.py"), cause)
        assert err.path == Path("/app/get.py")
        assert err.cause is cause
        assert str(err) == "Failed to load /app/get.py: SyntaxError: invalid syntax"

    def test_route_load_error_with_pattern(self) -> None:
        err = RouteLoadError(
            Path("/app/users/[id]/get.py"), "get", KeyError("x"), pattern="/users/:id",
        )
        assert err.method == "get"
        assert err.pattern == "/users/:id"
        assert str(err).startswith("GET /users/:id (/app/users/[id]/get.py): ")

    def test_route_load_error_without_pattern(self) -> None:
        err = RouteLoadError(Path("/app/get.py"), "post", ValueError("boom"))
        assert err.pattern is None
        assert str(err) == "POST (/app/get.py): boom"

    def test_module_reload_error(self) -> None:
        err = ModuleReloadError(Path("/app/get.py"), RuntimeError("half-saved"))
        assert isinstance(err.cause, RuntimeError)
        assert str(err) == "Reload of /app/get.py failed: half-saved"
