"""Tests for burrow.routes.builder — tree walk and dispatcher registration."""

from __future__ import annotations

from pathlib import Path

import pytest

from burrow._errors import ConfigError, RouteLoadError
from burrow.dispatch import HandlerStack
from burrow.modules.cache import ModuleCache
from burrow.observability import EventLog, RouteRegistered, RouteSkipped
from burrow.routes.builder import (
    RouteRecord,
    RouteTable,
    RouteTableBuilder,
    walk_app_tree,
)

from .conftest import LogCollector, write_file, write_route


def _build(app: Path, log: LogCollector, **kwargs: object) -> tuple[HandlerStack, RouteTable]:
    stack = HandlerStack()
    builder = RouteTableBuilder(app, stack, ModuleCache(), logger=log, **kwargs)
    return stack, builder.build()


def _call_chain(stack: HandlerStack, method: str, path: str) -> list[str]:
    match = stack.resolve(method, path)
    assert match is not None, f"no route for {method} {path}"
    return [handler(None) for handler in match.handlers]


# ---------------------------------------------------------------------------
# walk_app_tree
# ---------------------------------------------------------------------------


class TestWalkAppTree:
    """walk_app_tree — route files with inherited groups."""

    def test_collects_route_files(self, sample_app: Path) -> None:
        found = {(f.path.relative_to(sample_app).as_posix(), f.method, f.group)
                 for f in walk_app_tree(sample_app)}
        assert found == {
            ("get.py", "get", "root"),
            ("(admin)/stats/get.py", "get", "admin"),
            ("posts/get.py", "get", "root"),
            ("users/post.py", "post", "root"),
            ("users/[id]/get.py", "get", "root"),
        }

    def test_sorted_order(self, sample_app: Path) -> None:
        paths = [f.path.relative_to(sample_app).as_posix() for f in walk_app_tree(sample_app)]
        assert paths == [
            "get.py",
            "(admin)/stats/get.py",
            "posts/get.py",
            "users/post.py",
            "users/[id]/get.py",
        ]

    def test_nested_group_overrides_outer(self, app_dir: Path) -> None:
        write_route(app_dir, "(outer)/a/(inner)/b/get.py")
        write_route(app_dir, "(outer)/c/get.py")
        groups = {f.path.relative_to(app_dir).as_posix(): f.group for f in walk_app_tree(app_dir)}
        assert groups == {
            "(outer)/a/(inner)/b/get.py": "inner",
            "(outer)/c/get.py": "outer",
        }

    def test_ignores_non_route_files(self, app_dir: Path) -> None:
        write_file(app_dir, "users/helpers.py", "X = 1\n")
        write_file(app_dir, "users/readme.md", "# users\n")
        assert walk_app_tree(app_dir) == []

    def test_skips_pycache_and_hidden(self, app_dir: Path) -> None:
        write_route(app_dir, "__pycache__/get.py")
        write_route(app_dir, ".drafts/get.py")
        assert walk_app_tree(app_dir) == []

    def test_deep_tree(self, app_dir: Path) -> None:
        relative = "/".join(f"d{i}" for i in range(60)) + "/get.py"
        write_route(app_dir, relative)
        assert len(walk_app_tree(app_dir)) == 1


# ---------------------------------------------------------------------------
# RouteTable
# ---------------------------------------------------------------------------


class TestRouteTable:
    """RouteTable — grouped records for reporting."""

    def test_add_and_len(self) -> None:
        table = RouteTable()
        record = RouteRecord("GET", "/", None, Path("/app/get.py"))
        table.add("root", record)
        table.add("admin", record)
        assert len(table) == 2
        assert [group for group, _ in table.items()] == ["root", "admin"]
        assert table.records() == [record, record]


# ---------------------------------------------------------------------------
# RouteTableBuilder
# ---------------------------------------------------------------------------


class TestRouteTableBuilder:
    """RouteTableBuilder.build — registration with middleware chains."""

    def test_registers_every_route(self, sample_app: Path, log: LogCollector) -> None:
        stack, table = _build(sample_app, log)
        assert len(stack) == 5
        assert len(table) == 5
        assert table.skipped == []
        registered = {(e.method, e.pattern) for e in stack.entries}
        assert registered == {
            ("GET", "/"),
            ("GET", "/stats"),
            ("GET", "/posts"),
            ("POST", "/users"),
            ("GET", "/users/:id"),
        }

    def test_middleware_runs_before_handler(self, sample_app: Path, log: LogCollector) -> None:
        stack, _ = _build(sample_app, log)
        assert _call_chain(stack, "GET", "/users/42") == ["users_mw", "users/[id]/get.py"]
        assert _call_chain(stack, "POST", "/users") == ["users_mw", "users/post.py"]
        assert _call_chain(stack, "GET", "/posts") == ["root_mw", "posts/get.py"]
        assert _call_chain(stack, "GET", "/stats") == ["root_mw", "(admin)/stats/get.py"]

    def test_route_without_middleware(self, app_dir: Path, log: LogCollector) -> None:
        write_route(app_dir, "posts/get.py")
        stack, table = _build(app_dir, log)
        assert _call_chain(stack, "GET", "/posts") == ["posts/get.py"]
        assert table.records()[0].middleware is None

    def test_multiple_middlewares_keep_order(self, app_dir: Path, log: LogCollector) -> None:
        write_file(
            app_dir,
            "middlewares.py",
            "def first(request):\n    return 'first'\n\n"
            "def second(request):\n    return 'second'\n\n"
            "middlewares = [first, second]\n",
        )
        write_route(app_dir, "get.py", "home")
        stack, _ = _build(app_dir, log)
        assert _call_chain(stack, "GET", "/") == ["first", "second", "home"]

    def test_groups_in_table(self, sample_app: Path, log: LogCollector) -> None:
        _, table = _build(sample_app, log)
        assert [r.pattern for r in table.groups["admin"]] == ["/stats"]
        assert len(table.groups["root"]) == 4

    def test_method_named_export(self, app_dir: Path, log: LogCollector) -> None:
        write_file(app_dir, "items/delete.py", "def delete(request):\n    return 'gone'\n")
        stack, _ = _build(app_dir, log)
        assert _call_chain(stack, "DELETE", "/items") == ["gone"]

    def test_handler_export_preferred(self, app_dir: Path, log: LogCollector) -> None:
        write_file(
            app_dir,
            "get.py",
            "def get(request):\n    return 'get'\n\n"
            "def handler(request):\n    return 'handler'\n",
        )
        stack, _ = _build(app_dir, log)
        assert _call_chain(stack, "GET", "/") == ["handler"]

    def test_partial_handler(self, app_dir: Path, log: LogCollector) -> None:
        write_file(
            app_dir,
            "greet/get.py",
            "from functools import partial\n\n"
            "def _greet(request, greeting):\n    return greeting\n\n"
            "handler = partial(_greet, greeting='hi')\n",
        )
        stack, table = _build(app_dir, log)
        assert table.skipped == []
        assert _call_chain(stack, "GET", "/greet") == ["hi"]

    def test_imported_handler(self, app_dir: Path, log: LogCollector) -> None:
        write_file(app_dir, "dump/post.py", "from json import dumps as handler\n")
        stack, table = _build(app_dir, log)
        assert table.skipped == []
        assert _call_chain(stack, "POST", "/dump") == ["null"]

    def test_imported_method_named_handler(self, app_dir: Path, log: LogCollector) -> None:
        write_file(app_dir, "echo/put.py", "from json import dumps as put\n")
        stack, _ = _build(app_dir, log)
        assert _call_chain(stack, "PUT", "/echo") == ["null"]

    def test_broken_route_is_skipped(self, app_dir: Path, log: LogCollector) -> None:
        write_route(app_dir, "ok/get.py", "ok")
        write_file(app_dir, "broken/get.py", "def handler(request:\n")
        stack, table = _build(app_dir, log)

        assert [(e.method, e.pattern) for e in stack.entries] == [("GET", "/ok")]
        assert len(table.skipped) == 1
        error = table.skipped[0]
        assert isinstance(error, RouteLoadError)
        assert error.method == "GET"
        assert error.pattern == "/broken"
        assert log.matching("Route skipped: GET /broken")

    def test_route_raising_on_import_is_skipped(self, app_dir: Path, log: LogCollector) -> None:
        write_file(app_dir, "boom/post.py", "raise RuntimeError('boom')\n")
        write_route(app_dir, "get.py", "home")
        stack, table = _build(app_dir, log)
        assert len(stack) == 1
        assert "boom" in str(table.skipped[0].cause)

    def test_missing_handler_is_skipped(self, app_dir: Path, log: LogCollector) -> None:
        write_file(app_dir, "get.py", "VALUE = 1\n")
        stack, table = _build(app_dir, log)
        assert len(stack) == 0
        assert isinstance(table.skipped[0].cause, LookupError)

    def test_bad_middlewares_export_skips_routes(self, app_dir: Path, log: LogCollector) -> None:
        write_file(app_dir, "middlewares.py", "middlewares = 'auth'\n")
        write_route(app_dir, "get.py")
        stack, table = _build(app_dir, log)
        assert len(stack) == 0
        assert isinstance(table.skipped[0].cause, TypeError)

    def test_non_callable_middleware_skips_routes(self, app_dir: Path, log: LogCollector) -> None:
        write_file(app_dir, "middlewares.py", "middlewares = [1]\n")
        write_route(app_dir, "get.py")
        _, table = _build(app_dir, log)
        assert "non-callable" in str(table.skipped[0].cause)

    def test_dispatcher_rejection_is_skipped(self, app_dir: Path, log: LogCollector) -> None:
        class Rejecting(HandlerStack):
            def register_handler(self, method, pattern, handlers):  # type: ignore[override]
                if pattern == "/private":
                    raise ValueError("not allowed")
                super().register_handler(method, pattern, handlers)

        write_route(app_dir, "private/get.py")
        write_route(app_dir, "public/get.py")
        stack = Rejecting()
        table = RouteTableBuilder(app_dir, stack, ModuleCache(), logger=log).build()
        assert [e.pattern for e in stack.entries] == ["/public"]
        assert str(table.skipped[0].cause) == "not allowed"

    def test_missing_app_root(self, tmp_path: Path, log: LogCollector) -> None:
        builder = RouteTableBuilder(tmp_path / "app", HandlerStack(), ModuleCache(), logger=log)
        with pytest.raises(ConfigError, match="App directory not found"):
            builder.build()

    def test_empty_app(self, app_dir: Path, log: LogCollector) -> None:
        stack, table = _build(app_dir, log)
        assert len(stack) == 0
        assert len(table) == 0

    def test_middleware_module_loaded_once(self, sample_app: Path, log: LogCollector) -> None:
        cache = ModuleCache()
        RouteTableBuilder(sample_app, HandlerStack(), cache, logger=log).build()
        # 5 routes + 2 middleware files
        assert len(cache) == 7

    def test_records_events(self, sample_app: Path, log: LogCollector) -> None:
        write_file(sample_app, "broken/get.py", "def handler(:\n")
        events = EventLog()
        _build(sample_app, log, event_log=events)
        assert len(events.query(event_type=RouteRegistered)) == 5
        skipped = events.query(event_type=RouteSkipped)
        assert len(skipped) == 1
        assert skipped[0].method == "GET"
