"""Tests for burrow.observability — events and the event log."""

import threading

import pytest

from burrow.observability.events import (
    HandlerSwapped,
    ModuleReloaded,
    ModuleReloadFailed,
    RouteRegistered,
    now_ns,
)
from burrow.observability.log import EventLog


def _reloaded(path: str, ts: int | None = None) -> ModuleReloaded:
    return ModuleReloaded(
        path=path, exports=1, duration_ms=0.5,
        timestamp_ns=ts if ts is not None else now_ns(),
    )


class TestEvents:
    """Event dataclasses are frozen."""

    def test_frozen(self) -> None:
        event = _reloaded("/app/get.py")
        with pytest.raises(AttributeError):
            event.path = "/other.py"  # type: ignore[misc]

    def test_now_ns_monotonic(self) -> None:
        assert now_ns() <= now_ns()


class TestEventLog:
    """Tests for the event log store."""

    def test_append_and_len(self) -> None:
        log = EventLog()
        assert len(log) == 0
        log.append(_reloaded("/app/get.py"))
        assert len(log) == 1

    def test_max_events_enforced(self) -> None:
        log = EventLog(max_events=5)
        for i in range(10):
            log.append(_reloaded(f"/app/{i}/get.py"))
        assert len(log) == 5
        assert log.recent(1)[0].path == "/app/9/get.py"  # type: ignore[union-attr]

    def test_query_by_type(self) -> None:
        log = EventLog()
        log.append(_reloaded("/app/get.py"))
        log.append(ModuleReloadFailed(path="/app/get.py", error="SyntaxError", timestamp_ns=now_ns()))
        failed = log.query(event_type=ModuleReloadFailed)
        assert len(failed) == 1
        assert isinstance(failed[0], ModuleReloadFailed)

    def test_query_by_path_matches_source(self) -> None:
        log = EventLog()
        log.append(RouteRegistered(
            method="GET", pattern="/users/:id", group="root",
            source="/app/users/[id]/get.py", middleware="", timestamp_ns=now_ns(),
        ))
        log.append(_reloaded("/app/posts/get.py"))
        assert len(log.query(path="users")) == 1
        assert len(log.query(path="posts")) == 1

    def test_query_since_and_limit(self) -> None:
        log = EventLog()
        for ts in (10, 20, 30, 40):
            log.append(_reloaded("/app/get.py", ts))
        assert [e.timestamp_ns for e in log.query(since_ns=25)] == [40, 30]
        assert len(log.query(limit=2)) == 2

    def test_recent_oldest_first(self) -> None:
        log = EventLog()
        for ts in (1, 2, 3):
            log.append(_reloaded("/app/get.py", ts))
        assert [e.timestamp_ns for e in log.recent(2)] == [2, 3]

    def test_clear(self) -> None:
        log = EventLog()
        log.append(_reloaded("/app/get.py"))
        assert log.clear() == 1
        assert len(log) == 0

    def test_stats(self) -> None:
        log = EventLog(max_events=50)
        log.append(_reloaded("/app/get.py"))
        log.append(HandlerSwapped(
            path="/app/get.py", swapped=1, exports=("handler",), timestamp_ns=now_ns(),
        ))
        stats = log.stats()
        assert stats["total"] == 2
        assert stats["max_events"] == 50
        assert stats["by_type"] == {"ModuleReloaded": 1, "HandlerSwapped": 1}
        assert stats["reloads"] == 1
        assert stats["reload_failures"] == 0
        assert stats["handlers_swapped"] == 1

    def test_history_oldest_first(self) -> None:
        log = EventLog()
        log.append(_reloaded("/app/get.py", 1))
        log.append(_reloaded("/app/posts/get.py", 2))
        log.append(ModuleReloadFailed(path="/app/get.py", error="SyntaxError", timestamp_ns=3))
        history = log.history("/app/get.py")
        assert [type(e).__name__ for e in history] == ["ModuleReloaded", "ModuleReloadFailed"]

    def test_concurrent_appends(self) -> None:
        log = EventLog()

        def worker(n: int) -> None:
            for i in range(100):
                log.append(_reloaded(f"/app/{n}/{i}.py"))

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(log) == 400
