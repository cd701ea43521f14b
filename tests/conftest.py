"""Shared test fixtures for burrow."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

_ANSI = re.compile(r"\x1b\[[0-9;]*[A-Za-z]")

HANDLER_SOURCE = 'def handler(request):\n    return "{label}"\n'

MIDDLEWARE_SOURCE = (
    "def {name}(request):\n"
    '    return "{name}"\n'
    "\n"
    "middlewares = [{name}]\n"
)


def write_file(root: Path, relative: str, content: str) -> Path:
    """Write *content* to ``root/relative`` and return the path."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def write_route(app: Path, relative: str, label: str | None = None) -> Path:
    """Write a route file whose handler returns *label* (the path by default)."""
    return write_file(app, relative, HANDLER_SOURCE.format(label=label or relative))


def write_middleware(app: Path, directory: str, name: str) -> Path:
    """Write a middlewares.py with one middleware function called *name*."""
    relative = f"{directory}/middlewares.py" if directory else "middlewares.py"
    return write_file(app, relative, MIDDLEWARE_SOURCE.format(name=name))


class LogCollector:
    """Logger that records every line instead of printing."""

    def __init__(self) -> None:
        self.lines: list[str] = []

    def __call__(self, message: str) -> None:
        self.lines.append(_ANSI.sub("", message))

    def matching(self, fragment: str) -> list[str]:
        return [line for line in self.lines if fragment in line]


@pytest.fixture
def log() -> LogCollector:
    """A logger that collects lines for assertions."""
    return LogCollector()


@pytest.fixture
def app_dir(tmp_path: Path) -> Path:
    """An empty ``app/`` directory inside a temp project."""
    app = tmp_path / "app"
    app.mkdir()
    return app


@pytest.fixture
def sample_app(app_dir: Path) -> Path:
    """A small app tree with groups, params and nested middleware.

    ::

        app/
        ├── middlewares.py        (root_mw)
        ├── get.py
        ├── (admin)/stats/get.py
        ├── posts/get.py
        └── users/
            ├── middlewares.py    (users_mw)
            ├── post.py
            └── [id]/get.py
    """
    write_middleware(app_dir, "", "root_mw")
    write_route(app_dir, "get.py")
    write_route(app_dir, "(admin)/stats/get.py")
    write_route(app_dir, "posts/get.py")
    write_middleware(app_dir, "users", "users_mw")
    write_route(app_dir, "users/post.py")
    write_route(app_dir, "users/[id]/get.py")
    return app_dir
