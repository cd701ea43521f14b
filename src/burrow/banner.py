"""Console output: route tree, loading spinner, and the default logger.

Detects ``NO_COLOR`` / ``TERM`` for safe fallback to plain text.
"""

from __future__ import annotations

import itertools
import os
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from burrow._types import Logger
    from burrow.routes.builder import RouteTable


# ---------------------------------------------------------------------------
# ANSI helpers — respect NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_BLUE = "\033[34m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""

_TREE_VERTICAL = "│"
_TREE_CROSS = "├"
_TREE_CORNER = "└"

_SPINNER_FRAMES = "⠙⠘⠰⠴⠤⠦⠆⠃⠋⠉"


def console(message: str) -> None:
    """Default logger: write one diagnostic line to stderr."""
    print(message, file=sys.stderr)


def display_path(path: Path, root: Path) -> str:
    """Render *path* relative to *root* with forward slashes when possible."""
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()


def hot_reload_message(path: Path, root: Path, swapped: int) -> str:
    """Format the line logged after handlers of *path* were swapped."""
    label = "handler" if swapped == 1 else "handlers"
    return (
        f"{_BLUE}BURROW HOT RELOAD:{_RESET} {display_path(path, root)} "
        f"updated {_DIM}({swapped} {label}){_RESET}"
    )


# ---------------------------------------------------------------------------
# Route tree
# ---------------------------------------------------------------------------

type _Tree = dict[str, _Tree | None]


def format_routes(table: RouteTable, root: Path) -> list[str]:
    """Render *table* as an indented tree keyed by URL segment.

    Each leaf shows the method, the full pattern, the group (when not
    ``root``) and the middleware file (relative to *root*) if one is bound.

    """
    tree: _Tree = {}
    for group, records in table.items():
        for record in records:
            label = f"{_CYAN}{record.method}{_RESET} {record.pattern}"
            if group != "root":
                label = f"{_GREEN}[{group}]{_RESET} {label}"
            if record.middleware is not None:
                mw = display_path(record.middleware, root)
                label += f" {_YELLOW}(middleware: {mw}){_RESET}"

            level = tree
            for segment in (s for s in record.pattern.split("/") if s):
                child = level.setdefault(segment, {})
                assert child is not None
                level = child
            level[label] = None

    lines: list[str] = []
    # Explicit stack of (subtree, keys still to print, indent prefix)
    stack: list[tuple[_Tree, list[str], str]] = [(tree, list(tree), "")]
    while stack:
        node, keys, prefix = stack[-1]
        if not keys:
            stack.pop()
            continue
        key = keys.pop(0)
        last = not keys
        lines.append(f"{prefix}{_TREE_CORNER if last else _TREE_CROSS}{key}")
        child = node[key]
        if child:
            continuation = " " if last else _TREE_VERTICAL
            stack.append((child, list(child), f"{prefix}{continuation} "))
    return lines


def print_routes(table: RouteTable, root: Path, logger: Logger = console) -> None:
    """Log the route tree, followed by any skipped routes."""
    logger(f"\n{_BLUE}{_BOLD}BURROW ROUTES{_RESET}\n")
    for line in format_routes(table, root):
        logger(line)
    for error in table.skipped:
        logger(f"{_YELLOW}!{_RESET} skipped {display_path(error.path, root)}: {error.cause}")


# ---------------------------------------------------------------------------
# Loading spinner
# ---------------------------------------------------------------------------

@contextmanager
def loading(text: str, *, stream: object = None, delay: float = 0.1) -> Iterator[None]:
    """Animate a spinner next to *text* while the block runs.

    Only animates on a color-capable tty; otherwise the block runs silently.

    """
    out = stream if stream is not None else sys.stderr
    if not _COLOR or not getattr(out, "isatty", lambda: False)():
        yield
        return

    done = threading.Event()

    def _spin() -> None:
        for frame in itertools.cycle(_SPINNER_FRAMES):
            out.write(f"\r{_GREEN}{frame}{_RESET} {text}")  # type: ignore[attr-defined]
            out.flush()  # type: ignore[attr-defined]
            if done.wait(delay):
                break
        out.write("\r\033[K")  # type: ignore[attr-defined]
        out.flush()  # type: ignore[attr-defined]

    thread = threading.Thread(target=_spin, name="burrow-spinner", daemon=True)
    thread.start()
    try:
        yield
    finally:
        done.set()
        thread.join(timeout=1.0)
