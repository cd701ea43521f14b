"""Path conventions — file locations to URL patterns and group labels.

Pure functions, no state::

    app/get.py                      -> GET /
    app/users/[id]/get.py           -> GET /users/:id
    app/(admin)/stats/post.py       -> POST /stats      (group "admin")
    app/files/[dir]/[name]/put.py   -> PUT /files/:dir/:name
"""

import re
from pathlib import Path, PurePosixPath

from burrow._errors import InvalidPathError

# File stems recognised as route files (compared case-insensitively)
METHOD_NAMES: frozenset[str] = frozenset({"get", "post", "put", "delete"})

# Catch-all handler export name
HANDLER_EXPORT = "handler"

# Source extension for route and middleware files
SOURCE_SUFFIX = ".py"

# Group label for routes without a bracketed ancestor directory
ROOT_GROUP = "root"

_GROUP_RE = re.compile(r"^\((.*)\)$")
_PARAM_RE = re.compile(r"\[([^\]/]*)\]")


def to_group_label(directory_name: str) -> str | None:
    """Return the group label for a ``(name)`` directory, else None."""
    match = _GROUP_RE.match(directory_name)
    return match.group(1) if match else None


def route_method(file_name: str) -> str | None:
    """Return the lower-case HTTP method for a route file name, else None.

    ``get.py`` -> ``"get"``, ``POST.py`` -> ``"post"``, ``utils.py`` -> None.

    """
    path = PurePosixPath(file_name)
    if path.suffix != SOURCE_SUFFIX:
        return None
    method = path.stem.lower()
    return method if method in METHOD_NAMES else None


def relative_parts(file_path: Path | str, app_root: Path | str) -> tuple[str, ...]:
    """Split *file_path* into segments below *app_root*.

    Both ``/`` and ``\\`` separators are accepted.

    Raises:
        InvalidPathError: If *file_path* is not below *app_root*.

    """
    file_parts = _segments(file_path)
    root_parts = _segments(app_root)
    depth = len(root_parts)
    if len(file_parts) <= depth or file_parts[:depth] != root_parts:
        msg = f"{file_path} is not inside app root {app_root}"
        raise InvalidPathError(msg)
    return file_parts[depth:]


def to_route_pattern(file_path: Path | str, app_root: Path | str) -> str:
    """Derive the URL pattern for a route file.

    Group directories contribute no segment, ``[name]`` becomes ``:name``
    and the file name itself is dropped.

    Raises:
        InvalidPathError: If *file_path* is not below *app_root*.

    """
    parts = relative_parts(file_path, app_root)[:-1]
    segments = [
        _PARAM_RE.sub(r":\1", part)
        for part in parts
        if to_group_label(part) is None
    ]
    pattern = "/" + "/".join(segments)
    return pattern.rstrip("/") or "/"


def resolve_group(file_path: Path | str, app_root: Path | str) -> str:
    """Return the label of the nearest bracketed ancestor, or ``"root"``."""
    for part in reversed(relative_parts(file_path, app_root)[:-1]):
        label = to_group_label(part)
        if label is not None:
            return label
    return ROOT_GROUP


def _segments(path: Path | str) -> tuple[str, ...]:
    text = str(path).replace("\\", "/")
    return tuple(s for s in text.split("/") if s and s != ".")
