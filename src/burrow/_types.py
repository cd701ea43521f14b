"""Shared type definitions for burrow."""

from collections.abc import Callable
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from pathlib import Path

# Upper-case HTTP method accepted by the dispatcher
type HTTPMethod = Literal["GET", "POST", "PUT", "DELETE"]

# Route URL pattern (e.g., "/", "/users/:id")
type RoutePattern = str

# Route group label ("root" when no bracketed ancestor)
type GroupLabel = str

# Path to a Python source file under the app root
type SourcePath = Path

# Any callable installed in a dispatcher handler chain
type Handler = Callable[..., Any]

# Sink for human-readable diagnostic lines
type Logger = Callable[[str], None]

# How LiveSwapper decides whether an export changed
type SwapGranularity = Literal["file", "export"]
