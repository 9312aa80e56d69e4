"""Airbnb listing tools served over MCP."""

from __future__ import annotations


from .errors import (
    InternalToolError,
    InvalidArgumentsError,
    PermissionDeniedError,
    ToolError,
    UnknownToolError,
    UpstreamFetchError,
)
from .tools import (
    TOOLS,
    ToolDescriptor,
    ToolDispatcher,
    build_dispatcher,
)


__all__ = [
    "InternalToolError",
    "InvalidArgumentsError",
    "PermissionDeniedError",
    "TOOLS",
    "ToolDescriptor",
    "ToolDispatcher",
    "ToolError",
    "UnknownToolError",
    "UpstreamFetchError",
    "build_dispatcher",
]
