"""Typed failures raised by the tool dispatcher."""

from __future__ import annotations

from typing import Any


class ToolError(Exception):
    """Base class for tool call failures.

    ``kind`` is a stable machine-readable identifier; the message is for humans.
    """

    kind = "internal_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class UnknownToolError(ToolError):
    kind = "unknown_tool"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class InvalidArgumentsError(ToolError):
    kind = "invalid_arguments"


class PermissionDeniedError(ToolError):
    kind = "permission_denied"


class UpstreamFetchError(ToolError):
    """The listing site could not be reached or answered with a non-2xx status."""

    kind = "upstream_fetch_failure"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        if self.status_code is not None:
            data["status_code"] = self.status_code
        return data


class InternalToolError(ToolError):
    kind = "internal_error"


__all__ = [
    "InternalToolError",
    "InvalidArgumentsError",
    "PermissionDeniedError",
    "ToolError",
    "UnknownToolError",
    "UpstreamFetchError",
]
