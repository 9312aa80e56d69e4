"""MCP server exposing the Airbnb search and listing tools.

Speaks the Model Context Protocol as newline-delimited JSON-RPC 2.0 over
stdio. All tool semantics live in :mod:`src.integrations.airbnb.tools`; this
module only frames requests and maps :class:`ToolError` kinds to JSON-RPC
error codes.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, TextIO

from .errors import (
    InternalToolError,
    InvalidArgumentsError,
    PermissionDeniedError,
    ToolError,
    UnknownToolError,
    UpstreamFetchError,
)
from .tools import ToolDispatcher

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "airbnb"
SERVER_VERSION = "0.1.0"

PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

ERROR_CODES: dict[type[ToolError], int] = {
    UnknownToolError: METHOD_NOT_FOUND,
    InvalidArgumentsError: INVALID_REQUEST,
    PermissionDeniedError: INVALID_REQUEST,
    UpstreamFetchError: INTERNAL_ERROR,
    InternalToolError: INTERNAL_ERROR,
}


def error_code_for(error: ToolError) -> int:
    for error_type, code in ERROR_CODES.items():
        if isinstance(error, error_type):
            return code
    return INTERNAL_ERROR


def _result(request_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": result}


def _error(request_id: Any, code: int, message: str, data: dict[str, Any] | None = None) -> dict[str, Any]:
    error: dict[str, Any] = {"code": code, "message": message}
    if data:
        error["data"] = data
    return {"jsonrpc": "2.0", "id": request_id, "error": error}


def handle_request(request: Any, dispatcher: ToolDispatcher) -> dict[str, Any] | None:
    """Handle a single MCP JSON-RPC request; returns None for notifications."""
    if not isinstance(request, dict):
        return _error(None, INVALID_REQUEST, "Request must be a JSON object")

    method = request.get("method")
    if not isinstance(method, str):
        method = ""
    request_id = request.get("id")
    params = request.get("params") or {}

    if method == "initialize":
        return _result(
            request_id,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {
                    "tools": {},
                },
                "serverInfo": {
                    "name": SERVER_NAME,
                    "version": SERVER_VERSION,
                },
            },
        )

    elif method.startswith("notifications/"):
        return None

    elif method == "ping":
        return _result(request_id, {})

    elif method == "tools/list":
        logger.info("ListTools request received")
        return _result(
            request_id,
            {"tools": [tool.to_dict() for tool in dispatcher.list_tools()]},
        )

    elif method == "tools/call":
        if not isinstance(params, dict):
            return _error(request_id, INVALID_REQUEST, "params must be an object")
        try:
            result = dispatcher.call_tool(params.get("name"), params.get("arguments"))
        except ToolError as exc:
            return _error(request_id, error_code_for(exc), exc.message, exc.to_dict())
        return _result(request_id, result)

    return _error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")


def run_server(
    dispatcher: ToolDispatcher,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> None:
    """Run the MCP server, reading from stdin and writing to stdout."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout

    while True:
        request: Any = None
        try:
            line = stdin.readline()
            if not line:
                break
            if not line.strip():
                continue

            request = json.loads(line)
            response = handle_request(request, dispatcher)

        except json.JSONDecodeError:
            response = _error(None, PARSE_ERROR, "Parse error")
        except KeyboardInterrupt:
            break
        except Exception as exc:
            logger.exception("Unhandled error while serving request")
            request_id = request.get("id") if isinstance(request, dict) else None
            response = _error(request_id, INTERNAL_ERROR, f"Internal error: {exc}")

        if response is not None:
            stdout.write(json.dumps(response) + "\n")
            stdout.flush()

    logger.info("Input closed, shutting down")


__all__ = [
    "ERROR_CODES",
    "error_code_for",
    "handle_request",
    "run_server",
]
