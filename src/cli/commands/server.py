"""CLI commands for running and exercising the MCP server."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from src.config import get_config
from src.integrations.airbnb.errors import ToolError
from src.integrations.airbnb.mcp_server import SERVER_VERSION, run_server
from src.integrations.airbnb.tools import ToolDispatcher, build_dispatcher

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    # stdout carries the protocol, so logs go to stderr
    logging.basicConfig(
        level=get_config().log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _prepare_dispatcher(args: argparse.Namespace) -> ToolDispatcher:
    dispatcher = build_dispatcher()
    if getattr(args, "ignore_robots", False):
        dispatcher.policy.enabled = False

    robots_file: Path | None = getattr(args, "robots_file", None)
    if robots_file is not None and dispatcher.policy.enabled:
        dispatcher.policy.load(robots_file.read_text(encoding="utf-8"))
        logger.info("Loaded robots.txt from %s", robots_file)
    return dispatcher


def serve_cli(args: argparse.Namespace) -> int:
    """Execute the serve command."""
    _configure_logging()
    dispatcher = _prepare_dispatcher(args)
    policy = dispatcher.policy

    logger.info(
        "Starting Airbnb MCP server version=%s robots_respected=%s",
        SERVER_VERSION,
        policy.enabled,
    )
    if policy.enabled:
        policy.ensure_loaded()
        logger.info(
            "robots.txt loaded=%s crawl_delay=%s",
            policy.loaded,
            policy.crawl_delay(),
        )

    run_server(dispatcher)
    return 0


def tools_cli(args: argparse.Namespace) -> int:
    """Print the tool descriptors as JSON."""
    dispatcher = build_dispatcher()
    print(json.dumps([tool.to_dict() for tool in dispatcher.list_tools()], indent=2))
    return 0


def call_cli(args: argparse.Namespace) -> int:
    """Run one tool call and print the result envelope."""
    _configure_logging()
    try:
        arguments = json.loads(args.arguments)
    except json.JSONDecodeError as exc:
        print(f"Error: --args is not valid JSON: {exc}", file=sys.stderr)
        return 1

    dispatcher = _prepare_dispatcher(args)
    try:
        result = dispatcher.call_tool(args.name, arguments)
    except ToolError as exc:
        print(json.dumps({"error": exc.to_dict()}, indent=2), file=sys.stderr)
        return 1

    print(result["content"][0]["text"] if args.raw else json.dumps(result, indent=2))
    return 0


def _add_robots_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--ignore-robots",
        action="store_true",
        help="Skip robots.txt enforcement (same as IGNORE_ROBOTS_TXT=true).",
    )
    parser.add_argument(
        "--robots-file",
        type=Path,
        help="Use a local robots.txt instead of fetching it from the site.",
    )


def register_commands(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Register the server commands."""
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the MCP server over stdio.",
    )
    _add_robots_options(serve_parser)
    serve_parser.set_defaults(func=serve_cli)

    tools_parser = subparsers.add_parser(
        "tools",
        help="List the available tools as JSON.",
    )
    tools_parser.set_defaults(func=tools_cli)

    call_parser = subparsers.add_parser(
        "call",
        help="Call a single tool and print its result.",
    )
    call_parser.add_argument("name", help="Tool name, e.g. airbnb_search.")
    call_parser.add_argument(
        "--args",
        dest="arguments",
        default="{}",
        help="Tool arguments as a JSON object.",
    )
    call_parser.add_argument(
        "--raw",
        action="store_true",
        help="Print only the JSON payload instead of the full envelope.",
    )
    _add_robots_options(call_parser)
    call_parser.set_defaults(func=call_cli)
