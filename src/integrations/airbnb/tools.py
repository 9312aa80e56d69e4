"""Tool registry and dispatcher for the Airbnb MCP server.

The dispatcher is protocol-agnostic: :meth:`ToolDispatcher.list_tools` and
:meth:`ToolDispatcher.call_tool` are the only entry points. Each call runs
argument coercion, the robots.txt check, the page fetch and extraction in
sequence, and returns a single-part text envelope or raises a
:class:`~src.integrations.airbnb.errors.ToolError`.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Tuple
from urllib.parse import quote, urlencode, urlparse

from src.config import ServerConfig, get_config
from src.parsing.fetcher import CRAWLER_TOKEN, SITE_ORIGIN, PageFetcher
from src.parsing.listings import (
    ExtractionError,
    extract_listing_detail,
    extract_search_listings,
)
from src.parsing.robots import RobotsPolicy

from .errors import (
    InternalToolError,
    InvalidArgumentsError,
    PermissionDeniedError,
    ToolError,
    UnknownToolError,
    UpstreamFetchError,
)

logger = logging.getLogger(__name__)

SEARCH_TOOL = "airbnb_search"
DETAILS_TOOL = "airbnb_listing_details"

TOOL_NAME_ALIASES = {
    "search": SEARCH_TOOL,
    "detail": DETAILS_TOOL,
    "details": DETAILS_TOOL,
}

_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}", re.ASCII)


def normalize_tool_name(name: str) -> str:
    cleaned = name.strip().lower()
    return TOOL_NAME_ALIASES.get(cleaned, cleaned)


# =============================================================================
# Argument coercion
# =============================================================================


def _coerce_string(name: str, value: Any) -> str | None:
    if isinstance(value, bool):
        raise InvalidArgumentsError(f"{name} must be a string")
    if isinstance(value, (int, float)):
        value = str(value)
    if not isinstance(value, str):
        raise InvalidArgumentsError(f"{name} must be a string")
    value = value.strip()
    return value or None


def _coerce_count(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidArgumentsError(f"{name} must be a number")
    if isinstance(value, int):
        count = value
    elif isinstance(value, float) and value.is_integer():
        count = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        count = int(value.strip())
    else:
        raise InvalidArgumentsError(f"{name} must be a whole number, got {value!r}")
    if count < 0:
        raise InvalidArgumentsError(f"{name} must not be negative")
    return count


def _coerce_date(name: str, value: Any) -> str | None:
    text = _coerce_string(name, value)
    if text is None:
        return None
    try:
        if not _DATE_PATTERN.fullmatch(text):
            raise ValueError(text)
        datetime.strptime(text, "%Y-%m-%d")
    except ValueError:
        raise InvalidArgumentsError(f"{name} must be a date in YYYY-MM-DD format, got {text!r}") from None
    return text


_COERCERS: Dict[str, Callable[[str, Any], Any]] = {
    "string": _coerce_string,
    "number": _coerce_count,
    "date": _coerce_date,
}


@dataclass(frozen=True)
class ArgumentSpec:
    """One row of a tool's coercion table."""

    name: str
    type: str
    description: str
    required: bool = False

    def coerce(self, value: Any) -> Any:
        if value is None:
            return None
        return _COERCERS[self.type](self.name, value)

    def to_schema(self) -> dict[str, Any]:
        # Dates travel as strings on the wire
        json_type = "string" if self.type == "date" else self.type
        return {"type": json_type, "description": self.description}


@dataclass(frozen=True)
class ToolDescriptor:
    """Immutable description of a tool as advertised to clients."""

    name: str
    description: str
    arguments: Tuple[ArgumentSpec, ...] = ()

    @property
    def input_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {spec.name: spec.to_schema() for spec in self.arguments},
            "required": [spec.name for spec in self.arguments if spec.required],
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def coerce_arguments(self, arguments: Any) -> dict[str, Any]:
        """Validate ``arguments`` against the coercion table.

        Returns only declared, non-empty values. Undeclared keys are ignored.
        """
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidArgumentsError("arguments must be an object")

        coerced: dict[str, Any] = {}
        for spec in self.arguments:
            value = spec.coerce(arguments.get(spec.name))
            if value is None:
                if spec.required:
                    raise InvalidArgumentsError(f"{spec.name} is required")
                continue
            coerced[spec.name] = value
        return coerced


TOOLS: Tuple[ToolDescriptor, ...] = (
    ToolDescriptor(
        name=SEARCH_TOOL,
        description="Search Airbnb listings by location, dates, and filters",
        arguments=(
            ArgumentSpec("location", "string", "City, address, or region to search", required=True),
            ArgumentSpec("checkin", "date", "Check-in date (YYYY-MM-DD)"),
            ArgumentSpec("checkout", "date", "Check-out date (YYYY-MM-DD)"),
            ArgumentSpec("adults", "number", "Number of adults"),
            ArgumentSpec("children", "number", "Number of children"),
            ArgumentSpec("infants", "number", "Number of infants"),
            ArgumentSpec("pets", "number", "Number of pets"),
        ),
    ),
    ToolDescriptor(
        name=DETAILS_TOOL,
        description="Get detailed information about a specific Airbnb listing",
        arguments=(
            ArgumentSpec("listing_id", "string", "The Airbnb listing ID", required=True),
        ),
    ),
)


# =============================================================================
# Dispatcher
# =============================================================================


def text_envelope(payload: Any) -> dict[str, Any]:
    """Wrap ``payload`` in the single-part text result every tool returns."""
    return {
        "content": [
            {
                "type": "text",
                "text": json.dumps(payload, indent=2, ensure_ascii=False),
            }
        ],
    }


def build_search_url(arguments: Mapping[str, Any], origin: str = SITE_ORIGIN) -> str:
    """Build the search page URL from coerced arguments; zero counts are left out."""
    params: list[tuple[str, str]] = [("query", arguments["location"])]
    for key in ("checkin", "checkout", "adults", "children", "infants", "pets"):
        value = arguments.get(key)
        if value:
            params.append((key, str(value)))
    return f"{origin}/s/homes?{urlencode(params)}"


def build_listing_url(listing_id: str, origin: str = SITE_ORIGIN) -> str:
    return f"{origin}/rooms/{quote(listing_id, safe='')}"


@dataclass
class ToolDispatcher:
    """Routes tool calls to their handlers and wraps the outcome."""

    fetcher: PageFetcher
    policy: RobotsPolicy
    origin: str = SITE_ORIGIN
    tools: Tuple[ToolDescriptor, ...] = TOOLS
    _handlers: Dict[str, Callable[[Mapping[str, Any], Mapping[str, Any]], Any]] = field(
        init=False, repr=False
    )

    def __post_init__(self) -> None:
        self._handlers = {
            SEARCH_TOOL: self._search,
            DETAILS_TOOL: self._listing_details,
        }

    def list_tools(self) -> list[ToolDescriptor]:
        return list(self.tools)

    def get_tool(self, name: Any) -> ToolDescriptor:
        if isinstance(name, str):
            wanted = normalize_tool_name(name)
            for tool in self.tools:
                if tool.name == wanted:
                    return tool
        raise UnknownToolError(str(name))

    def call_tool(self, name: Any, arguments: Any = None) -> dict[str, Any]:
        """Run one tool call.

        Raises:
            ToolError: one of its subclasses for every failure
        """
        logger.info("CallTool request received: tool=%s arguments=%s", name, arguments)

        tool = self.get_tool(name)
        coerced = tool.coerce_arguments(arguments)
        handler = self._handlers[tool.name]

        try:
            self.policy.ensure_loaded()
            payload = handler(coerced, arguments or {})
            return text_envelope(payload)
        except ToolError as exc:
            logger.warning("Tool %s failed (%s): %s", tool.name, exc.kind, exc.message)
            raise
        except ExtractionError as exc:
            logger.error("Tool %s could not parse the page: %s", tool.name, exc)
            raise InternalToolError(str(exc)) from exc
        except Exception as exc:
            logger.exception("Unexpected failure in tool %s", tool.name)
            raise InternalToolError(f"Unexpected error: {exc}") from exc

    def _check_allowed(self, url: str) -> None:
        path = urlparse(url).path
        if not self.policy.is_allowed(path):
            raise PermissionDeniedError("Access to this resource is not allowed by robots.txt")

    def _fetch_html(self, url: str, what: str) -> str:
        result = self.fetcher.fetch(url)
        if not result.success or result.html is None:
            raise UpstreamFetchError(f"Failed to fetch {what}: {result.error}", result.status_code)
        return result.html

    def _search(self, arguments: Mapping[str, Any], original: Mapping[str, Any]) -> dict[str, Any]:
        url = build_search_url(arguments, self.origin)
        self._check_allowed(url)

        logger.info("Fetching Airbnb search page: %s", url)
        html = self._fetch_html(url, "Airbnb search")
        listings = extract_search_listings(html)
        logger.info("Search completed successfully: %d results", len(listings))

        return {
            "listings": [listing.to_dict() for listing in listings],
            "search_params": dict(original),
        }

    def _listing_details(self, arguments: Mapping[str, Any], original: Mapping[str, Any]) -> dict[str, Any]:
        listing_id = arguments["listing_id"]
        url = build_listing_url(listing_id, self.origin)
        self._check_allowed(url)

        logger.info("Fetching Airbnb listing details: listing_id=%s url=%s", listing_id, url)
        html = self._fetch_html(url, "listing details")
        detail = extract_listing_detail(html)
        logger.info("Listing details fetched successfully: listing_id=%s", listing_id)

        return detail.to_dict()


def build_dispatcher(config: ServerConfig | None = None) -> ToolDispatcher:
    """Create a dispatcher wired from configuration."""
    config = config or get_config()
    fetcher = PageFetcher(timeout=config.fetch_timeout)
    policy = RobotsPolicy(
        SITE_ORIGIN,
        CRAWLER_TOKEN,
        fetcher=fetcher,
        enabled=not config.ignore_robots_txt,
    )
    return ToolDispatcher(fetcher=fetcher, policy=policy)


__all__ = [
    "ArgumentSpec",
    "DETAILS_TOOL",
    "SEARCH_TOOL",
    "TOOLS",
    "ToolDescriptor",
    "ToolDispatcher",
    "build_dispatcher",
    "build_listing_url",
    "build_search_url",
    "normalize_tool_name",
    "text_envelope",
]
