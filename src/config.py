"""Server configuration management."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Mapping, Optional

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ServerConfig:
    """Access to environment-driven configuration values.

    Values are read once from the environment mapping passed in (``os.environ``
    by default) and cached for the lifetime of the instance.
    """

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ if environ is not None else os.environ
        self._data: dict[str, str] = {}
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._data = {key: value for key, value in self._environ.items()}
        self._loaded = True

    @property
    def ignore_robots_txt(self) -> bool:
        """Whether robots.txt enforcement is disabled (default: enforced)."""
        self._ensure_loaded()
        return self._data.get("IGNORE_ROBOTS_TXT", "false").strip().lower() in _TRUE_VALUES

    @property
    def fetch_timeout(self) -> Optional[float]:
        """Outbound fetch timeout in seconds, or None for the transport default."""
        self._ensure_loaded()
        raw = self._data.get("AIRBNB_FETCH_TIMEOUT", "").strip()
        if not raw:
            return None
        try:
            value = float(raw)
        except ValueError:
            raise ValueError(f"AIRBNB_FETCH_TIMEOUT must be a number, got {raw!r}") from None
        return value if value > 0 else None

    @property
    def log_level(self) -> str:
        """Log level name for the server process."""
        self._ensure_loaded()
        return self._data.get("AIRBNB_MCP_LOG_LEVEL", "INFO").strip().upper() or "INFO"


@lru_cache(maxsize=1)
def get_config() -> ServerConfig:
    """Get the singleton configuration instance."""
    return ServerConfig()
