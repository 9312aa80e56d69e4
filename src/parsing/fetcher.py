"""Outbound page fetching with a fixed crawler identity."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import requests

logger = logging.getLogger(__name__)

SITE_ORIGIN = "https://www.airbnb.com"
CRAWLER_TOKEN = "ClaudeBot"
DEFAULT_USER_AGENT = f"Mozilla/5.0 (compatible; {CRAWLER_TOKEN}/1.0; +https://www.anthropic.com)"
DEFAULT_ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
DEFAULT_ACCEPT_LANGUAGE = "en-US,en;q=0.5"


@dataclass(slots=True)
class FetchResult:
    """Result of fetching a page.

    Exactly one of ``html`` (on success) or ``error`` (on failure) is set.
    ``status_code`` is None when the request never got a response.
    """

    url: str
    success: bool
    html: str | None = None
    status_code: int | None = None
    error: str | None = None
    final_url: str | None = None


@dataclass(slots=True)
class PageFetcher:
    """Performs single GET requests; no retries and no caching."""

    user_agent: str = DEFAULT_USER_AGENT
    accept: str = DEFAULT_ACCEPT
    accept_language: str = DEFAULT_ACCEPT_LANGUAGE
    timeout: float | None = None

    @property
    def headers(self) -> dict[str, str]:
        return {
            "User-Agent": self.user_agent,
            "Accept": self.accept,
            "Accept-Language": self.accept_language,
        }

    def fetch(self, url: str) -> FetchResult:
        """Fetch ``url`` and normalise the outcome into a :class:`FetchResult`."""
        try:
            response = requests.get(url, headers=self.headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("Request to %s failed: %s", url, e)
            return FetchResult(url=url, success=False, error=f"HTTP request failed: {e}")

        if not 200 <= response.status_code < 300:
            reason = response.reason or "HTTP error"
            logger.warning("Request to %s returned %s %s", url, response.status_code, reason)
            return FetchResult(
                url=url,
                success=False,
                status_code=response.status_code,
                error=f"{response.status_code} {reason}",
                final_url=response.url,
            )

        return FetchResult(
            url=url,
            success=True,
            html=response.text,
            status_code=response.status_code,
            final_url=response.url,
        )


__all__ = [
    "CRAWLER_TOKEN",
    "DEFAULT_USER_AGENT",
    "FetchResult",
    "PageFetcher",
    "SITE_ORIGIN",
]
