"""Robots.txt parsing and the process-wide crawl permission policy.

The policy is advisory: when robots.txt cannot be obtained every path is
allowed, and the failure is logged rather than raised.

Matching follows the usual robots.txt conventions:
- ``*`` matches any run of characters, a trailing ``$`` anchors the end
- the longest matching rule wins, Allow beats Disallow on a tie
- a group naming the crawler is preferred over the ``*`` group

Reference: https://www.robotstxt.org/robotstxt.html
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Tuple
from urllib.parse import urlparse

if TYPE_CHECKING:  # pragma: no cover
    from .fetcher import PageFetcher

logger = logging.getLogger(__name__)


def _pattern_to_regex(pattern: str) -> re.Pattern[str]:
    anchored = pattern.endswith("$")
    body = pattern[:-1] if anchored else pattern
    regex = ".*".join(re.escape(part) for part in body.split("*"))
    return re.compile(f"^{regex}{'$' if anchored else ''}")


@dataclass(frozen=True)
class RobotRule:
    """A single Allow or Disallow line.

    Attributes:
        path: The path pattern (may contain * and $)
        allowed: True for Allow, False for Disallow
    """
    path: str
    allowed: bool
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_regex", _pattern_to_regex(self.path))

    def matches(self, url_path: str) -> bool:
        return self._regex.match(url_path) is not None


@dataclass(frozen=True)
class RobotGroup:
    """Rules that apply to one user agent.

    Attributes:
        user_agent: The user agent pattern this group applies to
        rules: Rules in order of appearance
        crawl_delay: Crawl-delay value in seconds (if specified)
    """
    user_agent: str
    rules: Tuple[RobotRule, ...] = ()
    crawl_delay: float | None = None

    def is_allowed(self, url_path: str) -> bool:
        """Return the verdict of the most specific matching rule (allowed if none)."""
        best: RobotRule | None = None
        for rule in self.rules:
            if not rule.matches(url_path):
                continue
            if best is None or (len(rule.path), rule.allowed) > (len(best.path), best.allowed):
                best = rule
        return True if best is None else best.allowed


@dataclass(frozen=True)
class RobotsTxt:
    """Parsed robots.txt file. Immutable once built.

    Attributes:
        groups: Rule groups keyed by the user agent as written in the file
    """
    groups: Dict[str, RobotGroup] = field(default_factory=dict)

    def group_for(self, user_agent: str) -> RobotGroup | None:
        """Pick the group for ``user_agent``: exact, then substring, then ``*``."""
        wanted = user_agent.lower()
        for name, group in self.groups.items():
            if name.lower() == wanted:
                return group
        for name, group in self.groups.items():
            if name and name != "*" and name.lower() in wanted:
                return group
        return self.groups.get("*")

    def is_allowed(self, url: str, user_agent: str = "*") -> bool:
        """Check a URL or bare path for ``user_agent``."""
        parsed = urlparse(url)
        path = parsed.path or "/"
        if parsed.query:
            path = f"{path}?{parsed.query}"

        group = self.group_for(user_agent)
        if group is None:
            return True
        return group.is_allowed(path)

    def crawl_delay(self, user_agent: str = "*") -> float | None:
        group = self.group_for(user_agent)
        return group.crawl_delay if group else None


def parse_robots_txt(content: str) -> RobotsTxt:
    """Parse robots.txt text into an immutable :class:`RobotsTxt`.

    Unknown directives and lines without a colon are ignored.
    """
    rules_by_agent: Dict[str, List[RobotRule]] = {}
    delay_by_agent: Dict[str, float] = {}

    agents: List[str] = []
    in_rules = False

    for raw_line in content.splitlines():
        line = raw_line.split("#", 1)[0].strip()
        if ":" not in line:
            continue

        directive, _, value = line.partition(":")
        directive = directive.strip().lower()
        value = value.strip()

        if directive == "user-agent":
            # A user-agent line after rules starts a new group
            if in_rules:
                agents = []
                in_rules = False
            # An empty name applies to nobody
            if value:
                agents.append(value)
                rules_by_agent.setdefault(value, [])
        elif directive in ("allow", "disallow"):
            in_rules = True
            if value:
                rule = RobotRule(path=value, allowed=directive == "allow")
                for agent in agents:
                    rules_by_agent[agent].append(rule)
        elif directive == "crawl-delay":
            in_rules = True
            try:
                delay = float(value)
            except ValueError:
                continue
            for agent in agents:
                delay_by_agent[agent] = delay

    groups = {
        agent: RobotGroup(
            user_agent=agent,
            rules=tuple(rules),
            crawl_delay=delay_by_agent.get(agent),
        )
        for agent, rules in rules_by_agent.items()
    }
    return RobotsTxt(groups=groups)


class RobotsPolicy:
    """Lazily loaded, process-wide robots.txt permission policy.

    The parsed :class:`RobotsTxt` is swapped in with a single assignment, so
    readers see either no ruleset or a complete one. A failed load leaves the
    cache empty and is attempted again by the next ``ensure_loaded`` call.

    Usage:
        policy = RobotsPolicy("https://example.com", "ExampleBot", fetcher=fetcher)
        policy.ensure_loaded()
        if policy.is_allowed("/search"):
            ...
    """

    def __init__(
        self,
        origin: str,
        user_agent_token: str,
        *,
        fetcher: PageFetcher | None = None,
        enabled: bool = True,
    ) -> None:
        self.origin = origin.rstrip("/")
        self.user_agent_token = user_agent_token
        self.enabled = enabled
        self._fetcher = fetcher
        self._robots: RobotsTxt | None = None

    @property
    def robots_url(self) -> str:
        return f"{self.origin}/robots.txt"

    @property
    def loaded(self) -> bool:
        return self._robots is not None

    def load(self, content: str) -> RobotsTxt:
        """Parse ``content`` and install it as the current ruleset."""
        robots = parse_robots_txt(content)
        self._robots = robots
        return robots

    def ensure_loaded(self) -> None:
        """Fetch robots.txt if enforcement is on and nothing is cached yet."""
        if not self.enabled or self._robots is not None:
            return
        if self._fetcher is None:
            logger.warning("No fetcher configured; robots.txt not loaded")
            return

        result = self._fetcher.fetch(self.robots_url)
        if not result.success or result.html is None:
            logger.error("Failed to fetch robots.txt from %s: %s", self.robots_url, result.error)
            return

        self.load(result.html)
        logger.info("Loaded robots.txt from %s", self.robots_url)

    def is_allowed(self, path: str) -> bool:
        """Check ``path`` for this crawler. Allowed when disabled or not loaded."""
        if not self.enabled:
            return True
        robots = self._robots
        if robots is None:
            return True
        return robots.is_allowed(path, self.user_agent_token)

    def crawl_delay(self) -> float | None:
        robots = self._robots
        if robots is None:
            return None
        return robots.crawl_delay(self.user_agent_token)


__all__ = [
    "RobotGroup",
    "RobotRule",
    "RobotsPolicy",
    "RobotsTxt",
    "parse_robots_txt",
]
