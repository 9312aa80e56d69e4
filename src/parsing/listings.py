"""Structured extraction of Airbnb search results and listing pages.

Airbnb markup is third-party and changes without notice, so every field is
resolved through a :class:`SelectorChain`: an ordered list of CSS selectors
tried left to right, where the first non-empty value wins. A field whose
markup is missing resolves to ``None`` (or an empty string/list in the
output) instead of failing the whole record.

Functions here are pure: the same HTML always gives the same records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List
from urllib.parse import urljoin

from bs4 import BeautifulSoup
from bs4.element import Tag

from .fetcher import SITE_ORIGIN


class ExtractionError(RuntimeError):
    """Raised when HTML cannot be parsed at all."""


@dataclass(frozen=True)
class Selector:
    """A CSS selector plus the attribute to read (text content when ``attr`` is None)."""

    css: str
    attr: str | None = None

    def first(self, scope: Tag) -> str | None:
        element = scope.select_one(self.css)
        if element is None:
            return None
        return _read(element, self.attr)


@dataclass(frozen=True)
class SelectorChain:
    """Ordered fallbacks for one field."""

    selectors: tuple[Selector, ...]

    def resolve(self, scope: Tag) -> str | None:
        for selector in self.selectors:
            value = selector.first(scope)
            if value:
                return value
        return None

    def resolve_all(self, scope: Tag) -> List[Tag]:
        """Elements matched by the first selector that matches anything."""
        for selector in self.selectors:
            elements = scope.select(selector.css)
            if elements:
                return elements
        return []


def chain(*selectors: str | tuple[str, str]) -> SelectorChain:
    """Build a chain from ``"css"`` or ``("css", "attr")`` entries."""
    built = []
    for entry in selectors:
        if isinstance(entry, tuple):
            built.append(Selector(css=entry[0], attr=entry[1]))
        else:
            built.append(Selector(css=entry))
    return SelectorChain(tuple(built))


# Search results page
SEARCH_ITEM = '[itemprop="itemListElement"]'
SEARCH_TITLE = chain(
    '[data-testid="listing-card-title"]',
    ('meta[itemprop="name"]', "content"),
)
SEARCH_PRICE = chain(
    '[data-testid="listing-card-price"]',
    '[data-testid="price-availability-row"]',
)
SEARCH_RATING = chain(('[aria-label*="rating"]', "aria-label"))
SEARCH_URL = chain(
    ('a[href^="/rooms/"]', "href"),
    (f'a[href^="{SITE_ORIGIN}/rooms/"]', "href"),
)
SEARCH_IMAGE = chain(("img[src]", "src"))

# Listing detail page
DETAIL_TITLE = chain("h1")
DETAIL_DESCRIPTION = chain(
    '[data-section-id="DESCRIPTION_DEFAULT"] span',
    '[data-section-id="DESCRIPTION_DEFAULT"]',
)
DETAIL_AMENITIES = chain(
    '[data-section-id="AMENITIES_DEFAULT"] [data-testid="modal-container"] div',
    '[data-section-id="AMENITIES_DEFAULT"] div',
)
DETAIL_HOST = chain(
    '[data-section-id="HOST_PROFILE_DEFAULT"] h2',
    '[data-section-id="MEET_YOUR_HOST"] h2',
)
DETAIL_REVIEW = '[data-review-id]'
REVIEW_TEXT = chain('[data-testid="review-text"]')
REVIEW_RATING = chain(('[aria-label*="rating"]', "aria-label"))
REVIEW_AUTHOR = chain('[data-testid="review-author"]')


@dataclass
class SearchListing:
    """One result card from a search page."""

    title: str
    url: str
    price: str = ""
    rating: str | None = None
    image: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"title": self.title, "price": self.price}
        if self.rating is not None:
            data["rating"] = self.rating
        data["url"] = self.url
        if self.image is not None:
            data["image"] = self.image
        return data


@dataclass
class Review:
    text: str = ""
    author: str = ""
    rating: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"text": self.text}
        if self.rating is not None:
            data["rating"] = self.rating
        data["author"] = self.author
        return data


@dataclass
class ListingDetail:
    """Everything extracted from a single listing page."""

    title: str = ""
    description: str = ""
    amenities: List[str] = field(default_factory=list)
    host: str = ""
    reviews: List[Review] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "amenities": list(self.amenities),
            "host": self.host,
            "reviews": [review.to_dict() for review in self.reviews],
        }


def parse_html(html: str) -> BeautifulSoup:
    """Parse ``html`` into a navigable tree.

    Raises:
        ExtractionError: if the input is not text or the parser rejects it
    """
    if not isinstance(html, str):
        raise ExtractionError(f"Expected HTML text, got {type(html).__name__}")
    try:
        return BeautifulSoup(html, "html.parser")
    except Exception as exc:
        raise ExtractionError(f"Unable to parse HTML: {exc}") from exc


def absolute_listing_url(href: str, origin: str = SITE_ORIGIN) -> str:
    """Qualify a relative listing href against the site origin."""
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(f"{origin}/", href)


def extract_search_listings(html: str) -> List[SearchListing]:
    """Extract result cards from a search page, in document order.

    Cards missing a title or a listing URL are skipped.
    """
    soup = parse_html(html)
    listings: List[SearchListing] = []

    for item in soup.select(SEARCH_ITEM):
        title = SEARCH_TITLE.resolve(item)
        url = SEARCH_URL.resolve(item)
        if not title or not url:
            continue
        listings.append(
            SearchListing(
                title=title,
                url=absolute_listing_url(url),
                price=SEARCH_PRICE.resolve(item) or "",
                rating=SEARCH_RATING.resolve(item),
                image=SEARCH_IMAGE.resolve(item),
            )
        )

    return listings


def extract_listing_detail(html: str) -> ListingDetail:
    """Extract a :class:`ListingDetail` from a listing page."""
    soup = parse_html(html)

    description_parts = [
        _read(element, None) for element in _outermost(DETAIL_DESCRIPTION.resolve_all(soup))
    ]
    amenities = [
        text
        for text in (_read(element, None) for element in _leaves(DETAIL_AMENITIES.resolve_all(soup)))
        if text
    ]
    reviews = [
        Review(
            text=REVIEW_TEXT.resolve(element) or "",
            author=REVIEW_AUTHOR.resolve(element) or "",
            rating=REVIEW_RATING.resolve(element),
        )
        for element in soup.select(DETAIL_REVIEW)
    ]

    return ListingDetail(
        title=DETAIL_TITLE.resolve(soup) or "",
        description=" ".join(part for part in description_parts if part),
        amenities=amenities,
        host=DETAIL_HOST.resolve(soup) or "",
        reviews=reviews,
    )


def _read(element: Tag, attr: str | None) -> str | None:
    if attr is None:
        return _normalize_whitespace(element.get_text(" ", strip=True))
    value = element.get(attr)
    if isinstance(value, list):
        value = " ".join(value)
    if value is None:
        return None
    return value.strip()


def _outermost(elements: Iterable[Tag]) -> List[Tag]:
    # Drop matches nested inside another match so their text is not repeated
    selected = list(elements)
    ids = {id(element) for element in selected}
    return [
        element
        for element in selected
        if not any(id(parent) in ids for parent in element.parents)
    ]


def _leaves(elements: Iterable[Tag]) -> List[Tag]:
    selected = list(elements)
    ids = {id(element) for element in selected}
    return [
        element
        for element in selected
        if not any(id(child) in ids for child in element.find_all(True))
    ]


def _normalize_whitespace(value: str) -> str:
    return " ".join(value.split())


__all__ = [
    "ExtractionError",
    "ListingDetail",
    "Review",
    "SearchListing",
    "Selector",
    "SelectorChain",
    "absolute_listing_url",
    "extract_listing_detail",
    "extract_search_listings",
    "parse_html",
]
