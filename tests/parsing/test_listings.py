"""Tests for Airbnb search and listing extraction."""

from __future__ import annotations

import pytest

from src.parsing.listings import (
    ExtractionError,
    ListingDetail,
    SearchListing,
    absolute_listing_url,
    chain,
    extract_listing_detail,
    extract_search_listings,
    parse_html,
)


def _search_html() -> str:
    return """
    <html>
      <body>
        <div itemprop="itemListElement">
          <img src="https://a0.muscache.com/im/pictures/1.jpg">
          <a href="/rooms/111?check_in=2025-05-01">
            <span data-testid="listing-card-title">  Loft in Paris
            </span>
          </a>
          <span data-testid="listing-card-price">€120 night</span>
          <span aria-label="4.92 out of 5 average rating">4.92</span>
        </div>
        <div itemprop="itemListElement">
          <a href="https://www.airbnb.com/rooms/222">
            <div data-testid="listing-card-title">Studio near the Louvre</div>
          </a>
          <span data-testid="listing-card-price">€90 night</span>
        </div>
        <div itemprop="itemListElement">
          <a href="/experiences/9">Not a listing link</a>
          <div data-testid="listing-card-title">Cooking class</div>
        </div>
        <div itemprop="itemListElement">
          <a href="/rooms/444">Untitled card</a>
          <span data-testid="listing-card-price">€50 night</span>
        </div>
        <div itemprop="itemListElement">
          <meta itemprop="name" content="Flat in Montmartre">
          <a href="/rooms/333"><img src="https://a0.muscache.com/im/pictures/3.jpg"></a>
        </div>
      </body>
    </html>
    """


def _detail_html(*, amenities: bool = True) -> str:
    amenities_section = """
        <div data-section-id="AMENITIES_DEFAULT">
          <h2>What this place offers</h2>
          <div data-testid="modal-container">
            <div>
              <div> Wifi </div>
              <div>Kitchen</div>
            </div>
            <div>Washer</div>
            <div>   </div>
          </div>
        </div>
    """ if amenities else ""
    return f"""
    <html>
      <body>
        <h1>  Cozy loft with a view </h1>
        <div data-section-id="DESCRIPTION_DEFAULT">
          <h2>About this space</h2>
          <span>Bright flat <span>close to the metro.</span></span>
        </div>
        {amenities_section}
        <div data-section-id="HOST_PROFILE_DEFAULT">
          <h2>
            Hosted by Marie
          </h2>
        </div>
        <div data-review-id="r1">
          <span data-testid="review-author">   Alice   </span>
          <span aria-label="5 star rating">★★★★★</span>
          <span data-testid="review-text"> Great stay! </span>
        </div>
        <div data-review-id="r2">
          <span data-testid="review-author">Bob</span>
          <span data-testid="review-text">Nice place.</span>
        </div>
      </body>
    </html>
    """


class TestSelectorChain:
    """Tests for the selector chain primitives."""

    def test_first_non_empty_value_wins(self) -> None:
        soup = parse_html("<div><h2>  </h2><h3> Fallback </h3></div>")
        assert chain("h2", "h3").resolve(soup) == "Fallback"

    def test_attribute_selector(self) -> None:
        soup = parse_html('<a href=" /rooms/1 ">x</a>')
        assert chain(("a", "href")).resolve(soup) == "/rooms/1"

    def test_nothing_matches(self) -> None:
        soup = parse_html("<p>plain</p>")
        assert chain("h1", ("img", "src")).resolve(soup) is None

    def test_resolve_all_uses_first_matching_selector(self) -> None:
        soup = parse_html("<ul><li>a</li><li>b</li></ul><p>c</p>")
        elements = chain("section div", "li", "p").resolve_all(soup)
        assert [element.get_text() for element in elements] == ["a", "b"]


class TestAbsoluteListingUrl:
    """Tests for URL qualification."""

    def test_relative_url(self) -> None:
        assert absolute_listing_url("/rooms/1") == "https://www.airbnb.com/rooms/1"

    def test_absolute_url_unchanged(self) -> None:
        url = "https://www.airbnb.com/rooms/2?x=1"
        assert absolute_listing_url(url) == url


class TestExtractSearchListings:
    """Tests for extract_search_listings."""

    def test_admits_only_cards_with_title_and_url(self) -> None:
        listings = extract_search_listings(_search_html())

        assert [listing.title for listing in listings] == [
            "Loft in Paris",
            "Studio near the Louvre",
            "Flat in Montmartre",
        ]
        assert all(listing.url for listing in listings)

    def test_relative_url_is_qualified(self) -> None:
        listings = extract_search_listings(_search_html())

        assert listings[0].url == "https://www.airbnb.com/rooms/111?check_in=2025-05-01"
        assert listings[1].url == "https://www.airbnb.com/rooms/222"
        assert listings[2].url == "https://www.airbnb.com/rooms/333"

    def test_optional_fields(self) -> None:
        first, second, third = extract_search_listings(_search_html())

        assert first.price == "€120 night"
        assert first.rating == "4.92 out of 5 average rating"
        assert first.image == "https://a0.muscache.com/im/pictures/1.jpg"
        assert second.rating is None
        assert second.image is None
        assert third.price == ""
        assert third.image == "https://a0.muscache.com/im/pictures/3.jpg"

    def test_to_dict_omits_missing_optional_fields(self) -> None:
        listings = extract_search_listings(_search_html())

        assert listings[0].to_dict() == {
            "title": "Loft in Paris",
            "price": "€120 night",
            "rating": "4.92 out of 5 average rating",
            "url": "https://www.airbnb.com/rooms/111?check_in=2025-05-01",
            "image": "https://a0.muscache.com/im/pictures/1.jpg",
        }
        assert set(listings[1].to_dict()) == {"title", "price", "url"}

    def test_repeated_extraction_is_identical(self) -> None:
        html = _search_html()
        assert extract_search_listings(html) == extract_search_listings(html)

    def test_page_without_results(self) -> None:
        assert extract_search_listings("<html><body><p>No results</p></body></html>") == []

    def test_empty_document(self) -> None:
        assert extract_search_listings("") == []


class TestExtractListingDetail:
    """Tests for extract_listing_detail."""

    def test_full_page(self) -> None:
        detail = extract_listing_detail(_detail_html())

        assert detail.title == "Cozy loft with a view"
        assert detail.description == "Bright flat close to the metro."
        assert detail.amenities == ["Wifi", "Kitchen", "Washer"]
        assert detail.host == "Hosted by Marie"

    def test_reviews(self) -> None:
        detail = extract_listing_detail(_detail_html())

        assert len(detail.reviews) == 2
        assert [review.author for review in detail.reviews] == ["Alice", "Bob"]
        assert detail.reviews[0].text == "Great stay!"
        assert detail.reviews[0].rating == "5 star rating"
        assert detail.reviews[1].rating is None

    def test_rating_label_match_is_case_sensitive(self) -> None:
        """Only labels containing lowercase "rating" are read."""
        html = '<div data-review-id="r1"><span aria-label="Rating widget">x</span></div>'

        assert extract_listing_detail(html).reviews[0].rating is None

    def test_missing_amenities_section(self) -> None:
        detail = extract_listing_detail(_detail_html(amenities=False))

        assert detail.amenities == []
        assert detail.title == "Cozy loft with a view"

    def test_amenities_without_modal_container(self) -> None:
        html = """
        <div data-section-id="AMENITIES_DEFAULT">
          <div><div>Pool</div><div>Hot tub</div></div>
        </div>
        """
        assert extract_listing_detail(html).amenities == ["Pool", "Hot tub"]

    def test_host_fallback_section(self) -> None:
        html = '<div data-section-id="MEET_YOUR_HOST"><h2>Meet your host</h2></div>'
        assert extract_listing_detail(html).host == "Meet your host"

    def test_empty_page_yields_empty_fields(self) -> None:
        detail = extract_listing_detail("<html><body></body></html>")

        assert detail == ListingDetail()
        assert detail.to_dict() == {
            "title": "",
            "description": "",
            "amenities": [],
            "host": "",
            "reviews": [],
        }

    def test_review_to_dict(self) -> None:
        detail = extract_listing_detail(_detail_html())

        assert detail.to_dict()["reviews"] == [
            {"text": "Great stay!", "rating": "5 star rating", "author": "Alice"},
            {"text": "Nice place.", "author": "Bob"},
        ]


class TestParseFailures:
    """Input that cannot be parsed raises ExtractionError."""

    @pytest.mark.parametrize("bad_input", [None, b"<html></html>", 42])
    def test_non_text_input(self, bad_input: object) -> None:
        with pytest.raises(ExtractionError):
            extract_search_listings(bad_input)  # type: ignore[arg-type]

    def test_detail_non_text_input(self) -> None:
        with pytest.raises(ExtractionError):
            extract_listing_detail(None)  # type: ignore[arg-type]


def test_search_listing_defaults() -> None:
    listing = SearchListing(title="t", url="u")
    assert listing.to_dict() == {"title": "t", "price": "", "url": "u"}
