"""Tests for metadata synthesis."""

from datetime import UTC, datetime

import pytest

from citystage.config import DEFAULT_DEAL_CATEGORIES, DEFAULT_EVENT_CATEGORIES, SiteConfig
from citystage.core.entities import DealEntity, EventEntity, ListingPage, LocalityEntity
from citystage.core.metadata import (
    MetadataSynthesizer,
    Robots,
    format_date,
    format_price,
    robots_for,
    truncate_description,
)
from citystage.core.registry import IndexState, RegistryEntry
from citystage.core.types import PageKind, Vertical

ORIGIN = "https://www.jaipurcircle.com"


@pytest.fixture
def synthesizer() -> MetadataSynthesizer:
    categories = {Vertical.EVENT: DEFAULT_EVENT_CATEGORIES, Vertical.DEAL: DEFAULT_DEAL_CATEGORIES}
    return MetadataSynthesizer(SiteConfig(origin=ORIGIN), categories)


def _entry(**overrides: object) -> RegistryEntry:
    values: dict = {"path": "/x", "page_type": "event"}
    values.update(overrides)
    return RegistryEntry(**values)


def _event(**overrides: object) -> EventEntity:
    values: dict = {
        "slug": "holi-fest",
        "title": "Holi Fest",
        "status": "published",
        "start_date": datetime(2030, 3, 14, 4, 30, tzinfo=UTC),
        "timezone": "Asia/Kolkata",
        "category": "festival",
    }
    values.update(overrides)
    return EventEntity(**values)


class TestRobots:
    """Tests for crawl directives."""

    def test__no_entry__index_follow(self) -> None:
        assert robots_for(None) == Robots(index=True, follow=True)
        assert robots_for(None).directive == "index, follow"

    def test__index_state_index__index_follow(self) -> None:
        assert robots_for(_entry(index_state=IndexState.INDEX)).to_dict() == {"index": True, "follow": True}

    def test__noindex__blocks_index_and_follow(self) -> None:
        robots = robots_for(_entry(index_state=IndexState.NOINDEX))

        assert robots.to_dict() == {"index": False, "follow": False}
        assert robots.directive == "noindex, nofollow"


class TestCanonical:
    """Tests for canonical URL selection."""

    def test__registry_canonical__wins(self, synthesizer: MetadataSynthesizer) -> None:
        entry = _entry(canonical_url="https://www.jaipurcircle.com/events/holi")

        assert synthesizer.canonical(entry, "/events/holi-fest") == "https://www.jaipurcircle.com/events/holi"

    def test__no_registry_canonical__origin_plus_path(self, synthesizer: MetadataSynthesizer) -> None:
        assert synthesizer.canonical(_entry(), "/events/holi-fest") == f"{ORIGIN}/events/holi-fest"
        assert synthesizer.canonical(None, "/jaipur/malviya-nagar") == f"{ORIGIN}/jaipur/malviya-nagar"


class TestHelpers:
    """Tests for truncation and formatting helpers."""

    def test__short_text__unchanged(self) -> None:
        assert truncate_description("  a   b ") == "a b"

    def test__long_text__cut_with_ellipsis(self) -> None:
        result = truncate_description("word " * 100)

        assert len(result) <= 160
        assert result.endswith("…")
        assert len(result) == 158

    def test__exactly_limit__unchanged(self) -> None:
        text = "x" * 160

        assert truncate_description(text) == text

    def test__format_date__converts_to_event_timezone(self) -> None:
        late_utc = datetime(2030, 3, 14, 20, 0, tzinfo=UTC)

        assert format_date(late_utc) == "Thu, 14 Mar 2030"
        assert format_date(late_utc, "Asia/Kolkata") == "Fri, 15 Mar 2030"
        assert format_date(late_utc, "Not/AZone") == "Thu, 14 Mar 2030"
        assert format_date(None) is None

    def test__format_price(self) -> None:
        assert format_price(499.0, "INR") == "₹499"
        assert format_price(12.5, "USD") == "$12.50"
        assert format_price(10.0, "AED") == "AED 10"


class TestEventMetadata:
    """Tests for event metadata."""

    def test__synthesized_title__name_city_date(self, synthesizer: MetadataSynthesizer) -> None:
        meta = synthesizer.event_metadata(None, _event(), "/events/holi-fest")

        assert meta.title == "Holi Fest — Jaipur — Thu, 14 Mar 2030 | Tickets, Venue & Local Guide"

    def test__explicit_meta_fields__used_verbatim(self, synthesizer: MetadataSynthesizer) -> None:
        event = _event(meta_title="Holi 2030", meta_description="Celebrate Holi in the Pink City.")

        meta = synthesizer.event_metadata(None, event, "/events/holi-fest")

        assert meta.title == "Holi 2030"
        assert meta.description == "Celebrate Holi in the Pink City."

    def test__long_short_description__preferred_over_synthesis(self, synthesizer: MetadataSynthesizer) -> None:
        short = "An evening of colours, music and street food by the lake, open to all ages."
        meta = synthesizer.event_metadata(None, _event(short_description=short), "/events/holi-fest")

        assert meta.description == short

    def test__brief_short_description__synthesized_in_order(self, synthesizer: MetadataSynthesizer) -> None:
        event = _event(short_description="Colours!", venue_name="Central Park", ticket_price=499.0)

        meta = synthesizer.event_metadata(None, event, "/events/holi-fest")

        assert meta.description.startswith(
            "Holi Fest in Jaipur. Date: Thu, 14 Mar 2030. Category: Festivals. Venue: Central Park. "
            "Tickets from ₹499.",
        )
        assert len(meta.description) <= 160

    def test__missing_fields__omitted(self, synthesizer: MetadataSynthesizer) -> None:
        event = EventEntity(slug="meetup", title="Meetup")

        meta = synthesizer.event_metadata(None, event, "/events/meetup")

        assert meta.title == "Meetup — Jaipur | Tickets, Venue & Local Guide"
        assert meta.description == "Meetup in Jaipur. See attendee tips and more Jaipur events on JaipurCircle."

    def test__venue_tba_and_free(self, synthesizer: MetadataSynthesizer) -> None:
        event = EventEntity(slug="jam", title="Jam", venue_name="Venue To Be Announced", is_free=True)

        meta = synthesizer.event_metadata(None, event, "/events/jam")

        assert "Venue is yet to be announced." in meta.description
        assert "Entry is free." in meta.description

    def test__description_never_exceeds_limit(self, synthesizer: MetadataSynthesizer) -> None:
        event = _event(
            title="A Very Long Festival Name " * 5,
            venue_name="The Grand Amphitheatre of Jaipur",
            locality="Malviya Nagar",
            ticket_price=1499.0,
        )

        meta = synthesizer.event_metadata(None, event, "/events/holi-fest")

        assert len(meta.description) <= 160
        assert meta.description.endswith("…")


class TestOtherVerticals:
    """Tests for locality, deal and listing metadata."""

    def test__locality__synthesized_from_fields(self, synthesizer: MetadataSynthesizer) -> None:
        locality = LocalityEntity(slug="malviya-nagar", name="Malviya Nagar", zone="South", pin_codes=["302017"])

        meta = synthesizer.locality_metadata(None, locality, "/jaipur/malviya-nagar")

        assert meta.title == "Malviya Nagar, Jaipur — Locality Guide | JaipurCircle"
        assert meta.description.startswith("Malviya Nagar, Jaipur: locality guide. Zone: South. PIN: 302017.")
        assert meta.canonical == f"{ORIGIN}/jaipur/malviya-nagar"

    def test__deal__uses_category_label(self, synthesizer: MetadataSynthesizer) -> None:
        deal = DealEntity(slug="coffee", title="Coffee for Two", category="cafes")

        meta = synthesizer.deal_metadata(None, deal, "/deals/coffee")

        assert meta.title == "Coffee for Two — Cafes Deal in Jaipur | JaipurCircle"

    def test__deal__registry_noindex_applies(self, synthesizer: MetadataSynthesizer) -> None:
        deal = DealEntity(slug="coffee", title="Coffee for Two")

        meta = synthesizer.deal_metadata(_entry(index_state=IndexState.NOINDEX), deal, "/deals/coffee")

        assert meta.robots.to_dict() == {"index": False, "follow": False}

    def test__listing__category_locality_template(self, synthesizer: MetadataSynthesizer) -> None:
        listing = ListingPage(
            vertical=Vertical.DEAL,
            kind=PageKind.CATEGORY_LOCALITY,
            category="cafes",
            category_label="Cafes",
            locality=LocalityEntity(slug="c-scheme", name="C Scheme"),
        )

        meta = synthesizer.listing_metadata(None, listing, "/deals/category/cafes/locality/c-scheme")

        assert meta.title == "Cafes Deals in C Scheme | JaipurCircle"
        assert "cafes deals in C Scheme (Jaipur)" in meta.description

    def test__listing__collection_template(self, synthesizer: MetadataSynthesizer) -> None:
        listing = ListingPage(vertical=Vertical.EVENT, kind=PageKind.COLLECTION)

        meta = synthesizer.listing_metadata(None, listing, "/events")

        assert meta.title == "Jaipur Events — All Categories | JaipurCircle"
        assert meta.canonical == f"{ORIGIN}/events"
