"""Search-engine metadata synthesis.

Combines registry directives (canonical URL, index state) with entity
fields into title, description, canonical and robots values. Synthesis
never raises on missing fields: anything absent is left out of the copy.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from citystage.config import SiteConfig
from citystage.core.entities import DealEntity, EventEntity, ListingPage, LocalityEntity
from citystage.core.normalize import titleize
from citystage.core.registry import IndexState, RegistryEntry
from citystage.core.types import PageKind, Vertical

MAX_DESCRIPTION_LENGTH = 160
MIN_SHORT_DESCRIPTION_LENGTH = 60
ELLIPSIS = "…"

CURRENCY_SYMBOLS = {"INR": "₹", "USD": "$", "EUR": "€", "GBP": "£"}

# (title, description) templates for collection and facet pages, keyed by
# vertical and page kind. Fields: city, site, category, locality.
LISTING_COPY: dict[tuple[Vertical, PageKind], tuple[str, str]] = {
    (Vertical.LOCALITY, PageKind.COLLECTION): (
        "{city} Localities | {site}",
        "Browse neighbourhood guides across {city}: civic info, nearby areas and "
        "events happening around each locality.",
    ),
    (Vertical.EVENT, PageKind.COLLECTION): (
        "{city} Events — All Categories | {site}",
        "Browse all upcoming events in {city} across categories: concerts, festivals, "
        "comedy, workshops, sports and more.",
    ),
    (Vertical.EVENT, PageKind.CATEGORY): (
        "{city} {category} Events — Upcoming {category} | {site}",
        "Browse upcoming {category_lower} events in {city}: dates, venues, ticket cues "
        "and practical attendee notes.",
    ),
    (Vertical.EVENT, PageKind.LOCALITY): (
        "Events in {locality} ({city}) | {site}",
        "Browse upcoming events in {locality}, {city}: date and time, venue cues, "
        "ticket info and local context.",
    ),
    (Vertical.EVENT, PageKind.CATEGORY_LOCALITY): (
        "{category} Events in {locality}, {city} | {site}",
        "Browse upcoming {category_lower} events in {locality}, {city}: dates, venues "
        "and ticket cues.",
    ),
    (Vertical.DEAL, PageKind.COLLECTION): (
        "{city} Deals & Offers | {site}",
        "Browse the latest deals and offers across {city}, sorted by category and "
        "locality. Curated, practical, and updated regularly.",
    ),
    (Vertical.DEAL, PageKind.CATEGORY): (
        "{category} Deals & Offers in {city} | {site}",
        "Discover {category_lower} deals and offers in {city}. Filter by locality for "
        "practical nearby savings.",
    ),
    (Vertical.DEAL, PageKind.LOCALITY): (
        "Deals in {locality}, {city} | {site}",
        "Browse deals and offers in {locality}, {city}, sorted by category for "
        "practical nearby savings.",
    ),
    (Vertical.DEAL, PageKind.CATEGORY_LOCALITY): (
        "{category} Deals in {locality} | {site}",
        "Browse {category_lower} deals in {locality} ({city}). Locality-filtered deals "
        "page for practical nearby savings.",
    ),
}


@dataclass(frozen=True)
class Robots:
    """Crawl directive for a page."""

    index: bool = True
    follow: bool = True

    @property
    def directive(self) -> str:
        """Value for the robots meta tag."""
        return f"{'index' if self.index else 'noindex'}, {'follow' if self.follow else 'nofollow'}"

    def to_dict(self) -> dict[str, bool]:
        return {"index": self.index, "follow": self.follow}


@dataclass(frozen=True)
class PageMetadata:
    """Metadata emitted in a page head."""

    title: str
    description: str
    canonical: str
    robots: Robots

    def to_dict(self) -> dict[str, object]:
        return {
            "title": self.title,
            "description": self.description,
            "canonical": self.canonical,
            "robots": self.robots.directive,
        }


def robots_for(entry: RegistryEntry | None) -> Robots:
    """Crawl directive for a registry entry.

    Only an explicit "noindex" blocks indexing; a missing entry keeps the
    page crawlable so unregistered content is still discovered.
    """
    if entry is not None and entry.index_state is IndexState.NOINDEX:
        return Robots(index=False, follow=False)
    return Robots()


def truncate_description(text: str, limit: int = MAX_DESCRIPTION_LENGTH) -> str:
    """Collapse whitespace and cut to the limit, marking any cut with an ellipsis."""
    collapsed = re.sub(r"\s+", " ", text).strip()
    if len(collapsed) <= limit:
        return collapsed
    return collapsed[: limit - 3] + ELLIPSIS


def format_date(value: datetime | None, timezone: str = "") -> str | None:
    """Human date label like "Sat, 14 Feb 2026", in the event's timezone when known."""
    if value is None:
        return None
    if timezone and value.tzinfo is not None:
        try:
            value = value.astimezone(ZoneInfo(timezone))
        except (ZoneInfoNotFoundError, ValueError):
            pass
    return value.strftime("%a, %d %b %Y")


def format_price(amount: float, currency: str) -> str:
    number = str(int(amount)) if amount.is_integer() else f"{amount:.2f}"
    symbol = CURRENCY_SYMBOLS.get(currency)
    return f"{symbol}{number}" if symbol else f"{currency} {number}"


class MetadataSynthesizer:
    """Builds page metadata for every vertical.

    The site identity (origin, city, site name) is injected once at
    construction and used for canonical URLs and copy.
    """

    def __init__(self, site: SiteConfig, categories: dict[Vertical, dict[str, str]] | None = None) -> None:
        """Initialize synthesizer.

        Args:
            site: Public site configuration
            categories: Category labels per vertical, for display copy
        """
        self._site = site
        self._categories = categories or {}

    def canonical(self, entry: RegistryEntry | None, path: str) -> str:
        """Registry canonical URL when set, otherwise the site URL of the path."""
        if entry is not None and entry.canonical_url and entry.canonical_url.strip():
            return entry.canonical_url.strip()
        return self._site.url(path)

    def category_label(self, vertical: Vertical, category: str | None) -> str:
        if not category:
            return ""
        return self._categories.get(vertical, {}).get(category) or titleize(category)

    def locality_metadata(
        self,
        entry: RegistryEntry | None,
        locality: LocalityEntity,
        path: str,
    ) -> PageMetadata:
        site = self._site
        title = locality.meta_title or f"{locality.name}, {site.city} — Locality Guide | {site.name}"

        description = locality.meta_description
        if not description:
            parts = [f"{locality.name}, {site.city}: locality guide."]
            if locality.zone:
                parts.append(f"Zone: {locality.zone}.")
            if locality.ward:
                parts.append(f"Ward: {locality.ward}.")
            if locality.pin_codes:
                parts.append(f"PIN: {', '.join(locality.pin_codes)}.")
            if locality.police_station:
                parts.append(f"Police station: {locality.police_station}.")
            nearby = locality.nearby_localities or locality.adjacent_localities
            if nearby:
                parts.append(f"Nearby: {', '.join(nearby[:3])}.")
            parts.append(f"Events and deals around {locality.name} on {site.name}.")
            description = " ".join(parts)

        return self._finish(entry, path, title=title, description=description)

    def event_metadata(
        self,
        entry: RegistryEntry | None,
        event: EventEntity,
        path: str,
    ) -> PageMetadata:
        site = self._site
        date_label = format_date(event.start_date, event.timezone)

        if event.meta_title:
            title = event.meta_title
        else:
            bits = [event.title.strip(), site.city]
            if date_label:
                bits.append(date_label)
            title = f"{' — '.join(bits)} | Tickets, Venue & Local Guide"

        short = event.short_description.strip()
        if event.meta_description:
            description = event.meta_description
        elif len(short) >= MIN_SHORT_DESCRIPTION_LENGTH:
            description = short
        else:
            description = self._event_description(event, date_label)

        return self._finish(entry, path, title=title, description=description)

    def _event_description(self, event: EventEntity, date_label: str | None) -> str:
        site = self._site
        parts = [f"{event.title} in {site.city}."]
        if date_label:
            parts.append(f"Date: {date_label}.")
        if event.category:
            parts.append(f"Category: {self.category_label(Vertical.EVENT, event.category)}.")

        venue = event.venue_name
        if venue and "to be announced" in venue.lower():
            parts.append("Venue is yet to be announced.")
        elif venue:
            locality = f", {event.locality}" if event.locality else ""
            parts.append(f"Venue: {venue}{locality}.")
        elif event.locality:
            parts.append(f"Location: {event.locality}, {site.city}.")

        if event.is_free:
            parts.append("Entry is free.")
        elif event.ticket_price is not None:
            parts.append(f"Tickets from {format_price(event.ticket_price, site.currency)}.")

        parts.append(f"See attendee tips and more {site.city} events on {site.name}.")
        return " ".join(parts)

    def deal_metadata(
        self,
        entry: RegistryEntry | None,
        deal: DealEntity,
        path: str,
    ) -> PageMetadata:
        site = self._site
        label = self.category_label(Vertical.DEAL, deal.category)
        if label:
            title = f"{deal.title} — {label} Deal in {site.city} | {site.name}"
            description = (
                f"{deal.title}: {label.lower()} deal in {site.city}. "
                f"Browse more {label.lower()} deals and offers on {site.name}."
            )
        else:
            title = f"{deal.title} — Deal in {site.city} | {site.name}"
            description = f"{deal.title}: deal in {site.city}. Browse more deals and offers on {site.name}."
        return self._finish(entry, path, title=title, description=description)

    def listing_metadata(
        self,
        entry: RegistryEntry | None,
        listing: ListingPage,
        path: str,
    ) -> PageMetadata:
        site = self._site
        category = listing.category_label or self.category_label(listing.vertical, listing.category)
        locality = listing.locality.name if listing.locality else ""
        templates = LISTING_COPY.get((listing.vertical, listing.kind))
        if templates is None:
            title = f"{site.city} {listing.vertical.capitalize()} | {site.name}"
            return self._finish(entry, path, title=title, description=title)

        fields = {
            "city": site.city,
            "site": site.name,
            "category": category,
            "category_lower": category.lower(),
            "locality": locality,
        }
        title_template, description_template = templates
        return self._finish(
            entry,
            path,
            title=title_template.format(**fields),
            description=description_template.format(**fields),
        )

    def _finish(
        self,
        entry: RegistryEntry | None,
        path: str,
        *,
        title: str,
        description: str,
    ) -> PageMetadata:
        return PageMetadata(
            title=re.sub(r"\s+", " ", title).strip(),
            description=truncate_description(description),
            canonical=self.canonical(entry, path),
            robots=robots_for(entry),
        )
