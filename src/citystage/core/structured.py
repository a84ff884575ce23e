"""schema.org structured data for resolved pages.

Every builder returns plain dicts ready for ``json.dumps``; keys whose
value is None are dropped recursively rather than serialized as null.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from citystage.config import SiteConfig
from citystage.core.entities import DealEntity, EventEntity, ListingPage, LocalityEntity
from citystage.core.normalize import titleize
from citystage.core.types import Vertical, path_segments
from citystage.core.urls import entity_path

SCHEMA_CONTEXT = "https://schema.org"

# Items listed in a CollectionPage's ItemList
ITEM_LIST_LIMIT = 10


@dataclass
class BreadcrumbItem:
    """Breadcrumb navigation item."""

    title: str
    path: str

    def to_dict(self) -> dict[str, str]:
        """Convert to dictionary for JSON serialization."""
        return {"title": self.title, "path": self.path}


def compact(value: Any) -> Any:
    """Drop None values (and containers left empty by dropping) recursively."""
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            item = compact(item)
            if item is None or item == {} or item == []:
                continue
            result[key] = item
        return result
    if isinstance(value, list):
        return [item for item in (compact(v) for v in value) if item is not None]
    return value


def _or_none(text: str) -> str | None:
    return text or None


class StructuredDataBuilder:
    """Builds JSON-LD objects for breadcrumbs, entities and listings."""

    def __init__(self, site: SiteConfig) -> None:
        self._site = site

    def breadcrumb_items(self, path: str, labels: Mapping[str, str] | None = None) -> list[BreadcrumbItem]:
        """One item per path segment, each pointing at its path prefix.

        Args:
            path: URL path (e.g., "/events/category/music")
            labels: Display labels keyed by prefix path; segments without a
                    label are title-cased from the slug
        """
        labels = labels or {}
        items: list[BreadcrumbItem] = []
        prefix = ""
        for segment in path_segments(path):
            prefix = f"{prefix}/{segment}"
            items.append(BreadcrumbItem(title=labels.get(prefix) or titleize(segment), path=prefix))
        return items

    def breadcrumb(self, items: list[BreadcrumbItem]) -> dict[str, Any]:
        return {
            "@context": SCHEMA_CONTEXT,
            "@type": "BreadcrumbList",
            "itemListElement": [
                {
                    "@type": "ListItem",
                    "position": position,
                    "name": item.title,
                    "item": self._site.url(item.path),
                }
                for position, item in enumerate(items, start=1)
            ],
        }

    def _geo(self, latitude: float | None, longitude: float | None) -> dict[str, Any] | None:
        if latitude is None or longitude is None:
            return None
        return {"@type": "GeoCoordinates", "latitude": latitude, "longitude": longitude}

    def locality(self, locality: LocalityEntity, canonical: str) -> dict[str, Any]:
        site = self._site
        return compact(
            {
                "@context": SCHEMA_CONTEXT,
                "@type": "Place",
                "name": locality.name,
                "url": canonical,
                "description": _or_none(locality.meta_description),
                "address": {
                    "@type": "PostalAddress",
                    "addressLocality": site.city,
                    "addressRegion": site.region,
                    "addressCountry": site.country,
                    "postalCode": locality.pin_codes[0] if locality.pin_codes else None,
                },
                "geo": self._geo(locality.latitude, locality.longitude),
                "containedInPlace": {"@type": "City", "name": site.city},
                "keywords": ", ".join(locality.tags) or None,
            },
        )

    def event(self, event: EventEntity, canonical: str, locality_name: str | None = None) -> dict[str, Any]:
        """Event object.

        Online events get a VirtualLocation; everything else a Place with a
        postal address. Offers appear only for free or priced events.
        """
        site = self._site
        if event.is_online:
            mode = "https://schema.org/OnlineEventAttendanceMode"
            location: dict[str, Any] = {
                "@type": "VirtualLocation",
                "url": _or_none(event.online_url) or _or_none(event.registration_url),
            }
        else:
            mode = "https://schema.org/OfflineEventAttendanceMode"
            location = {
                "@type": "Place",
                "name": event.venue_name or "Venue to be announced",
                "address": {
                    "@type": "PostalAddress",
                    "addressLocality": locality_name or _or_none(event.locality),
                    "addressRegion": site.region,
                    "addressCountry": site.country,
                    "streetAddress": _or_none(event.venue_address),
                },
                "geo": self._geo(event.latitude, event.longitude),
            }

        offers = None
        if event.is_free or event.ticket_price is not None:
            offers = {
                "@type": "Offer",
                "priceCurrency": site.currency,
                "price": 0 if event.is_free else event.ticket_price,
                "url": _or_none(event.registration_url),
                "availability": "https://schema.org/InStock",
            }

        organizer = None
        if event.organizer_name:
            organizer = {
                "@type": "Organization",
                "name": event.organizer_name,
                "email": _or_none(event.organizer_email),
                "telephone": _or_none(event.organizer_phone),
            }

        return compact(
            {
                "@context": SCHEMA_CONTEXT,
                "@type": "Event",
                "name": event.title,
                "url": canonical,
                "startDate": event.start_date.isoformat() if event.start_date else None,
                "endDate": event.end_date.isoformat() if event.end_date else None,
                "eventAttendanceMode": mode,
                "eventStatus": "https://schema.org/EventScheduled",
                "location": location,
                "image": [event.cover_image] if event.cover_image else None,
                "description": _or_none(event.short_description) or _or_none(event.description),
                "organizer": organizer,
                "offers": offers,
            },
        )

    def deal(self, deal: DealEntity, canonical: str, category_label: str = "") -> dict[str, Any]:
        site = self._site
        return compact(
            {
                "@context": SCHEMA_CONTEXT,
                "@type": "Offer",
                "name": deal.title,
                "url": canonical,
                "category": _or_none(category_label),
                "areaServed": {"@type": "City", "name": site.city},
                "seller": {"@type": "Organization", "name": site.name, "url": site.origin},
            },
        )

    def listing(self, listing: ListingPage, canonical: str, name: str, description: str) -> dict[str, Any]:
        site = self._site
        elements = []
        for position, item in enumerate(listing.items[:ITEM_LIST_LIMIT], start=1):
            if isinstance(item, LocalityEntity):
                vertical, label = Vertical.LOCALITY, item.name
            elif isinstance(item, EventEntity):
                vertical, label = Vertical.EVENT, item.title
            else:
                vertical, label = Vertical.DEAL, item.title
            elements.append(
                {
                    "@type": "ListItem",
                    "position": position,
                    "url": site.url(entity_path(vertical, item.slug, site.city_slug)),
                    "name": label,
                },
            )

        return compact(
            {
                "@context": SCHEMA_CONTEXT,
                "@type": "CollectionPage",
                "name": name,
                "description": description,
                "url": canonical,
                "isPartOf": {"@type": "WebSite", "name": site.name, "url": site.origin},
                "mainEntity": {"@type": "ItemList", "itemListElement": elements},
            },
        )
