"""Typed content records.

Each record is built from a raw store row through the normalizer, so
scalar/collection/object variants of a field all arrive as the same shape.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from citystage.core.normalize import first_text, to_bool, to_float, to_list, to_text
from citystage.core.types import PageKind, Vertical

# Event statuses eligible for resolution and listing
VISIBLE_EVENT_STATUSES = ("published", "active", "live")


def parse_datetime(value: object) -> datetime | None:
    """Parse an ISO-8601 timestamp, returning None for anything else."""
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _id(row: dict[str, Any]) -> str | None:
    value = row.get("id")
    return None if value is None else str(value)


@dataclass(frozen=True)
class LocalityEntity:
    """Locality (neighbourhood) record."""

    slug: str
    name: str
    id: str | None = None
    zone: str = ""
    ward: str = ""
    police_station: str = ""
    pin_codes: list[str] = field(default_factory=list)
    assembly_constituency: str = ""
    population: str = ""
    latitude: float | None = None
    longitude: float | None = None
    micro_localities: list[str] = field(default_factory=list)
    nearby_localities: list[str] = field(default_factory=list)
    adjacent_localities: list[str] = field(default_factory=list)
    landmarks: list[str] = field(default_factory=list)
    connectivity: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    meta_title: str = ""
    meta_description: str = ""
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> LocalityEntity:
        slug = to_text(row.get("slug"))
        return cls(
            slug=slug,
            name=first_text(row.get("name")) or first_text(row.get("title")) or slug,
            id=_id(row),
            zone=to_text(row.get("zone")),
            ward=to_text(row.get("ward")),
            police_station=to_text(row.get("police_station")),
            pin_codes=to_list([row.get("pin_code"), row.get("pin_codes")]),
            assembly_constituency=to_text(row.get("assembly_constituency")),
            population=to_text(row.get("population")),
            latitude=to_float(row.get("latitude")),
            longitude=to_float(row.get("longitude")),
            micro_localities=to_list(row.get("micro_localities")),
            nearby_localities=to_list(row.get("nearby_localities")),
            adjacent_localities=to_list(row.get("adjacent_localities")),
            landmarks=to_list(row.get("landmarks")),
            connectivity=to_list(row.get("connectivity")),
            tags=to_list(row.get("tags")),
            meta_title=to_text(row.get("meta_title"), sep=" "),
            meta_description=to_text(row.get("meta_description"), sep=" "),
            updated_at=parse_datetime(row.get("updated_at")),
        )


@dataclass(frozen=True)
class EventEntity:
    """Event record."""

    slug: str
    title: str
    id: str | None = None
    status: str = ""
    short_description: str = ""
    description: str = ""
    start_date: datetime | None = None
    end_date: datetime | None = None
    timezone: str = ""
    is_all_day: bool = False
    venue_name: str = ""
    venue_address: str = ""
    locality: str = ""
    category: str = ""
    tags: list[str] = field(default_factory=list)
    cover_image: str = ""
    is_free: bool = False
    ticket_price: float | None = None
    registration_url: str = ""
    registration_deadline: datetime | None = None
    is_online: bool = False
    online_url: str = ""
    latitude: float | None = None
    longitude: float | None = None
    organizer_name: str = ""
    organizer_email: str = ""
    organizer_phone: str = ""
    meta_title: str = ""
    meta_description: str = ""
    updated_at: datetime | None = None
    published_at: datetime | None = None

    @property
    def is_visible(self) -> bool:
        return self.status in VISIBLE_EVENT_STATUSES

    @property
    def last_modified(self) -> datetime | None:
        return self.updated_at or self.published_at

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> EventEntity:
        slug = to_text(row.get("slug"))
        return cls(
            slug=slug,
            title=first_text(row.get("title")) or slug,
            id=_id(row),
            status=to_text(row.get("status")).lower(),
            short_description=to_text(row.get("short_description"), sep=" "),
            description=to_text(row.get("description"), sep=" "),
            start_date=parse_datetime(row.get("start_date")),
            end_date=parse_datetime(row.get("end_date")),
            timezone=to_text(row.get("timezone")),
            is_all_day=to_bool(row.get("is_all_day")),
            venue_name=to_text(row.get("venue_name")),
            venue_address=to_text(row.get("venue_address")),
            locality=to_text(row.get("locality")),
            category=to_text(row.get("category")).lower(),
            tags=to_list(row.get("tags")),
            cover_image=first_text(row.get("cover_image")) or "",
            is_free=to_bool(row.get("is_free")),
            ticket_price=to_float(row.get("ticket_price")),
            registration_url=to_text(row.get("registration_url")),
            registration_deadline=parse_datetime(row.get("registration_deadline")),
            is_online=to_bool(row.get("is_online")),
            online_url=to_text(row.get("online_url")),
            latitude=to_float(row.get("latitude")),
            longitude=to_float(row.get("longitude")),
            organizer_name=to_text(row.get("organizer_name")),
            organizer_email=to_text(row.get("organizer_email")),
            organizer_phone=to_text(row.get("organizer_phone")),
            meta_title=to_text(row.get("meta_title"), sep=" "),
            meta_description=to_text(row.get("meta_description"), sep=" "),
            updated_at=parse_datetime(row.get("updated_at")),
            published_at=parse_datetime(row.get("published_at")),
        )


@dataclass(frozen=True)
class DealEntity:
    """Deal record, keyed by category."""

    slug: str
    title: str
    id: str | None = None
    category: str = ""

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> DealEntity:
        slug = to_text(row.get("slug"))
        return cls(
            slug=slug,
            title=first_text(row.get("title")) or first_text(row.get("name")) or slug,
            id=_id(row),
            category=to_text(row.get("category")).lower(),
        )


Entity = LocalityEntity | EventEntity | DealEntity


@dataclass(frozen=True)
class ListingPage:
    """Collection or facet page: a vertical narrowed by category and/or locality."""

    vertical: Vertical
    kind: PageKind
    category: str | None = None
    category_label: str | None = None
    locality: LocalityEntity | None = None
    items: list[Entity] = field(default_factory=list)


Page = Entity | ListingPage
