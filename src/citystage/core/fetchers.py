"""Read-only fetchers for each content vertical.

Each fetcher selects an explicit column list rather than ``*`` so only
columns the pages depend on are requested. Store errors propagate as
``UpstreamUnavailable``; a missing row is ``None``.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import TypeVar

from citystage.core.entities import (
    VISIBLE_EVENT_STATUSES,
    DealEntity,
    EventEntity,
    LocalityEntity,
)
from citystage.core.normalize import is_slug, slugify
from citystage.core.store import Query, StoreClient

logger = logging.getLogger(__name__)

E = TypeVar("E", LocalityEntity, EventEntity, DealEntity)

LOCALITY_COLUMNS = (
    "id",
    "slug",
    "name",
    "zone",
    "ward",
    "police_station",
    "pin_code",
    "assembly_constituency",
    "population",
    "latitude",
    "longitude",
    "micro_localities",
    "nearby_localities",
    "adjacent_localities",
    "landmarks",
    "connectivity",
    "tags",
    "meta_title",
    "meta_description",
    "updated_at",
)

LOCALITY_LIST_COLUMNS = ("id", "slug", "name", "updated_at")

EVENT_COLUMNS = (
    "id",
    "title",
    "slug",
    "status",
    "short_description",
    "description",
    "start_date",
    "end_date",
    "timezone",
    "is_all_day",
    "venue_name",
    "venue_address",
    "locality",
    "category",
    "tags",
    "cover_image",
    "is_free",
    "ticket_price",
    "registration_url",
    "registration_deadline",
    "is_online",
    "online_url",
    "latitude",
    "longitude",
    "organizer_name",
    "organizer_email",
    "organizer_phone",
    "meta_title",
    "meta_description",
    "updated_at",
    "published_at",
)

EVENT_LIST_COLUMNS = (
    "id",
    "slug",
    "title",
    "status",
    "category",
    "locality",
    "venue_name",
    "start_date",
    "updated_at",
    "published_at",
)

DEAL_COLUMNS = ("id", "slug", "title", "category")


class _Fetcher:
    """Shared plumbing: store access and the listing page-size cap."""

    table = ""

    def __init__(self, store: StoreClient, *, page_size: int = 5000) -> None:
        """Initialize fetcher.

        Args:
            store: Store client used for every read
            page_size: Hard cap on rows returned by listing queries
        """
        self._store = store
        self._page_size = page_size

    def _cap(self, limit: int | None) -> int:
        if limit is None:
            return self._page_size
        return max(0, min(limit, self._page_size))

    def _routable(self, entities: Iterable[E]) -> list[E]:
        """Drop entities whose slug cannot appear in a page URL."""
        routable = []
        for entity in entities:
            if not is_slug(entity.slug):
                logger.warning(f"Skipping {self.table} row {entity.id!r} with unroutable slug {entity.slug!r}")
                continue
            routable.append(entity)
        return routable


class LocalityFetcher(_Fetcher):
    """Locality lookups."""

    table = "localities"

    async def fetch_by_slug(self, slug: str) -> LocalityEntity | None:
        query = Query(self.table).select(*LOCALITY_COLUMNS).eq("slug", slug)
        row = await self._store.fetch_one(query)
        return LocalityEntity.from_row(row) if row else None

    async def fetch_by_id(self, entity_id: str) -> LocalityEntity | None:
        query = Query(self.table).select(*LOCALITY_COLUMNS).eq("id", entity_id)
        row = await self._store.fetch_one(query)
        return LocalityEntity.from_row(row) if row else None

    async def list_localities(self, limit: int | None = None) -> list[LocalityEntity]:
        """List localities ordered by name, bounded by the page-size cap."""
        count = self._cap(limit)
        if count == 0:
            return []
        query = Query(self.table).select(*LOCALITY_LIST_COLUMNS).order("name").limit(count)
        rows = await self._store.fetch(query)
        return self._routable(map(LocalityEntity.from_row, rows))

    async def match_free_text(self, text: str) -> LocalityEntity | None:
        """Match free text (e.g., an event's locality field) to a locality.

        Tries the text as a slug first (slugifying it when it isn't one),
        then falls back to a case-insensitive name match. Best effort: the
        text is not a foreign key, so a miss is an ordinary outcome.
        """
        cleaned = text.strip()
        if not cleaned:
            return None

        lowered = cleaned.lower()
        candidate = lowered if is_slug(lowered) else slugify(cleaned)
        if candidate:
            by_slug = await self.fetch_by_slug(candidate)
            if by_slug is not None:
                return by_slug

        # ilike wildcards in the stored text would widen the match
        if "*" in cleaned or "%" in cleaned:
            return None
        query = Query(self.table).select(*LOCALITY_LIST_COLUMNS).ilike("name", cleaned)
        row = await self._store.fetch_one(query)
        if not row:
            return None
        matched = LocalityEntity.from_row(row)
        return matched if is_slug(matched.slug) else None


class EventFetcher(_Fetcher):
    """Event lookups restricted to visible statuses."""

    table = "events"

    def _visible(self, columns: tuple[str, ...]) -> Query:
        return Query(self.table).select(*columns).in_("status", VISIBLE_EVENT_STATUSES)

    async def fetch_by_slug(self, slug: str) -> EventEntity | None:
        row = await self._store.fetch_one(self._visible(EVENT_COLUMNS).eq("slug", slug))
        return EventEntity.from_row(row) if row else None

    async def fetch_by_id(self, entity_id: str) -> EventEntity | None:
        row = await self._store.fetch_one(self._visible(EVENT_COLUMNS).eq("id", entity_id))
        return EventEntity.from_row(row) if row else None

    async def list_visible(
        self,
        *,
        category: str | None = None,
        locality_name: str | None = None,
        starting_after: datetime | None = None,
        limit: int | None = None,
    ) -> list[EventEntity]:
        """List visible events.

        Args:
            category: Only events in this category
            locality_name: Only events whose free-text locality matches this
                           name case-insensitively
            starting_after: Only events starting at or after this moment,
                            ordered by start date ascending. Without it,
                            the most recent start dates come first.
            limit: Requested row count, bounded by the page-size cap

        Returns:
            Visible events
        """
        count = self._cap(limit)
        if count == 0:
            return []

        query = self._visible(EVENT_LIST_COLUMNS)
        if category:
            query = query.eq("category", category)
        if locality_name:
            query = query.ilike("locality", locality_name)
        if starting_after is not None:
            query = query.gte("start_date", starting_after.isoformat()).order("start_date")
        else:
            query = query.order("start_date", descending=True)

        rows = await self._store.fetch(query.limit(count))
        events = (EventEntity.from_row(row) for row in rows)
        return self._routable(event for event in events if event.is_visible)


class DealFetcher(_Fetcher):
    """Deal lookups."""

    table = "deals"

    async def fetch_by_slug(self, slug: str) -> DealEntity | None:
        query = Query(self.table).select(*DEAL_COLUMNS).eq("slug", slug)
        row = await self._store.fetch_one(query)
        return DealEntity.from_row(row) if row else None

    async def fetch_by_id(self, entity_id: str) -> DealEntity | None:
        query = Query(self.table).select(*DEAL_COLUMNS).eq("id", entity_id)
        row = await self._store.fetch_one(query)
        return DealEntity.from_row(row) if row else None

    async def list_deals(
        self,
        *,
        category: str | None = None,
        limit: int | None = None,
    ) -> list[DealEntity]:
        """List deals by descending id, optionally within a category."""
        count = self._cap(limit)
        if count == 0:
            return []
        query = Query(self.table).select(*DEAL_COLUMNS)
        if category:
            query = query.eq("category", category)
        rows = await self._store.fetch(query.order("id", descending=True).limit(count))
        return self._routable(map(DealEntity.from_row, rows))
