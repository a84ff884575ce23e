"""Request path resolution.

Resolves a path to a page through the registry first and the fallback
rules second, fetches the entity (or listing) behind it, and attaches
metadata, breadcrumbs and structured data. Each vertical is described
once in a dispatch table, so adding a vertical means adding a descriptor.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import asdict, dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from typing import Any, cast

from citystage.config import FacetConfig, SiteConfig
from citystage.core.entities import (
    DealEntity,
    Entity,
    EventEntity,
    ListingPage,
    LocalityEntity,
    Page,
)
from citystage.core.errors import NotFound, RegistryUnavailable, UpstreamTimeout, UpstreamUnavailable
from citystage.core.fallback import FallbackResolver, PageTarget
from citystage.core.fetchers import DealFetcher, EventFetcher, LocalityFetcher
from citystage.core.metadata import MetadataSynthesizer, PageMetadata
from citystage.core.registry import RegistryEntry, RegistryResolver
from citystage.core.structured import BreadcrumbItem, StructuredDataBuilder
from citystage.core.types import PageKind, URLPath, Vertical, normalize_path, path_segments
from citystage.core.urls import VERTICAL_PREFIXES, entity_path, listing_path

logger = logging.getLogger(__name__)

# Entities shown on a collection or facet page
LISTING_LIMIT = 60

VERTICAL_TITLES = {
    Vertical.LOCALITY: "Localities",
    Vertical.EVENT: "Events",
    Vertical.DEAL: "Deals",
}


@dataclass(frozen=True)
class VerticalDescriptor:
    """Everything the resolver needs to know about one vertical."""

    vertical: Vertical
    table: str
    fetch_by_slug: Callable[[str], Awaitable[Entity | None]]
    fetch_by_id: Callable[[str], Awaitable[Entity | None]]
    fetch_listing: Callable[[ListingPage], Awaitable[list[Entity]]]
    build_meta: Callable[[RegistryEntry | None, Any, str], PageMetadata]
    build_ld: Callable[["ResolvedPage"], dict[str, Any]]

    def canonical_path(self, entity: Entity, city_slug: str) -> URLPath:
        return entity_path(self.vertical, entity.slug, city_slug)


@dataclass
class ResolvedPage:
    """Outcome of resolving one request path."""

    path: str
    vertical: Vertical
    kind: PageKind
    page: Page
    registry_entry: RegistryEntry | None
    metadata: PageMetadata
    breadcrumbs: list[BreadcrumbItem] = field(default_factory=list)
    structured_data: list[dict[str, Any]] = field(default_factory=list)
    links: dict[str, str] = field(default_factory=dict)
    redirect_to: str | None = None
    locality_match: LocalityEntity | None = None

    @property
    def last_modified(self) -> datetime | None:
        if isinstance(self.page, EventEntity):
            return self.page.last_modified
        if isinstance(self.page, LocalityEntity):
            return self.page.updated_at
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for the JSON page API."""
        last_modified = self.last_modified
        return {
            "meta": {
                **self.metadata.to_dict(),
                "path": self.path,
                "vertical": str(self.vertical),
                "kind": str(self.kind),
                "last_modified": last_modified.isoformat() if last_modified else None,
            },
            "robots": self.metadata.robots.to_dict(),
            "breadcrumbs": [item.to_dict() for item in self.breadcrumbs],
            "structuredData": self.structured_data,
            "entity": _jsonable(asdict(self.page)),
            "links": self.links,
        }


def _jsonable(value: Any) -> Any:
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, list):
        return [_jsonable(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class PageResolver:
    """Resolves request paths to pages with metadata and structured data."""

    def __init__(
        self,
        site: SiteConfig,
        facets: FacetConfig,
        registry: RegistryResolver,
        fallback: FallbackResolver,
        localities: LocalityFetcher,
        events: EventFetcher,
        deals: DealFetcher,
    ) -> None:
        """Initialize resolver.

        Args:
            site: Public site configuration
            facets: Category catalogs per vertical
            registry: Registry lookup
            fallback: Path-shape rules used when the registry has no answer
            localities: Locality fetcher
            events: Event fetcher
            deals: Deal fetcher
        """
        self._site = site
        self._facets = facets
        self._registry = registry
        self._fallback = fallback
        self._localities = localities
        self._events = events
        self._deals = deals
        self._meta = MetadataSynthesizer(site, facets.categories)
        self._ld = StructuredDataBuilder(site)

        self._descriptors = {
            Vertical.LOCALITY: VerticalDescriptor(
                vertical=Vertical.LOCALITY,
                table=LocalityFetcher.table,
                fetch_by_slug=localities.fetch_by_slug,
                fetch_by_id=localities.fetch_by_id,
                fetch_listing=self._list_localities,
                build_meta=self._meta.locality_metadata,
                build_ld=self._locality_ld,
            ),
            Vertical.EVENT: VerticalDescriptor(
                vertical=Vertical.EVENT,
                table=EventFetcher.table,
                fetch_by_slug=events.fetch_by_slug,
                fetch_by_id=events.fetch_by_id,
                fetch_listing=self._list_events,
                build_meta=self._meta.event_metadata,
                build_ld=self._event_ld,
            ),
            Vertical.DEAL: VerticalDescriptor(
                vertical=Vertical.DEAL,
                table=DealFetcher.table,
                fetch_by_slug=deals.fetch_by_slug,
                fetch_by_id=deals.fetch_by_id,
                fetch_listing=self._list_deals,
                build_meta=self._meta.deal_metadata,
                build_ld=self._deal_ld,
            ),
        }
        # Registry page_type values and the vertical each dispatches to
        self._page_types = {str(vertical): vertical for vertical in Vertical}

    async def resolve(self, path: str) -> ResolvedPage:
        """Resolve a request path.

        Args:
            path: Request path (e.g., "/jaipur/malviya-nagar")

        Returns:
            ResolvedPage; ``redirect_to`` is set for alias paths

        Raises:
            NotFound: If no visible content exists for the path, or the
                      store timed out while fetching it
            UpstreamUnavailable: If the store failed while fetching content
        """
        path = normalize_path(path)
        entry = await self._lookup_registry(path)

        target = self._target_from_registry(entry, path) if entry else None
        if target is None:
            target = self._fallback.infer_vertical(path)
        if target is None:
            raise NotFound(path)

        descriptor = self._descriptors[target.vertical]
        try:
            if target.kind is PageKind.ENTITY:
                page: Page | None = await self._fetch_entity(descriptor, target)
            else:
                page = await self._fetch_listing(descriptor, target)
        except UpstreamTimeout as e:
            logger.warning(f"Treating {path} as not found: {e}")
            raise NotFound(path) from e

        if page is None:
            raise NotFound(path)

        if target.alias and isinstance(page, LocalityEntity | EventEntity | DealEntity):
            canonical_path = descriptor.canonical_path(page, self._site.city_slug)
            resolved = await self._build(descriptor, target, entry, page, canonical_path)
            resolved.redirect_to = canonical_path
            return resolved

        return await self._build(descriptor, target, entry, page, path)

    async def _lookup_registry(self, path: str) -> RegistryEntry | None:
        try:
            return await self._registry.resolve(path)
        except RegistryUnavailable as e:
            logger.warning(f"Registry lookup failed for {path}, using fallback rules: {e}")
            return None

    def _target_from_registry(self, entry: RegistryEntry, path: str) -> PageTarget | None:
        """Turn a registry entry into a page target.

        Entries whose page type has no descriptor return None so the
        fallback rules decide; their crawl directives still apply.
        """
        vertical = self._page_types.get(entry.page_type)
        if vertical is None:
            logger.debug(f"Registry page type {entry.page_type!r} for {path} has no descriptor")
            return None

        descriptor = self._descriptors[vertical]
        if entry.entity_table and entry.entity_table != descriptor.table:
            logger.warning(
                f"Registry entry for {path} names table {entry.entity_table!r}, "
                f"expected {descriptor.table!r}; ignoring it",
            )

        # Entity reference: key (slug), then id, then the last path segment
        slug = entry.entity_key
        if slug is None and entry.entity_id is None:
            segments = path_segments(path)
            if not segments:
                return None
            slug = segments[-1]
        return PageTarget(vertical=vertical, slug=slug, entity_id=entry.entity_id)

    async def _fetch_entity(self, descriptor: VerticalDescriptor, target: PageTarget) -> Entity | None:
        if target.slug:
            return await descriptor.fetch_by_slug(target.slug)
        if target.entity_id:
            return await descriptor.fetch_by_id(target.entity_id)
        return None

    async def _fetch_listing(self, descriptor: VerticalDescriptor, target: PageTarget) -> ListingPage | None:
        """Build a collection or facet page.

        Unknown categories and unknown localities are not found, so facet
        URLs only resolve for keys the sitemap could have emitted.
        """
        category_label = None
        if target.category is not None:
            category_label = self._facets.for_vertical(target.vertical).get(target.category)
            if category_label is None:
                return None

        listing = ListingPage(
            vertical=target.vertical,
            kind=target.kind,
            category=target.category,
            category_label=category_label,
        )

        if target.kind not in (PageKind.LOCALITY, PageKind.CATEGORY_LOCALITY):
            return replace(listing, items=await descriptor.fetch_listing(listing))

        if target.slug is None:
            return None

        if target.vertical is Vertical.EVENT:
            # Event rows carry the locality as free text, so the name is needed first
            locality = await self._localities.fetch_by_slug(target.slug)
            if locality is None:
                return None
            listing = replace(listing, locality=locality)
            return replace(listing, items=await descriptor.fetch_listing(listing))

        locality, items = await asyncio.gather(
            self._localities.fetch_by_slug(target.slug),
            descriptor.fetch_listing(listing),
        )
        if locality is None:
            return None
        return replace(listing, locality=locality, items=items)

    async def _list_localities(self, listing: ListingPage) -> list[Entity]:
        return list(await self._localities.list_localities(LISTING_LIMIT))

    async def _list_events(self, listing: ListingPage) -> list[Entity]:
        events = await self._events.list_visible(
            category=listing.category,
            locality_name=listing.locality.name if listing.locality else None,
            starting_after=datetime.now(UTC),
            limit=LISTING_LIMIT,
        )
        return list(events)

    async def _list_deals(self, listing: ListingPage) -> list[Entity]:
        return list(await self._deals.list_deals(category=listing.category, limit=LISTING_LIMIT))

    async def _match_event_locality(self, event: EventEntity) -> LocalityEntity | None:
        if not event.locality:
            return None
        try:
            return await self._localities.match_free_text(event.locality)
        except UpstreamUnavailable as e:
            logger.warning(f"Skipping locality match for event {event.slug}: {e}")
            return None

    async def _build(
        self,
        descriptor: VerticalDescriptor,
        target: PageTarget,
        entry: RegistryEntry | None,
        page: Page,
        path: str,
    ) -> ResolvedPage:
        if isinstance(page, ListingPage):
            metadata = self._meta.listing_metadata(entry, page, path)
            breadcrumbs = self._ld.breadcrumb_items(path, self._listing_labels(page, path))
        else:
            metadata = descriptor.build_meta(entry, page, path)
            breadcrumbs = self._ld.breadcrumb_items(path, self._entity_labels(descriptor.vertical, page, path))

        resolved = ResolvedPage(
            path=path,
            vertical=descriptor.vertical,
            kind=target.kind,
            page=page,
            registry_entry=entry,
            metadata=metadata,
            breadcrumbs=breadcrumbs,
        )

        if isinstance(page, EventEntity):
            resolved.locality_match = await self._match_event_locality(page)

        if isinstance(page, ListingPage):
            page_ld = self._ld.listing(page, metadata.canonical, metadata.title, metadata.description)
        else:
            page_ld = descriptor.build_ld(resolved)
        resolved.structured_data = [self._ld.breadcrumb(breadcrumbs), page_ld]
        resolved.links = self._links(resolved)
        return resolved

    def _locality_ld(self, resolved: ResolvedPage) -> dict[str, Any]:
        return self._ld.locality(cast(LocalityEntity, resolved.page), resolved.metadata.canonical)

    def _event_ld(self, resolved: ResolvedPage) -> dict[str, Any]:
        locality_name = resolved.locality_match.name if resolved.locality_match else None
        return self._ld.event(cast(EventEntity, resolved.page), resolved.metadata.canonical, locality_name)

    def _deal_ld(self, resolved: ResolvedPage) -> dict[str, Any]:
        deal = cast(DealEntity, resolved.page)
        label = self._meta.category_label(Vertical.DEAL, deal.category)
        return self._ld.deal(deal, resolved.metadata.canonical, label)

    def _entity_labels(self, vertical: Vertical, entity: Page, path: str) -> dict[str, str]:
        site = self._site
        name = entity.name if isinstance(entity, LocalityEntity) else getattr(entity, "title", "")
        labels = {
            f"/{site.city_slug}": site.city,
            f"/{VERTICAL_PREFIXES[vertical]}": VERTICAL_TITLES[vertical],
        }
        if name:
            labels[normalize_path(path)] = name
        return labels

    def _listing_labels(self, listing: ListingPage, path: str) -> dict[str, str]:
        prefix = f"/{VERTICAL_PREFIXES[listing.vertical]}"
        labels = {prefix: VERTICAL_TITLES[listing.vertical]}
        if listing.category:
            category_path = listing_path(listing.vertical, PageKind.CATEGORY, category=listing.category)
            labels[category_path] = listing.category_label or listing.category
        if listing.locality:
            labels[normalize_path(path)] = listing.locality.name
        return labels

    def _links(self, resolved: ResolvedPage) -> dict[str, str]:
        """Related internal paths rendered as navigation on the page."""
        page = resolved.page
        city_slug = self._site.city_slug
        links: dict[str, str] = {}

        if isinstance(page, LocalityEntity):
            links["collection"] = listing_path(Vertical.LOCALITY, PageKind.COLLECTION)
            links["events"] = listing_path(Vertical.EVENT, PageKind.LOCALITY, locality_slug=page.slug)
            links["deals"] = listing_path(Vertical.DEAL, PageKind.LOCALITY, locality_slug=page.slug)
        elif isinstance(page, EventEntity):
            links["collection"] = listing_path(Vertical.EVENT, PageKind.COLLECTION)
            if page.category in self._facets.for_vertical(Vertical.EVENT):
                links["category"] = listing_path(Vertical.EVENT, PageKind.CATEGORY, category=page.category)
            if resolved.locality_match is not None:
                links["locality"] = entity_path(Vertical.LOCALITY, resolved.locality_match.slug, city_slug)
        elif isinstance(page, DealEntity):
            links["collection"] = listing_path(Vertical.DEAL, PageKind.COLLECTION)
            if page.category in self._facets.for_vertical(Vertical.DEAL):
                links["category"] = listing_path(Vertical.DEAL, PageKind.CATEGORY, category=page.category)
        else:
            if page.kind is not PageKind.COLLECTION:
                links["collection"] = listing_path(page.vertical, PageKind.COLLECTION)
            if page.locality is not None:
                links["locality"] = entity_path(Vertical.LOCALITY, page.locality.slug, city_slug)

        return links
