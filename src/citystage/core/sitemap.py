"""Sitemap generation.

Builds one URL set per vertical from the fetchers and the static facet
catalogs, plus a sitemap index and robots.txt. A failing fetch degrades
the URL set to its static part and records a diagnostic; the rendered
document is always well-formed XML.
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import UTC, datetime

from citystage.config import FacetConfig, SiteConfig
from citystage.core.entities import LocalityEntity
from citystage.core.errors import UpstreamUnavailable
from citystage.core.fetchers import EventFetcher, LocalityFetcher
from citystage.core.types import PageKind, Vertical
from citystage.core.urls import entity_path, listing_path

logger = logging.getLogger(__name__)

SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"

# Vertical sitemap documents, in index order
SITEMAP_FILES = {
    Vertical.LOCALITY: "sitemap-localities.xml",
    Vertical.EVENT: "sitemap-events.xml",
    Vertical.DEAL: "sitemap-deals.xml",
}


@dataclass(frozen=True)
class SitemapUrl:
    """Single <url> entry."""

    loc: str
    changefreq: str
    priority: float
    lastmod: datetime | None = None


@dataclass(frozen=True)
class SitemapRef:
    """Single <sitemap> entry of the index."""

    loc: str
    lastmod: datetime


@dataclass
class SitemapResult:
    """URL set of one vertical plus diagnostics from degraded fetches."""

    urls: list[SitemapUrl] = field(default_factory=list)
    diagnostics: list[str] = field(default_factory=list)


class SitemapAggregator:
    """Produces the URL space of every vertical."""

    def __init__(
        self,
        site: SiteConfig,
        facets: FacetConfig,
        localities: LocalityFetcher,
        events: EventFetcher,
        *,
        max_entities: int = 2000,
    ) -> None:
        """Initialize aggregator.

        Args:
            site: Public site configuration
            facets: Category catalogs crossed with localities
            localities: Locality fetcher
            events: Event fetcher
            max_entities: Cap on entities fetched per dynamic list
        """
        self._site = site
        self._facets = facets
        self._localities = localities
        self._events = events
        self._max_entities = max_entities

    async def build_sitemap(self, vertical: Vertical) -> SitemapResult:
        """Build the URL set of a vertical."""
        result = SitemapResult()
        if vertical is Vertical.LOCALITY:
            await self._locality_urls(result)
        else:
            await self._facet_urls(vertical, result)
            if vertical is Vertical.EVENT:
                await self._event_urls(result)
        return result

    def build_sitemap_index(self) -> list[SitemapRef]:
        now = datetime.now(UTC)
        return [SitemapRef(loc=self._site.url(f"/{name}"), lastmod=now) for name in SITEMAP_FILES.values()]

    async def _list_localities(self, result: SitemapResult) -> list[LocalityEntity]:
        try:
            return await self._localities.list_localities(self._max_entities)
        except UpstreamUnavailable as e:
            logger.warning(f"Sitemap degraded, localities unavailable: {e}")
            result.diagnostics.append("locality list unavailable")
            return []

    async def _locality_urls(self, result: SitemapResult) -> None:
        site = self._site
        result.urls.append(SitemapUrl(site.url(listing_path(Vertical.LOCALITY, PageKind.COLLECTION)), "weekly", 0.7))
        for locality in await self._list_localities(result):
            path = entity_path(Vertical.LOCALITY, locality.slug, site.city_slug)
            result.urls.append(SitemapUrl(site.url(path), "weekly", 0.6, locality.updated_at))

    async def _facet_urls(self, vertical: Vertical, result: SitemapResult) -> None:
        """Collection, category, locality and category x locality URLs."""
        site = self._site
        categories = list(self._facets.for_vertical(vertical))

        result.urls.append(SitemapUrl(site.url(listing_path(vertical, PageKind.COLLECTION)), "daily", 0.8))
        for category in categories:
            path = listing_path(vertical, PageKind.CATEGORY, category=category)
            result.urls.append(SitemapUrl(site.url(path), "weekly", 0.7))

        locality_slugs = [locality.slug for locality in await self._list_localities(result)]
        for slug in locality_slugs:
            path = listing_path(vertical, PageKind.LOCALITY, locality_slug=slug)
            result.urls.append(SitemapUrl(site.url(path), "weekly", 0.6))
        for category in categories:
            for slug in locality_slugs:
                path = listing_path(vertical, PageKind.CATEGORY_LOCALITY, category=category, locality_slug=slug)
                result.urls.append(SitemapUrl(site.url(path), "weekly", 0.5))

    async def _event_urls(self, result: SitemapResult) -> None:
        try:
            events = await self._events.list_visible(limit=self._max_entities)
        except UpstreamUnavailable as e:
            logger.warning(f"Sitemap degraded, events unavailable: {e}")
            result.diagnostics.append("event list unavailable")
            return
        for event in events:
            path = entity_path(Vertical.EVENT, event.slug, self._site.city_slug)
            result.urls.append(SitemapUrl(self._site.url(path), "weekly", 0.7, event.last_modified))


def _lastmod(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _serialize(root: ET.Element) -> str:
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}\n'


def render_urlset(result: SitemapResult) -> str:
    """Render a URL set as a sitemap protocol document.

    Diagnostics become XML comments, so a degraded document stays valid.
    """
    root = ET.Element("urlset", xmlns=SITEMAP_NS)
    for diagnostic in result.diagnostics:
        # "--" is not allowed inside XML comments
        root.append(ET.Comment(f" {re.sub(r'-{2,}', '-', diagnostic)} "))
    for url in result.urls:
        element = ET.SubElement(root, "url")
        ET.SubElement(element, "loc").text = url.loc
        if url.lastmod is not None:
            ET.SubElement(element, "lastmod").text = _lastmod(url.lastmod)
        ET.SubElement(element, "changefreq").text = url.changefreq
        ET.SubElement(element, "priority").text = f"{url.priority:.1f}"
    return _serialize(root)


def render_sitemap_index(refs: list[SitemapRef]) -> str:
    root = ET.Element("sitemapindex", xmlns=SITEMAP_NS)
    for ref in refs:
        element = ET.SubElement(root, "sitemap")
        ET.SubElement(element, "loc").text = ref.loc
        ET.SubElement(element, "lastmod").text = _lastmod(ref.lastmod)
    return _serialize(root)


def render_robots(site: SiteConfig, disallow: list[str]) -> str:
    lines = ["User-agent: *", "Allow: /"]
    lines.extend(f"Disallow: {path}" for path in disallow)
    lines.append("")
    lines.append(f"Sitemap: {site.url('/sitemap.xml')}")
    lines.extend(f"Sitemap: {site.url(f'/{name}')}" for name in SITEMAP_FILES.values())
    return "\n".join(lines) + "\n"
