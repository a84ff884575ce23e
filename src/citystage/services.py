"""Wiring of store, fetchers, resolver and sitemap aggregator."""

from dataclasses import dataclass

import httpx

from citystage.config import Config
from citystage.core.fallback import FallbackResolver
from citystage.core.fetchers import DealFetcher, EventFetcher, LocalityFetcher
from citystage.core.registry import RegistryResolver
from citystage.core.resolver import PageResolver
from citystage.core.sitemap import SitemapAggregator
from citystage.core.store import StoreClient


@dataclass
class Services:
    """Per-application collaborators sharing one store client."""

    store: StoreClient
    resolver: PageResolver
    sitemaps: SitemapAggregator


def build_services(config: Config, client: httpx.AsyncClient) -> Services:
    """Build the application services on top of a shared HTTP client.

    Raises:
        ValueError: If the fallback rules for the configured city are ambiguous
    """
    store = StoreClient(
        client,
        config.store.url,
        config.store.api_key,
        timeout=config.store.timeout,
    )
    page_size = config.store.page_size
    localities = LocalityFetcher(store, page_size=page_size)
    events = EventFetcher(store, page_size=page_size)
    deals = DealFetcher(store, page_size=page_size)

    resolver = PageResolver(
        config.site,
        config.facets,
        RegistryResolver(store),
        FallbackResolver.for_city(config.site.city_slug),
        localities,
        events,
        deals,
    )
    sitemaps = SitemapAggregator(
        config.site,
        config.facets,
        localities,
        events,
        max_entities=config.sitemap.max_entities,
    )
    return Services(store=store, resolver=resolver, sitemaps=sitemaps)
