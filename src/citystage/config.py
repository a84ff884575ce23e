"""Configuration management for Citystage.

Supports TOML configuration format with auto-discovery.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path

from citystage.core.normalize import is_slug
from citystage.core.types import Vertical

CONFIG_FILENAME = "citystage.toml"

DEFAULT_EVENT_CATEGORIES = {
    "music": "Music",
    "festival": "Festivals",
    "food": "Food & Dining",
    "comedy": "Comedy",
    "workshop": "Workshops",
    "sports": "Sports",
    "kids": "Kids & Family",
    "art": "Art & Culture",
    "nightlife": "Nightlife",
}

DEFAULT_DEAL_CATEGORIES = {
    "restaurants": "Restaurants",
    "cafes": "Cafes",
    "shopping": "Shopping",
    "salons": "Salons",
    "gyms": "Gyms",
    "event-tickets": "Event tickets",
}

DEFAULT_DISALLOW = ["/admin", "/auth", "/settings", "/api"]


@dataclass
class ServerConfig:
    """Server configuration."""

    host: str = "127.0.0.1"
    port: int = 8080


@dataclass
class SiteConfig:
    """Public site identity used for canonical URLs and copy."""

    origin: str = "http://localhost:8080"
    name: str = "JaipurCircle"
    city: str = "Jaipur"
    city_slug: str = "jaipur"
    region: str = "Rajasthan"
    country: str = "IN"
    currency: str = "INR"

    def url(self, path: str) -> str:
        """Build an absolute URL for a site path."""
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self.origin}{path}"


@dataclass
class StoreConfig:
    """External content store (PostgREST-compatible REST endpoint)."""

    url: str | None = None
    api_key: str | None = None
    timeout: float = 10.0
    page_size: int = 5000


@dataclass
class SitemapConfig:
    """Sitemap generation configuration."""

    max_entities: int = 2000


@dataclass
class RobotsConfig:
    """robots.txt configuration."""

    disallow: list[str] = field(default_factory=lambda: list(DEFAULT_DISALLOW))


@dataclass
class FacetConfig:
    """Static category catalogs per vertical (key -> display label)."""

    categories: dict[Vertical, dict[str, str]] = field(
        default_factory=lambda: {
            Vertical.EVENT: dict(DEFAULT_EVENT_CATEGORIES),
            Vertical.DEAL: dict(DEFAULT_DEAL_CATEGORIES),
        },
    )

    def for_vertical(self, vertical: Vertical) -> dict[str, str]:
        """Category catalog for a vertical, empty when it has none."""
        return self.categories.get(vertical, {})


@dataclass
class Config:
    """Application configuration."""

    server: ServerConfig
    site: SiteConfig
    store: StoreConfig
    sitemap: SitemapConfig
    robots: RobotsConfig
    facets: FacetConfig
    config_path: Path | None = None

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from file.

        If config_path is provided, loads from that file.
        Otherwise, searches for citystage.toml in current directory and parents.

        Args:
            config_path: Optional explicit path to config file

        Returns:
            Config instance with defaults for missing sections

        Raises:
            FileNotFoundError: If explicit config_path doesn't exist
            ValueError: If configuration is invalid
        """
        if config_path is not None:
            if not config_path.exists():
                raise FileNotFoundError(f"Configuration file not found: {config_path}")
            return cls._load_from_file(config_path)

        discovered_path = cls._discover_config()
        if discovered_path is None:
            return cls._default()

        return cls._load_from_file(discovered_path)

    @classmethod
    def _discover_config(cls) -> Path | None:
        """Search for config file in current directory and parents."""
        current = Path.cwd()
        while True:
            candidate = current / CONFIG_FILENAME
            if candidate.exists():
                return candidate
            parent = current.parent
            if parent == current:
                return None
            current = parent

    @classmethod
    def _default(cls) -> Config:
        """Create config with all defaults."""
        return cls(
            server=ServerConfig(),
            site=SiteConfig(),
            store=StoreConfig(),
            sitemap=SitemapConfig(),
            robots=RobotsConfig(),
            facets=FacetConfig(),
        )

    @classmethod
    def _load_from_file(cls, path: Path) -> Config:
        """Load configuration from a specific file.

        Args:
            path: Path to TOML configuration file

        Returns:
            Config instance

        Raises:
            ValueError: If configuration is invalid
        """
        with path.open("rb") as f:
            data = tomllib.load(f)

        if not isinstance(data, dict):
            raise ValueError("Configuration must be a dictionary")

        return cls(
            server=cls._parse_server(data.get("server")),
            site=cls._parse_site(data.get("site")),
            store=cls._parse_store(data.get("store")),
            sitemap=cls._parse_sitemap(data.get("sitemap")),
            robots=cls._parse_robots(data.get("robots")),
            facets=cls._parse_facets(data.get("facets")),
            config_path=path,
        )

    @classmethod
    def _parse_server(cls, data: object) -> ServerConfig:
        if data is None:
            return ServerConfig()

        if not isinstance(data, dict):
            raise ValueError("server section must be a dictionary")

        host = data.get("host", "127.0.0.1")
        if not isinstance(host, str):
            raise ValueError("server.host must be a string")

        port = data.get("port", 8080)
        if not isinstance(port, int):
            raise ValueError("server.port must be an integer")

        return ServerConfig(host=host, port=port)

    @classmethod
    def _parse_site(cls, data: object) -> SiteConfig:
        """Parse site configuration section.

        The origin is stored without a trailing slash so paths can be
        appended directly.
        """
        if data is None:
            return SiteConfig()

        if not isinstance(data, dict):
            raise ValueError("site section must be a dictionary")

        defaults = SiteConfig()
        values: dict[str, str] = {}
        for key in ("origin", "name", "city", "city_slug", "region", "country", "currency"):
            value = data.get(key, getattr(defaults, key))
            if not isinstance(value, str) or not value.strip():
                raise ValueError(f"site.{key} must be a non-empty string")
            values[key] = value.strip()

        origin = values["origin"].rstrip("/")
        if not origin.startswith(("http://", "https://")):
            raise ValueError("site.origin must be an absolute http(s) URL")
        values["origin"] = origin

        if not is_slug(values["city_slug"]):
            raise ValueError("site.city_slug must be a slug")

        return SiteConfig(**values)

    @classmethod
    def _parse_store(cls, data: object) -> StoreConfig:
        if data is None:
            return StoreConfig()

        if not isinstance(data, dict):
            raise ValueError("store section must be a dictionary")

        url = data.get("url")
        if url is not None and not isinstance(url, str):
            raise ValueError("store.url must be a string")

        api_key = data.get("api_key")
        if api_key is not None and not isinstance(api_key, str):
            raise ValueError("store.api_key must be a string")

        timeout = data.get("timeout", 10.0)
        if isinstance(timeout, bool) or not isinstance(timeout, int | float) or timeout <= 0:
            raise ValueError("store.timeout must be a positive number")

        page_size = data.get("page_size", 5000)
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
            raise ValueError("store.page_size must be a positive integer")

        return StoreConfig(
            url=url.rstrip("/") if url else None,
            api_key=api_key,
            timeout=float(timeout),
            page_size=page_size,
        )

    @classmethod
    def _parse_sitemap(cls, data: object) -> SitemapConfig:
        if data is None:
            return SitemapConfig()

        if not isinstance(data, dict):
            raise ValueError("sitemap section must be a dictionary")

        max_entities = data.get("max_entities", 2000)
        if isinstance(max_entities, bool) or not isinstance(max_entities, int) or max_entities < 0:
            raise ValueError("sitemap.max_entities must be a non-negative integer")

        return SitemapConfig(max_entities=max_entities)

    @classmethod
    def _parse_robots(cls, data: object) -> RobotsConfig:
        if data is None:
            return RobotsConfig()

        if not isinstance(data, dict):
            raise ValueError("robots section must be a dictionary")

        disallow_raw = data.get("disallow", DEFAULT_DISALLOW)
        if not isinstance(disallow_raw, list):
            raise ValueError("robots.disallow must be a list")
        disallow: list[str] = []
        for item in disallow_raw:
            if not isinstance(item, str) or not item.startswith("/"):
                raise ValueError("robots.disallow items must be paths starting with '/'")
            disallow.append(item)

        return RobotsConfig(disallow=disallow)

    @classmethod
    def _parse_facets(cls, data: object) -> FacetConfig:
        """Parse facets configuration section.

        Each vertical table maps category keys to display labels, e.g.
        ``[facets.deal]`` with ``cafes = "Cafes"``. Verticals left out keep
        their default catalog.
        """
        if data is None:
            return FacetConfig()

        if not isinstance(data, dict):
            raise ValueError("facets section must be a dictionary")

        facets = FacetConfig()
        for name, catalog in data.items():
            try:
                vertical = Vertical(name)
            except ValueError:
                raise ValueError(f"facets.{name} is not a known vertical") from None
            if not isinstance(catalog, dict):
                raise ValueError(f"facets.{name} must be a dictionary")
            categories: dict[str, str] = {}
            for key, label in catalog.items():
                if not is_slug(key):
                    raise ValueError(f"facets.{name}.{key} must be a slug")
                if not isinstance(label, str):
                    raise ValueError(f"facets.{name}.{key} must be a string")
                categories[key] = label
            facets.categories[vertical] = categories

        return facets

    def with_overrides(
        self,
        *,
        host: str | None = None,
        port: int | None = None,
        origin: str | None = None,
        store_url: str | None = None,
        store_key: str | None = None,
    ) -> Config:
        """Create a new Config with CLI overrides applied.

        Only non-None values override the existing config. The original
        Config is not modified.
        """
        server = self.server
        if host is not None or port is not None:
            server = replace(
                self.server,
                host=host if host is not None else self.server.host,
                port=port if port is not None else self.server.port,
            )

        site = self.site
        if origin is not None:
            site = replace(self.site, origin=origin.rstrip("/"))

        store = self.store
        if store_url is not None or store_key is not None:
            store = replace(
                self.store,
                url=store_url.rstrip("/") if store_url is not None else self.store.url,
                api_key=store_key if store_key is not None else self.store.api_key,
            )

        return replace(self, server=server, site=site, store=store)
