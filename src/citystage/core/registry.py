"""Page registry lookups.

The registry maps a URL path to the page type and entity it renders, plus
the crawl directives (canonical URL, index state) for that path. It is
populated asynchronously by a sync job, so a missing entry is normal.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from citystage.core.errors import RegistryUnavailable, UpstreamUnavailable
from citystage.core.normalize import to_text
from citystage.core.store import Query, StoreClient

REGISTRY_TABLE = "page_registry"

REGISTRY_COLUMNS = (
    "url_path",
    "page_type",
    "entity_table",
    "entity_id",
    "entity_key",
    "canonical_url",
    "index_state",
)


class IndexState(StrEnum):
    INDEX = "index"
    NOINDEX = "noindex"


@dataclass(frozen=True)
class RegistryEntry:
    """Registry descriptor for a single path."""

    path: str
    page_type: str
    entity_table: str | None = None
    entity_id: str | None = None
    entity_key: str | None = None
    canonical_url: str | None = None
    index_state: IndexState = IndexState.INDEX

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> RegistryEntry:
        """Build an entry from a registry row.

        Empty strings become None and any index state other than
        "noindex" reads as "index".
        """
        raw_state = to_text(row.get("index_state")).lower()
        return cls(
            path=to_text(row.get("url_path")),
            page_type=to_text(row.get("page_type")).lower(),
            entity_table=to_text(row.get("entity_table")) or None,
            entity_id=to_text(row.get("entity_id")) or None,
            entity_key=to_text(row.get("entity_key")) or None,
            canonical_url=to_text(row.get("canonical_url")) or None,
            index_state=IndexState.NOINDEX if raw_state == IndexState.NOINDEX else IndexState.INDEX,
        )


class RegistryResolver:
    """Exact-path registry lookup."""

    def __init__(self, store: StoreClient) -> None:
        self._store = store

    async def resolve(self, path: str) -> RegistryEntry | None:
        """Look up the registry entry for a path.

        Args:
            path: Normalized URL path (e.g., "/jaipur/malviya-nagar")

        Returns:
            RegistryEntry if the path is registered, None otherwise

        Raises:
            RegistryUnavailable: If the registry cannot be read
        """
        query = Query(REGISTRY_TABLE).select(*REGISTRY_COLUMNS).eq("url_path", path)
        try:
            row = await self._store.fetch_one(query)
        except UpstreamUnavailable as e:
            raise RegistryUnavailable(REGISTRY_TABLE, e.detail) from e
        return RegistryEntry.from_row(row) if row else None
