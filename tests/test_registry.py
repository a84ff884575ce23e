"""Tests for registry lookups."""

import httpx
import pytest

from citystage.core.errors import RegistryUnavailable
from citystage.core.registry import IndexState, RegistryEntry, RegistryResolver
from citystage.core.store import StoreClient

from tests.conftest import STORE_URL, FakeStore


@pytest.fixture
def registry(http_client: httpx.AsyncClient) -> RegistryResolver:
    return RegistryResolver(StoreClient(http_client, STORE_URL))


class TestRegistryEntry:
    """Tests for RegistryEntry.from_row()."""

    def test__absent_index_state__defaults_to_index(self) -> None:
        entry = RegistryEntry.from_row({"url_path": "/x", "page_type": "locality"})

        assert entry.index_state is IndexState.INDEX
        assert entry.canonical_url is None

    def test__noindex__case_insensitive(self) -> None:
        entry = RegistryEntry.from_row({"url_path": "/x", "page_type": "Deal", "index_state": "NOINDEX"})

        assert entry.index_state is IndexState.NOINDEX
        assert entry.page_type == "deal"

    def test__empty_strings__become_none(self) -> None:
        entry = RegistryEntry.from_row(
            {"url_path": "/x", "page_type": "event", "entity_key": "", "canonical_url": "  "},
        )

        assert entry.entity_key is None
        assert entry.canonical_url is None

    def test__numeric_entity_id__stringified(self) -> None:
        entry = RegistryEntry.from_row({"url_path": "/x", "page_type": "deal", "entity_id": 7})

        assert entry.entity_id == "7"


class TestRegistryResolver:
    """Tests for RegistryResolver.resolve()."""

    @pytest.mark.asyncio
    async def test__registered_path__returns_entry(self, registry: RegistryResolver) -> None:
        entry = await registry.resolve("/jaipur/malviya-nagar")

        assert entry is not None
        assert entry.page_type == "locality"
        assert entry.entity_key == "malviya-nagar"
        assert entry.index_state is IndexState.INDEX

    @pytest.mark.asyncio
    async def test__unregistered_path__returns_none(self, registry: RegistryResolver) -> None:
        assert await registry.resolve("/jaipur/unknown") is None

    @pytest.mark.asyncio
    async def test__store_failure__raises_registry_unavailable(
        self, fake_store: FakeStore, registry: RegistryResolver
    ) -> None:
        fake_store.failing.add("page_registry")

        with pytest.raises(RegistryUnavailable):
            await registry.resolve("/jaipur/malviya-nagar")
