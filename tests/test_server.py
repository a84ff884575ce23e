"""Tests for the HTTP surface: HTML pages, page API, sitemaps and robots."""

import httpx
import pytest
from aiohttp.test_utils import TestClient

from citystage.config import Config
from citystage.server import create_app

from tests.conftest import ORIGIN, FakeStore


@pytest.fixture
def client(test_config: Config, http_client: httpx.AsyncClient, aiohttp_client) -> TestClient:
    """Create test client backed by the fake store."""
    app = create_app(test_config, http_client=http_client)
    return aiohttp_client(app)


class TestServePage:
    """Tests for the HTML catch-all route."""

    @pytest.mark.asyncio
    async def test__locality_page__renders_head_tags(self, client) -> None:
        test_client = await client
        response = await test_client.get("/jaipur/malviya-nagar")

        assert response.status == 200
        assert response.content_type == "text/html"
        body = await response.text()
        assert f'<link rel="canonical" href="{ORIGIN}/jaipur/malviya-nagar">' in body
        assert '<meta name="robots" content="index, follow">' in body
        assert '<script type="application/ld+json">' in body
        assert "<h1>Malviya Nagar</h1>" in body

    @pytest.mark.asyncio
    async def test__locality_page__sends_cache_headers(self, client) -> None:
        test_client = await client
        response = await test_client.get("/jaipur/malviya-nagar")

        assert response.headers["Cache-Control"] == "public, max-age=600"
        assert response.headers["Last-Modified"] == "Sat, 10 Jan 2026 08:30:00 GMT"
        assert response.headers["ETag"].startswith('"')

    @pytest.mark.asyncio
    async def test__matching_etag__returns_304(self, client) -> None:
        """Second request with If-None-Match gets an empty 304."""
        test_client = await client
        first = await test_client.get("/events/holi-fest")
        etag = first.headers["ETag"]

        second = await test_client.get("/events/holi-fest", headers={"If-None-Match": etag})

        assert second.status == 304
        assert second.headers["ETag"] == etag

    @pytest.mark.asyncio
    async def test__registry_noindex__rendered_in_robots_tag(self, client) -> None:
        test_client = await client
        response = await test_client.get("/deals/cafe-coffee-offer")

        body = await response.text()
        assert '<meta name="robots" content="noindex, nofollow">' in body
        assert '<link rel="canonical" href="https://www.jaipurcircle.com/deals/coffee">' in body

    @pytest.mark.asyncio
    async def test__alias_path__redirects_permanently(self, client) -> None:
        test_client = await client
        response = await test_client.get("/localities/malviya-nagar", allow_redirects=False)

        assert response.status == 301
        assert response.headers["Location"] == "/jaipur/malviya-nagar"

    @pytest.mark.asyncio
    async def test__unknown_path__returns_noindex_404(self, client) -> None:
        test_client = await client
        response = await test_client.get("/nowhere/at/all")

        assert response.status == 404
        body = await response.text()
        assert '<meta name="robots" content="noindex, nofollow">' in body

    @pytest.mark.asyncio
    async def test__store_failure__returns_generic_503(self, client, fake_store: FakeStore) -> None:
        """Store errors are not leaked into the error page."""
        fake_store.failing.add("deals")

        test_client = await client
        response = await test_client.get("/deals/gym-month-free")

        assert response.status == 503
        body = await response.text()
        assert "internal error" not in body

    @pytest.mark.asyncio
    async def test__store_timeout__returns_404(self, client, fake_store: FakeStore) -> None:
        fake_store.timing_out.add("events")

        test_client = await client
        response = await test_client.get("/events/holi-fest")

        assert response.status == 404


class TestGetPage:
    """Tests for GET /api/pages/{path}."""

    @pytest.mark.asyncio
    async def test__existing_page__returns_metadata(self, client) -> None:
        test_client = await client
        response = await test_client.get("/api/pages/jaipur/malviya-nagar")

        assert response.status == 200
        data = await response.json()
        assert data["meta"]["path"] == "/jaipur/malviya-nagar"
        assert data["meta"]["canonical"] == f"{ORIGIN}/jaipur/malviya-nagar"
        assert data["robots"] == {"index": True, "follow": True}
        assert data["entity"]["pin_codes"] == ["302017"]
        assert data["links"]["events"] == "/events/locality/malviya-nagar"

    @pytest.mark.asyncio
    async def test__missing_page__returns_404(self, client) -> None:
        test_client = await client
        response = await test_client.get("/api/pages/nowhere/at/all")

        assert response.status == 404
        data = await response.json()
        assert data["error"] == "Page not found"
        assert data["path"] == "nowhere/at/all"

    @pytest.mark.asyncio
    async def test__alias_path__redirects_within_api(self, client) -> None:
        test_client = await client
        response = await test_client.get("/api/pages/localities/c-scheme", allow_redirects=False)

        assert response.status == 301
        assert response.headers["Location"] == "/api/pages/jaipur/c-scheme"

    @pytest.mark.asyncio
    async def test__store_failure__returns_503(self, client, fake_store: FakeStore) -> None:
        fake_store.failing.add("events")

        test_client = await client
        response = await test_client.get("/api/pages/events/holi-fest")

        assert response.status == 503
        assert await response.json() == {"error": "Service unavailable"}


class TestSitemaps:
    """Tests for sitemap and robots endpoints."""

    @pytest.mark.asyncio
    async def test__sitemap_index__lists_vertical_sitemaps(self, client) -> None:
        test_client = await client
        response = await test_client.get("/sitemap.xml")

        assert response.status == 200
        assert response.content_type == "application/xml"
        body = await response.text()
        for name in ("sitemap-localities.xml", "sitemap-events.xml", "sitemap-deals.xml"):
            assert f"<loc>{ORIGIN}/{name}</loc>" in body

    @pytest.mark.asyncio
    async def test__deal_sitemap__lists_collection(self, client) -> None:
        test_client = await client
        response = await test_client.get("/sitemap-deals.xml")

        assert response.status == 200
        body = await response.text()
        assert f"<loc>{ORIGIN}/deals</loc>" in body
        assert f"<loc>{ORIGIN}/deals/category/cafes/locality/c-scheme</loc>" in body

    @pytest.mark.asyncio
    async def test__store_failure__sitemap_still_served(self, client, fake_store: FakeStore) -> None:
        fake_store.failing.add("localities")

        test_client = await client
        response = await test_client.get("/sitemap-localities.xml")

        assert response.status == 200
        body = await response.text()
        assert "<!-- locality list unavailable -->" in body
        assert f"<loc>{ORIGIN}/localities</loc>" in body

    @pytest.mark.asyncio
    async def test__unknown_sitemap__returns_404(self, client) -> None:
        test_client = await client
        response = await test_client.get("/sitemap-spaceships.xml")

        assert response.status == 404

    @pytest.mark.asyncio
    async def test__robots__lists_disallow_and_sitemaps(self, client) -> None:
        test_client = await client
        response = await test_client.get("/robots.txt")

        assert response.status == 200
        assert response.content_type == "text/plain"
        body = await response.text()
        assert "Disallow: /api" in body
        assert f"Sitemap: {ORIGIN}/sitemap.xml" in body
