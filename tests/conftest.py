"""Shared test fixtures.

The content store is faked with ``httpx.MockTransport``: a small in-memory
table set that understands the PostgREST filters the store client emits.
"""

import copy
import re
from typing import Any

import httpx
import pytest

from citystage.config import (
    Config,
    FacetConfig,
    RobotsConfig,
    ServerConfig,
    SitemapConfig,
    SiteConfig,
    StoreConfig,
)
from citystage.services import Services, build_services

STORE_URL = "https://store.test/rest/v1"
ORIGIN = "https://www.jaipurcircle.com"

SAMPLE_TABLES: dict[str, list[dict[str, Any]]] = {
    "page_registry": [
        {
            "url_path": "/jaipur/malviya-nagar",
            "page_type": "locality",
            "entity_table": "localities",
            "entity_id": None,
            "entity_key": "malviya-nagar",
            "canonical_url": None,
            "index_state": None,
        },
        {
            "url_path": "/deals/cafe-coffee-offer",
            "page_type": "deal",
            "entity_table": "deals",
            "entity_id": "1",
            "entity_key": None,
            "canonical_url": "https://www.jaipurcircle.com/deals/coffee",
            "index_state": "noindex",
        },
    ],
    "localities": [
        {
            "id": "loc-1",
            "slug": "malviya-nagar",
            "name": "Malviya Nagar",
            "zone": "South",
            "ward": "Ward 45",
            "police_station": "Malviya Nagar PS",
            "pin_code": ["302017", "302017"],
            "latitude": 26.8549,
            "longitude": 75.8243,
            "nearby_localities": [{"name": "Jawahar Circle"}, "jawahar circle", "Sanganer"],
            "connectivity": {"metro": "Durgapura", "bus": ["AC-1", "AC-3"]},
            "tags": ["residential", "market"],
            "updated_at": "2026-01-10T08:30:00Z",
        },
        {
            "id": "loc-2",
            "slug": "c-scheme",
            "name": "C Scheme",
            "pin_code": "302001",
            "updated_at": "2026-02-01T00:00:00Z",
        },
    ],
    "events": [
        {
            "id": "ev-1",
            "slug": "holi-fest",
            "title": "Holi Fest",
            "status": "published",
            "short_description": "Colours and music.",
            "start_date": "2030-03-14T04:30:00Z",
            "timezone": "Asia/Kolkata",
            "venue_name": "Central Park",
            "venue_address": "Prithviraj Road",
            "locality": "C Scheme",
            "category": "festival",
            "ticket_price": 499,
            "is_free": False,
            "organizer_name": "Jaipur Arts",
            "latitude": 26.9,
            "longitude": None,
            "updated_at": "2026-03-01T10:00:00Z",
        },
        {
            "id": "ev-2",
            "slug": "jazz-night",
            "title": "Jazz Night",
            "status": "live",
            "start_date": "2030-05-01T14:00:00Z",
            "venue_name": "Venue to be announced",
            "locality": "Malviya Nagar",
            "category": "music",
            "is_free": True,
            "published_at": "2026-04-01T00:00:00Z",
        },
        {
            "id": "ev-3",
            "slug": "secret-draft",
            "title": "Secret Draft",
            "status": "draft",
            "category": "music",
        },
    ],
    "deals": [
        {"id": 1, "slug": "cafe-coffee-offer", "title": "Coffee for Two", "category": "cafes"},
        {"id": 2, "slug": "gym-month-free", "title": "First Month Free", "category": "gyms"},
    ],
}

IN_VALUE_RE = re.compile(r'"((?:[^"\\]|\\.)*)"')


def _matches(actual: Any, expression: str) -> bool:
    op, _, operand = expression.partition(".")
    if actual is None:
        return False
    if op == "eq":
        return str(actual) == operand
    if op == "in":
        values = [value.replace('\\"', '"') for value in IN_VALUE_RE.findall(operand)]
        return str(actual) in values
    if op == "ilike":
        pattern = re.escape(operand.lower()).replace(r"\*", ".*")
        return re.fullmatch(pattern, str(actual).lower()) is not None
    if op == "gte":
        return str(actual) >= operand
    raise AssertionError(f"Unsupported filter: {expression}")


class FakeStore:
    """In-memory PostgREST-like table set."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]]) -> None:
        self.tables = tables
        self.requests: list[httpx.Request] = []
        self.failing: set[str] = set()
        self.timing_out: set[str] = set()

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        table = request.url.path.rsplit("/", 1)[-1]
        if table in self.timing_out:
            raise httpx.ReadTimeout("timed out", request=request)
        if table in self.failing:
            return httpx.Response(500, json={"message": "internal error"})

        rows = list(self.tables.get(table, []))
        columns = ["*"]
        order = None
        limit = None
        for key, value in request.url.params.multi_items():
            if key == "select":
                columns = value.split(",")
            elif key == "order":
                order = value
            elif key == "limit":
                limit = int(value)
            else:
                rows = [row for row in rows if _matches(row.get(key), value)]

        if order is not None:
            column, direction, *_ = order.split(".")
            present = [row for row in rows if row.get(column) is not None]
            missing = [row for row in rows if row.get(column) is None]
            present.sort(key=lambda row: row[column], reverse=direction == "desc")
            rows = present + missing
        if limit is not None:
            rows = rows[:limit]
        if columns != ["*"]:
            rows = [{column: row.get(column) for column in columns if column in row} for row in rows]
        return httpx.Response(200, json=rows)

    def requests_to(self, table: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path.endswith(f"/{table}")]


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore(copy.deepcopy(SAMPLE_TABLES))


@pytest.fixture
def http_client(fake_store: FakeStore) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(fake_store.handler))


@pytest.fixture
def test_config() -> Config:
    """Create a test configuration pointing at the fake store."""
    return Config(
        server=ServerConfig(),
        site=SiteConfig(origin=ORIGIN),
        store=StoreConfig(url=STORE_URL, api_key="test-key", timeout=2.0),
        sitemap=SitemapConfig(),
        robots=RobotsConfig(),
        facets=FacetConfig(),
    )


@pytest.fixture
def services(test_config: Config, http_client: httpx.AsyncClient) -> Services:
    return build_services(test_config, http_client)
