"""Read-only client for the external content store.

The store speaks the PostgREST query dialect (as exposed by Supabase):
``GET /{table}?select=a,b&slug=eq.x&order=updated_at.desc&limit=10``.
Only reads are issued; the store owns every row.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any

import httpx

from citystage.core.errors import UpstreamTimeout, UpstreamUnavailable

logger = logging.getLogger(__name__)

Row = dict[str, Any]


@dataclass(frozen=True)
class Query:
    """Immutable description of a single table read.

    Builder methods return new queries, so a base query can be shared and
    refined per call site.
    """

    table: str
    columns: tuple[str, ...] = ("*",)
    filters: tuple[tuple[str, str], ...] = ()
    order_by: str | None = None
    limit_to: int | None = None

    def select(self, *columns: str) -> Query:
        return replace(self, columns=columns)

    def eq(self, column: str, value: str) -> Query:
        return self._where(column, f"eq.{value}")

    def ilike(self, column: str, pattern: str) -> Query:
        return self._where(column, f"ilike.{pattern}")

    def gte(self, column: str, value: str) -> Query:
        return self._where(column, f"gte.{value}")

    def in_(self, column: str, values: list[str] | tuple[str, ...]) -> Query:
        quoted = ",".join(_quote(value) for value in values)
        return self._where(column, f"in.({quoted})")

    def order(self, column: str, *, descending: bool = False) -> Query:
        direction = "desc" if descending else "asc"
        return replace(self, order_by=f"{column}.{direction}.nullslast")

    def limit(self, count: int) -> Query:
        return replace(self, limit_to=count)

    def params(self) -> list[tuple[str, str]]:
        """Render query-string parameters in PostgREST syntax."""
        result = [("select", ",".join(self.columns))]
        result.extend(self.filters)
        if self.order_by is not None:
            result.append(("order", self.order_by))
        if self.limit_to is not None:
            result.append(("limit", str(self.limit_to)))
        return result

    def _where(self, column: str, expression: str) -> Query:
        return replace(self, filters=(*self.filters, (column, expression)))


def _quote(value: str) -> str:
    # Values inside in.(...) lists are double-quoted so commas and
    # parentheses survive
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class StoreClient:
    """Async HTTP client for the content store REST API."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str | None,
        api_key: str | None = None,
        *,
        timeout: float = 10.0,
    ) -> None:
        """Initialize store client.

        Args:
            client: Shared httpx AsyncClient
            base_url: REST root of the store (e.g., https://xyz.supabase.co/rest/v1).
                      None leaves the store unconfigured; every read then fails
                      with UpstreamUnavailable.
            api_key: Key sent as both ``apikey`` and bearer token
            timeout: Per-read timeout in seconds
        """
        self.client = client
        self.base_url = base_url.rstrip("/") if base_url else None
        self.timeout = timeout
        self._headers = {"Accept": "application/json"}
        if api_key:
            self._headers["apikey"] = api_key
            self._headers["Authorization"] = f"Bearer {api_key}"

    async def fetch(self, query: Query) -> list[Row]:
        """Run a query and return its rows.

        Raises:
            UpstreamTimeout: If the read exceeds the timeout
            UpstreamUnavailable: On transport errors, error statuses or
                                 undecodable responses
        """
        if self.base_url is None:
            raise UpstreamUnavailable(query.table, "store URL not configured")

        url = f"{self.base_url}/{query.table}"
        logger.debug(f"Store read {query.table}: {query.params()}")
        try:
            response = await self.client.get(
                url,
                params=query.params(),
                headers=self._headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            logger.error(f"Store read on {query.table} timed out after {self.timeout}s")
            raise UpstreamTimeout(query.table, "timed out") from e
        except httpx.HTTPError as e:
            logger.error(f"Store read on {query.table} failed: {e}")
            raise UpstreamUnavailable(query.table, type(e).__name__) from e

        if response.status_code >= 400:
            logger.error(f"Error response from {query.table}: {response.status_code} {response.text[:200]}")
            raise UpstreamUnavailable(query.table, f"HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            raise UpstreamUnavailable(query.table, "invalid JSON") from e

        if not isinstance(data, list):
            raise UpstreamUnavailable(query.table, "expected a list of rows")

        return [row for row in data if isinstance(row, dict)]

    async def fetch_one(self, query: Query) -> Row | None:
        """Run a query expected to match at most one row."""
        rows = await self.fetch(query.limit(1))
        return rows[0] if rows else None
