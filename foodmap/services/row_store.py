"""Row store contract and its PostgREST binding.

The row store holds the ``restaurants`` and ``reviews`` collections and
enforces the ownership policy server-side. This module only speaks its
wire contract; rows come back as plain dicts and are validated into models
by ``foodmap.services.reads``.
"""

import logging
from collections.abc import Callable
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field

from foodmap.config import Config, get_config

logger = logging.getLogger(__name__)

Row = dict[str, Any]

UNIQUE_VIOLATION = "23505"


class RowStoreError(Exception):
    """Failure reported by the row store."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        """Whether the store reported a uniqueness conflict."""
        if self.code == UNIQUE_VIOLATION:
            return True
        lowered = (self.message or "").lower()
        return "duplicate" in lowered or "unique" in lowered


class RowQuery(BaseModel):
    """Read request against one collection."""

    filters: dict[str, Any] = Field(
        default_factory=dict, description="Column equality filters"
    )
    order_by: str | None = Field(None, description="Column to order by")
    descending: bool = Field(default=True, description="Order direction")
    limit: int | None = Field(None, gt=0, description="Maximum number of rows")


class RowStore(Protocol):
    """Operations consumed from the row store."""

    async def select(self, table: str, query: RowQuery) -> list[Row]: ...

    async def insert(self, table: str, row: Row) -> list[Row]: ...

    async def update(self, table: str, values: Row, filters: Row) -> list[Row]: ...

    async def delete(self, table: str, filters: Row) -> list[Row]: ...

    async def upsert(
        self, table: str, row: Row, on_conflict: tuple[str, ...]
    ) -> list[Row]: ...


def _eq_params(filters: Row) -> dict[str, str]:
    return {column: f"eq.{value}" for column, value in filters.items()}


class PostgrestRowStore:
    """Row store client for a PostgREST endpoint.

    Every request carries the project API key, plus the signed-in user's
    access token when one is available so the server-side row policy sees
    the caller's identity.
    """

    def __init__(
        self,
        cfg: Config | None = None,
        token_provider: Callable[[], str | None] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the row store client.

        Args:
            cfg: Configuration (defaults to the global config)
            token_provider: Returns the current access token, if any
            client: Pre-built HTTP client, mainly for tests

        Raises:
            ValueError: If the backend URL or key is not configured
        """
        self.config = cfg or get_config()
        if not self.config.has_backend_config():
            msg = "Row store is not configured"
            raise ValueError(msg)

        self.token_provider = token_provider
        self.base_url = f"{self.config.supabase_url.rstrip('/')}/rest/v1"
        self.client = client or httpx.AsyncClient(timeout=self.config.http_timeout)

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = self.token_provider() if self.token_provider else None
        headers = {
            "apikey": self.config.supabase_anon_key,
            "Authorization": f"Bearer {token or self.config.supabase_anon_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        params: dict[str, str] | None = None,
        json: Row | None = None,
        prefer: str | None = None,
    ) -> list[Row]:
        try:
            response = await self.client.request(
                method,
                f"{self.base_url}/{table}",
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.HTTPError as e:
            logger.exception(f"Row store {method} {table} failed")
            raise RowStoreError(str(e) or type(e).__name__) from e

        if response.status_code >= 400:
            try:
                body = response.json()
            except ValueError:
                body = {}
            message = body.get("message") or response.text or f"HTTP {response.status_code}"
            logger.error(f"Row store {method} {table} rejected: {message}")
            raise RowStoreError(message, code=body.get("code"))

        if not response.content:
            return []
        data = response.json()
        return data if isinstance(data, list) else [data]

    async def select(self, table: str, query: RowQuery) -> list[Row]:
        """Read rows matching a query."""
        params = {"select": "*", **_eq_params(query.filters)}
        if query.order_by:
            direction = "desc" if query.descending else "asc"
            params["order"] = f"{query.order_by}.{direction}"
        if query.limit is not None:
            params["limit"] = str(query.limit)
        return await self._request("GET", table, params=params)

    async def insert(self, table: str, row: Row) -> list[Row]:
        """Insert one row and return it as stored."""
        return await self._request(
            "POST", table, json=row, prefer="return=representation"
        )

    async def update(self, table: str, values: Row, filters: Row) -> list[Row]:
        """Update rows matching all filters; returns the rows changed."""
        return await self._request(
            "PATCH",
            table,
            params=_eq_params(filters),
            json=values,
            prefer="return=representation",
        )

    async def delete(self, table: str, filters: Row) -> list[Row]:
        """Delete rows matching all filters; returns the rows removed."""
        return await self._request(
            "DELETE",
            table,
            params=_eq_params(filters),
            prefer="return=representation",
        )

    async def upsert(
        self, table: str, row: Row, on_conflict: tuple[str, ...]
    ) -> list[Row]:
        """Insert a row or merge it into the row sharing the conflict key."""
        return await self._request(
            "POST",
            table,
            params={"on_conflict": ",".join(on_conflict)},
            json=row,
            prefer="resolution=merge-duplicates,return=representation",
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
