"""
Supabase Table Store Implementation

DESIGN DECISION: Supabase is used as the remote backend because:
1. It exposes plain Postgres tables over HTTP (PostgREST)
2. No server code is required for CRUD
3. Row-level security can be added without changing the client
4. The same tables are readable from the Supabase dashboard

TRADEOFFS:
- No multi-call transactions (the Entity Store reconciles by refreshing)
- Every call is a network round-trip (the local cache covers startup)

The implementation follows the abstract interface, so the Entity Store
never imports the supabase package directly.
"""

from typing import Any, Optional

from supabase import AsyncClient, acreate_client
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_app.config import SupabaseSettings, get_settings
from expense_app.services.storage.interface import (
    ConnectionError,
    NotFoundError,
    Row,
    StorageError,
    TableStoreInterface,
)


class SupabaseClient:
    """
    Low-level Supabase client wrapper.

    Creates the async client lazily and retries client creation.
    """

    def __init__(self, settings: Optional[SupabaseSettings] = None):
        self._client: Optional[AsyncClient] = None
        self._settings = settings or get_settings().supabase

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def connect(self) -> AsyncClient:
        """Create the async Supabase client on first use."""
        if self._client is None:
            try:
                self._client = await acreate_client(
                    self._settings.url,
                    self._settings.key,
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Supabase: {e}") from e
        return self._client


class SupabaseTableStore(TableStoreInterface):
    """
    Supabase implementation of the table store.

    Every exception coming out of the client (HTTP errors, PostgREST
    API errors) is wrapped in StorageError.
    """

    def __init__(self, client: Optional[SupabaseClient] = None):
        self._client = client or SupabaseClient()

    async def _execute(self, action: str, table: str, query) -> Any:
        """Run a built query and return its data."""
        try:
            response = await query.execute()
        except Exception as e:
            raise StorageError(f"Failed to {action} {table}: {e}") from e
        return response.data

    async def _table(self, table: str):
        client = await self._client.connect()
        return client.table(table)

    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
    ) -> list[Row]:
        """Fetch rows with equality filters and optional ordering."""
        query = (await self._table(table)).select("*")
        for column, value in (filters or {}).items():
            query = query.eq(column, value)
        if order_by:
            query = query.order(order_by, desc=not ascending)

        data = await self._execute("select from", table, query)
        return list(data or [])

    async def select_one(self, table: str, row_id: Any) -> Row:
        """Fetch one row by id."""
        query = (await self._table(table)).select("*").eq("id", row_id).limit(1)
        data = await self._execute("select from", table, query)
        if not data:
            raise NotFoundError(f"No row with id {row_id} in {table}")
        return data[0]

    async def insert(self, table: str, row: Row) -> Row:
        """Insert one row and return the stored representation."""
        query = (await self._table(table)).insert(row)
        data = await self._execute("insert into", table, query)
        if not data:
            raise StorageError(f"Insert into {table} returned no row")
        return data[0]

    async def update(self, table: str, row_id: Any, values: Row) -> None:
        """Update columns of one row by id."""
        query = (await self._table(table)).update(values).eq("id", row_id)
        await self._execute("update", table, query)

    async def delete(self, table: str, filters: dict[str, Any]) -> None:
        """Delete rows matching all filters."""
        if not filters:
            raise ValueError("Refusing to delete without filters")
        query = (await self._table(table)).delete()
        for column, value in filters.items():
            query = query.eq(column, value)
        await self._execute("delete from", table, query)

    async def upsert(self, table: str, rows: list[Row]) -> None:
        """Insert-or-replace rows in one request."""
        if not rows:
            return
        query = (await self._table(table)).upsert(rows)
        await self._execute("upsert into", table, query)
