"""
Abstract Table Store Interface

DESIGN DECISION: We define an abstract interface for the remote table store.
This allows us to:
1. Keep the Entity Store independent of the Supabase client
2. Use in-memory storage for testing
3. Swap to another backend-as-a-service later

The interface mirrors what a hosted table API offers: per-table
select / insert / update / delete / upsert with equality filters and
ordering. Each call is atomic for the rows it touches; there are no
multi-call transactions.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional


# Remote table names
TRANSACTIONS_TABLE = "transactions"
WALLETS_TABLE = "wallets"
ASSETS_TABLE = "assets"
CATEGORIES_TABLE = "categories"

Row = dict[str, Any]


class TableStoreInterface(ABC):
    """
    Abstract interface for remote table operations.

    Any backend (Supabase, a test double, ...) must implement these methods.
    Implementations raise StorageError (or a subclass) for every failure.
    """

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[dict[str, Any]] = None,
        order_by: Optional[str] = None,
        ascending: bool = True,
    ) -> list[Row]:
        """
        Fetch rows matching all equality filters.

        Args:
            table: Table name
            filters: {column: value} equality predicates
            order_by: Column to sort by
            ascending: Sort direction

        Returns:
            Matching rows as dictionaries

        Raises:
            StorageError: If the call fails
        """
        pass

    @abstractmethod
    async def select_one(self, table: str, row_id: Any) -> Row:
        """
        Fetch a single row by id.

        Raises:
            NotFoundError: If no row has this id
            StorageError: If the call fails
        """
        pass

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """
        Insert a row and return it as stored (with server-assigned id).

        Raises:
            StorageError: If the call fails
        """
        pass

    @abstractmethod
    async def update(self, table: str, row_id: Any, values: Row) -> None:
        """
        Update the given columns of the row with this id.

        Raises:
            StorageError: If the call fails
        """
        pass

    @abstractmethod
    async def delete(self, table: str, filters: dict[str, Any]) -> None:
        """
        Delete every row matching all equality filters.

        Raises:
            StorageError: If the call fails
        """
        pass

    @abstractmethod
    async def upsert(self, table: str, rows: list[Row]) -> None:
        """
        Insert or replace rows by primary key in one batched call.

        Raises:
            StorageError: If the call fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
