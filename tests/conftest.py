"""
Shared fixtures.

Remote calls never leave the process: the Entity Store is wired to an
in-memory table store that behaves like the hosted one (server-assigned
integer ids, equality filters, ordering) and can be told to fail.
"""

import copy
import itertools
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import pytest

from expense_app.audit import SyncLogger
from expense_app.config import SyncSettings
from expense_app.models import (
    Asset,
    Category,
    CategoryType,
    Transaction,
    TransactionType,
    Wallet,
)
from expense_app.services.local import LocalCache, Preferences
from expense_app.services.storage import (
    ASSETS_TABLE,
    CATEGORIES_TABLE,
    TRANSACTIONS_TABLE,
    WALLETS_TABLE,
    NotFoundError,
    Row,
    StorageError,
    TableStoreInterface,
)
from expense_app.store import EntityStore


class InMemoryTableStore(TableStoreInterface):
    """Table store double with failure injection and a call log."""

    def __init__(self):
        self.tables: dict[str, list[Row]] = {
            TRANSACTIONS_TABLE: [],
            WALLETS_TABLE: [],
            ASSETS_TABLE: [],
            CATEGORIES_TABLE: [],
        }
        self._ids = {table: itertools.count(1) for table in self.tables}
        self._failures: dict[tuple[str, str], Optional[int]] = {}
        self.calls: list[tuple[str, str]] = []

    # Test controls

    def fail(self, operation: str, table: str, times: Optional[int] = None) -> None:
        """Make `operation` on `table` raise; forever when times is None."""
        self._failures[(operation, table)] = times

    def recover(self) -> None:
        self._failures.clear()

    def seed(self, table: str, entity) -> Row:
        row = entity.to_row(include_id=True)
        if row.get("id") is None:
            row["id"] = next(self._ids[table])
        self.tables[table].append(row)
        return copy.deepcopy(row)

    def row(self, table: str, row_id: Any) -> Row:
        for row in self.tables[table]:
            if row["id"] == row_id:
                return row
        raise KeyError(row_id)

    def _check(self, operation: str, table: str) -> None:
        self.calls.append((operation, table))
        key = (operation, table)
        if key not in self._failures:
            return
        remaining = self._failures[key]
        if remaining is not None:
            if remaining <= 0:
                del self._failures[key]
                return
            self._failures[key] = remaining - 1
        raise StorageError(f"{operation} on {table} failed")

    @staticmethod
    def _matches(row: Row, filters: Optional[dict[str, Any]]) -> bool:
        return all(row.get(column) == value for column, value in (filters or {}).items())

    # TableStoreInterface

    async def select(self, table, filters=None, order_by=None, ascending=True):
        self._check("select", table)
        rows = [copy.deepcopy(r) for r in self.tables[table] if self._matches(r, filters)]
        if order_by:
            present = [r for r in rows if r.get(order_by) is not None]
            missing = [r for r in rows if r.get(order_by) is None]
            present.sort(key=lambda r: r[order_by], reverse=not ascending)
            rows = present + missing
        return rows

    async def select_one(self, table, row_id):
        self._check("select_one", table)
        for row in self.tables[table]:
            if row["id"] == row_id:
                return copy.deepcopy(row)
        raise NotFoundError(f"No row with id {row_id} in {table}")

    async def insert(self, table, row):
        self._check("insert", table)
        stored = copy.deepcopy(row)
        if stored.get("id") is None:
            stored["id"] = next(self._ids[table])
        self.tables[table].append(stored)
        return copy.deepcopy(stored)

    async def update(self, table, row_id, values):
        self._check("update", table)
        for row in self.tables[table]:
            if row["id"] == row_id:
                row.update(copy.deepcopy(values))

    async def delete(self, table, filters):
        self._check("delete", table)
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, filters)]

    async def upsert(self, table, rows):
        self._check("upsert", table)
        for incoming in rows:
            for index, row in enumerate(self.tables[table]):
                if row["id"] == incoming["id"]:
                    self.tables[table][index] = copy.deepcopy(incoming)
                    break
            else:
                self.tables[table].append(copy.deepcopy(incoming))


# =============================================================================
# Builders
# =============================================================================

def make_wallet(name: str = "Main", balance: str = "0", **kwargs) -> Wallet:
    return Wallet(name=name, balance=Decimal(balance), type="Debit", color="blue", last4="1234", **kwargs)


def make_asset(name: str = "Gold", value: str = "0", **kwargs) -> Asset:
    return Asset(name=name, symbol="XAU", value=Decimal(value), type="Commodity", **kwargs)


def make_transaction(
    title: str,
    amount: str,
    type: TransactionType = TransactionType.EXPENSE,
    category: str = "Food",
    date: Optional[datetime] = None,
    **refs,
) -> Transaction:
    return Transaction(
        title=title,
        amount=Decimal(amount),
        type=type,
        category=category,
        date=date or datetime(2024, 6, 1, 12, 0),
        **refs,
    )


def make_category(name: str, type: CategoryType = CategoryType.EXPENSE, **kwargs) -> Category:
    return Category(name=name, type=type, **kwargs)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def remote() -> InMemoryTableStore:
    return InMemoryTableStore()


@pytest.fixture
def cache(tmp_path) -> LocalCache:
    return LocalCache(tmp_path / "data_cache.json")


@pytest.fixture
def preferences(tmp_path) -> Preferences:
    return Preferences(tmp_path / "preferences.json")


@pytest.fixture
def sync_settings() -> SyncSettings:
    return SyncSettings(
        category_push_attempts=3,
        category_push_min_wait=0,
        category_push_max_wait=0,
    )


@pytest.fixture
def make_store(remote, cache, preferences, sync_settings):
    def factory(**overrides) -> EntityStore:
        return EntityStore(
            table_store=overrides.get("table_store", remote),
            cache=overrides.get("cache", cache),
            preferences=overrides.get("preferences", preferences),
            logger=overrides.get("logger", SyncLogger()),
            sync_settings=sync_settings,
        )
    return factory


@pytest.fixture
def store(make_store) -> EntityStore:
    return make_store()
