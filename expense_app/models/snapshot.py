"""
Snapshot and aggregate models.

A CacheSnapshot is the complete in-memory state of the Entity Store:
it is what gets written to the local cache file after every sync and
what is read back at startup.
"""

from decimal import Decimal
from typing import Iterable

from pydantic import BaseModel, Field

from expense_app.models.entities import (
    Asset,
    Category,
    Transaction,
    TransactionType,
    Wallet,
)


class CacheSnapshot(BaseModel):
    """The four collections, as stored in the local cache file."""

    transactions: list[Transaction] = Field(default_factory=list)
    wallets: list[Wallet] = Field(default_factory=list)
    assets: list[Asset] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.transactions or self.wallets or self.assets or self.categories)


class Totals(BaseModel):
    """
    Dashboard aggregates.

    Always rebuilt from the full collections with `from_collections`;
    never adjusted incrementally.
    """

    total_balance: Decimal = Decimal("0")
    total_income: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")

    @classmethod
    def from_collections(
        cls,
        wallets: Iterable[Wallet],
        assets: Iterable[Asset],
        transactions: Iterable[Transaction],
    ) -> "Totals":
        transactions = list(transactions)
        wallet_total = sum((w.balance for w in wallets), Decimal("0"))
        asset_total = sum((a.value for a in assets), Decimal("0"))
        income = sum(
            (t.amount for t in transactions if t.type == TransactionType.INCOME),
            Decimal("0"),
        )
        expense = sum(
            (t.amount for t in transactions if t.type == TransactionType.EXPENSE),
            Decimal("0"),
        )
        return cls(
            total_balance=wallet_total + asset_total,
            total_income=income,
            total_expense=expense,
        )

