"""
Read-side helpers for the dashboard, detail and settings screens.

These work on plain lists so they can be fed either the store's
published collections or a cached snapshot.
"""

from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

from expense_app.models.entities import (
    Category,
    CategoryType,
    Transaction,
    TransactionType,
)


UNKNOWN_CATEGORY_ICON = "questionmark.circle"


class Period(str, Enum):
    """Time windows offered on the wallet and asset detail screens."""
    DAY = "Day"
    MONTH = "Month"
    YEAR = "Year"
    ALL = "All"


def category_icon(categories: Iterable[Category], name: str) -> str:
    """Icon of the first category with this name, or a placeholder."""
    for category in categories:
        if category.name == name:
            return category.icon
    return UNKNOWN_CATEGORY_ICON


def categories_of_type(categories: Iterable[Category], category_type: CategoryType) -> list[Category]:
    return [category for category in categories if category.type == category_type]


def recent_transactions(transactions: Iterable[Transaction], limit: int = 5) -> list[Transaction]:
    """The newest transactions, assuming date-descending input."""
    return list(transactions)[:limit]


def transactions_for_wallet(transactions: Iterable[Transaction], wallet_id: int) -> list[Transaction]:
    """Transactions that move money on this wallet, including transfers."""
    return [
        t for t in transactions
        if wallet_id in (t.wallet_id, t.from_wallet_id, t.to_wallet_id)
    ]


def transactions_for_asset(transactions: Iterable[Transaction], asset_id: int) -> list[Transaction]:
    """Transactions that move money on this asset, including transfers."""
    return [
        t for t in transactions
        if asset_id in (t.asset_id, t.from_asset_id, t.to_asset_id)
    ]


def filter_by_period(
    transactions: Iterable[Transaction],
    period: Period,
    now: Optional[datetime] = None,
) -> list[Transaction]:
    """Keep transactions in the same day / month / year as `now`."""
    now = now or datetime.now()
    if period == Period.DAY:
        return [t for t in transactions if t.date.date() == now.date()]
    if period == Period.MONTH:
        return [
            t for t in transactions
            if (t.date.year, t.date.month) == (now.year, now.month)
        ]
    if period == Period.YEAR:
        return [t for t in transactions if t.date.year == now.year]
    return list(transactions)


def expense_breakdown(transactions: Iterable[Transaction]) -> list[tuple[str, Decimal]]:
    """
    Expense totals per category name, largest first.

    Grouping is by the name stored on the transaction, so deleted or
    renamed categories still show up under their old label.
    """
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for t in transactions:
        if t.type == TransactionType.EXPENSE:
            totals[t.category] += t.amount
    return sorted(totals.items(), key=lambda item: item[1], reverse=True)
