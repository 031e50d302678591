"""Entity Store package: in-memory state, balance rules and read helpers."""

from expense_app.store.balances import (
    BalanceEffect,
    HolderKind,
    apply_effects,
    balance_effects,
    reversal_effects,
)
from expense_app.store.entity_store import EntityStore
from expense_app.store.ordering import merge_categories, renumber
from expense_app.store.queries import (
    Period,
    categories_of_type,
    category_icon,
    expense_breakdown,
    filter_by_period,
    recent_transactions,
    transactions_for_asset,
    transactions_for_wallet,
)

__all__ = [
    "BalanceEffect",
    "EntityStore",
    "HolderKind",
    "Period",
    "apply_effects",
    "balance_effects",
    "categories_of_type",
    "category_icon",
    "expense_breakdown",
    "filter_by_period",
    "merge_categories",
    "recent_transactions",
    "renumber",
    "reversal_effects",
    "transactions_for_asset",
    "transactions_for_wallet",
]
