"""
Data Models Package

This package contains all Pydantic models used in the Expense App.
Remote rows, cached snapshots and sync events all conform to these schemas.
"""

from expense_app.models.entities import (
    Asset,
    Category,
    CategoryType,
    Transaction,
    TransactionType,
    Wallet,
)
from expense_app.models.snapshot import CacheSnapshot, Totals
from expense_app.models.sync import (
    SyncEvent,
    SyncEventBuilder,
    SyncEventType,
    SyncSeverity,
)

__all__ = [
    # Entities
    "Asset",
    "Category",
    "CategoryType",
    "Transaction",
    "TransactionType",
    "Wallet",
    # Snapshot
    "CacheSnapshot",
    "Totals",
    # Sync events
    "SyncEvent",
    "SyncEventBuilder",
    "SyncEventType",
    "SyncSeverity",
]
