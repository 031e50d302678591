"""
Storage Services Package

Provides the abstract table store interface and its Supabase implementation.
The Entity Store only depends on the interface, so the backend is swappable.
"""

from expense_app.services.storage.interface import (
    ASSETS_TABLE,
    CATEGORIES_TABLE,
    TRANSACTIONS_TABLE,
    WALLETS_TABLE,
    ConnectionError,
    NotFoundError,
    Row,
    StorageError,
    TableStoreInterface,
)
from expense_app.services.storage.supabase_store import (
    SupabaseClient,
    SupabaseTableStore,
)

__all__ = [
    # Interface
    "TableStoreInterface",
    "Row",
    # Table names
    "ASSETS_TABLE",
    "CATEGORIES_TABLE",
    "TRANSACTIONS_TABLE",
    "WALLETS_TABLE",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Supabase implementation
    "SupabaseClient",
    "SupabaseTableStore",
]
