"""Services package."""

from expense_app.services.local import (
    AppTheme,
    CacheError,
    LocalCache,
    Preferences,
    PreferencesError,
)
from expense_app.services.storage import (
    ConnectionError,
    NotFoundError,
    StorageError,
    SupabaseClient,
    SupabaseTableStore,
    TableStoreInterface,
)

__all__ = [
    # Local services
    "AppTheme",
    "CacheError",
    "LocalCache",
    "Preferences",
    "PreferencesError",
    # Storage services
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    "SupabaseClient",
    "SupabaseTableStore",
    "TableStoreInterface",
]
