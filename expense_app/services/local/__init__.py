"""Local persistence: offline cache file and preferences."""

from expense_app.services.local.cache import CacheError, LocalCache
from expense_app.services.local.preferences import (
    AppTheme,
    PENDING_CATEGORY_SORT_KEY,
    Preferences,
    PreferencesError,
)

__all__ = [
    "AppTheme",
    "CacheError",
    "LocalCache",
    "PENDING_CATEGORY_SORT_KEY",
    "Preferences",
    "PreferencesError",
]
