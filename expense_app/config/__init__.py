"""Configuration package."""

from expense_app.config.settings import (
    LocalStorageSettings,
    Settings,
    SupabaseSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "LocalStorageSettings",
    "Settings",
    "SupabaseSettings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
