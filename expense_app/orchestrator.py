"""
Composition Root for Expense App

This module builds the object graph once and hands it to the
presentation layer:

    settings -> Supabase table store
             -> local cache file + preferences
             -> sync logger
             -> EntityStore

DESIGN DECISION: There is no global shared store. Whoever starts the app
calls create_app_components() and owns the result, so tests and
previews can build their own store against any TableStoreInterface.
"""

from dataclasses import dataclass
from typing import Optional

from expense_app.audit import SyncLogger
from expense_app.config import Settings, get_settings
from expense_app.services.local import LocalCache, Preferences
from expense_app.services.storage import (
    SupabaseClient,
    SupabaseTableStore,
    TableStoreInterface,
)
from expense_app.store import EntityStore


@dataclass
class AppComponents:
    """Everything the presentation layer needs."""
    store: EntityStore
    preferences: Preferences
    logger: SyncLogger


def create_app_components(
    table_store: Optional[TableStoreInterface] = None,
    settings: Optional[Settings] = None,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        table_store: Remote backend to use. Defaults to Supabase,
                    configured from SUPABASE_* environment variables.
        settings: Settings to use instead of the cached global ones.

    Returns:
        AppComponents with a store already bootstrapped from the cache.
        Call `await components.store.refresh()` to load remote data.
    """
    settings = settings or get_settings()
    local = settings.local
    sync = settings.sync

    logger = SyncLogger(recent_limit=sync.recent_events_limit)

    if table_store is None:
        table_store = SupabaseTableStore(SupabaseClient(settings.supabase))

    preferences = Preferences(local.preferences_path, logger=logger)
    store = EntityStore(
        table_store=table_store,
        cache=LocalCache(local.cache_path),
        preferences=preferences,
        logger=logger,
        sync_settings=sync,
    )

    return AppComponents(store=store, preferences=preferences, logger=logger)


async def start_app(components: AppComponents) -> AppComponents:
    """First refresh after startup; the cached data is already visible."""
    await components.store.refresh()
    return components
