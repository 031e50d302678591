"""
Entity Store

The single owner of the in-memory collections (transactions, wallets,
assets, categories) and of the dashboard totals. The UI reads from it
and sends commands to it; it talks to the remote table store.

Every mutation follows the same shape:
1. Apply the change locally and commit (totals, cache file, subscribers)
2. Run the remote call(s)
3. On failure: log, undo the local change, refresh from the server
4. On success: refresh from the server

The refresh is the only reconciliation mechanism. It cannot undo a
balance delta that already reached the server; it only makes the local
view match the server again.

Wallet balances and asset values are stored running totals. They are
adjusted on every transaction change (see balances.py) and must always
equal the sum of the signed effects of the transactions pointing at them.
"""

import asyncio
from decimal import Decimal
from typing import Awaitable, Callable, Optional, Type

from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_app.audit import SyncLogger
from expense_app.config import SyncSettings
from expense_app.models.entities import (
    Asset,
    Category,
    CategoryType,
    Transaction,
    Wallet,
)
from expense_app.models.snapshot import CacheSnapshot, Totals
from expense_app.models.sync import SyncEventBuilder
from expense_app.services.local import (
    CacheError,
    PENDING_CATEGORY_SORT_KEY,
    LocalCache,
    Preferences,
    PreferencesError,
)
from expense_app.services.storage import (
    ASSETS_TABLE,
    CATEGORIES_TABLE,
    TRANSACTIONS_TABLE,
    WALLETS_TABLE,
    StorageError,
    TableStoreInterface,
)
from expense_app.store.balances import (
    BalanceEffect,
    HolderKind,
    apply_effects,
    balance_effects,
    reversal_effects,
)
from expense_app.store.ordering import merge_categories, renumber
from expense_app.store.queries import categories_of_type, category_icon


Subscriber = Callable[["EntityStore"], None]


class EntityStore:
    """
    In-memory state of the app, kept in sync with the remote table store.

    Construct one per application (see orchestrator.create_app_components)
    and share it with the presentation layer. All methods must be called
    from the same event loop.
    """

    def __init__(
        self,
        table_store: TableStoreInterface,
        cache: LocalCache,
        preferences: Preferences,
        logger: Optional[SyncLogger] = None,
        sync_settings: Optional[SyncSettings] = None,
    ):
        self._remote = table_store
        self._cache = cache
        self._preferences = preferences
        self._logger = logger or SyncLogger()
        self._sync_settings = sync_settings or SyncSettings()

        self._rows: dict[str, list] = {
            TRANSACTIONS_TABLE: [],
            WALLETS_TABLE: [],
            ASSETS_TABLE: [],
            CATEGORIES_TABLE: [],
        }
        self._totals = Totals()
        self._subscribers: list[Subscriber] = []

        # Detached work (category order pushes) must outlive the caller.
        self._background_tasks: set[asyncio.Task] = set()
        self._category_push_lock = asyncio.Lock()
        self._category_push_generation = 0

        self._load_from_cache()

    # =========================================================================
    # PUBLISHED STATE
    # =========================================================================

    @property
    def transactions(self) -> list[Transaction]:
        """Transactions, newest first."""
        return list(self._rows[TRANSACTIONS_TABLE])

    @property
    def wallets(self) -> list[Wallet]:
        return list(self._rows[WALLETS_TABLE])

    @property
    def assets(self) -> list[Asset]:
        return list(self._rows[ASSETS_TABLE])

    @property
    def categories(self) -> list[Category]:
        return list(self._rows[CATEGORIES_TABLE])

    @property
    def totals(self) -> Totals:
        return self._totals

    @property
    def total_balance(self) -> Decimal:
        return self._totals.total_balance

    @property
    def total_income(self) -> Decimal:
        return self._totals.total_income

    @property
    def total_expense(self) -> Decimal:
        return self._totals.total_expense

    @property
    def preferences(self) -> Preferences:
        return self._preferences

    @property
    def logger(self) -> SyncLogger:
        return self._logger

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(
            transactions=self.transactions,
            wallets=self.wallets,
            assets=self.assets,
            categories=self.categories,
        )

    def category_icon(self, name: str) -> str:
        return category_icon(self._rows[CATEGORIES_TABLE], name)

    def subscribe(self, callback: Subscriber) -> None:
        """Call `callback(store)` after every local commit or refresh."""
        if callback not in self._subscribers:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # =========================================================================
    # LOCAL STATE
    # =========================================================================

    def _replace(self, snapshot: CacheSnapshot) -> None:
        self._rows[TRANSACTIONS_TABLE] = list(snapshot.transactions)
        self._rows[WALLETS_TABLE] = list(snapshot.wallets)
        self._rows[ASSETS_TABLE] = list(snapshot.assets)
        self._rows[CATEGORIES_TABLE] = list(snapshot.categories)

    def _recalculate_totals(self) -> None:
        self._totals = Totals.from_collections(
            self._rows[WALLETS_TABLE],
            self._rows[ASSETS_TABLE],
            self._rows[TRANSACTIONS_TABLE],
        )

    def _load_from_cache(self) -> None:
        """Bootstrap from the cache file. Failures leave the store empty."""
        try:
            snapshot = self._cache.load()
        except CacheError as e:
            self._logger.log(
                SyncEventBuilder.cache_load_failed(str(self._cache.path), str(e))
            )
            return

        self._replace(snapshot)
        self._recalculate_totals()
        self._logger.log(
            SyncEventBuilder.cache_loaded(
                str(self._cache.path),
                {table: len(rows) for table, rows in self._rows.items()},
            )
        )

    def _save_to_cache(self) -> None:
        try:
            self._cache.save(self.snapshot())
        except CacheError as e:
            self._logger.log(
                SyncEventBuilder.cache_save_failed(str(self._cache.path), str(e))
            )
            return
        self._logger.log(SyncEventBuilder.cache_saved(str(self._cache.path)))

    def _commit(self) -> None:
        """Recompute totals, persist the snapshot and notify subscribers."""
        self._recalculate_totals()
        self._save_to_cache()
        for callback in list(self._subscribers):
            callback(self)

    def _index_of(self, table: str, entity_id) -> Optional[int]:
        for index, entity in enumerate(self._rows[table]):
            if entity.id == entity_id:
                return index
        return None

    def _apply(self, effects: list[BalanceEffect]) -> None:
        apply_effects(self._rows[WALLETS_TABLE], self._rows[ASSETS_TABLE], effects)

    # =========================================================================
    # REFRESH
    # =========================================================================

    async def refresh(self) -> None:
        """
        Re-fetch all four collections and replace the local copies.

        Each collection is fetched independently: one failing fetch keeps
        its local collection and does not block the others. Totals, cache
        file and subscribers are updated in every case.
        """
        categories, wallets, assets, transactions = await asyncio.gather(
            self._fetch(CATEGORIES_TABLE, Category, "sort_order", ascending=True),
            self._fetch(WALLETS_TABLE, Wallet, "sort_order", ascending=True),
            self._fetch(ASSETS_TABLE, Asset, "sort_order", ascending=True),
            self._fetch(TRANSACTIONS_TABLE, Transaction, "date", ascending=False),
        )

        failed = []
        if categories is None:
            failed.append(CATEGORIES_TABLE)
        elif self._preferences.pending_category_sort:
            self._merge_pending_categories(categories)
        else:
            self._rows[CATEGORIES_TABLE] = categories

        for table, fetched in (
            (WALLETS_TABLE, wallets),
            (ASSETS_TABLE, assets),
            (TRANSACTIONS_TABLE, transactions),
        ):
            if fetched is None:
                failed.append(table)
            else:
                self._rows[table] = fetched

        self._commit()
        self._logger.log(
            SyncEventBuilder.refresh_completed(
                {table: len(rows) for table, rows in self._rows.items()},
                failed,
            )
        )

    # Name used by the presentation layer.
    fetch_all = refresh

    async def _fetch(
        self,
        table: str,
        model: Type,
        order_by: str,
        ascending: bool,
    ) -> Optional[list]:
        """Fetch and decode one table; None if the call failed."""
        try:
            rows = await self._remote.select(table, order_by=order_by, ascending=ascending)
        except StorageError as e:
            self._logger.log(SyncEventBuilder.refresh_failed(table, str(e)))
            return None

        decoded = []
        for row in rows:
            try:
                decoded.append(model.model_validate(row))
            except ValidationError as e:
                row_id = row.get("id")
                self._logger.log(
                    SyncEventBuilder.row_skipped(
                        table, str(row_id) if row_id is not None else None, str(e)
                    )
                )
        return decoded

    def _merge_pending_categories(self, fetched: list[Category]) -> None:
        """Keep the local order while a category order push is unconfirmed."""
        merged, appended = merge_categories(self._rows[CATEGORIES_TABLE], fetched)
        self._rows[CATEGORIES_TABLE] = merged
        self._logger.log(
            SyncEventBuilder.category_sort_merged(len(merged) - appended, appended)
        )
        self._start_category_push(merged)

    # =========================================================================
    # MUTATION HELPERS
    # =========================================================================

    async def _sync(
        self,
        operation: str,
        entity_type: str,
        entity_id: Optional[str],
        remote: Callable[[], Awaitable[None]],
        revert: Optional[Callable[[], None]] = None,
    ) -> bool:
        """
        Run the remote half of a mutation whose local half is committed.

        On failure the local change is undone with `revert`. A refresh
        follows in both cases.
        """
        try:
            await remote()
        except StorageError as e:
            self._logger.log(
                SyncEventBuilder.remote_call_failed(operation, str(e), entity_type, entity_id)
            )
            if revert is not None:
                revert()
                self._commit()
                self._logger.log(
                    SyncEventBuilder.mutation_rolled_back(operation, entity_type, entity_id)
                )
            await self.refresh()
            return False

        self._logger.log(SyncEventBuilder.mutation_applied(operation, entity_type, entity_id))
        await self.refresh()
        return True

    async def _push_effects(self, effects: list[BalanceEffect]) -> None:
        """
        Apply balance effects on the server.

        Each wallet/asset row is read right before it is written, so the
        delta lands on the server's current value, not on a cached one.
        """
        for effect in effects:
            field = effect.kind.amount_field
            row = await self._remote.select_one(effect.kind.table, effect.holder_id)
            current = Decimal(str(row.get(field) or 0))
            await self._remote.update(
                effect.kind.table,
                effect.holder_id,
                {field: float(current + effect.delta)},
            )

    async def _fetch_transaction(self, transaction_id: int) -> Transaction:
        row = await self._remote.select_one(TRANSACTIONS_TABLE, transaction_id)
        try:
            return Transaction.model_validate(row)
        except ValidationError as e:
            raise StorageError(f"Malformed transaction row {transaction_id}: {e}") from e

    # =========================================================================
    # TRANSACTIONS
    # =========================================================================

    async def add_transaction(self, transaction: Transaction) -> bool:
        """
        Record a new transaction.

        The transaction and its balance effects show up locally right
        away; the server-assigned id arrives with the refresh.
        """
        effects = balance_effects(transaction)
        self._rows[TRANSACTIONS_TABLE].insert(0, transaction)
        self._apply(effects)
        self._commit()

        async def remote() -> None:
            await self._remote.insert(TRANSACTIONS_TABLE, transaction.to_row())
            await self._push_effects(effects)

        def revert() -> None:
            self._rows[TRANSACTIONS_TABLE] = [
                t for t in self._rows[TRANSACTIONS_TABLE] if t is not transaction
            ]
            self._apply(reversal_effects(transaction))

        return await self._sync("add_transaction", TRANSACTIONS_TABLE, None, remote, revert)

    async def delete_transaction(self, transaction_id: int) -> bool:
        """
        Delete a transaction and undo its effect on balances.

        The local copy drives the optimistic change. The server is
        corrected with the row it currently holds, which may have been
        edited elsewhere since the last refresh.
        """
        index = self._index_of(TRANSACTIONS_TABLE, transaction_id)
        if index is not None:
            transaction = self._rows[TRANSACTIONS_TABLE].pop(index)
        else:
            try:
                transaction = await self._fetch_transaction(transaction_id)
            except StorageError as e:
                self._logger.log(
                    SyncEventBuilder.remote_call_failed(
                        "delete_transaction", str(e), TRANSACTIONS_TABLE, str(transaction_id)
                    )
                )
                await self.refresh()
                return False

        reversal = reversal_effects(transaction)
        self._apply(reversal)
        self._commit()

        async def remote() -> None:
            # Undo what the server recorded, not what this device remembers.
            server_old = await self._fetch_transaction(transaction_id)
            await self._push_effects(reversal_effects(server_old))
            await self._remote.delete(TRANSACTIONS_TABLE, {"id": transaction_id})

        def revert() -> None:
            if index is not None:
                self._rows[TRANSACTIONS_TABLE].insert(index, transaction)
            self._apply(balance_effects(transaction))

        return await self._sync(
            "delete_transaction", TRANSACTIONS_TABLE, str(transaction_id), remote, revert
        )

    async def update_transaction(self, transaction: Transaction) -> bool:
        """
        Replace a saved transaction.

        The old transaction's effects are undone and the new ones applied
        independently, so moving a transaction between wallets, assets or
        types needs no special case.
        """
        if transaction.id is None:
            raise ValueError("Cannot update a transaction that was never saved")

        index = self._index_of(TRANSACTIONS_TABLE, transaction.id)
        if index is not None:
            old = self._rows[TRANSACTIONS_TABLE][index]
        else:
            try:
                old = await self._fetch_transaction(transaction.id)
            except StorageError as e:
                self._logger.log(
                    SyncEventBuilder.remote_call_failed(
                        "update_transaction", str(e), TRANSACTIONS_TABLE, str(transaction.id)
                    )
                )
                await self.refresh()
                return False

        self._apply(reversal_effects(old))
        self._apply(balance_effects(transaction))
        if index is not None:
            self._rows[TRANSACTIONS_TABLE][index] = transaction
        else:
            self._rows[TRANSACTIONS_TABLE].insert(0, transaction)
        self._commit()

        async def remote() -> None:
            # Undo what the server recorded, not what this device remembers.
            server_old = await self._fetch_transaction(transaction.id)
            await self._push_effects(reversal_effects(server_old))
            await self._push_effects(balance_effects(transaction))
            await self._remote.update(TRANSACTIONS_TABLE, transaction.id, transaction.to_row())

        def revert() -> None:
            self._apply(reversal_effects(transaction))
            self._apply(balance_effects(old))
            current = self._index_of(TRANSACTIONS_TABLE, transaction.id)
            if index is not None and current is not None:
                self._rows[TRANSACTIONS_TABLE][current] = old
            elif current is not None:
                del self._rows[TRANSACTIONS_TABLE][current]

        return await self._sync(
            "update_transaction", TRANSACTIONS_TABLE, str(transaction.id), remote, revert
        )

    # =========================================================================
    # WALLETS & ASSETS
    # =========================================================================

    async def _insert_then_refresh(self, table: str, entity, operation: str) -> bool:
        """Insert with no optimistic copy: the id only exists after the refresh."""
        try:
            await self._remote.insert(table, entity.to_row())
        except StorageError as e:
            self._logger.log(SyncEventBuilder.remote_call_failed(operation, str(e), table))
            return False

        self._logger.log(SyncEventBuilder.mutation_applied(operation, table, None))
        await self.refresh()
        return True

    async def _update_entity(self, table: str, entity, operation: str) -> bool:
        if entity.id is None:
            raise ValueError(f"Cannot update an unsaved row in {table}")

        index = self._index_of(table, entity.id)
        previous = self._rows[table][index] if index is not None else None
        if index is not None:
            self._rows[table][index] = entity
            self._commit()

        async def remote() -> None:
            await self._remote.update(table, entity.id, entity.to_row())

        def revert() -> None:
            current = self._index_of(table, entity.id)
            if current is not None and previous is not None:
                self._rows[table][current] = previous

        return await self._sync(operation, table, str(entity.id), remote, revert)

    async def _delete_holder(self, kind: HolderKind, holder_id: int) -> bool:
        """
        Delete a wallet or asset along with the transactions booked on it.

        There is no server-side rollback: if the second call fails, the
        transactions are already gone.
        """
        table = kind.table
        index = self._index_of(table, holder_id)
        removed = self._rows[table].pop(index) if index is not None else None
        self._commit()

        async def remote() -> None:
            await self._remote.delete(TRANSACTIONS_TABLE, {f"{kind.value}_id": holder_id})
            await self._remote.delete(table, {"id": holder_id})

        def revert() -> None:
            if removed is not None:
                self._rows[table].insert(index, removed)

        return await self._sync(f"delete_{kind.value}", table, str(holder_id), remote, revert)

    async def _reorder(self, table: str, ordered: list, operation: str) -> bool:
        """
        Store a new order locally, then write sort_order row by row.

        Wallets and assets have no pending flag: after a failure the
        refresh brings back the server's order.
        """
        previous = self._rows[table]
        renumbered = renumber(list(ordered))
        self._rows[table] = renumbered
        self._commit()

        async def remote() -> None:
            for entity in renumbered:
                await self._remote.update(table, entity.id, {"sort_order": entity.sort_order})

        def revert() -> None:
            self._rows[table] = previous

        return await self._sync(operation, table, None, remote, revert)

    async def add_wallet(self, wallet: Wallet) -> bool:
        return await self._insert_then_refresh(WALLETS_TABLE, wallet, "add_wallet")

    async def update_wallet(self, wallet: Wallet) -> bool:
        return await self._update_entity(WALLETS_TABLE, wallet, "update_wallet")

    async def delete_wallet(self, wallet_id: int) -> bool:
        return await self._delete_holder(HolderKind.WALLET, wallet_id)

    async def reorder_wallets(self, wallets: list[Wallet]) -> bool:
        return await self._reorder(WALLETS_TABLE, wallets, "reorder_wallets")

    async def add_asset(self, asset: Asset) -> bool:
        return await self._insert_then_refresh(ASSETS_TABLE, asset, "add_asset")

    async def update_asset(self, asset: Asset) -> bool:
        return await self._update_entity(ASSETS_TABLE, asset, "update_asset")

    async def delete_asset(self, asset_id: int) -> bool:
        return await self._delete_holder(HolderKind.ASSET, asset_id)

    async def reorder_assets(self, assets: list[Asset]) -> bool:
        return await self._reorder(ASSETS_TABLE, assets, "reorder_assets")

    # =========================================================================
    # CATEGORIES
    # =========================================================================

    async def add_category(self, category: Category) -> bool:
        """Append a category locally, then insert it remotely."""
        categories = self._rows[CATEGORIES_TABLE]
        if category.sort_order is None:
            next_order = max((c.sort_order or 0 for c in categories), default=-1) + 1
            category = category.model_copy(update={"sort_order": next_order})
        categories.append(category)
        self._commit()

        async def remote() -> None:
            await self._remote.insert(CATEGORIES_TABLE, category.to_row())

        def revert() -> None:
            self._rows[CATEGORIES_TABLE] = [
                c for c in self._rows[CATEGORIES_TABLE] if c.id != category.id
            ]

        return await self._sync("add_category", CATEGORIES_TABLE, category.id, remote, revert)

    async def update_category(self, category: Category) -> bool:
        """Change a category. Transactions keep the name they were saved with."""
        return await self._update_entity(CATEGORIES_TABLE, category, "update_category")

    async def delete_category(self, category_id: str) -> bool:
        """Remove a category. Transactions keep the name they were saved with."""
        index = self._index_of(CATEGORIES_TABLE, category_id)
        removed = self._rows[CATEGORIES_TABLE].pop(index) if index is not None else None
        self._commit()

        async def remote() -> None:
            await self._remote.delete(CATEGORIES_TABLE, {"id": category_id})

        def revert() -> None:
            if removed is not None:
                self._rows[CATEGORIES_TABLE].insert(index, removed)

        return await self._sync("delete_category", CATEGORIES_TABLE, category_id, remote, revert)

    async def reorder_categories(self, categories: list[Category]) -> asyncio.Task:
        """
        Store a new category order and push it in the background.

        The pending flag is set before the push and cleared once the
        server confirms it, so a refresh in between keeps this order.
        The push runs as a detached task: it keeps going even if the
        caller is cancelled. The task is returned for callers that want
        to wait for it.
        """
        renumbered = renumber(list(categories))
        self._rows[CATEGORIES_TABLE] = renumbered
        self._commit()
        self._set_pending_category_sort(True)
        return self._start_category_push(renumbered)

    async def move_category(
        self,
        category_type: CategoryType,
        source: int,
        destination: int,
    ) -> asyncio.Task:
        """
        Move a category within the list of its type.

        `source` and `destination` are positions in that filtered list;
        `destination` is the final position of the moved category. The
        full order is rebuilt as income categories followed by expense
        categories.
        """
        categories = self._rows[CATEGORIES_TABLE]
        of_type = categories_of_type(categories, category_type)
        moved = of_type.pop(source)
        of_type.insert(destination, moved)

        if category_type == CategoryType.INCOME:
            income, expense = of_type, categories_of_type(categories, CategoryType.EXPENSE)
        else:
            income, expense = categories_of_type(categories, CategoryType.INCOME), of_type

        return await self.reorder_categories(income + expense)

    def _set_pending_category_sort(self, pending: bool) -> None:
        """Persist the flag; a failed write is logged and the flag stays in memory."""
        try:
            self._preferences.set_pending_category_sort(pending)
        except PreferencesError as e:
            self._logger.log(
                SyncEventBuilder.preferences_save_failed(
                    str(self._preferences.path), PENDING_CATEGORY_SORT_KEY, str(e)
                )
            )

    def _start_category_push(self, categories: list[Category]) -> asyncio.Task:
        self._category_push_generation += 1
        task = asyncio.create_task(
            self._push_category_order(categories, self._category_push_generation)
        )
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def _push_category_order(self, categories: list[Category], generation: int) -> bool:
        """
        Upsert the whole category list in one call, with backoff retries.

        Pushes run one at a time in the order they were started. A push
        that has been superseded by a newer one is skipped, and only the
        newest push may clear the pending flag.
        """
        settings = self._sync_settings
        rows = [category.to_row() for category in categories]

        async with self._category_push_lock:
            if generation != self._category_push_generation:
                return False

            retrying = AsyncRetrying(
                stop=stop_after_attempt(settings.category_push_attempts),
                wait=wait_exponential(
                    multiplier=1,
                    min=settings.category_push_min_wait,
                    max=settings.category_push_max_wait,
                ),
                retry=retry_if_exception_type(StorageError),
                reraise=True,
            )
            try:
                async for attempt in retrying:
                    with attempt:
                        await self._remote.upsert(CATEGORIES_TABLE, rows)
            except StorageError as e:
                self._logger.log(
                    SyncEventBuilder.category_sort_push_failed(
                        str(e), settings.category_push_attempts
                    )
                )
                return False

            if generation == self._category_push_generation:
                self._set_pending_category_sort(False)
            self._logger.log(SyncEventBuilder.category_sort_pushed(len(rows)))
            return True

    async def wait_for_background(self) -> None:
        """Wait until every detached push has finished."""
        while self._background_tasks:
            await asyncio.gather(*list(self._background_tasks))
