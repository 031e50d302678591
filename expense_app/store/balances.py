"""
Balance Effects

Turns a transaction into the signed changes it makes to wallet balances
and asset values:

    expense   -> -amount on its wallet or asset
    income    -> +amount on its wallet or asset
    transfer  -> -amount on the "from" side, +amount on the "to" side

The stored amount is always a magnitude; the type carries the sign.
Reversing a transaction applies the same effects with the sign flipped.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Union

from expense_app.models.entities import Asset, Transaction, TransactionType, Wallet
from expense_app.services.storage.interface import ASSETS_TABLE, WALLETS_TABLE


class HolderKind(str, Enum):
    """What a transaction can move money on."""
    WALLET = "wallet"
    ASSET = "asset"

    @property
    def table(self) -> str:
        return WALLETS_TABLE if self is HolderKind.WALLET else ASSETS_TABLE

    @property
    def amount_field(self) -> str:
        """Column holding the running total."""
        return "balance" if self is HolderKind.WALLET else "value"


Holder = Union[Wallet, Asset]


@dataclass(frozen=True)
class BalanceEffect:
    """A signed change to one wallet or asset."""
    kind: HolderKind
    holder_id: int
    delta: Decimal

    def inverted(self) -> "BalanceEffect":
        return BalanceEffect(self.kind, self.holder_id, -self.delta)


def _reference(wallet_id: Optional[int], asset_id: Optional[int]) -> Optional[tuple[HolderKind, int]]:
    # A wallet wins if both are somehow set.
    if wallet_id is not None:
        return HolderKind.WALLET, wallet_id
    if asset_id is not None:
        return HolderKind.ASSET, asset_id
    return None


def balance_effects(transaction: Transaction) -> list[BalanceEffect]:
    """Signed effects of applying `transaction`."""
    amount = transaction.amount
    effects = []

    if transaction.type == TransactionType.TRANSFER:
        source = _reference(transaction.from_wallet_id, transaction.from_asset_id)
        target = _reference(transaction.to_wallet_id, transaction.to_asset_id)
        if source:
            effects.append(BalanceEffect(source[0], source[1], -amount))
        if target:
            effects.append(BalanceEffect(target[0], target[1], amount))
        return effects

    sign = Decimal("1") if transaction.type == TransactionType.INCOME else Decimal("-1")
    if transaction.wallet_id is not None:
        effects.append(BalanceEffect(HolderKind.WALLET, transaction.wallet_id, sign * amount))
    if transaction.asset_id is not None:
        effects.append(BalanceEffect(HolderKind.ASSET, transaction.asset_id, sign * amount))
    return effects


def reversal_effects(transaction: Transaction) -> list[BalanceEffect]:
    """Signed effects that undo `transaction`."""
    return [effect.inverted() for effect in balance_effects(transaction)]


def with_delta(holder: Holder, delta: Decimal) -> Holder:
    """Return a copy of the wallet/asset with `delta` added to its total."""
    if isinstance(holder, Wallet):
        return holder.model_copy(update={"balance": holder.balance + delta})
    return holder.model_copy(update={"value": holder.value + delta})


def apply_effects(
    wallets: list[Wallet],
    assets: list[Asset],
    effects: Iterable[BalanceEffect],
) -> None:
    """
    Apply effects in place to the local collections.

    Effects pointing at a wallet or asset that is not loaded are ignored;
    the next refresh brings the server's value.
    """
    for effect in effects:
        collection = wallets if effect.kind is HolderKind.WALLET else assets
        for index, holder in enumerate(collection):
            if holder.id == effect.holder_id:
                collection[index] = with_delta(holder, effect.delta)
                break
