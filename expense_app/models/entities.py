"""
Core Data Models for Expense App

These models define the schemas of the four remote tables and of the
local cache. They are designed to:
1. Enforce the reference rules of each transaction type at runtime
2. Map one-to-one to remote rows (field names are the snake_case columns)
3. Round-trip through the local JSON cache without loss

DESIGN DECISION: Money is Decimal in memory and in the cache file.
It is only converted to a float when a row is written to the remote
table, whose numeric columns accept plain JSON numbers.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, ClassVar, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """
    Kind of money movement.

    The type carries the sign; the stored amount is always a magnitude.
    """
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class CategoryType(str, Enum):
    """Categories label income or expense transactions, never transfers."""
    INCOME = "income"
    EXPENSE = "expense"


DEFAULT_CATEGORY_TYPE = CategoryType.EXPENSE
DEFAULT_CATEGORY_ICON = "tag"


# =============================================================================
# ROW BASE
# =============================================================================

class TableRow(BaseModel):
    """
    A model that is stored as one row of a remote table.

    Subclasses list their Decimal columns in `money_fields` so that
    `to_row` can hand the remote store plain numbers.

    Rows are frozen: the store publishes its own instances, so a change
    is always a new object made with `model_copy(update=...)`.
    """
    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    money_fields: ClassVar[tuple[str, ...]] = ()

    def to_row(self, include_id: bool = False) -> dict[str, Any]:
        """
        Convert to a dictionary suitable for the remote table.

        Server-assigned ids are left out unless asked for, so the same
        row works for inserts and for updates filtered by id.
        """
        exclude = None if include_id else {"id"}
        row = self.model_dump(mode="json", exclude=exclude)
        for name in self.money_fields:
            row[name] = float(getattr(self, name))
        return row


# =============================================================================
# ENTITIES
# =============================================================================

class Transaction(TableRow):
    """
    A single income, expense or transfer.

    `category` holds the category NAME at the time the transaction was
    recorded. It is not a foreign key: renaming or deleting a category
    leaves existing transactions untouched, so the label stays a
    historical snapshot.
    """
    money_fields: ClassVar[tuple[str, ...]] = ("amount",)

    id: Optional[int] = Field(
        default=None,
        description="Server-assigned id, unset until persisted"
    )
    wallet_id: Optional[int] = None
    asset_id: Optional[int] = None
    from_wallet_id: Optional[int] = None
    to_wallet_id: Optional[int] = None
    from_asset_id: Optional[int] = None
    to_asset_id: Optional[int] = None
    title: str = Field(
        ...,
        description="Short description shown in lists"
    )
    category: str = Field(
        default="",
        description="Category name (not id)"
    )
    date: datetime = Field(
        default_factory=datetime.now,
        description="When the money moved"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative magnitude; the type carries the sign"
    )
    type: TransactionType

    @model_validator(mode="after")
    def validate_references(self) -> "Transaction":
        """Each type may only point at the wallets/assets it can move money on."""
        transfer_refs = (
            self.from_wallet_id,
            self.from_asset_id,
            self.to_wallet_id,
            self.to_asset_id,
        )
        if self.type == TransactionType.TRANSFER:
            if self.wallet_id is not None or self.asset_id is not None:
                raise ValueError("Transfer cannot set wallet_id or asset_id")
            if (self.from_wallet_id is None) == (self.from_asset_id is None):
                raise ValueError("Transfer needs exactly one source wallet or asset")
            if (self.to_wallet_id is None) == (self.to_asset_id is None):
                raise ValueError("Transfer needs exactly one destination wallet or asset")
        else:
            if self.wallet_id is not None and self.asset_id is not None:
                raise ValueError(
                    f"{self.type.value.capitalize()} can reference a wallet or an asset, not both"
                )
            if any(ref is not None for ref in transfer_refs):
                raise ValueError(
                    f"{self.type.value.capitalize()} cannot set transfer references"
                )
        return self


class Wallet(TableRow):
    """
    A bank account, card or cash pocket.

    `balance` is a stored running total. It is adjusted on every
    transaction add/update/delete and never recomputed from history.
    """
    money_fields: ClassVar[tuple[str, ...]] = ("balance",)

    id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100)
    balance: Decimal = Field(default=Decimal("0"))
    type: str = Field(default="", max_length=50)
    color: str = Field(default="", max_length=50)
    last4: str = Field(default="", description="Last four digits of the card")
    sort_order: Optional[int] = None


class Asset(TableRow):
    """A holding (stock, gold, crypto...) whose `value` behaves like a balance."""
    money_fields: ClassVar[tuple[str, ...]] = ("value", "change")

    id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=100)
    symbol: str = Field(default="", max_length=20)
    value: Decimal = Field(default=Decimal("0"))
    change: Decimal = Field(default=Decimal("0"))
    type: str = Field(default="", max_length=50)
    sort_order: Optional[int] = None


class Category(TableRow):
    """
    A user-managed label for income or expense transactions.

    Ids are generated on the client, so a new category can be shown
    before the server has seen it.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str = Field(..., min_length=1, max_length=100)
    type: CategoryType = DEFAULT_CATEGORY_TYPE
    icon: str = Field(default=DEFAULT_CATEGORY_ICON)
    group: Optional[str] = None
    sort_order: Optional[int] = None

    @field_validator("type", mode="before")
    @classmethod
    def default_unknown_type(cls, v: Any) -> Any:
        """Unknown type strings from the server fall back to expense."""
        if isinstance(v, CategoryType):
            return v
        if isinstance(v, str) and v.strip().lower() in {t.value for t in CategoryType}:
            return v.strip().lower()
        return DEFAULT_CATEGORY_TYPE

    def to_row(self, include_id: bool = True) -> dict[str, Any]:
        # Client-generated ids always travel with the row.
        return super().to_row(include_id=include_id)
