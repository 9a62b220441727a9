"""
Domain Records for ledger_sync

These models define the schemas of everything a data provider hands back.
They are designed to:
1. Validate provider output at the boundary instead of trusting its shape
2. Be immutable once loaded (loaders and the enrichment join never mutate them)
3. Keep unknown transaction fields around for presentation code

DESIGN DECISION: Account and category kinds are closed enumerations.
A record with a kind we don't know is rejected at the boundary, so
downstream code can branch on the kind exhaustively.
"""

from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional

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

class AccountKind(str, Enum):
    """Where the money of an account physically lives."""
    CASH_BOX = "cash_box"
    BANK = "bank"


class AccountOrigin(str, Enum):
    """How an account came to exist in the ledger."""
    MANUAL = "manual"
    CONNECTED = "connected"


class CategoryKind(str, Enum):
    """Direction of the movements a category is meant for."""
    INCOME = "income"
    EXPENSE = "expense"
    MIXED = "mixed"


# Spellings used by the upstream database and older exports
_ACCOUNT_KIND_ALIASES = {
    "caja": AccountKind.CASH_BOX,
    "cash-box": AccountKind.CASH_BOX,
    "cash": AccountKind.CASH_BOX,
    "banco": AccountKind.BANK,
}
_ACCOUNT_ORIGIN_ALIASES = {
    "conectada": AccountOrigin.CONNECTED,
}
_CATEGORY_KIND_ALIASES = {
    "ingreso": CategoryKind.INCOME,
    "gasto": CategoryKind.EXPENSE,
    "mixto": CategoryKind.MIXED,
}


def _normalize_enum(value, aliases: dict):
    if isinstance(value, str):
        key = value.strip().lower()
        return aliases.get(key, key)
    return value


# =============================================================================
# TENANT SCOPE
# =============================================================================

class Delegation(BaseModel):
    """
    A delegation (tenant) of an organization.

    Accounts and transactions are scoped by delegation id,
    categories by the owning organization id.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    code: Optional[str] = Field(default=None, max_length=50)


# =============================================================================
# LEDGER ENTITIES
# =============================================================================

class Account(BaseModel):
    """
    A cash box or bank account owned by a delegation.

    bank_name is only meaningful for bank accounts; for cash boxes
    it is kept as provided but ignored for display.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    delegation_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    kind: AccountKind
    bank_name: Optional[str] = Field(default=None, max_length=200)
    origin: AccountOrigin = AccountOrigin.MANUAL
    iban: Optional[str] = Field(default=None, max_length=34)

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v):
        return _normalize_enum(v, _ACCOUNT_KIND_ALIASES)

    @field_validator("origin", mode="before")
    @classmethod
    def normalize_origin(cls, v):
        return _normalize_enum(v, _ACCOUNT_ORIGIN_ALIASES)

    @field_validator("bank_name", "iban", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_bank(self) -> bool:
        return self.kind == AccountKind.BANK


class Category(BaseModel):
    """
    A transaction category owned by an organization.

    `order` is an explicit sort key; values need not be contiguous.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    order: int = 0
    kind: CategoryKind = CategoryKind.MIXED
    emoji: Optional[str] = None
    parent_id: Optional[str] = None

    @field_validator("kind", mode="before")
    @classmethod
    def normalize_kind(cls, v):
        return _normalize_enum(v, _CATEGORY_KIND_ALIASES)

    @field_validator("emoji", "parent_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


class Transaction(BaseModel):
    """
    A single movement on an account.

    Positive amounts are inflows, negative amounts outflows.
    Fields we don't model are preserved as extras; nothing in this
    package interprets them.
    """
    model_config = ConfigDict(frozen=True, extra="allow")

    id: str = Field(..., min_length=1)
    account_id: str = Field(..., min_length=1)
    category_id: Optional[str] = None
    amount: Decimal
    posted_on: Optional[date] = None
    concept: str = ""
    ignored: bool = False

    @field_validator("category_id", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @property
    def is_inflow(self) -> bool:
        return self.amount > 0


# =============================================================================
# QUERIES AND RESULTS
# =============================================================================

class TransactionQuery(BaseModel):
    """
    Filter and page selection for listing a delegation's transactions.

    Frozen so that two equal queries compare equal; loaders use
    the query itself as their scope key.
    """
    model_config = ConfigDict(frozen=True)

    delegation_id: str
    date_from: Optional[date] = None
    date_to: Optional[date] = None
    category_id: Optional[str] = None
    amount_min: Optional[Decimal] = None
    amount_max: Optional[Decimal] = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=50, ge=1, le=500)

    @model_validator(mode="after")
    def validate_ranges(self) -> "TransactionQuery":
        if self.date_from and self.date_to and self.date_to < self.date_from:
            raise ValueError("date_to cannot be before date_from")
        if (
            self.amount_min is not None
            and self.amount_max is not None
            and self.amount_max < self.amount_min
        ):
            raise ValueError("amount_max cannot be below amount_min")
        return self

    def __bool__(self) -> bool:
        # An unscoped query behaves like an empty key
        return bool(self.delegation_id)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def matches(self, transaction: Transaction) -> bool:
        """Check the filters (not the delegation scope) against one transaction."""
        if self.date_from or self.date_to:
            if transaction.posted_on is None:
                return False
            if self.date_from and transaction.posted_on < self.date_from:
                return False
            if self.date_to and transaction.posted_on > self.date_to:
                return False
        if self.category_id and transaction.category_id != self.category_id:
            return False
        if self.amount_min is not None and transaction.amount < self.amount_min:
            return False
        if self.amount_max is not None and transaction.amount > self.amount_max:
            return False
        return True

    def apply(self, transactions: Iterable[Transaction]) -> "TransactionPage":
        """
        Filter, order newest first and paginate transactions that are
        already scoped to this query's delegation.

        Undated transactions sort last; ties keep their input order.
        """
        matches = [t for t in transactions if self.matches(t)]
        matches.sort(
            key=lambda t: (t.posted_on is not None, t.posted_on or date.min),
            reverse=True,
        )
        return TransactionPage(
            items=matches[self.offset:self.offset + self.page_size],
            total=len(matches),
        )


class TransactionPage(BaseModel):
    """One page of transactions plus the unpaged match count."""
    model_config = ConfigDict(frozen=True)

    items: list[Transaction] = Field(default_factory=list)
    total: int = Field(default=0, ge=0)


class EnrichedTransaction(BaseModel):
    """
    A transaction with its account and category resolved.

    Only produced by the enrichment join. A reference that could not
    be resolved is None - never a placeholder record.
    """
    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    account: Optional[Account] = None
    category: Optional[Category] = None

    @property
    def id(self) -> str:
        return self.transaction.id

    @property
    def amount(self) -> Decimal:
        return self.transaction.amount
