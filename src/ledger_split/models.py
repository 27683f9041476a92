"""Pydantic domain models for ledger-split."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Literal
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    Strict,
    StrictInt,
    StrictStr,
    field_validator,
)

from .money import quantize

AccountType = Literal["savings", "current", "credit"]
TransactionKind = Literal["credit", "debit"]

ACCOUNT_TYPES: tuple[str, ...] = ("savings", "current", "credit")
TRANSACTION_KINDS: tuple[str, ...] = ("credit", "debit")


def new_id() -> str:
    """Generate a new entity id."""
    return str(uuid4())


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class _Money(BaseModel):
    """Base for models whose Decimal fields are kept at two places."""

    @field_validator("*", mode="after")
    @classmethod
    def _two_places(cls, value):
        if isinstance(value, Decimal):
            return quantize(value)
        return value


# ============================================================================
# Ledger Models
# ============================================================================


class Account(_Money):
    """A user-owned bank account with a running balance."""

    id: str = Field(default_factory=new_id)
    owner_id: str
    name: str
    type: AccountType = "savings"
    opening_balance: Decimal = Decimal("0.00")
    balance: Decimal = Decimal("0.00")  # derived from opening balance + transactions
    created_at: datetime = Field(default_factory=utcnow)


class Transaction(_Money):
    """A single credit or debit posted against an account."""

    id: str = Field(default_factory=new_id)
    account_id: str
    amount: Decimal = Field(gt=0)
    kind: TransactionKind
    description: str = ""
    occurred_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def signed_amount(self) -> Decimal:
        """Amount with its effect on balance: positive for credit."""
        return self.amount if self.kind == "credit" else -self.amount


class AccountTransaction(Transaction):
    """A transaction listed together with its account's display name."""

    account_name: str


# ============================================================================
# Split Models
# ============================================================================


class Expense(_Money):
    """A group expense paid by one party and divided among participants."""

    id: str = Field(default_factory=new_id)
    owner_id: str
    payer_name: str  # free text, not necessarily a registered user
    amount: Decimal = Field(gt=0)
    description: str = ""
    occurred_at: datetime = Field(default_factory=utcnow)
    created_at: datetime = Field(default_factory=utcnow)


class ParticipantShare(_Money):
    """One participant's portion of a split expense."""

    id: str = Field(default_factory=new_id)
    expense_id: str
    name: str
    share_amount: Decimal


class ExpenseWithShares(BaseModel):
    """An expense resolved with its full participant set."""

    expense: Expense
    shares: list[ParticipantShare]


class OwedShare(_Money):
    """An amount a participant owes the payer."""

    name: str
    amount: Decimal


class SplitResult(_Money):
    """Result of creating a split.

    owed_to_payer lists every participant whose name differs from the payer
    (exact, case-sensitive comparison).
    """

    expense: Expense
    shares: list[ParticipantShare]
    share_amount: Decimal
    owed_to_payer: list[OwedShare]


class SplitPatch(BaseModel):
    """Fields of a split that may change after creation.

    Participants are fixed at creation, so they are not accepted here.
    """

    model_config = ConfigDict(extra="forbid")

    # Strict so floats are refused here; the split service parses the rest
    amount: Annotated[Decimal, Strict()] | StrictStr | StrictInt | None = None
    description: str | None = None
    payer_name: str | None = None

    def is_empty(self) -> bool:
        """True when no field is set."""
        return not self.model_dump(exclude_none=True)


# ============================================================================
# Summary Models
# ============================================================================


class DashboardSummary(_Money):
    """Totals shown on the dashboard."""

    total_balance: Decimal
    total_credits: Decimal
    total_debits: Decimal
    total_split_expenses: Decimal
    account_count: int
    split_count: int
    recent_transactions: list[AccountTransaction] = Field(default_factory=list)
