"""ledger-split - Track bank account balances and split group expenses."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database, Storage
from .exceptions import (
    InvalidArgumentError,
    LedgerSplitError,
    NotFoundError,
    PermissionDeniedError,
)
from .ledger import LedgerService, fold_balance
from .models import (
    Account,
    Expense,
    ExpenseWithShares,
    ParticipantShare,
    SplitPatch,
    SplitResult,
    Transaction,
)
from .splits import SplitService
from .summary import build_summary

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "Storage",
    "InvalidArgumentError",
    "LedgerSplitError",
    "NotFoundError",
    "PermissionDeniedError",
    "LedgerService",
    "fold_balance",
    "Account",
    "Expense",
    "ExpenseWithShares",
    "ParticipantShare",
    "SplitPatch",
    "SplitResult",
    "Transaction",
    "SplitService",
    "build_summary",
]
