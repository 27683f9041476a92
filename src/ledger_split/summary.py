"""Dashboard totals across a principal's accounts and splits."""

import logging
from decimal import Decimal

from .ledger import LedgerService
from .models import DashboardSummary
from .splits import SplitService

logger = logging.getLogger(__name__)


def build_summary(
    ledger: LedgerService,
    splits: SplitService,
    owner_id: str,
    recent: int = 5,
) -> DashboardSummary:
    """
    Compute dashboard totals in exact decimal arithmetic.

    Args:
        ledger: Ledger service to read accounts and transactions from
        splits: Split service to read expenses from
        owner_id: The acting principal
        recent: How many of the newest transactions to include

    Returns:
        Summary of balances, credits, debits and split totals
    """
    accounts = ledger.list_accounts(owner_id)
    transactions = ledger.list_user_transactions(owner_id)
    expenses = splits.list_splits(owner_id)

    total_balance = sum((account.balance for account in accounts), Decimal("0"))
    total_credits = sum(
        (t.amount for t in transactions if t.kind == "credit"), Decimal("0")
    )
    total_debits = sum(
        (t.amount for t in transactions if t.kind == "debit"), Decimal("0")
    )
    total_split = sum((item.expense.amount for item in expenses), Decimal("0"))

    logger.debug(
        f"Summary for {owner_id}: {len(accounts)} accounts, "
        f"{len(transactions)} transactions, {len(expenses)} splits"
    )

    return DashboardSummary(
        total_balance=total_balance,
        total_credits=total_credits,
        total_debits=total_debits,
        total_split_expenses=total_split,
        account_count=len(accounts),
        split_count=len(expenses),
        recent_transactions=transactions[: max(recent, 0)],
    )
