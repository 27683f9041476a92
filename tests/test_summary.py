"""Tests for dashboard summary totals."""

from datetime import UTC, datetime
from decimal import Decimal

from ledger_split.summary import build_summary


def test_totals_across_accounts_and_splits(ledger, splits):
    """Totals are exact sums over the principal's data only."""
    savings = ledger.open_account("asha", "Savings", opening_balance="1000.00")
    wallet = ledger.open_account("asha", "Wallet", "current", "0.10")
    ledger.add_transaction("asha", savings.id, "500.00", "credit", "Salary")
    ledger.add_transaction("asha", savings.id, "120.20", "debit", "Rent")
    ledger.add_transaction("asha", wallet.id, "0.20", "credit", "Change")
    splits.create_split("asha", "A", "100.00", "Dinner", ["A", "B", "C"])
    splits.create_split("asha", "B", "0.30", "Gum", ["A", "B"])

    other = ledger.open_account("ravi", "Other", opening_balance="99.00")
    ledger.add_transaction("ravi", other.id, "1.00", "credit")
    splits.create_split("ravi", "R", "10.00", "", ["R"])

    result = build_summary(ledger, splits, "asha")

    assert result.total_balance == Decimal("1380.10")
    assert result.total_credits == Decimal("500.20")
    assert result.total_debits == Decimal("120.20")
    assert result.total_split_expenses == Decimal("100.30")
    assert result.account_count == 2
    assert result.split_count == 2


def test_recent_transactions_limited_and_newest_first(ledger, splits):
    """Only the newest transactions are included."""
    account = ledger.open_account("asha", "Savings")
    for day in range(1, 8):
        ledger.add_transaction(
            "asha", account.id, f"{day}.00", "credit", f"day {day}",
            occurred_at=datetime(2024, 1, day, tzinfo=UTC),
        )

    result = build_summary(ledger, splits, "asha", recent=3)

    assert [t.description for t in result.recent_transactions] == [
        "day 7",
        "day 6",
        "day 5",
    ]
    assert result.recent_transactions[0].account_name == "Savings"


def test_empty_summary(ledger, splits):
    """A new principal has all-zero totals."""
    result = build_summary(ledger, splits, "nobody")

    assert result.total_balance == Decimal("0.00")
    assert result.total_split_expenses == Decimal("0.00")
    assert result.recent_transactions == []
