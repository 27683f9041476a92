"""Tests for the ledger service."""

import sqlite3
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import patch

import pytest

from ledger_split.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    PermissionDeniedError,
)
from ledger_split.ledger import fold_balance
from ledger_split.models import Transaction


@pytest.fixture
def account(ledger):
    """Create an account with an opening balance of 1000.00."""
    return ledger.open_account("asha", "HDFC Savings", "savings", "1000.00")


class TestOpenAccount:
    """Tests for open_account."""

    def test_balance_starts_at_opening_balance(self, ledger):
        """A fresh account's balance is its opening balance."""
        account = ledger.open_account("asha", "Wallet", "current", "250.5")

        assert account.balance == Decimal("250.50")
        assert account.opening_balance == Decimal("250.50")
        assert account.type == "current"

    def test_default_type_and_balance(self, ledger):
        """Defaults are a savings account at zero."""
        account = ledger.open_account("asha", "Piggy bank")

        assert account.type == "savings"
        assert account.balance == Decimal("0.00")

    def test_negative_opening_balance_allowed(self, ledger):
        """Credit accounts can start in debt."""
        account = ledger.open_account("asha", "Card", "credit", "-120.00")

        assert account.balance == Decimal("-120.00")

    def test_rejects_blank_name(self, ledger, db):
        """A name is required."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            ledger.open_account("asha", "   ")

        assert exc_info.value.field == "name"
        assert db.list_accounts("asha") == []

    def test_rejects_unknown_type(self, ledger):
        """Only savings, current and credit are valid types."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            ledger.open_account("asha", "Stocks", "brokerage")

        assert exc_info.value.field == "type"

    def test_list_accounts_scoped_to_owner(self, ledger):
        """Owners only see their own accounts."""
        ledger.open_account("asha", "Mine")
        ledger.open_account("ravi", "His")

        names = [a.name for a in ledger.list_accounts("asha")]

        assert names == ["Mine"]


class TestAddTransaction:
    """Tests for add_transaction."""

    def test_credit_adds_and_debit_subtracts(self, ledger, account):
        """Credits raise the balance, debits lower it."""
        ledger.add_transaction("asha", account.id, "200.00", "credit", "Salary")
        ledger.add_transaction("asha", account.id, "50.25", "debit", "Groceries")

        assert ledger.get_account("asha", account.id).balance == Decimal("1149.75")

    def test_balance_is_opening_plus_credits_minus_debits(self, ledger, account):
        """Any sequence of postings folds exactly in decimal arithmetic."""
        postings = [
            ("0.10", "credit"),
            ("0.20", "credit"),
            ("999.99", "debit"),
            ("33.33", "credit"),
            ("0.01", "debit"),
            ("12.50", "debit"),
        ]
        for amount, kind in postings:
            ledger.add_transaction("asha", account.id, amount, kind)

        credits = sum(Decimal(a) for a, k in postings if k == "credit")
        debits = sum(Decimal(a) for a, k in postings if k == "debit")
        expected = Decimal("1000.00") + credits - debits

        assert ledger.get_account("asha", account.id).balance == expected

    def test_balance_may_go_negative(self, ledger, account):
        """There is no overdraft protection."""
        ledger.add_transaction("asha", account.id, "1500.00", "debit", "Rent")

        assert ledger.get_account("asha", account.id).balance == Decimal("-500.00")

    @pytest.mark.parametrize(
        "amount",
        ["-5.00", "0", "0.00", "abc", "1.999", "99999999999999999999999999999.000"],
    )
    def test_invalid_amount_does_not_touch_balance(self, ledger, db, account, amount):
        """Bad amounts fail before any write."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            ledger.add_transaction("asha", account.id, amount, "credit")

        assert exc_info.value.field == "amount"
        assert ledger.get_account("asha", account.id).balance == Decimal("1000.00")
        assert db.list_transactions_by_account(account.id) == []

    def test_invalid_kind(self, ledger, db, account):
        """Kind must be credit or debit."""
        with pytest.raises(InvalidArgumentError) as exc_info:
            ledger.add_transaction("asha", account.id, "10.00", "refund")

        assert exc_info.value.field == "kind"
        assert db.list_transactions_by_account(account.id) == []

    def test_missing_account(self, ledger):
        """Posting to an unknown account is NotFound."""
        with pytest.raises(NotFoundError):
            ledger.add_transaction("asha", "no-such-account", "10.00", "credit")

    def test_other_owners_account(self, ledger, db, account):
        """Posting to someone else's account is denied without leaking details."""
        with pytest.raises(PermissionDeniedError) as exc_info:
            ledger.add_transaction("ravi", account.id, "10.00", "credit")

        assert account.id not in str(exc_info.value)
        assert "asha" not in str(exc_info.value)
        assert db.list_transactions_by_account(account.id) == []

    def test_balance_write_failure_rolls_back_transaction(self, ledger, db, account):
        """The insert and balance update succeed or fail together."""
        with patch.object(
            db,
            "update_account_balance",
            side_effect=sqlite3.OperationalError("disk I/O error"),
        ):
            with pytest.raises(sqlite3.OperationalError):
                ledger.add_transaction("asha", account.id, "10.00", "credit")

        assert db.list_transactions_by_account(account.id) == []
        assert ledger.get_account("asha", account.id).balance == Decimal("1000.00")


class TestDeleteTransaction:
    """Tests for delete_transaction."""

    def test_delete_refolds_balance(self, ledger, account):
        """Deleting a posting removes its effect on the balance."""
        keep = ledger.add_transaction("asha", account.id, "100.00", "credit")
        drop = ledger.add_transaction("asha", account.id, "40.00", "debit")

        ledger.delete_transaction("asha", drop.id)

        assert ledger.get_account("asha", account.id).balance == Decimal("1100.00")
        remaining = ledger.list_account_transactions("asha", account.id)
        assert [t.id for t in remaining] == [keep.id]

    def test_delete_all_returns_to_opening_balance(self, ledger, account):
        """With no history left, the balance is the opening balance."""
        t1 = ledger.add_transaction("asha", account.id, "10.00", "credit")
        t2 = ledger.add_transaction("asha", account.id, "5.00", "debit")

        ledger.delete_transaction("asha", t1.id)
        ledger.delete_transaction("asha", t2.id)

        assert ledger.get_account("asha", account.id).balance == Decimal("1000.00")

    def test_missing_transaction(self, ledger):
        """Deleting an unknown transaction is NotFound."""
        with pytest.raises(NotFoundError):
            ledger.delete_transaction("asha", "missing")

    def test_other_owners_transaction(self, ledger, db, account):
        """Another principal cannot delete the transaction."""
        transaction = ledger.add_transaction("asha", account.id, "10.00", "credit")

        with pytest.raises(PermissionDeniedError):
            ledger.delete_transaction("ravi", transaction.id)

        assert db.get_transaction(transaction.id) is not None


class TestListTransactions:
    """Tests for transaction listings."""

    def test_account_listing_newest_first(self, ledger, account):
        """Transactions are ordered by occurred_at, newest first."""
        older = ledger.add_transaction(
            "asha", account.id, "1.00", "credit",
            occurred_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        newest = ledger.add_transaction(
            "asha", account.id, "2.00", "credit",
            occurred_at=datetime(2024, 3, 1, tzinfo=UTC),
        )
        middle = ledger.add_transaction(
            "asha", account.id, "3.00", "credit",
            occurred_at=datetime(2024, 2, 1, tzinfo=UTC),
        )

        result = ledger.list_account_transactions("asha", account.id)

        assert [t.id for t in result] == [newest.id, middle.id, older.id]

    def test_account_listing_requires_ownership(self, ledger, account):
        """Listing someone else's account is denied."""
        with pytest.raises(PermissionDeniedError):
            ledger.list_account_transactions("ravi", account.id)

    def test_user_listing_includes_account_name(self, ledger, account):
        """Listing by user joins in the account display name."""
        wallet = ledger.open_account("asha", "Wallet", "current")
        ledger.add_transaction(
            "asha", account.id, "5.00", "debit", "Tea",
            occurred_at=datetime(2024, 1, 1, tzinfo=UTC),
        )
        ledger.add_transaction(
            "asha", wallet.id, "7.00", "debit", "Bus",
            occurred_at=datetime(2024, 1, 2, tzinfo=UTC),
        )
        other = ledger.open_account("ravi", "Ravi's")
        ledger.add_transaction("ravi", other.id, "1.00", "credit")

        result = ledger.list_user_transactions("asha")

        assert [(t.description, t.account_name) for t in result] == [
            ("Bus", "Wallet"),
            ("Tea", "HDFC Savings"),
        ]


class TestFoldBalance:
    """Tests for the pure balance fold."""

    def test_fold_over_history(self):
        """Credits add and debits subtract from the opening balance."""
        history = [
            Transaction(account_id="a", amount=Decimal("10.00"), kind="credit"),
            Transaction(account_id="a", amount=Decimal("2.50"), kind="debit"),
        ]

        assert fold_balance(Decimal("-1.00"), history) == Decimal("6.50")

    def test_fold_empty_history(self):
        """No transactions means the opening balance."""
        assert fold_balance(Decimal("3.00"), []) == Decimal("3.00")
