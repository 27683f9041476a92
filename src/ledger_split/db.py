"""Storage interface and SQLite implementation for ledger-split.

Money columns hold text with exactly two fractional digits and timestamps
hold ISO-8601 text in UTC. Amounts are always read back through
``from_storage`` so nothing passes through a float.
"""

import sqlite3
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

from .models import (
    Account,
    AccountTransaction,
    Expense,
    ExpenseWithShares,
    ParticipantShare,
    Transaction,
)
from .money import from_storage, to_storage

EXPENSE_FIELDS = ("amount", "description", "payer_name")


def _to_iso(value: datetime) -> str:
    """Serialize a datetime as UTC ISO-8601 text (naive values are taken as UTC)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def _from_iso(text: str) -> datetime:
    return datetime.fromisoformat(text)


class Storage(ABC):
    """
    Storage operations the ledger and split services depend on.

    Services receive an instance at construction, so tests can pass any
    implementation. Lookups return None for missing rows; deciding whether
    that is an error is left to the caller.
    """

    @abstractmethod
    def atomic(self) -> Any:
        """Context manager grouping writes into one all-or-nothing unit."""

    # Accounts

    @abstractmethod
    def create_account(self, account: Account) -> Account:
        """Persist a new account."""

    @abstractmethod
    def get_account(self, account_id: str) -> Account | None:
        """Get an account by id."""

    @abstractmethod
    def list_accounts(self, owner_id: str) -> list[Account]:
        """List an owner's accounts, newest first."""

    @abstractmethod
    def update_account_balance(self, account_id: str, balance: Decimal) -> None:
        """Overwrite the persisted balance of an account."""

    # Transactions

    @abstractmethod
    def create_transaction(self, transaction: Transaction) -> Transaction:
        """Persist a new transaction."""

    @abstractmethod
    def get_transaction(self, transaction_id: str) -> Transaction | None:
        """Get a transaction by id."""

    @abstractmethod
    def list_transactions_by_account(
        self, account_id: str, newest_first: bool = True
    ) -> list[Transaction]:
        """
        List an account's transactions.

        Args:
            account_id: The account to list
            newest_first: Order by occurred_at descending; when False, return
                the transactions in the order they were recorded

        Returns:
            List of transactions
        """

    @abstractmethod
    def list_transactions_by_owner(self, owner_id: str) -> list[AccountTransaction]:
        """List every transaction across an owner's accounts, newest first."""

    @abstractmethod
    def delete_transaction(self, transaction_id: str) -> None:
        """Delete a transaction."""

    # Expenses and shares

    @abstractmethod
    def create_expense(self, expense: Expense) -> Expense:
        """Persist a new expense."""

    @abstractmethod
    def get_expense(self, expense_id: str) -> Expense | None:
        """Get an expense by id."""

    @abstractmethod
    def list_expenses_with_shares(self, owner_id: str) -> list[ExpenseWithShares]:
        """List an owner's expenses with their shares, newest first."""

    @abstractmethod
    def update_expense(self, expense_id: str, fields: dict[str, Any]) -> None:
        """Patch the given columns of an expense."""

    @abstractmethod
    def delete_expense(self, expense_id: str) -> None:
        """Delete an expense and all of its shares."""

    @abstractmethod
    def create_shares(
        self, expense_id: str, shares: list[ParticipantShare]
    ) -> list[ParticipantShare]:
        """Persist the shares of an expense."""

    @abstractmethod
    def list_shares(self, expense_id: str) -> list[ParticipantShare]:
        """List an expense's shares in the order they were created."""


class Database(Storage):
    """SQLite database manager."""

    def __init__(self, db_path: Path | str):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON")
        self._depth = 0
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS accounts (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'savings',
                opening_balance TEXT NOT NULL DEFAULT '0.00',
                balance TEXT NOT NULL DEFAULT '0.00',
                created_at TIMESTAMP NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS transactions (
                id TEXT PRIMARY KEY,
                account_id TEXT NOT NULL
                    REFERENCES accounts(id) ON DELETE CASCADE,
                amount TEXT NOT NULL,
                kind TEXT NOT NULL CHECK (kind IN ('credit', 'debit')),
                description TEXT NOT NULL,
                occurred_at TIMESTAMP NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS split_expenses (
                id TEXT PRIMARY KEY,
                owner_id TEXT NOT NULL,
                payer_name TEXT NOT NULL,
                amount TEXT NOT NULL,
                description TEXT NOT NULL,
                occurred_at TIMESTAMP NOT NULL,
                created_at TIMESTAMP NOT NULL
            )
        """
        )

        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS split_participants (
                id TEXT PRIMARY KEY,
                expense_id TEXT NOT NULL
                    REFERENCES split_expenses(id) ON DELETE CASCADE,
                name TEXT NOT NULL,
                share_amount TEXT NOT NULL
            )
        """
        )

        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_accounts_owner ON accounts(owner_id)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_transactions_account "
            "ON transactions(account_id, occurred_at)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_split_expenses_owner "
            "ON split_expenses(owner_id, occurred_at)"
        )
        cursor.execute(
            "CREATE INDEX IF NOT EXISTS idx_split_participants_expense "
            "ON split_participants(expense_id)"
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Transaction boundaries
    # ========================================================================

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Group several writes into one SQLite transaction.

        Commits when the outermost block exits cleanly and rolls back
        everything on any exception. Nested blocks join the outer one.
        """
        self._depth += 1
        try:
            yield
        except BaseException:
            self._depth -= 1
            if self._depth == 0:
                self.conn.rollback()
            raise
        else:
            self._depth -= 1
            if self._depth == 0:
                self.conn.commit()

    def _commit(self):
        """Commit unless an atomic block is open."""
        if self._depth == 0:
            self.conn.commit()

    # ========================================================================
    # Account operations
    # ========================================================================

    def create_account(self, account: Account) -> Account:
        """Save a new account."""
        self.conn.execute(
            """
            INSERT INTO accounts (
                id, owner_id, name, type, opening_balance, balance, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                account.id,
                account.owner_id,
                account.name,
                account.type,
                to_storage(account.opening_balance),
                to_storage(account.balance),
                _to_iso(account.created_at),
            ),
        )
        self._commit()
        return account

    def get_account(self, account_id: str) -> Account | None:
        """Get an account by id."""
        cursor = self.conn.execute(
            """
            SELECT id, owner_id, name, type, opening_balance, balance, created_at
            FROM accounts
            WHERE id = ?
            """,
            (account_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None
        return self._row_to_account(row)

    def list_accounts(self, owner_id: str) -> list[Account]:
        """Get all accounts of an owner, newest first."""
        cursor = self.conn.execute(
            """
            SELECT id, owner_id, name, type, opening_balance, balance, created_at
            FROM accounts
            WHERE owner_id = ?
            ORDER BY created_at DESC, rowid DESC
            """,
            (owner_id,),
        )
        return [self._row_to_account(row) for row in cursor.fetchall()]

    def update_account_balance(self, account_id: str, balance: Decimal) -> None:
        """Set the persisted balance of an account."""
        self.conn.execute(
            "UPDATE accounts SET balance = ? WHERE id = ?",
            (to_storage(balance), account_id),
        )
        self._commit()

    @staticmethod
    def _row_to_account(row: sqlite3.Row) -> Account:
        return Account(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            type=row["type"],
            opening_balance=from_storage(row["opening_balance"]),
            balance=from_storage(row["balance"]),
            created_at=_from_iso(row["created_at"]),
        )

    # ========================================================================
    # Transaction operations
    # ========================================================================

    def create_transaction(self, transaction: Transaction) -> Transaction:
        """Save a new transaction."""
        self.conn.execute(
            """
            INSERT INTO transactions (
                id, account_id, amount, kind, description, occurred_at, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                transaction.id,
                transaction.account_id,
                to_storage(transaction.amount),
                transaction.kind,
                transaction.description,
                _to_iso(transaction.occurred_at),
                _to_iso(transaction.created_at),
            ),
        )
        self._commit()
        return transaction

    def get_transaction(self, transaction_id: str) -> Transaction | None:
        """Get a transaction by id."""
        cursor = self.conn.execute(
            """
            SELECT id, account_id, amount, kind, description, occurred_at, created_at
            FROM transactions
            WHERE id = ?
            """,
            (transaction_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None
        return self._row_to_transaction(row)

    def list_transactions_by_account(
        self, account_id: str, newest_first: bool = True
    ) -> list[Transaction]:
        """Get all transactions of an account."""
        order = (
            "occurred_at DESC, rowid DESC" if newest_first else "rowid ASC"
        )
        cursor = self.conn.execute(
            f"""
            SELECT id, account_id, amount, kind, description, occurred_at, created_at
            FROM transactions
            WHERE account_id = ?
            ORDER BY {order}
            """,
            (account_id,),
        )
        return [self._row_to_transaction(row) for row in cursor.fetchall()]

    def list_transactions_by_owner(self, owner_id: str) -> list[AccountTransaction]:
        """Get all transactions across an owner's accounts, with account names."""
        cursor = self.conn.execute(
            """
            SELECT t.id, t.account_id, t.amount, t.kind, t.description,
                   t.occurred_at, t.created_at, a.name AS account_name
            FROM transactions t
            INNER JOIN accounts a ON t.account_id = a.id
            WHERE a.owner_id = ?
            ORDER BY t.occurred_at DESC, t.rowid DESC
            """,
            (owner_id,),
        )
        return [
            AccountTransaction(
                **self._row_to_transaction(row).model_dump(),
                account_name=row["account_name"],
            )
            for row in cursor.fetchall()
        ]

    def delete_transaction(self, transaction_id: str) -> None:
        """Delete a transaction."""
        self.conn.execute("DELETE FROM transactions WHERE id = ?", (transaction_id,))
        self._commit()

    @staticmethod
    def _row_to_transaction(row: sqlite3.Row) -> Transaction:
        return Transaction(
            id=row["id"],
            account_id=row["account_id"],
            amount=from_storage(row["amount"]),
            kind=row["kind"],
            description=row["description"],
            occurred_at=_from_iso(row["occurred_at"]),
            created_at=_from_iso(row["created_at"]),
        )

    # ========================================================================
    # Expense operations
    # ========================================================================

    def create_expense(self, expense: Expense) -> Expense:
        """Save a new split expense."""
        self.conn.execute(
            """
            INSERT INTO split_expenses (
                id, owner_id, payer_name, amount, description, occurred_at, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                expense.id,
                expense.owner_id,
                expense.payer_name,
                to_storage(expense.amount),
                expense.description,
                _to_iso(expense.occurred_at),
                _to_iso(expense.created_at),
            ),
        )
        self._commit()
        return expense

    def get_expense(self, expense_id: str) -> Expense | None:
        """Get a split expense by id."""
        cursor = self.conn.execute(
            """
            SELECT id, owner_id, payer_name, amount, description,
                   occurred_at, created_at
            FROM split_expenses
            WHERE id = ?
            """,
            (expense_id,),
        )
        row = cursor.fetchone()
        if not row:
            return None
        return self._row_to_expense(row)

    def list_expenses_with_shares(self, owner_id: str) -> list[ExpenseWithShares]:
        """Get all expenses of an owner with their shares, newest first."""
        cursor = self.conn.execute(
            """
            SELECT e.id, e.owner_id, e.payer_name, e.amount, e.description,
                   e.occurred_at, e.created_at,
                   p.id AS share_id, p.name AS share_name, p.share_amount
            FROM split_expenses e
            LEFT JOIN split_participants p ON p.expense_id = e.id
            WHERE e.owner_id = ?
            ORDER BY e.occurred_at DESC, e.rowid DESC, p.rowid ASC
            """,
            (owner_id,),
        )

        results: list[ExpenseWithShares] = []
        current: ExpenseWithShares | None = None
        for row in cursor.fetchall():
            if current is None or current.expense.id != row["id"]:
                current = ExpenseWithShares(
                    expense=self._row_to_expense(row), shares=[]
                )
                results.append(current)
            if row["share_id"] is not None:
                current.shares.append(
                    ParticipantShare(
                        id=row["share_id"],
                        expense_id=row["id"],
                        name=row["share_name"],
                        share_amount=from_storage(row["share_amount"]),
                    )
                )
        return results

    def update_expense(self, expense_id: str, fields: dict[str, Any]) -> None:
        """Patch the given columns of a split expense."""
        unknown = set(fields) - set(EXPENSE_FIELDS)
        if unknown:
            raise ValueError(f"Cannot update expense columns: {sorted(unknown)}")
        if not fields:
            return

        values = {
            key: to_storage(value) if key == "amount" else value
            for key, value in fields.items()
        }
        assignments = ", ".join(f"{key} = ?" for key in values)
        self.conn.execute(
            f"UPDATE split_expenses SET {assignments} WHERE id = ?",
            (*values.values(), expense_id),
        )
        self._commit()

    def delete_expense(self, expense_id: str) -> None:
        """Delete a split expense together with its shares."""
        self.conn.execute(
            "DELETE FROM split_participants WHERE expense_id = ?", (expense_id,)
        )
        self.conn.execute("DELETE FROM split_expenses WHERE id = ?", (expense_id,))
        self._commit()

    @staticmethod
    def _row_to_expense(row: sqlite3.Row) -> Expense:
        return Expense(
            id=row["id"],
            owner_id=row["owner_id"],
            payer_name=row["payer_name"],
            amount=from_storage(row["amount"]),
            description=row["description"],
            occurred_at=_from_iso(row["occurred_at"]),
            created_at=_from_iso(row["created_at"]),
        )

    # ========================================================================
    # Participant share operations
    # ========================================================================

    def create_shares(
        self, expense_id: str, shares: list[ParticipantShare]
    ) -> list[ParticipantShare]:
        """Save the participant shares of an expense."""
        self.conn.executemany(
            """
            INSERT INTO split_participants (id, expense_id, name, share_amount)
            VALUES (?, ?, ?, ?)
            """,
            [
                (share.id, expense_id, share.name, to_storage(share.share_amount))
                for share in shares
            ],
        )
        self._commit()
        return shares

    def list_shares(self, expense_id: str) -> list[ParticipantShare]:
        """Get the participant shares of an expense."""
        cursor = self.conn.execute(
            """
            SELECT id, expense_id, name, share_amount
            FROM split_participants
            WHERE expense_id = ?
            ORDER BY rowid ASC
            """,
            (expense_id,),
        )
        return [
            ParticipantShare(
                id=row["id"],
                expense_id=row["expense_id"],
                name=row["name"],
                share_amount=from_storage(row["share_amount"]),
            )
            for row in cursor.fetchall()
        ]
