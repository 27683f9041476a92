"""Ledger service: bank accounts, their transactions and balances.

An account's balance is a pure function of its history: the opening balance
plus every credit minus every debit, folded in the order the transactions
were recorded. The persisted balance column is rewritten from that fold
after every append or delete, inside the same storage transaction.
"""

import logging
from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from .db import Storage
from .exceptions import InvalidArgumentError, NotFoundError, PermissionDeniedError
from .models import (
    ACCOUNT_TYPES,
    TRANSACTION_KINDS,
    Account,
    AccountTransaction,
    Transaction,
    utcnow,
)
from .money import parse_amount, quantize

logger = logging.getLogger(__name__)


def fold_balance(
    opening_balance: Decimal, transactions: Iterable[Transaction]
) -> Decimal:
    """
    Compute a balance from an opening balance and a transaction history.

    This is a pure function: credits add, debits subtract, no rounding
    happens until the end.

    Args:
        opening_balance: Balance at account creation
        transactions: Transactions in the order they were recorded

    Returns:
        The resulting balance as a two-place Decimal
    """
    balance = opening_balance
    for transaction in transactions:
        balance += transaction.signed_amount
    return quantize(balance)


class LedgerService:
    """Service for accounts and the transactions posted against them."""

    def __init__(self, storage: Storage):
        """Initialize the ledger service."""
        self.storage = storage

    # ========================================================================
    # Accounts
    # ========================================================================

    def open_account(
        self,
        owner_id: str,
        name: str,
        type: str = "savings",
        opening_balance: object = "0.00",
    ) -> Account:
        """
        Register a new account for a principal.

        Args:
            owner_id: The acting principal
            name: Display name of the account
            type: One of savings, current, credit
            opening_balance: Starting balance; may be zero or negative

        Returns:
            The stored account
        """
        name = name.strip()
        if not name:
            raise InvalidArgumentError("name", "is required")
        if type not in ACCOUNT_TYPES:
            raise InvalidArgumentError(
                "type", f"must be one of {', '.join(ACCOUNT_TYPES)}"
            )
        opening = parse_amount(
            opening_balance,
            field="opening_balance",
            allow_negative=True,
            allow_zero=True,
        )

        account = self.storage.create_account(
            Account(
                owner_id=owner_id,
                name=name,
                type=type,
                opening_balance=opening,
                balance=opening,
            )
        )

        logger.info(f"Opened {type} account '{name}' ({account.id}) at {opening}")
        return account

    def list_accounts(self, owner_id: str) -> list[Account]:
        """List the principal's accounts, newest first."""
        accounts = self.storage.list_accounts(owner_id)
        logger.debug(f"Listed {len(accounts)} accounts for {owner_id}")
        return accounts

    def get_account(self, owner_id: str, account_id: str) -> Account:
        """
        Get an account, enforcing ownership.

        Raises:
            NotFoundError: If the account does not exist
            PermissionDeniedError: If it belongs to another principal
        """
        account = self.storage.get_account(account_id)
        if account is None:
            raise NotFoundError("account", account_id)
        if account.owner_id != owner_id:
            logger.warning(f"Denied access to account {account_id} for {owner_id}")
            raise PermissionDeniedError("account")
        return account

    # ========================================================================
    # Transactions
    # ========================================================================

    def add_transaction(
        self,
        owner_id: str,
        account_id: str,
        amount: object,
        kind: str,
        description: str = "",
        occurred_at: datetime | None = None,
    ) -> Transaction:
        """
        Post a credit or debit to an account and refresh its balance.

        All validation happens before any write. The insert and the balance
        update run in one atomic block. Balances may go negative.

        Args:
            owner_id: The acting principal
            account_id: Target account
            amount: Positive amount with at most 2 decimal places
            kind: "credit" or "debit"
            description: Free text
            occurred_at: When the transaction happened (defaults to now)

        Returns:
            The stored transaction
        """
        parsed = parse_amount(amount)
        if kind not in TRANSACTION_KINDS:
            raise InvalidArgumentError("kind", "must be 'credit' or 'debit'")
        self.get_account(owner_id, account_id)

        transaction = Transaction(
            account_id=account_id,
            amount=parsed,
            kind=kind,
            description=description.strip(),
            occurred_at=occurred_at or utcnow(),
        )

        with self.storage.atomic():
            self.storage.create_transaction(transaction)
            balance = self.recompute_balance(account_id)

        logger.info(
            f"Recorded {kind} of {parsed} on account {account_id}, "
            f"balance now {balance}"
        )
        return transaction

    def delete_transaction(self, owner_id: str, transaction_id: str) -> None:
        """
        Delete a transaction and re-fold its account's balance.

        Raises:
            NotFoundError: If the transaction does not exist
            PermissionDeniedError: If its account belongs to another principal
        """
        transaction = self.storage.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError("transaction", transaction_id)
        try:
            self.get_account(owner_id, transaction.account_id)
        except PermissionDeniedError:
            raise PermissionDeniedError("transaction") from None

        with self.storage.atomic():
            self.storage.delete_transaction(transaction_id)
            balance = self.recompute_balance(transaction.account_id)

        logger.info(
            f"Deleted transaction {transaction_id}, "
            f"account {transaction.account_id} balance now {balance}"
        )

    def list_account_transactions(
        self, owner_id: str, account_id: str
    ) -> list[Transaction]:
        """List an account's transactions, newest first."""
        self.get_account(owner_id, account_id)
        return self.storage.list_transactions_by_account(account_id)

    def list_user_transactions(self, owner_id: str) -> list[AccountTransaction]:
        """List every transaction of the principal, newest first, with account names."""
        transactions = self.storage.list_transactions_by_owner(owner_id)
        logger.debug(f"Listed {len(transactions)} transactions for {owner_id}")
        return transactions

    # ========================================================================
    # Balances
    # ========================================================================

    def recompute_balance(self, account_id: str) -> Decimal:
        """
        Fold an account's transaction history and persist the result.

        Returns:
            The new balance
        """
        account = self.storage.get_account(account_id)
        if account is None:
            raise NotFoundError("account", account_id)

        history = self.storage.list_transactions_by_account(
            account_id, newest_first=False
        )
        balance = fold_balance(account.opening_balance, history)
        self.storage.update_account_balance(account_id, balance)
        return balance
