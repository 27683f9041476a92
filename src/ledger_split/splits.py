"""Split engine: group expenses divided evenly among named participants."""

import logging
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from .db import Storage
from .exceptions import InvalidArgumentError, NotFoundError, PermissionDeniedError
from .models import (
    Expense,
    ExpenseWithShares,
    OwedShare,
    ParticipantShare,
    SplitPatch,
    SplitResult,
    utcnow,
)
from .money import equal_share, parse_amount

logger = logging.getLogger(__name__)


def normalize_participants(names: Iterable[str]) -> list[str]:
    """
    Trim participant names and drop empty entries.

    Order is kept and duplicates are not merged: each occurrence becomes its
    own share.
    """
    return [name.strip() for name in names if name and name.strip()]


def parse_participants(text: str) -> list[str]:
    """
    Split a free-text, comma-separated participant list.

    Example:
        "Asha, Ravi,,Meera " -> ["Asha", "Ravi", "Meera"]
    """
    return normalize_participants(text.split(","))


def compute_owed_to_payer(
    payer_name: str, shares: Iterable[ParticipantShare]
) -> list[OwedShare]:
    """
    Derive who owes the payer and how much.

    Every share whose name is not exactly the payer's name is owed. The
    comparison is case-sensitive, so "John" and "john" are different people.
    """
    return [
        OwedShare(name=share.name, amount=share.share_amount)
        for share in shares
        if share.name != payer_name
    ]


def _require_text(value: str | None, field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise InvalidArgumentError(field, "is required")
    return text


class SplitService:
    """Service for creating and managing split expenses."""

    def __init__(self, storage: Storage):
        """Initialize the split service."""
        self.storage = storage

    def create_split(
        self,
        owner_id: str,
        payer_name: str,
        amount: object,
        description: str,
        participant_names: Iterable[str],
        occurred_at: datetime | None = None,
    ) -> SplitResult:
        """
        Create an expense split equally among participants.

        Each participant, the payer included when listed, gets
        round(amount / count, 2). Shares are rounded independently, so
        their sum may differ from the total by up to (count - 1) * 0.005.

        Args:
            owner_id: The acting principal
            payer_name: Who paid (free text)
            amount: Positive total with at most 2 decimal places
            description: What the expense was for
            participant_names: Ordered participant names; duplicates allowed
            occurred_at: When the expense happened (defaults to now)

        Returns:
            The stored expense, its shares and the owed-to-payer list

        Raises:
            InvalidArgumentError: Before anything is written, if any input is bad
        """
        total = parse_amount(amount)
        payer = _require_text(payer_name, "payer_name")
        participants = normalize_participants(participant_names)
        if not participants:
            raise InvalidArgumentError("participants", "at least one name is required")

        share_amount = equal_share(total, len(participants))

        expense = Expense(
            owner_id=owner_id,
            payer_name=payer,
            amount=total,
            description=(description or "").strip(),
            occurred_at=occurred_at or utcnow(),
        )
        shares = [
            ParticipantShare(
                expense_id=expense.id, name=name, share_amount=share_amount
            )
            for name in participants
        ]

        with self.storage.atomic():
            self.storage.create_expense(expense)
            self.storage.create_shares(expense.id, shares)

        owed = compute_owed_to_payer(payer, shares)

        logger.info(
            f"Created split {expense.id}: {total} paid by {payer} across "
            f"{len(shares)} participants at {share_amount} each "
            f"({len(owed)} owe the payer)"
        )

        return SplitResult(
            expense=expense,
            shares=shares,
            share_amount=share_amount,
            owed_to_payer=owed,
        )

    def list_splits(self, owner_id: str) -> list[ExpenseWithShares]:
        """List the principal's splits with their shares, newest first."""
        splits = self.storage.list_expenses_with_shares(owner_id)
        logger.debug(f"Listed {len(splits)} splits for {owner_id}")
        return splits

    def get_split(self, owner_id: str, expense_id: str) -> ExpenseWithShares:
        """Get one split with its shares, enforcing ownership."""
        expense = self._get_owned_expense(owner_id, expense_id)
        return ExpenseWithShares(
            expense=expense, shares=self.storage.list_shares(expense_id)
        )

    def update_split(
        self, owner_id: str, expense_id: str, patch: SplitPatch
    ) -> Expense:
        """
        Patch the amount, description or payer name of a split.

        Shares are left as they were, even when the amount changes: editing
        the total does not rebalance the participants.

        Returns:
            The updated expense
        """
        if patch.is_empty():
            raise InvalidArgumentError("patch", "no fields to update")

        fields: dict[str, Any] = {}
        if patch.amount is not None:
            fields["amount"] = parse_amount(patch.amount)
        if patch.description is not None:
            fields["description"] = patch.description.strip()
        if patch.payer_name is not None:
            fields["payer_name"] = _require_text(patch.payer_name, "payer_name")

        expense = self._get_owned_expense(owner_id, expense_id)
        self.storage.update_expense(expense_id, fields)

        logger.info(f"Updated split {expense_id}: {', '.join(sorted(fields))}")
        return expense.model_copy(update=fields)

    def delete_split(self, owner_id: str, expense_id: str) -> None:
        """Delete a split and all of its shares."""
        self._get_owned_expense(owner_id, expense_id)
        with self.storage.atomic():
            self.storage.delete_expense(expense_id)
        logger.info(f"Deleted split {expense_id}")

    def _get_owned_expense(self, owner_id: str, expense_id: str) -> Expense:
        expense = self.storage.get_expense(expense_id)
        if expense is None:
            raise NotFoundError("expense", expense_id)
        if expense.owner_id != owner_id:
            logger.warning(f"Denied access to expense {expense_id} for {owner_id}")
            raise PermissionDeniedError("expense")
        return expense
