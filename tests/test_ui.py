"""Tests for the interactive participant prompt helpers."""

from decimal import Decimal
from unittest.mock import MagicMock, patch

from prompt_toolkit.document import Document

from ledger_split.models import Expense, ExpenseWithShares, ParticipantShare
from ledger_split.ui import ParticipantCompleter, known_participants, prompt_participants


def _split(payer: str, names: list[str]) -> ExpenseWithShares:
    expense = Expense(owner_id="asha", payer_name=payer, amount=Decimal("10.00"))
    return ExpenseWithShares(
        expense=expense,
        shares=[
            ParticipantShare(expense_id=expense.id, name=n, share_amount=Decimal("1.00"))
            for n in names
        ],
    )


class TestKnownParticipants:
    """Tests for known_participants."""

    def test_distinct_names_in_first_seen_order(self):
        """Payers and participants are collected once each."""
        history = [_split("Asha", ["Asha", "Ravi"]), _split("Meera", ["Ravi", "Meera"])]

        assert known_participants(history) == ["Asha", "Ravi", "Meera"]


class TestParticipantCompleter:
    """Tests for ParticipantCompleter."""

    def test_completes_name_after_last_comma(self):
        """Only the text after the last comma is matched and replaced."""
        completer = ParticipantCompleter(["Asha", "Meera", "Ravi"])

        completions = list(
            completer.get_completions(Document("Asha, mra"), MagicMock())
        )

        assert [c.text for c in completions] == ["Meera"]
        assert completions[0].start_position == -3

    def test_empty_query_offers_everything(self):
        """With nothing typed, every known name is offered."""
        completer = ParticipantCompleter(["Asha", "Ravi"])

        completions = list(completer.get_completions(Document("Asha, "), MagicMock()))

        assert [c.text for c in completions] == ["Asha", "Ravi"]


class TestPromptParticipants:
    """Tests for prompt_participants."""

    @patch("ledger_split.ui.PromptSession")
    def test_retries_until_names_entered(self, mock_session_class):
        """Blank input is re-prompted."""
        mock_session = MagicMock()
        mock_session.prompt.side_effect = [" , ", "Asha, Ravi"]
        mock_session_class.return_value = mock_session

        assert prompt_participants(["Asha"]) == ["Asha", "Ravi"]
        assert mock_session.prompt.call_count == 2

    @patch("ledger_split.ui.PromptSession")
    def test_ctrl_c_cancels(self, mock_session_class):
        """Cancelling returns None."""
        mock_session = MagicMock()
        mock_session.prompt.side_effect = KeyboardInterrupt
        mock_session_class.return_value = mock_session

        assert prompt_participants([]) is None
