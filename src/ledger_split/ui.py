"""Interactive prompts for entering split participants."""

import logging
from collections.abc import Iterable
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from .models import ExpenseWithShares
from .splits import normalize_participants

logger = logging.getLogger(__name__)


def known_participants(splits: Iterable[ExpenseWithShares]) -> list[str]:
    """
    Collect distinct participant and payer names from earlier splits.

    Names are returned in the order first seen, newest split first.
    """
    seen: dict[str, None] = {}
    for item in splits:
        seen.setdefault(item.expense.payer_name, None)
        for share in item.shares:
            seen.setdefault(share.name, None)
    return list(seen)


class ParticipantCompleter(Completer):
    """Fuzzy completer for names used in earlier splits."""

    def __init__(self, names: list[str]):
        """Initialize the completer with known names."""
        self.names = names

    def get_completions(self, document: Document, complete_event: Any):
        """Complete the name currently being typed (text after the last comma)."""
        current = document.text_before_cursor.rsplit(",", 1)[-1]
        query = current.strip().lower()

        for name in self.names:
            if not query or self._fuzzy_match(query, name.lower()):
                yield Completion(
                    text=name,
                    start_position=-len(current.lstrip()),
                    display=name,
                )

    def _fuzzy_match(self, query: str, text: str) -> bool:
        """
        Fuzzy match: all characters in query must appear in order in text.

        Example:
            query="mra" matches "Meera"
        """
        query_idx = 0
        for char in text:
            if query_idx < len(query) and char == query[query_idx]:
                query_idx += 1
        return query_idx == len(query)


def prompt_participants(known_names: list[str]) -> list[str] | None:
    """
    Ask for a comma-separated participant list with name completion.

    Args:
        known_names: Names offered for completion

    Returns:
        Participant names, or None if the user cancelled
    """
    print("\n👥 Who shares this expense? Separate names with commas.")
    print("   Tab completes names from earlier splits, Ctrl+C cancels\n")

    session: PromptSession[str] = PromptSession(
        completer=ParticipantCompleter(known_names)
    )

    try:
        while True:
            result = session.prompt("Participants: ", complete_while_typing=True)
            names = normalize_participants(result.split(","))
            if names:
                logger.info(f"Entered {len(names)} participants")
                return names
            print("❌ Enter at least one name.")

    except KeyboardInterrupt:
        print("\n⏭️  Cancelled")
        return None
    except EOFError:
        return None
