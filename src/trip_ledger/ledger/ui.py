"""Interactive UI components for picking trip members."""

import logging
from typing import Any

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from ..models import Member

logger = logging.getLogger(__name__)


def fuzzy_match(query: str, text: str) -> bool:
    """
    Fuzzy match: all characters in query must appear in order in text.

    Example:
        query="aly" matches "Alice Y."
        query="bb" matches "Bob"
    """
    query_idx = 0
    for char in text:
        if query_idx < len(query) and char == query[query_idx]:
            query_idx += 1
    return query_idx == len(query)


class MemberCompleter(Completer):
    """Fuzzy search completer for trip members."""

    def __init__(self, members: list[Member]):
        """Initialize the completer with the trip roster."""
        self.members = members
        self.label_to_id = {self.label(m): m.id for m in members}

    @staticmethod
    def label(member: Member) -> str:
        """Text shown and inserted for a member."""
        return f"{member.display_name} ({member.id})"

    def get_completions(self, document: Document, complete_event: Any):
        """Get fuzzy-matched completions."""
        query = document.text.lower()

        for member in self.members:
            label = self.label(member)
            if not query or fuzzy_match(query, label.lower()):
                yield Completion(
                    text=label,
                    start_position=-len(document.text),
                    display=label,
                )

    def resolve(self, text: str) -> str | None:
        """Map typed text (a label or a bare id) back to a member id."""
        text = text.strip()
        if text in self.label_to_id:
            return self.label_to_id[text]
        for member in self.members:
            if text == member.id:
                return member.id
        return None


def select_member_interactive(members: list[Member], prompt: str) -> str | None:
    """
    Interactive member selection with fuzzy search.

    Returns:
        Selected member id, or None to cancel
    """
    if not members:
        print("\n⚠️  No members on this trip yet")
        return None

    print(f"\n👤 {prompt}")
    print("   Type to search, press Enter to confirm, Ctrl+C to cancel\n")

    completer = MemberCompleter(members)
    session: PromptSession[str] = PromptSession(completer=completer)

    try:
        while True:
            result = session.prompt("Member: ", complete_while_typing=True)
            if not result:
                return None

            member_id = completer.resolve(result)
            if member_id:
                logger.info(f"User selected member: {member_id}")
                return member_id

            print("❌ Unknown member. Pick from the list or press Tab to complete.")

    except KeyboardInterrupt:
        print("\n⏭️  Cancelled")
        return None
    except EOFError:
        return None


def select_members_interactive(members: list[Member], prompt: str) -> list[str]:
    """Pick several members, one per prompt. An empty entry finishes."""
    selected: list[str] = []
    remaining = list(members)
    while remaining:
        member_id = select_member_interactive(
            remaining, f"{prompt} (empty to finish)"
        )
        if member_id is None:
            break
        selected.append(member_id)
        remaining = [m for m in remaining if m.id != member_id]
    return selected


def confirm(message: str, default: bool = True) -> bool:
    """Simple yes/no confirmation. An empty answer picks ``default``."""
    hint = "[Y/n]" if default else "[y/N]"
    response = input(f"{message} {hint} ").strip().lower()
    if not response:
        return default
    return response in ("y", "yes")
