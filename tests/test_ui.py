"""Tests for interactive member selection."""

from unittest.mock import MagicMock, patch

from prompt_toolkit.document import Document

from trip_ledger.ledger.ui import (
    MemberCompleter,
    confirm,
    fuzzy_match,
    select_member_interactive,
    select_members_interactive,
)
from trip_ledger.models import Member

MEMBERS = [
    Member(id="a", display_name="Alice"),
    Member(id="b", display_name="Bob"),
    Member(id="c", display_name="Chen"),
]


class TestFuzzyMatch:
    """Tests for fuzzy_match."""

    def test_in_order_characters(self):
        """Characters must appear in order."""
        assert fuzzy_match("ace", "alice")
        assert not fuzzy_match("eca", "alice")

    def test_empty_query_matches(self):
        """An empty query matches everything."""
        assert fuzzy_match("", "bob")


class TestMemberCompleter:
    """Tests for MemberCompleter."""

    def test_completions_filter_by_query(self):
        """Only matching members are offered."""
        completer = MemberCompleter(MEMBERS)
        completions = list(completer.get_completions(Document("bo"), None))
        assert [c.text for c in completions] == ["Bob (b)"]

    def test_empty_query_offers_everyone(self):
        """Everyone is offered before typing."""
        completer = MemberCompleter(MEMBERS)
        assert len(list(completer.get_completions(Document(""), None))) == 3

    def test_resolve_label_or_id(self):
        """Both labels and bare ids resolve."""
        completer = MemberCompleter(MEMBERS)
        assert completer.resolve("Chen (c)") == "c"
        assert completer.resolve("a") == "a"
        assert completer.resolve("Zed") is None


class TestSelectMember:
    """Tests for the interactive prompts."""

    @patch("trip_ledger.ledger.ui.PromptSession")
    def test_retries_until_valid(self, mock_session_class):
        """Invalid input prompts again."""
        session = MagicMock()
        session.prompt.side_effect = ["nobody", "Bob (b)"]
        mock_session_class.return_value = session

        assert select_member_interactive(MEMBERS, "Who paid?") == "b"
        assert session.prompt.call_count == 2

    @patch("trip_ledger.ledger.ui.PromptSession")
    def test_empty_input_cancels(self, mock_session_class):
        """Pressing Enter on an empty prompt cancels."""
        mock_session_class.return_value.prompt.return_value = ""
        assert select_member_interactive(MEMBERS, "Who paid?") is None

    @patch("trip_ledger.ledger.ui.PromptSession")
    def test_ctrl_c_cancels(self, mock_session_class):
        """Ctrl+C cancels."""
        mock_session_class.return_value.prompt.side_effect = KeyboardInterrupt
        assert select_member_interactive(MEMBERS, "Who paid?") is None

    def test_no_members(self):
        """Nothing to select from."""
        assert select_member_interactive([], "Who paid?") is None

    @patch("trip_ledger.ledger.ui.select_member_interactive")
    def test_select_several(self, mock_select):
        """Multiple picks stop at the first empty entry."""
        mock_select.side_effect = ["a", "c", None]
        assert select_members_interactive(MEMBERS, "Who shares?") == ["a", "c"]

    @patch("builtins.input", return_value="")
    def test_confirm_default_yes(self, _mock_input):
        """Enter confirms."""
        assert confirm("Delete?")

    @patch("builtins.input", return_value="n")
    def test_confirm_no(self, _mock_input):
        """'n' declines."""
        assert not confirm("Delete?")

    @patch("builtins.input", return_value="")
    def test_confirm_default_no(self, mock_input):
        """Enter declines when the default is no."""
        assert not confirm("Delete?", default=False)
        assert "[y/N]" in mock_input.call_args.args[0]

    @patch("builtins.input", return_value="yes")
    def test_confirm_explicit_yes_overrides_default_no(self, _mock_input):
        """An explicit yes confirms a default-no prompt."""
        assert confirm("Delete?", default=False)
