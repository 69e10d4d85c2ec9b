"""Tests for the MCP tool functions."""

from decimal import Decimal

import pytest

from trip_ledger import mcp_server
from trip_ledger.config import Settings
from trip_ledger.ledger.service import LedgerService
from trip_ledger.models import Member, RateTable


@pytest.fixture(autouse=True)
def service(tmp_path):
    """Install an in-memory service as the MCP session state."""
    settings = Settings(
        database_path=tmp_path / "mcp.db",
        reference_currency="JPY",
        display_currency="JPY",
    )
    svc = LedgerService(
        settings,
        RateTable(reference="JPY", rates={"HKD": Decimal("20")}),
        members=[Member(id="a", display_name="Alice"), Member(id="b", display_name="Bob")],
    )
    mcp_server._state.service = svc
    yield svc
    mcp_server._state.service = None


class TestTools:
    """Tests for the MCP tools."""

    def test_add_and_list(self):
        """Expenses added through the tool are listed."""
        result = mcp_server.add_expense(
            amount="3000", currency="JPY", paid_by="a", split_with=["a", "b"],
            title="Sushi", day="2024-05-01",
        )
        assert result.startswith("Recorded expense")
        listing = mcp_server.list_expenses()
        assert "Sushi" in listing
        assert "open" in listing

    def test_add_invalid(self):
        """Invariant violations come back as errors."""
        result = mcp_server.add_expense(
            amount="-1", currency="JPY", paid_by="a", split_with=["a"]
        )
        assert result.startswith("Error:")

    def test_add_bad_number(self):
        """Non-numeric amounts are reported."""
        result = mcp_server.add_expense(
            amount="lots", currency="JPY", paid_by="a", split_with=["a"]
        )
        assert result.startswith("Error:")

    def test_balances_and_plan(self, service):
        """Balances and plan reflect the ledger."""
        mcp_server.add_expense(
            amount="3000", currency="JPY", paid_by="a", split_with=["a", "b"]
        )
        assert "Bob: (JPY 1,500.0)" in mcp_server.get_balances()
        assert "Bob -> Alice: JPY 1,500.0" in mcp_server.get_settlement_plan()
        assert "HKD 75.0" in mcp_server.get_settlement_plan("HKD")

    def test_toggle_settled(self, service):
        """Toggling settles the debt."""
        mcp_server.add_expense(
            amount="3000", currency="JPY", paid_by="a", split_with=["a", "b"]
        )
        expense_id = service.list_expenses()[0].id
        assert "settled" in mcp_server.toggle_settled(expense_id, "b")
        assert mcp_server.get_settlement_plan() == "Everyone is settled up."

    def test_toggle_unknown(self):
        """Unknown expenses return an error string."""
        assert mcp_server.toggle_settled("nope", "b").startswith("Error:")

    def test_convert(self):
        """convert_amount formats the result."""
        assert mcp_server.convert_amount("2", "HKD", "JPY") == "JPY 40.0"
        assert mcp_server.convert_amount("2", "EUR", "JPY").startswith("Error:")

    def test_empty_ledger(self):
        """An empty ledger lists nothing."""
        assert mcp_server.list_expenses() == "No expenses recorded."
