"""MCP server for Trip Ledger: exposes the expense ledger as assistant tools."""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal, InvalidOperation

from mcp.server.fastmcp import FastMCP

from .config import load_settings
from .db import Database
from .exceptions import TripLedgerError
from .ledger.reports import settlement_status
from .ledger.service import LedgerService
from .models import ExpenseRecord

logger = logging.getLogger(__name__)

mcp_app = FastMCP("trip-ledger")

# ---------------------------------------------------------------------------
# Session state: one MCP server process = one conversation
# ---------------------------------------------------------------------------

WORKFLOW_INSTRUCTIONS = """\
You are helping a group of travellers keep track of shared trip expenses.

1. Call list_expenses to see what has been recorded.
2. To record a new cost, call add_expense. Ask the user who paid and who \
shares the cost if it is not clear.
3. When someone pays back their share of a specific expense, call \
toggle_settled for that expense and member.
4. Call get_balances to show who is owed money and who owes money.
5. Call get_settlement_plan to suggest who should pay whom to settle up. \
The plan is advisory; no money is moved.

Positive balance = is owed money, negative = owes money.\
"""


@dataclass
class SessionState:
    """Holds the ledger between MCP tool calls within a single conversation."""

    service: LedgerService | None = None
    db: Database | None = None


_state = SessionState()


def _ensure_service() -> LedgerService:
    """Lazily initialize the LedgerService (loads .env config)."""
    if _state.service is None:
        settings = load_settings()
        _state.db = Database(settings.database_path)
        _state.service = LedgerService.from_database(settings, _state.db)
    return _state.service


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _format_amount(amount: Decimal, currency: str) -> str:
    """Format an amount as an accounting-style string."""
    if amount < 0:
        return f"({currency} {abs(amount):,.1f})"
    return f"{currency} {amount:,.1f}"


# ---------------------------------------------------------------------------
# MCP Tools
# ---------------------------------------------------------------------------


@mcp_app.tool()
def list_expenses(search: str = "", day: str = "") -> str:
    """List recorded expenses, newest first.

    Args:
        search: Optional text matched against title and category.
        day: Optional date filter (YYYY-MM-DD).
    """
    try:
        service = _ensure_service()
        expenses = service.search(
            term=search or None, day=date.fromisoformat(day) if day else None
        )
        if not expenses:
            return "No expenses recorded."

        lines = ["Expenses:"]
        for e in expenses:
            split = ", ".join(service.member_name(m) for m in e.split_with)
            lines.append(
                f"[{e.id}] {e.date} | {e.title or e.category} | "
                f"{_format_amount(e.amount, e.currency)} | "
                f"paid by {service.member_name(e.paid_by)} | split: {split} | "
                f"{settlement_status(e)}"
            )
        return "\n".join(lines)
    except ValueError as e:
        return f"Error: {e}"
    except TripLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def get_balances(currency: str = "") -> str:
    """Show each member's net balance.

    Args:
        currency: Optional display currency code.
    """
    try:
        service = _ensure_service()
        display = (currency or service.display_currency).upper()
        balances = service.get_balances(display)
        if not balances:
            return "No balances yet."

        lines = [f"Balances ({display}):"]
        for member_id, balance in sorted(balances.items(), key=lambda x: -x[1]):
            lines.append(
                f"  {service.member_name(member_id)}: {_format_amount(balance, display)}"
            )
        return "\n".join(lines)
    except TripLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def get_settlement_plan(currency: str = "") -> str:
    """Suggest payments that settle all debts.

    Args:
        currency: Optional display currency code.
    """
    try:
        service = _ensure_service()
        transfers = service.get_settlement_plan(currency or None)
        if not transfers:
            return "Everyone is settled up."

        lines = ["Suggested payments:"]
        for t in transfers:
            lines.append(
                f"  {service.member_name(t.from_member)} -> "
                f"{service.member_name(t.to_member)}: "
                f"{_format_amount(t.amount, t.currency)}"
            )
        return "\n".join(lines)
    except TripLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def convert_amount(amount: str, from_currency: str, to_currency: str) -> str:
    """Convert an amount using the trip's exchange rates.

    Args:
        amount: Amount to convert, e.g. "1200".
        from_currency: Source currency code.
        to_currency: Target currency code.
    """
    try:
        service = _ensure_service()
        result = service.convert(Decimal(amount), from_currency, to_currency)
        return _format_amount(result, to_currency.upper())
    except InvalidOperation:
        return f"Error: not a number: {amount}"
    except TripLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def add_expense(
    amount: str,
    currency: str,
    paid_by: str,
    split_with: list[str],
    title: str = "",
    category: str = "Other",
    day: str = "",
) -> str:
    """Record a shared expense.

    Args:
        amount: Amount paid, e.g. "3000".
        currency: Currency code of the amount.
        paid_by: Member id of the payer.
        split_with: Member ids sharing the cost (include the payer if they share it).
        title: Short description.
        category: Category label (Food, Transport, Stay, Shopping, Attraction, Other).
        day: Date of the expense (YYYY-MM-DD), today if omitted.
    """
    try:
        service = _ensure_service()
        record = ExpenseRecord(
            id=uuid.uuid4().hex[:8],
            title=title,
            amount=Decimal(amount),
            currency=currency,
            category=category,
            paid_by=paid_by,
            split_with=split_with,
            date=date.fromisoformat(day) if day else date.today(),
        )
        stored = service.add_expense(record)
        return f"Recorded expense {stored.id}."
    except InvalidOperation:
        return f"Error: not a number: {amount}"
    except ValueError as e:
        return f"Error: {e}"
    except TripLedgerError as e:
        return f"Error: {e}"


@mcp_app.tool()
def toggle_settled(expense_id: str, member_id: str) -> str:
    """Mark a member's share of an expense as paid back, or undo it.

    Args:
        expense_id: Expense id from list_expenses.
        member_id: Member who paid back their share.
    """
    try:
        service = _ensure_service()
        updated = service.toggle_settled(expense_id, member_id)
        if member_id == updated.paid_by:
            return f"{member_id} paid for this expense; nothing to settle."
        state = "settled" if member_id in updated.settled_by else "unsettled"
        return f"{service.member_name(member_id)} is now {state} on {expense_id}."
    except TripLedgerError as e:
        return f"Error: {e}"


# ---------------------------------------------------------------------------
# MCP Prompt
# ---------------------------------------------------------------------------


@mcp_app.prompt()
def ledger_workflow() -> str:
    """Instructions for keeping the trip ledger."""
    return WORKFLOW_INSTRUCTIONS


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def run_server():
    """Start the MCP server (stdio transport)."""
    mcp_app.run(transport="stdio")
