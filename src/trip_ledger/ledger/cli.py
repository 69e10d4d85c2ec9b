"""CLI commands for the trip expense ledger."""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date
from decimal import Decimal, InvalidOperation

import typer
from rich.console import Console
from rich.table import Table

from ..config import load_settings
from ..db import Database
from ..exceptions import TripLedgerError
from ..models import ExpenseRecord, Member
from .reports import settlement_status
from .service import LedgerService
from .ui import confirm, select_member_interactive, select_members_interactive

app = typer.Typer(
    name="expenses",
    help="Record shared expenses and work out who owes whom",
)
members_app = typer.Typer(name="members", help="Manage the trip roster")
rates_app = typer.Typer(name="rates", help="Manage exchange rates")

console = Console()


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


@contextmanager
def open_ledger(verbose: bool = False) -> Iterator[LedgerService]:
    """Load the ledger, report ledger errors, and always close the database."""
    setup_logging(verbose)
    db = None
    try:
        settings = load_settings()
        db = Database(settings.database_path)
        yield LedgerService.from_database(settings, db)
    except TripLedgerError as e:
        console.print(f"\n[bold red]Error:[/bold red] {e}")
        if verbose:
            raise
        sys.exit(1)
    finally:
        if db is not None:
            db.close()


def parse_amount(value: str) -> Decimal:
    """Parse a user-entered amount without going through float."""
    try:
        return Decimal(value.replace(",", ""))
    except InvalidOperation:
        raise typer.BadParameter(f"Not a number: {value}") from None


def parse_day(value: str | None) -> date | None:
    """Parse an ISO date (YYYY-MM-DD)."""
    if value is None:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise typer.BadParameter(f"Expected YYYY-MM-DD, got {value}") from None


def format_money(amount: Decimal, currency: str, use_color: bool = True) -> str:
    """
    Format money in accounting style with alignment.

    Negative amounts use parentheses: (HKD 85.0)
    Positive amounts have spaces:      HKD 85.0
    """
    abs_amount = abs(amount)
    if amount < 0:
        if use_color:
            return f"({currency} [red]{abs_amount:,.1f}[/red])"
        return f"({currency} {abs_amount:,.1f})"
    if use_color:
        return f" {currency} [green]{abs_amount:,.1f}[/green] "
    return f" {currency} {abs_amount:,.1f} "


def display_expenses(service: LedgerService, expenses: list[ExpenseRecord]):
    """Display expenses in a table."""
    currency = service.display_currency
    table = Table(title="Expenses", show_header=True, header_style="bold magenta")
    table.add_column("ID", style="dim")
    table.add_column("Date")
    table.add_column("Title", style="cyan")
    table.add_column("Category", style="yellow")
    table.add_column("Amount", justify="right")
    table.add_column(f"≈ {currency}", justify="right")
    table.add_column("Paid by")
    table.add_column("Status")

    for expense in expenses:
        try:
            approx = f"{service.convert(expense.amount, expense.currency, currency):,.0f}"
        except TripLedgerError:
            approx = "[dim]?[/dim]"
        status = settlement_status(expense)
        status_display = {
            "settled": "[green]settled[/green]",
            "partial": "[yellow]partial[/yellow]",
            "open": "open",
        }[status]
        table.add_row(
            expense.id,
            expense.date.isoformat(),
            expense.title or "-",
            expense.category,
            f"{expense.currency} {expense.amount:,.2f}",
            approx,
            service.member_name(expense.paid_by),
            status_display,
        )

    console.print(table)


@app.command()
def add(
    amount: str = typer.Argument(..., help="Amount in the expense currency"),
    title: str = typer.Option("", "--title", "-t", help="What the money was for"),
    currency: str = typer.Option(
        None, "--currency", "-c", help="Currency code (default: display currency)"
    ),
    category: str = typer.Option("Other", "--category", help="Category label"),
    paid_by: str = typer.Option(None, "--paid-by", "-p", help="Member id of the payer"),
    split_with: list[str] = typer.Option(
        [], "--split", "-s", help="Member id sharing the cost (repeatable)"
    ),
    day: str = typer.Option(None, "--date", "-d", help="Date (YYYY-MM-DD)"),
    expense_id: str = typer.Option(None, "--id", help="Explicit expense id"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Record a new shared expense.

    Without --paid-by or --split, members are picked interactively.
    If no split members are picked, the cost is shared by everyone.
    """
    with open_ledger(verbose) as service:
        roster = list(service.members.values())

        if paid_by is None:
            paid_by = select_member_interactive(roster, "Who paid?")
            if paid_by is None:
                console.print("[yellow]No payer selected.[/yellow]")
                return

        if not split_with:
            split_with = select_members_interactive(roster, "Who shares this cost?")
            if not split_with:
                split_with = [m.id for m in roster]

        record = ExpenseRecord(
            id=expense_id or uuid.uuid4().hex[:8],
            title=title,
            amount=parse_amount(amount),
            currency=currency or service.display_currency,
            category=category,
            paid_by=paid_by,
            split_with=split_with,
            date=parse_day(day) or date.today(),
        )
        stored = service.add_expense(record)
        console.print(f"[green]✓ Recorded expense {stored.id}[/green]")


@app.command()
def edit(
    expense_id: str = typer.Argument(..., help="Expense to edit"),
    amount: str = typer.Option(None, "--amount", "-a"),
    title: str = typer.Option(None, "--title", "-t"),
    currency: str = typer.Option(None, "--currency", "-c"),
    category: str = typer.Option(None, "--category"),
    paid_by: str = typer.Option(None, "--paid-by", "-p"),
    split_with: list[str] = typer.Option([], "--split", "-s"),
    day: str = typer.Option(None, "--date", "-d"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Change fields of an existing expense."""
    with open_ledger(verbose) as service:
        current = service.get_expense(expense_id)
        changes = {
            "amount": parse_amount(amount) if amount is not None else None,
            "title": title,
            "currency": currency.upper() if currency else None,
            "category": category,
            "paid_by": paid_by,
            "split_with": split_with or None,
            "date": parse_day(day),
        }
        updates = {k: v for k, v in changes.items() if v is not None}

        if "split_with" in updates:
            # Drop settled flags of members no longer in the split
            updates["settled_by"] = [
                m for m in current.settled_by if m in updates["split_with"]
            ]

        record = ExpenseRecord.model_validate(
            {**current.model_dump(), **updates}
        )
        service.update_expense(expense_id, record)
        console.print(f"[green]✓ Updated expense {expense_id}[/green]")


@app.command()
def delete(
    expense_id: str = typer.Argument(..., help="Expense to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Delete an expense."""
    with open_ledger(verbose) as service:
        expense = service.get_expense(expense_id)
        if not yes and not confirm(
            f"Delete {expense.title or expense.id}?", default=False
        ):
            console.print("[yellow]Cancelled.[/yellow]")
            return
        service.delete_expense(expense_id)
        console.print(f"[green]✓ Deleted expense {expense_id}[/green]")


@app.command()
def toggle(
    expense_id: str = typer.Argument(..., help="Expense id"),
    member_id: str = typer.Argument(..., help="Member who paid back (or not)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Mark a participant's share as paid back, or undo it."""
    with open_ledger(verbose) as service:
        updated = service.toggle_settled(expense_id, member_id)
        name = service.member_name(member_id)
        if member_id == updated.paid_by:
            console.print(f"[dim]{name} paid for this expense; nothing to settle.[/dim]")
        elif member_id in updated.settled_by:
            console.print(f"[green]✓ {name} settled on {expense_id}[/green]")
        else:
            console.print(f"[yellow]{name} marked as unsettled on {expense_id}[/yellow]")


@app.command(name="list")
def list_expenses(
    search: str = typer.Option(None, "--search", "-q", help="Match title or category"),
    day: str = typer.Option(None, "--date", "-d", help="Only this date (YYYY-MM-DD)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List expenses, newest first."""
    with open_ledger(verbose) as service:
        expenses = service.search(term=search, day=parse_day(day))
        if not expenses:
            console.print("[yellow]No expenses found.[/yellow]")
            return
        display_expenses(service, expenses)


@app.command()
def balances(
    currency: str = typer.Option(None, "--currency", "-c", help="Display currency"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show each member's net balance."""
    with open_ledger(verbose) as service:
        display = (currency or service.display_currency).upper()
        result = service.get_balances(display)

        table = Table(title="Balances", show_header=True, header_style="bold magenta")
        table.add_column("Member", style="cyan")
        table.add_column("Balance", justify="right")
        for member_id, balance in sorted(result.items(), key=lambda x: -x[1]):
            table.add_row(service.member_name(member_id), format_money(balance, display))
        console.print(table)


@app.command()
def settle(
    currency: str = typer.Option(None, "--currency", "-c", help="Display currency"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Suggest the payments that settle all debts."""
    with open_ledger(verbose) as service:
        transfers = service.get_settlement_plan(currency)
        if not transfers:
            console.print("[green]✓ All settled up.[/green]")
            return

        console.print("\n[bold]Suggested payments:[/bold]")
        for transfer in transfers:
            console.print(
                f"  {service.member_name(transfer.from_member)} → "
                f"{service.member_name(transfer.to_member)}: "
                f"{transfer.currency} {round(transfer.amount):,}"
            )


@app.command()
def summary(
    mode: str = typer.Option("category", "--mode", "-m", help="category or daily"),
    currency: str = typer.Option(None, "--currency", "-c", help="Display currency"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show total spending, today's spending and a breakdown."""
    if mode not in ("category", "daily"):
        raise typer.BadParameter("mode must be 'category' or 'daily'")

    with open_ledger(verbose) as service:
        display = (currency or service.display_currency).upper()
        today = service.daily_summary(display_currency=display)
        console.print(
            f"\n[bold]Total trip spending:[/bold] {display} "
            f"{round(service.total_spent(display)):,}"
        )
        console.print(
            f"[bold]Today:[/bold] {display} {round(today.total):,} "
            f"({today.count} records)\n"
        )

        rows = service.breakdown(mode, display)  # type: ignore[arg-type]
        table = Table(
            title=f"By {mode}", show_header=True, header_style="bold magenta"
        )
        table.add_column("Name", style="cyan")
        table.add_column(display, justify="right")
        table.add_column("%", justify="right")
        for row in rows:
            table.add_row(row.name, f"{round(row.value):,}", f"{round(row.percent)}%")
        console.print(table)


@app.command(name="convert")
def convert_amount(
    amount: str = typer.Argument(...),
    from_currency: str = typer.Argument(...),
    to_currency: str = typer.Argument(...),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Convert an amount using the trip's exchange rates."""
    with open_ledger(verbose) as service:
        result = service.convert(parse_amount(amount), from_currency, to_currency)
        console.print(f"{to_currency.upper()} {result:,.2f}")


# ============================================================================
# Members
# ============================================================================


@members_app.command(name="add")
def add_member(
    member_id: str = typer.Argument(..., help="Stable member id"),
    display_name: str = typer.Argument(..., help="Name shown in tables"),
    avatar: str = typer.Option(None, "--avatar", help="Avatar URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add a member to the trip."""
    with open_ledger(verbose) as service:
        service.add_member(Member(id=member_id, display_name=display_name, avatar=avatar))
        console.print(f"[green]✓ Added {display_name}[/green]")


@members_app.command(name="remove")
def remove_member(
    member_id: str = typer.Argument(...),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove a member who is not part of any expense."""
    with open_ledger(verbose) as service:
        member = service.remove_member(member_id)
        console.print(f"[green]✓ Removed {member.display_name}[/green]")


@members_app.command(name="list")
def list_members(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List trip members."""
    with open_ledger(verbose) as service:
        table = Table(title="Members", show_header=True, header_style="bold magenta")
        table.add_column("ID", style="dim")
        table.add_column("Name", style="cyan")
        for member in service.members.values():
            table.add_row(member.id, member.display_name)
        console.print(table)


# ============================================================================
# Rates
# ============================================================================


@rates_app.command(name="show")
def show_rates(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Show exchange rates."""
    with open_ledger(verbose) as service:
        reference = service.rate_table.reference
        table = Table(
            title=f"Rates (price in {reference})",
            show_header=True,
            header_style="bold magenta",
        )
        table.add_column("Currency", style="cyan")
        table.add_column("Rate", justify="right")
        for code in service.rate_table.currencies():
            marker = " *" if code == service.display_currency else ""
            table.add_row(f"{code}{marker}", str(service.rate_table.rate(code)))
        console.print(table)
        console.print("[dim]* display currency[/dim]")


@rates_app.command(name="set")
def set_rate(
    code: str = typer.Argument(..., help="Currency code"),
    rate: str = typer.Argument(..., help="Price of one unit in the reference currency"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Add or change an exchange rate."""
    with open_ledger(verbose) as service:
        service.set_rate(code, parse_amount(rate))
        console.print(f"[green]✓ {code.upper()} = {rate} {service.rate_table.reference}[/green]")


@rates_app.command(name="remove")
def remove_rate(
    code: str = typer.Argument(..., help="Currency code"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Remove a currency from the rate table."""
    with open_ledger(verbose) as service:
        service.remove_rate(code)
        console.print(f"[green]✓ Removed {code.upper()}[/green]")


@rates_app.command(name="display")
def set_display(
    code: str = typer.Argument(..., help="Currency code"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """Set the default display currency."""
    with open_ledger(verbose) as service:
        service.set_display_currency(code)
        console.print(f"[green]✓ Displaying amounts in {code.upper()}[/green]")
