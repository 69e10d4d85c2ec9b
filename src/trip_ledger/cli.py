"""CLI for Trip Ledger."""

import typer

from .ledger.cli import app as expenses_app
from .ledger.cli import members_app, rates_app
from .mcp_server import run_server

app = typer.Typer(
    name="trip-ledger",
    help="Shared trip expenses, balances and settle-up suggestions",
)

app.add_typer(expenses_app, name="expenses", help="Expenses, balances and settling up")
app.add_typer(members_app, name="members", help="Trip roster")
app.add_typer(rates_app, name="rates", help="Exchange rates")


@app.command()
def mcp():
    """Start the MCP server for assistant integration."""
    run_server()


if __name__ == "__main__":
    app()
