"""Spending summaries for the expense dashboard."""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal

from ..models import (
    BreakdownRow,
    DailySummary,
    ExpenseRecord,
    RateTable,
    SettlementStatus,
)
from .currency import convert


def total_spent(
    expenses: Iterable[ExpenseRecord], rate_table: RateTable, currency: str
) -> Decimal:
    """Total of all expenses, converted to ``currency``."""
    return sum(
        (convert(e.amount, e.currency, currency, rate_table) for e in expenses),
        Decimal("0"),
    )


def daily_summary(
    expenses: Iterable[ExpenseRecord],
    rate_table: RateTable,
    currency: str,
    day: date,
) -> DailySummary:
    """Count and total of the expenses recorded on ``day``."""
    on_day = [e for e in expenses if e.date == day]
    return DailySummary(
        day=day,
        count=len(on_day),
        total=total_spent(on_day, rate_table, currency),
        currency=currency,
    )


def _breakdown(
    expenses: Iterable[ExpenseRecord],
    rate_table: RateTable,
    currency: str,
    group_key,
) -> list[BreakdownRow]:
    groups: dict[str, Decimal] = {}
    total = Decimal("0")
    for expense in expenses:
        value = convert(expense.amount, expense.currency, currency, rate_table)
        name = group_key(expense)
        groups[name] = groups.get(name, Decimal("0")) + value
        total += value

    return [
        BreakdownRow(
            name=name,
            value=value,
            percent=(value / total * 100) if total > 0 else Decimal("0"),
        )
        for name, value in groups.items()
    ]


def breakdown_by_category(
    expenses: Iterable[ExpenseRecord], rate_table: RateTable, currency: str
) -> list[BreakdownRow]:
    """Spending per category, largest first."""
    rows = _breakdown(
        expenses, rate_table, currency, lambda e: e.category.strip() or "Other"
    )
    return sorted(rows, key=lambda row: (-row.value, row.name))


def breakdown_by_day(
    expenses: Iterable[ExpenseRecord], rate_table: RateTable, currency: str
) -> list[BreakdownRow]:
    """Spending per calendar day, most recent first."""
    rows = _breakdown(expenses, rate_table, currency, lambda e: e.date.isoformat())
    return sorted(rows, key=lambda row: row.name, reverse=True)


def search_expenses(
    expenses: Iterable[ExpenseRecord],
    term: str | None = None,
    day: date | None = None,
) -> list[ExpenseRecord]:
    """
    Filter expenses by a title/category search term and an optional day.

    Matching is case-insensitive. Results are ordered newest first.
    """
    needle = (term or "").strip().lower()
    matches = [
        e
        for e in expenses
        if (not needle or needle in e.title.lower() or needle in e.category.lower())
        and (day is None or e.date == day)
    ]
    return sorted(matches, key=lambda e: e.date, reverse=True)


def settlement_status(expense: ExpenseRecord) -> SettlementStatus:
    """
    Whether the participants of an expense have paid back their shares.

    The payer is always considered settled for their own share.
    """
    participants = [m for m in expense.split_with if m != expense.paid_by]
    settled = [m for m in participants if m in expense.settled_by]
    if len(settled) == len(participants):
        return "settled"
    if settled:
        return "partial"
    return "open"
