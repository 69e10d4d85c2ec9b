"""Tests for spending reports."""

from datetime import date
from decimal import Decimal

import pytest

from trip_ledger.exceptions import UnknownCurrencyError
from trip_ledger.ledger.reports import (
    breakdown_by_category,
    breakdown_by_day,
    daily_summary,
    search_expenses,
    settlement_status,
    total_spent,
)
from trip_ledger.models import ExpenseRecord, RateTable


@pytest.fixture
def rates():
    """JPY-referenced rate table."""
    return RateTable(reference="JPY", rates={"HKD": Decimal("20")})


def make_expense(
    id: str,
    amount: str,
    day: date,
    category: str = "Food",
    title: str = "",
    currency: str = "JPY",
    split_with: list[str] | None = None,
    settled_by: list[str] | None = None,
) -> ExpenseRecord:
    """Create an ExpenseRecord for testing."""
    return ExpenseRecord(
        id=id,
        title=title,
        amount=Decimal(amount),
        currency=currency,
        category=category,
        paid_by="a",
        split_with=split_with or ["a", "b"],
        settled_by=settled_by or [],
        date=day,
    )


@pytest.fixture
def expenses():
    """A few days of spending in two currencies."""
    return [
        make_expense("e1", "2000", date(2024, 5, 1), "Food", "Ramen"),
        make_expense("e2", "150", date(2024, 5, 1), "Transport", "Airport bus", "HKD"),
        make_expense("e3", "6000", date(2024, 5, 2), "Stay", "Hostel"),
        make_expense("e4", "1000", date(2024, 5, 3), "", "7-11 Snacks"),
    ]


class TestTotals:
    """Tests for total_spent and daily_summary."""

    def test_total_spent(self, rates, expenses):
        """All expenses converted and summed."""
        assert total_spent(expenses, rates, "JPY") == Decimal("12000")
        assert total_spent(expenses, rates, "HKD") == Decimal("600")

    def test_total_spent_empty(self, rates):
        """No expenses, nothing spent."""
        assert total_spent([], rates, "JPY") == 0

    def test_unknown_currency(self, rates, expenses):
        """Totals fail on unknown currencies instead of assuming a rate."""
        with pytest.raises(UnknownCurrencyError):
            total_spent(expenses, rates, "EUR")

    def test_daily_summary(self, rates, expenses):
        """Only expenses on the given day count."""
        summary = daily_summary(expenses, rates, "JPY", date(2024, 5, 1))
        assert summary.count == 2
        assert summary.total == Decimal("5000")
        assert summary.currency == "JPY"

    def test_daily_summary_no_records(self, rates, expenses):
        """A quiet day reports zero."""
        summary = daily_summary(expenses, rates, "JPY", date(2024, 6, 1))
        assert summary.count == 0
        assert summary.total == 0


class TestBreakdowns:
    """Tests for category and daily breakdowns."""

    def test_by_category_largest_first(self, rates, expenses):
        """Categories are sorted by value, blank category groups as Other."""
        rows = breakdown_by_category(expenses, rates, "JPY")
        assert [r.name for r in rows] == ["Stay", "Transport", "Food", "Other"]
        assert rows[0].value == Decimal("6000")

    def test_by_category_percentages(self, rates, expenses):
        """Percentages add up to 100."""
        rows = breakdown_by_category(expenses, rates, "JPY")
        assert abs(sum(r.percent for r in rows) - 100) < Decimal("1e-20")

    def test_by_day_newest_first(self, rates, expenses):
        """Days are sorted newest first."""
        rows = breakdown_by_day(expenses, rates, "JPY")
        assert [r.name for r in rows] == ["2024-05-03", "2024-05-02", "2024-05-01"]
        assert rows[2].value == Decimal("5000")

    def test_zero_total_gives_zero_percent(self, rates):
        """Zero-amount expenses do not divide by zero."""
        rows = breakdown_by_category(
            [make_expense("e1", "0", date(2024, 5, 1))], rates, "JPY"
        )
        assert rows[0].percent == 0


class TestSearch:
    """Tests for search_expenses."""

    def test_matches_title_case_insensitive(self, expenses):
        """Search term matches titles regardless of case."""
        assert [e.id for e in search_expenses(expenses, "ramen")] == ["e1"]

    def test_matches_category(self, expenses):
        """Search term also matches categories."""
        assert [e.id for e in search_expenses(expenses, "transport")] == ["e2"]

    def test_filter_by_day(self, expenses):
        """Day filter keeps only that date."""
        assert {e.id for e in search_expenses(expenses, day=date(2024, 5, 1))} == {
            "e1",
            "e2",
        }

    def test_no_filters_returns_all_newest_first(self, expenses):
        """Without filters everything comes back, newest first."""
        assert [e.id for e in search_expenses(expenses)][:2] == ["e4", "e3"]


class TestSettlementStatus:
    """Tests for settlement_status."""

    def test_open(self):
        """Nobody has paid back."""
        expense = make_expense("e1", "300", date(2024, 5, 1), split_with=["a", "b", "c"])
        assert settlement_status(expense) == "open"

    def test_partial(self):
        """Some participants have paid back."""
        expense = make_expense(
            "e1", "300", date(2024, 5, 1), split_with=["a", "b", "c"], settled_by=["b"]
        )
        assert settlement_status(expense) == "partial"

    def test_settled_without_payer_flag(self):
        """The payer does not need to be marked for the expense to be settled."""
        expense = make_expense(
            "e1", "300", date(2024, 5, 1), split_with=["a", "b", "c"], settled_by=["b", "c"]
        )
        assert settlement_status(expense) == "settled"

    def test_payer_only_is_settled(self):
        """An expense only for the payer has nothing outstanding."""
        expense = make_expense("e1", "300", date(2024, 5, 1), split_with=["a"])
        assert settlement_status(expense) == "settled"
