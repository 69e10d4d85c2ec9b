"""Service layer exposing the expense ledger to its collaborators.

A LedgerService owns one trip's expense store, rate table and member roster.
Balances and settlement plans are recomputed from that state on every read.
When a Database is attached, every mutation is written through to it, and a
failed write leaves the in-memory state as it was.
"""

import logging
import sqlite3
from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import Literal

from ..config import Settings
from ..db import Database
from pydantic import ValidationError

from ..exceptions import ConfigurationError, MemberInUseError, MemberNotFoundError
from ..models import (
    BreakdownRow,
    DailySummary,
    ExpenseRecord,
    Member,
    RateTable,
    SettlementTransfer,
)
from .balances import compute_balances
from .currency import convert
from .planner import plan_settlement
from .reports import (
    breakdown_by_category,
    breakdown_by_day,
    daily_summary,
    search_expenses,
    total_spent,
)
from .store import ExpenseStore

logger = logging.getLogger(__name__)


class LedgerService:
    """Expense ledger and settlement engine for a single trip."""

    def __init__(
        self,
        settings: Settings,
        rate_table: RateTable,
        store: ExpenseStore | None = None,
        members: Iterable[Member] = (),
        database: Database | None = None,
    ):
        """Initialize the service from already-loaded state."""
        self.settings = settings
        self.rate_table = rate_table
        self.store = store if store is not None else ExpenseStore()
        self.members: dict[str, Member] = {m.id: m for m in members}
        self.db = database
        self.display_currency = settings.display_currency.upper()

    @classmethod
    def from_database(cls, settings: Settings, database: Database) -> "LedgerService":
        """
        Load members, expenses and rates from the database.

        If no rates were saved yet, the default rates from settings are
        stored and used.

        Raises:
            ConfigurationError: If the saved or default rates do not fit the
                configured reference currency
        """
        rate_table = database.get_rate_table(settings.reference_currency)
        if rate_table is None:
            try:
                rate_table = RateTable(
                    reference=settings.reference_currency, rates=settings.default_rates
                )
            except ValidationError as e:
                raise ConfigurationError(
                    f"Default exchange rates do not fit reference currency "
                    f"{settings.reference_currency}. Set TRIP_LEDGER_DEFAULT_RATES "
                    f"to prices in {settings.reference_currency}.\n"
                    f"Error: {e}"
                ) from e
            database.save_rate_table(rate_table)
            logger.info(f"Seeded {len(rate_table.rates)} default exchange rates")

        store = ExpenseStore(database.get_expenses())
        service = cls(
            settings,
            rate_table,
            store=store,
            members=database.get_members(),
            database=database,
        )

        stored_display = database.get_display_currency()
        if stored_display:
            service.display_currency = stored_display

        logger.info(
            f"Loaded {len(store)} expenses and {len(service.members)} members"
        )
        return service

    # ========================================================================
    # Expense mutations
    # ========================================================================

    def add_expense(self, record: ExpenseRecord) -> ExpenseRecord:
        """Record a new expense."""
        self._check_members(record)
        stored = self.store.add(record)
        if self.db:
            try:
                self.db.save_expense(stored)
            except sqlite3.Error:
                self.store.remove(stored.id)
                raise
        logger.info(
            f"Added expense {stored.id}: {stored.currency} {stored.amount} "
            f"paid by {stored.paid_by}"
        )
        return stored

    def update_expense(self, expense_id: str, record: ExpenseRecord) -> ExpenseRecord:
        """Replace an existing expense."""
        self._check_members(record)
        previous = self.store.get(expense_id)
        stored = self.store.update(expense_id, record)
        if self.db:
            try:
                self.db.save_expense(stored)
            except sqlite3.Error:
                self.store.update(expense_id, previous)
                raise
        logger.info(f"Updated expense {expense_id}")
        return stored

    def delete_expense(self, expense_id: str) -> ExpenseRecord:
        """Delete an expense."""
        self.store.get(expense_id)
        if self.db:
            self.db.delete_expense(expense_id)
        removed = self.store.remove(expense_id)
        logger.info(f"Deleted expense {expense_id}")
        return removed

    def toggle_settled(self, expense_id: str, member_id: str) -> ExpenseRecord:
        """Flip whether a participant has paid back their share."""
        previous = self.store.get(expense_id)
        updated = self.store.toggle_participant_settled(expense_id, member_id)
        if self.db:
            try:
                self.db.save_expense(updated)
            except sqlite3.Error:
                self.store.update(expense_id, previous)
                raise
        state = "settled" if member_id in updated.settled_by else "unsettled"
        logger.info(f"Marked {member_id} as {state} on expense {expense_id}")
        return updated

    def get_expense(self, expense_id: str) -> ExpenseRecord:
        """Get a single expense."""
        return self.store.get(expense_id)

    def list_expenses(self) -> list[ExpenseRecord]:
        """All expenses in the order they were recorded."""
        return self.store.records()

    # ========================================================================
    # Derived views
    # ========================================================================

    def get_balances(self, display_currency: str | None = None) -> dict[str, Decimal]:
        """Net balance per member, in the display currency."""
        return compute_balances(
            self.store,
            self.rate_table,
            self._currency(display_currency),
            members=self.members,
        )

    def get_settlement_plan(
        self, display_currency: str | None = None
    ) -> list[SettlementTransfer]:
        """
        Suggested transfers that settle every balance.

        Planning runs on reference-currency balances so the settlement
        threshold keeps the same meaning whatever the display currency.
        Transfer amounts are converted afterwards.
        """
        currency = self._currency(display_currency)
        reference = self.rate_table.reference
        balances = compute_balances(
            self.store, self.rate_table, reference, members=self.members
        )
        transfers = plan_settlement(
            balances, threshold=self.settings.settlement_threshold, currency=reference
        )
        if currency == reference:
            return transfers

        return [
            t.model_copy(
                update={
                    "amount": convert(t.amount, reference, currency, self.rate_table),
                    "currency": currency,
                }
            )
            for t in transfers
        ]

    def convert(self, amount: Decimal, from_currency: str, to_currency: str) -> Decimal:
        """Convert an amount with the trip's rate table."""
        return convert(amount, from_currency, to_currency, self.rate_table)

    def total_spent(self, display_currency: str | None = None) -> Decimal:
        """Total trip spending."""
        return total_spent(self.store, self.rate_table, self._currency(display_currency))

    def daily_summary(
        self, day: date | None = None, display_currency: str | None = None
    ) -> DailySummary:
        """Spending recorded on ``day`` (today by default)."""
        return daily_summary(
            self.store,
            self.rate_table,
            self._currency(display_currency),
            day or date.today(),
        )

    def breakdown(
        self,
        mode: Literal["category", "daily"] = "category",
        display_currency: str | None = None,
    ) -> list[BreakdownRow]:
        """Spending grouped by category or by day."""
        currency = self._currency(display_currency)
        if mode == "daily":
            return breakdown_by_day(self.store, self.rate_table, currency)
        return breakdown_by_category(self.store, self.rate_table, currency)

    def search(
        self, term: str | None = None, day: date | None = None
    ) -> list[ExpenseRecord]:
        """Expenses matching a search term and/or day, newest first."""
        return search_expenses(self.store, term=term, day=day)

    # ========================================================================
    # Members
    # ========================================================================

    def add_member(self, member: Member) -> Member:
        """Add a member to the trip roster (or replace one with the same id)."""
        if self.db:
            self.db.save_member(member)
        self.members[member.id] = member
        logger.info(f"Added member {member.id} ({member.display_name})")
        return member

    def rename_member(self, member_id: str, display_name: str) -> Member:
        """Change a member's display name."""
        member = self._member(member_id)
        renamed = member.model_copy(update={"display_name": display_name})
        if self.db:
            self.db.save_member(renamed)
        self.members[member_id] = renamed
        return renamed

    def remove_member(self, member_id: str) -> Member:
        """
        Remove a member from the roster.

        Raises:
            MemberNotFoundError: If the member is not in the roster
            MemberInUseError: If any expense still references the member
        """
        member = self._member(member_id)
        referencing = self.store.referencing(member_id)
        if referencing:
            raise MemberInUseError(member_id, referencing)

        if self.db:
            self.db.delete_member(member_id)
        del self.members[member_id]
        logger.info(f"Removed member {member_id}")
        return member

    def member_name(self, member_id: str) -> str:
        """Display name for a member id, falling back to the id itself."""
        member = self.members.get(member_id)
        return member.display_name if member else member_id

    # ========================================================================
    # Rates and display currency
    # ========================================================================

    def set_rate(self, code: str, rate: Decimal) -> RateTable:
        """Set the reference-currency price of one unit of ``code``."""
        rate_table = self.rate_table.with_rate(code, rate)
        if self.db:
            self.db.save_rate_table(rate_table)
        self.rate_table = rate_table
        logger.info(f"Set rate {code.upper()} = {rate} {self.rate_table.reference}")
        return self.rate_table

    def remove_rate(self, code: str) -> RateTable:
        """Drop a currency from the rate table."""
        rate_table = self.rate_table.without_rate(code)
        if self.db:
            self.db.save_rate_table(rate_table)
        self.rate_table = rate_table
        logger.info(f"Removed rate for {code.upper()}")
        return self.rate_table

    def set_display_currency(self, code: str) -> str:
        """Change the default display currency."""
        code = code.strip().upper()
        self.rate_table.rate(code)
        if self.db:
            self.db.set_display_currency(code)
        self.display_currency = code
        return code

    # ========================================================================
    # Helpers
    # ========================================================================

    def _currency(self, display_currency: str | None) -> str:
        return (display_currency or self.display_currency).strip().upper()

    def _member(self, member_id: str) -> Member:
        try:
            return self.members[member_id]
        except KeyError:
            raise MemberNotFoundError(member_id) from None

    def _check_members(self, record: ExpenseRecord) -> None:
        if not self.settings.strict_members:
            return
        for member_id in [record.paid_by, *record.split_with]:
            if member_id not in self.members:
                raise MemberNotFoundError(member_id)
