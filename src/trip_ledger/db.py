"""SQLite database operations for Trip Ledger."""

import json
import sqlite3
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from pydantic import ValidationError

from .exceptions import ConfigurationError
from .models import ExpenseRecord, Member, RateTable


class Database:
    """SQLite database manager."""

    def __init__(self, db_path: Path):
        """Initialize database connection."""
        self.db_path = db_path
        self.conn = sqlite3.connect(str(db_path))
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def _init_schema(self):
        """Initialize database schema."""
        cursor = self.conn.cursor()

        # Trip members table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id TEXT PRIMARY KEY,
                display_name TEXT NOT NULL,
                avatar TEXT,
                position INTEGER NOT NULL
            )
        """
        )

        # Expenses table (amounts stored as text to keep Decimal precision)
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS expenses (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                amount TEXT NOT NULL,
                currency TEXT NOT NULL,
                category TEXT NOT NULL,
                paid_by TEXT NOT NULL,
                split_with TEXT NOT NULL,
                settled_by TEXT NOT NULL,
                expense_date DATE NOT NULL,
                position INTEGER NOT NULL
            )
        """
        )

        # Exchange rates table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS rates (
                code TEXT PRIMARY KEY,
                rate TEXT NOT NULL
            )
        """
        )

        # Config table
        cursor.execute(
            """
            CREATE TABLE IF NOT EXISTS config (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """
        )

        self.conn.commit()

    def close(self):
        """Close database connection."""
        self.conn.close()

    # ========================================================================
    # Config operations
    # ========================================================================

    def get_config(self, key: str) -> str | None:
        """Get a config value by key."""
        cursor = self.conn.cursor()
        cursor.execute("SELECT value FROM config WHERE key = ?", (key,))
        row = cursor.fetchone()
        return str(row["value"]) if row else None

    def set_config(self, key: str, value: str):
        """Set a config value."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO config (key, value, updated_at)
            VALUES (?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, value, datetime.now().isoformat()),
        )
        self.conn.commit()

    def get_display_currency(self) -> str | None:
        """Get the user's preferred display currency."""
        return self.get_config("display_currency")

    def set_display_currency(self, currency: str):
        """Set the user's preferred display currency."""
        self.set_config("display_currency", currency)

    # ========================================================================
    # Member operations
    # ========================================================================

    def get_members(self) -> list[Member]:
        """Get all members in roster order."""
        cursor = self.conn.cursor()
        cursor.execute(
            "SELECT id, display_name, avatar FROM members ORDER BY position, id"
        )
        return [
            Member(id=row["id"], display_name=row["display_name"], avatar=row["avatar"])
            for row in cursor.fetchall()
        ]

    def save_member(self, member: Member):
        """Insert or update a member, keeping its roster position."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO members (id, display_name, avatar, position)
            VALUES (?, ?, ?, (SELECT COALESCE(MAX(position), 0) + 1 FROM members))
            ON CONFLICT(id) DO UPDATE SET
                display_name = excluded.display_name,
                avatar = excluded.avatar
            """,
            (member.id, member.display_name, member.avatar),
        )
        self.conn.commit()

    def delete_member(self, member_id: str):
        """Delete a member."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM members WHERE id = ?", (member_id,))
        self.conn.commit()

    # ========================================================================
    # Expense operations
    # ========================================================================

    def get_expenses(self) -> list[ExpenseRecord]:
        """Get all expenses in the order they were recorded."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            SELECT id, title, amount, currency, category, paid_by,
                   split_with, settled_by, expense_date
            FROM expenses
            ORDER BY position, id
            """
        )
        return [
            ExpenseRecord(
                id=row["id"],
                title=row["title"],
                amount=Decimal(row["amount"]),
                currency=row["currency"],
                category=row["category"],
                paid_by=row["paid_by"],
                split_with=json.loads(row["split_with"]),
                settled_by=json.loads(row["settled_by"]),
                date=date.fromisoformat(row["expense_date"]),
            )
            for row in cursor.fetchall()
        ]

    def save_expense(self, expense: ExpenseRecord):
        """Insert or update an expense."""
        cursor = self.conn.cursor()
        cursor.execute(
            """
            INSERT INTO expenses (
                id, title, amount, currency, category, paid_by,
                split_with, settled_by, expense_date, position
            ) VALUES (
                ?, ?, ?, ?, ?, ?, ?, ?, ?,
                (SELECT COALESCE(MAX(position), 0) + 1 FROM expenses)
            )
            ON CONFLICT(id) DO UPDATE SET
                title = excluded.title,
                amount = excluded.amount,
                currency = excluded.currency,
                category = excluded.category,
                paid_by = excluded.paid_by,
                split_with = excluded.split_with,
                settled_by = excluded.settled_by,
                expense_date = excluded.expense_date
            """,
            (
                expense.id,
                expense.title,
                str(expense.amount),
                expense.currency,
                expense.category,
                expense.paid_by,
                json.dumps(expense.split_with),
                json.dumps(expense.settled_by),
                expense.date.isoformat(),
            ),
        )
        self.conn.commit()

    def delete_expense(self, expense_id: str):
        """Delete an expense."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM expenses WHERE id = ?", (expense_id,))
        self.conn.commit()

    # ========================================================================
    # Rate operations
    # ========================================================================

    def get_rate_table(self, reference: str) -> RateTable | None:
        """
        Get the stored rate table, or None if no rates were saved yet.

        Stored rates are prices in the reference currency they were saved
        with, so they cannot be read back under a different one.

        Raises:
            ConfigurationError: If the rates were saved with another reference
                currency, or do not form a valid table
        """
        cursor = self.conn.cursor()
        cursor.execute("SELECT code, rate FROM rates ORDER BY code")
        rows = cursor.fetchall()
        if not rows:
            return None

        reference = reference.strip().upper()
        stored_reference = self.get_config("reference_currency")
        if stored_reference and stored_reference != reference:
            raise ConfigurationError(
                f"Saved exchange rates are priced in {stored_reference}, but the "
                f"reference currency is set to {reference}. Set "
                f"TRIP_LEDGER_REFERENCE_CURRENCY={stored_reference} or re-enter "
                f"the rates in {reference}."
            )

        try:
            return RateTable(
                reference=reference,
                rates={row["code"]: Decimal(row["rate"]) for row in rows},
            )
        except ValidationError as e:
            raise ConfigurationError(
                f"Saved exchange rates do not fit reference currency {reference}.\n"
                f"Error: {e}"
            ) from e

    def save_rate_table(self, rate_table: RateTable):
        """Replace all stored rates with the given table."""
        cursor = self.conn.cursor()
        cursor.execute("DELETE FROM rates")
        cursor.executemany(
            "INSERT INTO rates (code, rate) VALUES (?, ?)",
            [(code, str(rate)) for code, rate in rate_table.rates.items()],
        )
        # set_config commits the rates together with their reference
        self.set_config("reference_currency", rate_table.reference)
