"""Custom exceptions for Trip Ledger."""


class TripLedgerError(Exception):
    """Base exception for all Trip Ledger errors."""

    pass


class ConfigurationError(TripLedgerError):
    """Raised when configuration is invalid or missing."""

    pass


class InvalidExpenseError(TripLedgerError):
    """Raised when an expense mutation would break a ledger invariant."""

    def __init__(self, problems: list[str], expense_id: str | None = None):
        self.problems = problems
        self.expense_id = expense_id
        prefix = f"Invalid expense {expense_id}" if expense_id else "Invalid expense"
        super().__init__(f"{prefix}: {'; '.join(problems)}")


class ExpenseNotFoundError(TripLedgerError):
    """Raised when an expense id is not present in the store."""

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} not found")


class UnknownCurrencyError(TripLedgerError):
    """Raised when a currency has no rate in the rate table."""

    def __init__(self, currency: str):
        self.currency = currency
        super().__init__(f"No exchange rate known for currency {currency!r}")


class InvalidRateError(TripLedgerError):
    """Raised when a rate table change is not allowed."""

    pass


class MemberNotFoundError(TripLedgerError):
    """Raised when a member id is not part of the trip roster."""

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Member {member_id} not found")


class MemberInUseError(TripLedgerError):
    """Raised when removing a member that expenses still reference."""

    def __init__(self, member_id: str, expense_ids: list[str]):
        self.member_id = member_id
        self.expense_ids = expense_ids
        super().__init__(
            f"Member {member_id} is referenced by {len(expense_ids)} expense(s): "
            f"{', '.join(expense_ids)}"
        )
