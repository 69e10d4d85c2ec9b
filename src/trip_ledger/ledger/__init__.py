"""Expense ledger and settlement engine."""

from .balances import compute_balances
from .currency import convert
from .planner import apply_transfers, plan_settlement
from .service import LedgerService
from .store import ExpenseStore, validate_expense

__all__ = [
    "compute_balances",
    "convert",
    "apply_transfers",
    "plan_settlement",
    "LedgerService",
    "ExpenseStore",
    "validate_expense",
]
