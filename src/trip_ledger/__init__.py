"""Trip Ledger - Shared trip expenses with multi-currency settle-up."""

__version__ = "0.1.0"

from .config import Settings, load_settings
from .db import Database
from .models import (
    ExpenseRecord,
    Member,
    RateTable,
    SettlementTransfer,
)
from .ledger import (
    ExpenseStore,
    LedgerService,
    compute_balances,
    convert,
    plan_settlement,
)

__all__ = [
    "Settings",
    "load_settings",
    "Database",
    "ExpenseRecord",
    "Member",
    "RateTable",
    "SettlementTransfer",
    "ExpenseStore",
    "LedgerService",
    "compute_balances",
    "convert",
    "plan_settlement",
]
