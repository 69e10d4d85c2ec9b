"""Net balance computation over a set of expenses."""

import logging
from collections.abc import Iterable
from decimal import Decimal

from ..models import ExpenseRecord, RateTable
from .currency import convert

logger = logging.getLogger(__name__)


def compute_balances(
    expenses: Iterable[ExpenseRecord],
    rate_table: RateTable,
    currency: str,
    members: Iterable[str] | None = None,
) -> dict[str, Decimal]:
    """
    Compute each member's net position across all expenses.

    Positive balance = is owed money, negative = owes money.

    For every expense, the amount is converted to ``currency`` and divided
    evenly over ``split_with`` (the payer counts towards the divisor when
    listed). Each participant who is neither the payer nor in ``settled_by``
    moves one share from their balance to the payer's. Settled participants
    and the payer contribute nothing for that expense.

    Member ids that are not in ``members`` are tolerated and simply appear
    in the result as they are encountered.

    Args:
        expenses: Expense records to aggregate
        rate_table: Rates used to convert each expense
        currency: Currency the balances are expressed in
        members: Optional known member ids, seeded with a zero balance

    Returns:
        Mapping of member id to signed balance

    Raises:
        UnknownCurrencyError: If an expense or ``currency`` has no rate
    """
    balances: dict[str, Decimal] = {m: Decimal("0") for m in members or ()}

    for expense in expenses:
        converted = convert(expense.amount, expense.currency, currency, rate_table)
        # Unvalidated records may carry an empty split; treat it as split-of-one
        share = converted / max(1, len(expense.split_with))

        for debtor in expense.debtors():
            balances[debtor] = balances.get(debtor, Decimal("0")) - share
            balances[expense.paid_by] = (
                balances.get(expense.paid_by, Decimal("0")) + share
            )

    logger.debug(f"Computed balances for {len(balances)} members in {currency}")
    return balances
