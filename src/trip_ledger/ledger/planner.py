"""Greedy debt simplification.

Turns a net-balance mapping into a short list of point-to-point transfers.
The largest remaining debtor is repeatedly matched with the largest
remaining creditor, and the smaller of the two amounts changes hands.

This is not guaranteed to reach the global minimum number of transfers
(that problem is NP-hard), but it never emits more than
``#debtors + #creditors - 1`` of them: every step retires at least one party.
"""

import logging
from collections.abc import Iterable, Mapping
from decimal import Decimal

from ..models import SettlementTransfer

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = Decimal("1")


def plan_settlement(
    balances: Mapping[str, Decimal],
    threshold: Decimal = DEFAULT_THRESHOLD,
    currency: str = "",
) -> list[SettlementTransfer]:
    """
    Compute an ordered list of transfers that zeroes out all balances.

    Steps:
    1. Members below ``-threshold`` are debtors, above ``threshold`` creditors
    2. Debtors sorted most negative first, creditors largest first
       (ties broken by member id)
    3. Match current debtor and creditor for ``min(|debt|, credit)``
    4. Move past any party whose remainder falls below ``threshold``

    Args:
        balances: Member id to signed balance (positive = owed money)
        threshold: Magnitude below which a balance counts as settled
        currency: Currency code stamped on the emitted transfers

    Returns:
        Transfers in emission order. Empty when nothing is owed.
    """
    if threshold < 0:
        raise ValueError(f"threshold must be non-negative, got {threshold}")

    debtors = sorted(
        ([member, balance] for member, balance in balances.items() if balance < -threshold),
        key=lambda x: (x[1], x[0]),
    )
    creditors = sorted(
        ([member, balance] for member, balance in balances.items() if balance > threshold),
        key=lambda x: (-x[1], x[0]),
    )

    transfers: list[SettlementTransfer] = []
    i = j = 0
    while i < len(debtors) and j < len(creditors):
        debtor = debtors[i]
        creditor = creditors[j]

        amount = min(abs(debtor[1]), creditor[1])
        transfers.append(
            SettlementTransfer(
                from_member=debtor[0],
                to_member=creditor[0],
                amount=amount,
                currency=currency,
            )
        )
        debtor[1] += amount
        creditor[1] -= amount

        # An exact zero always retires the party, even with a zero threshold
        if debtor[1] == 0 or abs(debtor[1]) < threshold:
            i += 1
        if creditor[1] == 0 or creditor[1] < threshold:
            j += 1

    logger.debug(
        f"Planned {len(transfers)} transfers for {len(debtors)} debtors "
        f"and {len(creditors)} creditors"
    )
    return transfers


def apply_transfers(
    balances: Mapping[str, Decimal], transfers: Iterable[SettlementTransfer]
) -> dict[str, Decimal]:
    """
    Return the balances that remain once every transfer has been paid.

    A payment raises the payer's balance and lowers the receiver's.
    """
    remaining = dict(balances)
    for transfer in transfers:
        remaining[transfer.from_member] = (
            remaining.get(transfer.from_member, Decimal("0")) + transfer.amount
        )
        remaining[transfer.to_member] = (
            remaining.get(transfer.to_member, Decimal("0")) - transfer.amount
        )
    return remaining
