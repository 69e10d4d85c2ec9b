"""In-memory store of expense records with invariant checks."""

import logging
from collections.abc import Iterable, Iterator

from ..exceptions import ExpenseNotFoundError, InvalidExpenseError
from ..models import ExpenseRecord

logger = logging.getLogger(__name__)


def validate_expense(record: ExpenseRecord) -> None:
    """
    Check the invariants every stored expense must satisfy.

    All problems are collected so the caller sees the full list at once.

    Raises:
        InvalidExpenseError: If any invariant is violated
    """
    problems = []

    if not record.id.strip():
        problems.append("id must not be blank")
    if not record.paid_by.strip():
        problems.append("paid_by must not be blank")
    if not record.currency:
        problems.append("currency must not be blank")
    if record.amount < 0:
        problems.append(f"amount must be non-negative, got {record.amount}")
    if not record.split_with:
        problems.append("split_with must contain at least one member")
    if len(set(record.split_with)) != len(record.split_with):
        problems.append("split_with contains duplicate members")

    outside = [m for m in record.settled_by if m not in record.split_with]
    if outside:
        problems.append(
            f"settled_by members not in split_with: {', '.join(sorted(set(outside)))}"
        )

    if problems:
        raise InvalidExpenseError(problems, expense_id=record.id or None)


class ExpenseStore:
    """Mapping of expense id to record, owned by one ledger session.

    Every mutation validates before touching state, so a failed call leaves
    the store exactly as it was. Records are copied on the way in and on the
    way out, so callers cannot change stored state behind the checks.
    ``revision`` increases on every successful mutation and can be used by
    callers to invalidate cached views.
    """

    def __init__(self, records: Iterable[ExpenseRecord] = ()):
        """Initialize the store, validating any initial records."""
        self._records: dict[str, ExpenseRecord] = {}
        self.revision = 0
        self.load(records)

    def __iter__(self) -> Iterator[ExpenseRecord]:
        return iter(self.records())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, expense_id: object) -> bool:
        return expense_id in self._records

    def records(self) -> list[ExpenseRecord]:
        """Copies of all records in insertion order."""
        return [r.model_copy(deep=True) for r in self._records.values()]

    def get(self, expense_id: str) -> ExpenseRecord:
        """Get a copy of a record by id."""
        try:
            return self._records[expense_id].model_copy(deep=True)
        except KeyError:
            raise ExpenseNotFoundError(expense_id) from None

    def load(self, records: Iterable[ExpenseRecord]) -> None:
        """Replace the store contents with ``records``."""
        loaded: dict[str, ExpenseRecord] = {}
        for record in records:
            validate_expense(record)
            if record.id in loaded:
                raise InvalidExpenseError(["duplicate id"], expense_id=record.id)
            loaded[record.id] = record.model_copy(deep=True)

        self._records = loaded
        self._bump()

    def add(self, record: ExpenseRecord) -> ExpenseRecord:
        """Add a new record."""
        validate_expense(record)
        if record.id in self._records:
            raise InvalidExpenseError(["id already exists"], expense_id=record.id)

        stored = record.model_copy(deep=True)
        self._records[stored.id] = stored
        self._bump()
        logger.debug(f"Added expense {stored.id}")
        return stored.model_copy(deep=True)

    def update(self, expense_id: str, record: ExpenseRecord) -> ExpenseRecord:
        """Replace an existing record. The id itself cannot change."""
        if expense_id not in self._records:
            raise ExpenseNotFoundError(expense_id)
        if record.id != expense_id:
            raise InvalidExpenseError(
                [f"id is immutable (got {record.id!r})"], expense_id=expense_id
            )
        validate_expense(record)

        stored = record.model_copy(deep=True)
        self._records[expense_id] = stored
        self._bump()
        logger.debug(f"Updated expense {expense_id}")
        return stored.model_copy(deep=True)

    def remove(self, expense_id: str) -> ExpenseRecord:
        """Delete a record and return it."""
        if expense_id not in self._records:
            raise ExpenseNotFoundError(expense_id)

        removed = self._records.pop(expense_id)
        self._bump()
        logger.debug(f"Removed expense {expense_id}")
        return removed

    def toggle_participant_settled(
        self, expense_id: str, member_id: str
    ) -> ExpenseRecord:
        """
        Flip whether ``member_id`` has paid back their share of an expense.

        The payer never owes themselves, so toggling the payer is a no-op.

        Raises:
            ExpenseNotFoundError: If the expense does not exist
            InvalidExpenseError: If the member is not part of the split
        """
        record = self.get(expense_id)

        if member_id == record.paid_by:
            logger.debug(f"Ignoring settle toggle for payer {member_id} on {expense_id}")
            return record

        if member_id not in record.split_with:
            raise InvalidExpenseError(
                [f"member {member_id} is not part of the split"],
                expense_id=expense_id,
            )

        if member_id in record.settled_by:
            settled_by = [m for m in record.settled_by if m != member_id]
        else:
            settled_by = [*record.settled_by, member_id]

        self._records[expense_id] = record.model_copy(update={"settled_by": settled_by})
        self._bump()
        logger.debug(f"Toggled settled state of {member_id} on {expense_id}")
        return self.get(expense_id)

    def referencing(self, member_id: str) -> list[str]:
        """Ids of the expenses that involve ``member_id``."""
        return [r.id for r in self._records.values() if r.involves(member_id)]

    def _bump(self) -> None:
        self.revision += 1
