"""Pydantic domain models for Trip Ledger."""

from datetime import date
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .exceptions import InvalidRateError, UnknownCurrencyError

# Display grouping for expenses. Free-form labels are still accepted.
KNOWN_CATEGORIES = (
    "Food",
    "Restaurant",
    "Transport",
    "Stay",
    "Shopping",
    "Attraction",
    "Ticket",
    "Other",
)

SettlementStatus = Literal["open", "partial", "settled"]

# ============================================================================
# Trip Models
# ============================================================================


class Member(BaseModel):
    """A trip participant."""

    id: str
    display_name: str
    avatar: str | None = None


class ExpenseRecord(BaseModel):
    """A single shared cost.

    Accepts both the snake_case field names and the camelCase keys used by
    the persisted expense list (``paidBy``, ``splitWith``, ``settledBy``).

    Legacy records carried a single ``isSettled`` flag instead of a per-member
    ``settledBy`` list. Those are migrated here, at the load boundary, so the
    rest of the ledger can rely on ``settled_by`` always being present.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str = ""
    amount: Decimal
    currency: str
    category: str = "Other"
    paid_by: str = Field(alias="paidBy")
    split_with: list[str] = Field(alias="splitWith")
    settled_by: list[str] = Field(default_factory=list, alias="settledBy")
    date: date

    @model_validator(mode="before")
    @classmethod
    def _migrate_legacy_settled_flag(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "settled_by" in data or "settledBy" in data:
            return data

        data = dict(data)
        legacy_flag = data.pop("isSettled", None) or data.pop("is_settled", None)
        if legacy_flag:
            split = data.get("split_with", data.get("splitWith", []))
            data["settled_by"] = list(split)
        else:
            data["settled_by"] = []
        return data

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, value: str) -> str:
        return value.strip().upper()

    def debtors(self) -> list[str]:
        """Participants who still owe the payer their share."""
        return [
            member_id
            for member_id in self.split_with
            if member_id != self.paid_by and member_id not in self.settled_by
        ]

    def involves(self, member_id: str) -> bool:
        """Whether the member paid for or shares this expense."""
        return (
            member_id == self.paid_by
            or member_id in self.split_with
            or member_id in self.settled_by
        )


class RateTable(BaseModel):
    """Exchange rates expressed as the price of one unit in the reference currency.

    The reference currency always has rate 1.
    """

    model_config = ConfigDict(frozen=True)

    reference: str
    rates: dict[str, Decimal] = Field(default_factory=dict)

    @field_validator("reference")
    @classmethod
    def _upper_reference(cls, value: str) -> str:
        return value.strip().upper()

    @field_validator("rates")
    @classmethod
    def _normalize_rates(cls, value: dict[str, Decimal]) -> dict[str, Decimal]:
        normalized = {}
        for code, rate in value.items():
            if rate <= 0:
                raise ValueError(f"Rate for {code} must be positive, got {rate}")
            normalized[code.strip().upper()] = rate
        return normalized

    @model_validator(mode="after")
    def _pin_reference(self) -> "RateTable":
        existing = self.rates.get(self.reference)
        if existing is None:
            self.rates[self.reference] = Decimal("1")
        elif existing != 1:
            raise ValueError(
                f"Reference currency {self.reference} must have rate 1, got {existing}"
            )
        return self

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code.strip().upper() in self.rates

    def rate(self, code: str) -> Decimal:
        """Get the reference-currency price of one unit of ``code``."""
        try:
            return self.rates[code.strip().upper()]
        except KeyError:
            raise UnknownCurrencyError(code) from None

    def currencies(self) -> list[str]:
        """Known currency codes, reference first."""
        others = sorted(code for code in self.rates if code != self.reference)
        return [self.reference, *others]

    def with_rate(self, code: str, rate: Decimal) -> "RateTable":
        """Return a copy with ``code`` set to ``rate``."""
        code = code.strip().upper()
        rate = Decimal(str(rate))
        if rate <= 0:
            raise InvalidRateError(f"Rate for {code} must be positive, got {rate}")
        if code == self.reference and rate != 1:
            raise InvalidRateError(
                f"Reference currency {code} must keep rate 1, got {rate}"
            )
        return RateTable(reference=self.reference, rates={**self.rates, code: rate})

    def without_rate(self, code: str) -> "RateTable":
        """Return a copy with ``code`` removed."""
        code = code.strip().upper()
        if code == self.reference:
            raise InvalidRateError(f"Cannot remove reference currency {code}")
        if code not in self.rates:
            raise UnknownCurrencyError(code)
        rates = {k: v for k, v in self.rates.items() if k != code}
        return RateTable(reference=self.reference, rates=rates)


# ============================================================================
# Derived Models
# ============================================================================


class SettlementTransfer(BaseModel):
    """A suggested payment from a debtor to a creditor."""

    from_member: str
    to_member: str
    amount: Decimal
    currency: str


class BreakdownRow(BaseModel):
    """One bar of a spending breakdown (by category or by day)."""

    name: str
    value: Decimal
    percent: Decimal


class DailySummary(BaseModel):
    """Spending recorded on a single day."""

    day: date
    count: int
    total: Decimal
    currency: str
