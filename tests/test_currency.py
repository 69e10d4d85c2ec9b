"""Tests for currency conversion."""

from decimal import Decimal

import pytest

from trip_ledger.exceptions import UnknownCurrencyError
from trip_ledger.ledger.currency import convert
from trip_ledger.models import RateTable


@pytest.fixture
def rates():
    """JPY-referenced rate table."""
    return RateTable(
        reference="JPY",
        rates={
            "JPY": Decimal("1"),
            "HKD": Decimal("19.2"),
            "AUD": Decimal("96.5"),
            "USD": Decimal("150.0"),
        },
    )


class TestConvert:
    """Tests for convert()."""

    def test_to_reference(self, rates):
        """Converting into the reference currency multiplies by the rate."""
        assert convert(Decimal("10"), "HKD", "JPY", rates) == Decimal("192.0")

    def test_from_reference(self, rates):
        """Converting out of the reference currency divides by the rate."""
        assert convert(Decimal("300"), "JPY", "USD", rates) == Decimal("2")

    def test_cross_rate_routes_through_reference(self, rates):
        """USD -> HKD uses both rates."""
        result = convert(Decimal("1"), "USD", "HKD", rates)
        assert result == Decimal("150.0") / Decimal("19.2")

    def test_same_currency_is_identity(self, rates):
        """Same source and target returns the amount unchanged."""
        assert convert(Decimal("123.45"), "AUD", "AUD", rates) == Decimal("123.45")

    def test_codes_are_case_insensitive(self, rates):
        """Lowercase codes resolve to the same rates."""
        assert convert(Decimal("10"), "hkd", "jpy", rates) == Decimal("192.0")

    def test_unknown_source_currency(self, rates):
        """Unknown source currency fails instead of assuming a rate."""
        with pytest.raises(UnknownCurrencyError) as exc_info:
            convert(Decimal("10"), "KRW", "JPY", rates)
        assert exc_info.value.currency == "KRW"

    def test_unknown_target_currency(self, rates):
        """Unknown target currency fails too."""
        with pytest.raises(UnknownCurrencyError):
            convert(Decimal("10"), "JPY", "GBP", rates)

    def test_unknown_currency_fails_even_when_identical(self, rates):
        """A→A conversion still requires A to be known."""
        with pytest.raises(UnknownCurrencyError):
            convert(Decimal("10"), "GBP", "GBP", rates)

    def test_zero_amount(self, rates):
        """Zero converts to zero."""
        assert convert(Decimal("0"), "USD", "HKD", rates) == 0


class TestRoundTrip:
    """Converting A→B→A returns the original amount."""

    @pytest.mark.parametrize(
        "amount", [Decimal("1"), Decimal("3000"), Decimal("0.07"), Decimal("98765.43")]
    )
    def test_round_trip_all_pairs(self, rates, amount):
        """Every pair of known currencies round-trips within 1e-6 relative."""
        codes = list(rates.rates)
        for a in codes:
            for b in codes:
                back = convert(convert(amount, a, b, rates), b, a, rates)
                assert abs(back - amount) <= amount * Decimal("1e-6")
