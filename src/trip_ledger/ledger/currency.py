"""Currency conversion through a reference-currency rate table."""

from decimal import Decimal

from ..models import RateTable


def convert(
    amount: Decimal,
    from_currency: str,
    to_currency: str,
    rate_table: RateTable,
) -> Decimal:
    """
    Convert an amount between two currencies of the rate table.

    Rates are reference-currency prices, so the conversion routes through
    the reference currency: ``amount * rate(from) / rate(to)``.

    Args:
        amount: Amount in ``from_currency``
        from_currency: Source currency code
        to_currency: Target currency code
        rate_table: Table holding both currencies

    Returns:
        Amount in ``to_currency``

    Raises:
        UnknownCurrencyError: If either currency has no rate
    """
    rate_from = rate_table.rate(from_currency)
    rate_to = rate_table.rate(to_currency)
    amount = Decimal(str(amount))
    if rate_from == rate_to:
        return amount
    return amount * rate_from / rate_to
