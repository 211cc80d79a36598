"""
Money helpers.

All amounts are Decimal. Commissions are floored to the currency minor
unit individually; remainders are never redistributed.
"""

from decimal import ROUND_DOWN, Decimal

from earnhub.config.settings import settings


def to_decimal(value: Decimal | int | str) -> Decimal:
    """Convert to Decimal without going through float."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        raise TypeError("Use Decimal or str for money, not float")
    return Decimal(str(value))


def floor_to_minor_unit(
    amount: Decimal, minor_unit: Decimal | None = None
) -> Decimal:
    """
    Round down to the currency minor unit.

    Args:
        amount: Amount to round
        minor_unit: Quantum (defaults to settings.currency_minor_unit)

    Returns:
        Floored amount, e.g. 2.999 -> 2.99 for a 0.01 unit
    """
    quantum = minor_unit or settings.currency_minor_unit
    return amount.quantize(quantum, rounding=ROUND_DOWN)


def calculate_commission(
    base_amount: Decimal, percent: Decimal, minor_unit: Decimal | None = None
) -> Decimal:
    """
    Commission for one ancestor.

    Args:
        base_amount: Triggering amount
        percent: Commission percent (3.0 = 3%)
        minor_unit: Currency quantum

    Returns:
        floor(base_amount * percent / 100)
    """
    return floor_to_minor_unit(base_amount * percent / Decimal(100), minor_unit)
