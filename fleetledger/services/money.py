"""Decimal rounding helpers for billing amounts."""

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
WHOLE_UNIT = Decimal("1")
HALF_UNIT = Decimal("0.5")


def round_cents(value: Decimal) -> Decimal:
    """Round to two decimals (display values and stored line columns)."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def round_whole(value: Decimal) -> Decimal:
    """Round to a whole currency unit, halves towards positive infinity.

    Used for the payment net and the invoice total: 1070.5 -> 1071 and
    -1070.5 -> -1070.
    """
    return (value + HALF_UNIT).quantize(WHOLE_UNIT, rounding=ROUND_FLOOR)


def prorate(monthly_rate: Decimal, present_days: int, month_days: int) -> Decimal:
    """Unrounded share of a monthly rate for present_days out of month_days.

    Multiplies before dividing so that a full month returns exactly the rate.
    """
    return monthly_rate * Decimal(present_days) / Decimal(month_days)


__all__ = ["CENT", "WHOLE_UNIT", "round_cents", "round_whole", "prorate"]
