"""Helpers for integer minor-unit amounts."""

from decimal import ROUND_HALF_UP, Decimal


def to_minor_units(value) -> int:
    """Round a numeric amount half-up to whole minor units."""

    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def percent_of(amount: int, percent) -> int:
    """Return ``percent`` % of ``amount`` in minor units, rounded half-up."""

    return to_minor_units(Decimal(int(amount)) * Decimal(str(percent)) / Decimal("100"))
