"""Fixed-point helpers for monetary totals."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Decimal | float | int | str | None) -> Decimal:
    """Coerce a stored or computed amount to Decimal; ``None`` counts as zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their shortest repr instead of binary noise.
    return Decimal(str(value))


def quantize_cents(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def weighted(value: Decimal | float | int | None, probability: float | int) -> Decimal:
    """``value * probability / 100`` without intermediate rounding."""
    return to_decimal(value) * to_decimal(probability) / Decimal(100)
