"""Utilities for working with allowance amounts in chorechart."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Union

CENT = Decimal("0.01")

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """Quantise an allowance amount to cents, rounding halves away from zero.

    Raises ``TypeError`` for non-numeric values (``bool`` included) and
    ``ValueError`` for text that is not a number.
    """

    if isinstance(value, bool) or not isinstance(value, (Decimal, int, float, str)):
        raise TypeError(f"Cannot use {value!r} as an amount.")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"'{value}' is not an amount.") from exc
    if not amount.is_finite():
        raise ValueError(f"'{value}' is not an amount.")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def prorate(ceiling: AmountLike, earned: int, possible: int) -> Decimal:
    """Return the share of ``ceiling`` covered by ``earned / possible``.

    The ratio is clamped to ``[0, 1]`` and a non-positive ``possible`` pays
    nothing.
    """

    if possible <= 0:
        return Decimal("0.00")
    ratio = Decimal(earned) / Decimal(possible)
    ratio = max(Decimal("0"), min(ratio, Decimal("1")))
    return to_decimal(to_decimal(ceiling) * ratio)


__all__ = ["CENT", "AmountLike", "to_decimal", "prorate"]
