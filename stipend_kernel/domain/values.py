"""
Values -- Decimal money helpers.

Responsibility:
    Conversion of external numeric input into ``Decimal`` and the single
    rounding / formatting rule used when amounts leave the engine.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Monetary arithmetic is Decimal-only; ``float`` input is converted
      through ``str`` so binary artefacts never enter a computation.
    - Rounding to currency precision happens only at the presentation
      boundary (``round_money`` / ``format_brl``), never mid-calculation.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")
MONTHS_PER_YEAR = Decimal("12")


def to_decimal(value: Any) -> Decimal:
    """Convert int, str, float or Decimal to Decimal.

    Raises:
        ValueError: if ``value`` is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Cannot use boolean {value!r} as an amount")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except InvalidOperation as exc:
            raise ValueError(f"Cannot parse amount from {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Amount must be finite, got {value!r}")
    return result


def optional_decimal(value: Any) -> Decimal | None:
    """Like ``to_decimal`` but passes ``None`` through."""
    if value is None:
        return None
    return to_decimal(value)


def round_money(amount: Decimal) -> Decimal:
    """Round to 2 decimal places, half-up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_brl(amount: Decimal) -> str:
    """Format an amount as Brazilian reais, e.g. ``R$ 1.412,00``."""
    rounded = round_money(amount)
    sign = "-" if rounded < ZERO else ""
    whole, frac = f"{abs(rounded):.2f}".split(".")
    groups = []
    while len(whole) > 3:
        groups.insert(0, whole[-3:])
        whole = whole[:-3]
    groups.insert(0, whole)
    return f"{sign}R$ {'.'.join(groups)},{frac}"


def percent_uplift(multiplier: Decimal) -> str:
    """Render a multiplier as its uplift percentage, e.g. 1.20 -> '20%'."""
    pct = ((multiplier - Decimal("1")) * Decimal("100")).quantize(
        Decimal("1"), rounding=ROUND_HALF_UP
    )
    return f"{pct}%"
