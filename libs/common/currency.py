"""Currency conversion utilities for ZoyaBites.

Storage / API unit: rupees (Decimal, e.g. 440.00 = ₹440).
Gateway unit: paise (smallest INR unit, 100 paise = ₹1).

Conversion only happens at the payment gateway boundary.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

PAISE_PER_RUPEE: int = 100

Amount = Union[Decimal, float, int, str]


def to_decimal(amount: Amount) -> Decimal:
    """Coerce an amount to Decimal without float artifacts."""
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def to_minor_units(amount: Amount) -> int:
    """Convert rupees to paise, rounding half-up to the nearest paisa.

    ``to_minor_units(19.999) == 2000`` and ``to_minor_units(10) == 1000``.
    """
    value = to_decimal(amount).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return int(value * PAISE_PER_RUPEE)


def from_minor_units(paise: int) -> Decimal:
    """Convert paise to rupees."""
    return (Decimal(paise) / PAISE_PER_RUPEE).quantize(Decimal("0.01"))
