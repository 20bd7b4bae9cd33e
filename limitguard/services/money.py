"""Money / rounding helpers.

Centralized so conversion, aggregation and the evaluator use identical
rounding semantics. Amounts are Decimal end to end; floats never enter.
"""

from __future__ import annotations
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")
RATE_QUANTUM = Decimal("0.00000001")
ZERO = Decimal("0.00")


def round2(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def quantize_rate(value) -> Decimal:
    """Rates are kept with at most 8 fractional digits."""
    return Decimal(str(value)).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


def to_reference(amount: Decimal, rate: Decimal) -> Decimal:
    """Convert a quote-currency amount using quote units per reference unit."""
    if rate <= 0:
        raise ValueError("rate must be positive")
    return round2(Decimal(amount) / Decimal(rate))
