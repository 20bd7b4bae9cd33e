from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from limitguard.services.money import to_reference
from .base import SupportsRateLookup

"""Reference-currency equivalent conversion utility.

Centralizes logic for normalizing a transaction amount:
    - Fetch the rate for the transaction's calendar day via the injected rate
      service (cache first, then the external source).
    - Divide and round half-up to cents in a single place.
    - Return a simple immutable result object for clarity/testing.
"""


@dataclass(frozen=True)
class ConversionResult:
    original_amount: Decimal
    currency: str
    rate_date: date
    rate: Decimal
    reference_amount: Decimal


def compute_reference_equivalent(
    amount: Decimal, currency: str, on: date, rate_service: SupportsRateLookup
) -> ConversionResult:
    currency = currency.upper()
    rate = rate_service.get_rate(currency, on)
    return ConversionResult(
        original_amount=amount,
        currency=currency,
        rate_date=on,
        rate=rate,
        reference_amount=to_reference(amount, rate),
    )
