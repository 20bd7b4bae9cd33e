from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional, TYPE_CHECKING

from limitguard.services.money import quantize_rate
from .base import RateSource
from .providers import RateProvider, make_rate_source

if TYPE_CHECKING:  # pragma: no cover
    from limitguard.core.config import Settings
    from limitguard.db.dal import Database

"""Rate cache and the cache-then-fetch rate service.

Purpose:
    Resolve the rate (quote units per reference unit) for a currency on a
    calendar day, touching the network only when the local store has nothing
    usable.

Design:
    - RateCache is a pure read over the rate store plus an idempotent write:
      exact (currency, day) first, else the most recent earlier day. No
      interpolation, no forward extrapolation.
    - RateService asks the cache and, when it comes back empty, the
      RateProvider, which fetches the series and writes the picked close
      back through RateCache.store().
    - The reference currency converts at 1 and never reaches either.
    - Nothing here holds a lock; callers resolve the rate before taking any
      per-category evaluation lock.
"""

logger = logging.getLogger("limitguard.rates")

ONE = Decimal("1")


class RateCache:
    def __init__(self, db: "Database", reference_currency: str = "USD"):
        self._db = db
        self.reference_currency = reference_currency.upper()

    def lookup(self, currency: str, on: date) -> Optional[Decimal]:
        currency = currency.upper()
        row = self._db.get_rate_exact(self.reference_currency, currency, on)
        if row is None:
            row = self._db.get_rate_latest_on_or_before(
                self.reference_currency, currency, on
            )
        if row is None:
            return None
        return Decimal(row["rate"])

    def store(
        self, currency: str, on: date, rate: Decimal, source: Optional[str] = None
    ) -> bool:
        """Record a rate; an existing row for the same key wins and False is returned."""
        return self._db.insert_rate(
            self.reference_currency, currency.upper(), on, quantize_rate(rate), source
        )


class RateService:
    """Cache-then-fetch rate lookups used by conversion and the rates endpoint."""

    def __init__(self, cache: RateCache, provider: RateProvider):
        self._cache = cache
        self._provider = provider

    @property
    def reference_currency(self) -> str:
        return self._cache.reference_currency

    def get_rate(self, currency: str, on: date) -> Decimal:
        currency = currency.upper()
        if currency == self.reference_currency:
            return ONE
        cached = self._cache.lookup(currency, on)
        if cached is not None:
            logger.debug("rate cache hit", extra={"currency": currency, "requested": on})
            return cached
        logger.debug("rate cache miss", extra={"currency": currency, "requested": on})
        return self._provider.resolve(currency, on)


def build_rate_service(
    db: "Database", settings: "Settings", source: Optional[RateSource] = None
) -> RateService:
    """Wire cache, provider and source from settings; ``source`` overrides the configured kind."""
    cache = RateCache(db, settings.reference_currency)
    provider = RateProvider(
        source or make_rate_source(settings),
        cache,
        settings.supported_currencies,
    )
    return RateService(cache, provider)
