from __future__ import annotations

"""Rate source abstraction.

A source is the transport half of rate resolution: it returns the daily
closing series between the reference currency and one quote currency. Picking
the usable point and caching it happens in ``RateProvider``.
"""
from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import Dict, Protocol


class RateSource(ABC):
    name: str = "abstract"

    @abstractmethod
    def fetch_daily_closes(self, currency: str) -> Dict[date, Decimal]:
        """Return {day: quote units per 1 reference unit} for ``currency``."""
        raise NotImplementedError


class SupportsRateLookup(Protocol):
    def get_rate(self, currency: str, on: date) -> Decimal: ...
