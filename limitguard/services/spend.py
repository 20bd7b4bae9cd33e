from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from limitguard.models.constants import ExpenseCategory

if TYPE_CHECKING:  # pragma: no cover
    from limitguard.db.dal import Database


class SpendAggregator:
    """Cumulative normalized spend of a category over a half-open window."""

    def __init__(self, db: "Database"):
        self._db = db

    def cumulative(
        self, category: ExpenseCategory, window_start: datetime, before: datetime
    ) -> Decimal:
        # ``before`` is the evaluated transaction's own instant and stays excluded
        return self._db.sum_usd_amounts(category, window_start, before)
