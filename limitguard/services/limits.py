"""Limit versions: append-only history and point-in-time resolution.

A category's limits form a log ordered by effective-from instant. Creating a
limit appends a version; nothing is edited or deleted. Which value governs a
transaction is decided by ``LimitResolver.applicable`` at the transaction's
exact instant.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from limitguard.models import LimitIn
from limitguard.models.constants import ExpenseCategory
from limitguard.services.timeline import month_start, parse_instant

if TYPE_CHECKING:  # pragma: no cover
    from limitguard.db.dal import Database

logger = logging.getLogger("limitguard.limits")


@dataclass(frozen=True)
class LimitVersion:
    id: int
    category: ExpenseCategory
    limit_sum: Decimal
    effective_from: datetime
    currency: str
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "LimitVersion":
        return cls(
            id=int(row["id"]),
            category=ExpenseCategory(row["category"]),
            limit_sum=Decimal(row["limit_sum"]),
            effective_from=parse_instant(row["effective_from"]),
            currency=row["currency"],
            created_at=row.get("created_at"),
        )


class LimitResolver:
    def __init__(self, db: "Database"):
        self._db = db

    def applicable(
        self, category: ExpenseCategory, instant: datetime
    ) -> Tuple[Optional[LimitVersion], datetime]:
        """Return the version governing ``instant`` and the start of its spend window.

        The version is the latest one whose effective-from is at or before
        ``instant``. The window starts at the effective-from of the version
        strictly before that one; when the found version is the first of its
        category the window starts at the month start of its own
        effective-from. Without any version the window is the month
        containing ``instant``, in ``instant``'s offset.
        """
        row = self._db.find_limit_at_or_before(category, instant)
        if row is None:
            return None, month_start(instant)

        found = LimitVersion.from_row(row)
        previous = self._db.find_limit_before(category, found.effective_from)
        if previous is not None:
            return found, parse_instant(previous["effective_from"])
        return found, month_start(found.effective_from)


class LimitService:
    def __init__(self, db: "Database", reference_currency: str = "USD"):
        self._db = db
        self._currency = reference_currency

    def create_limit(
        self, payload: LimitIn, now: Optional[datetime] = None
    ) -> LimitVersion:
        """Append a version; DuplicateLimitVersionError if the category already has one at that instant."""
        effective_from = payload.effective_from or now or datetime.now(timezone.utc)
        limit_id = self._db.insert_limit(
            payload.category, payload.limit_sum, effective_from, self._currency
        )
        logger.info(
            "limit version created",
            extra={
                "limit_id": limit_id,
                "category": payload.category.value,
                "limit_sum": payload.limit_sum,
                "effective_from": effective_from,
            },
        )
        return LimitVersion.from_row(self._db.get_limit(limit_id))

    def list_limits(self) -> List[LimitVersion]:
        return [LimitVersion.from_row(r) for r in self._db.list_limits()]
