"""Limit evaluation for a single submitted transaction.

Flow for ``LimitEvaluator.evaluate``:
  1. Resolve the rate for the transaction's calendar day (cache, else the
     external source, which also caches it). This may block on the network,
     so it runs before any lock is taken.
  2. Normalize the amount to the reference currency (half-up, cents).
  3. Under the category lock: resolve the governing limit version and its
     window start, sum prior spend in [window start, transaction instant),
     compare, and persist the transaction with its verdict.

Any failure in step 1 aborts before anything is written. Once persisted a
verdict is history; later limit versions never re-evaluate it.

Concurrency: with ``serialize`` on, evaluations of one category are serialized
inside this process so each one sees the spend of those committed before it.
Separate processes sharing the database only get a snapshot consistent at
evaluation time.
"""

from __future__ import annotations

import logging
import threading
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import ContextManager, Dict, Optional, TYPE_CHECKING

from limitguard.models import TransactionIn
from limitguard.models.constants import ExpenseCategory
from limitguard.services.limits import LimitResolver, LimitVersion
from limitguard.services.money import round2
from limitguard.services.rates.base import SupportsRateLookup
from limitguard.services.rates.conversion import compute_reference_equivalent
from limitguard.services.spend import SpendAggregator

if TYPE_CHECKING:  # pragma: no cover
    from limitguard.db.dal import Database

logger = logging.getLogger("limitguard.evaluator")


@dataclass(frozen=True)
class Verdict:
    transaction_id: int
    rate: Decimal
    usd_amount: Decimal
    limit: Optional[LimitVersion]  # None -> default limit applied
    limit_sum: Decimal
    window_start: datetime
    prior_spend: Decimal
    exceeded: bool


class LimitEvaluator:
    def __init__(
        self,
        db: "Database",
        rate_service: SupportsRateLookup,
        default_limit: Decimal,
        *,
        resolver: Optional[LimitResolver] = None,
        aggregator: Optional[SpendAggregator] = None,
        serialize: bool = True,
    ):
        self._db = db
        self._rates = rate_service
        self._default_limit = round2(default_limit)
        self._resolver = resolver or LimitResolver(db)
        self._aggregator = aggregator or SpendAggregator(db)
        self._serialize = serialize
        self._locks: Dict[ExpenseCategory, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def default_limit(self) -> Decimal:
        return self._default_limit

    def _category_lock(self, category: ExpenseCategory) -> ContextManager:
        if not self._serialize:
            return nullcontext()
        with self._locks_guard:
            return self._locks.setdefault(category, threading.Lock())

    def evaluate(self, tx: TransactionIn) -> Verdict:
        conversion = compute_reference_equivalent(
            tx.amount, tx.currency_shortname, tx.occurred_at.date(), self._rates
        )
        usd_amount = conversion.reference_amount

        with self._category_lock(tx.expense_category):
            limit, window_start = self._resolver.applicable(
                tx.expense_category, tx.occurred_at
            )
            limit_sum = limit.limit_sum if limit is not None else self._default_limit
            prior_spend = self._aggregator.cumulative(
                tx.expense_category, window_start, tx.occurred_at
            )
            # Reaching the limit exactly is still within it
            exceeded = (prior_spend + usd_amount) > limit_sum

            transaction_id = self._db.insert_transaction(
                tx,
                usd_amount=usd_amount,
                limit_id=limit.id if limit is not None else None,
                limit_sum=limit_sum,
                limit_exceeded=exceeded,
            )

        logger.info(
            "transaction evaluated",
            extra={
                "transaction_id": transaction_id,
                "category": tx.expense_category.value,
                "currency": conversion.currency,
                "rate": conversion.rate,
                "usd_amount": usd_amount,
                "limit_id": limit.id if limit is not None else None,
                "limit_sum": limit_sum,
                "window_start": window_start,
                "prior_spend": prior_spend,
                "exceeded": exceeded,
            },
        )
        return Verdict(
            transaction_id=transaction_id,
            rate=conversion.rate,
            usd_amount=usd_amount,
            limit=limit,
            limit_sum=limit_sum,
            window_start=window_start,
            prior_spend=prior_spend,
            exceeded=exceeded,
        )
