"""Data Access Layer for rates, limit versions and evaluated transactions.

Responsibilities
----------------
- Rate store: exact and most-recent-at-or-before lookups per currency pair,
  insert-or-ignore on the (base, target, date) natural key.
- Limit store: append-only inserts (a second version for the same category and
  instant is a conflict) and point-in-time queries by category.
- Transaction store: verdict inserts and the half-open category sum used for
  limit windows, plus the exceeded listing.

Every public method opens its own short-lived connection; none of them hold a
connection across calls.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
import sqlite3
from typing import Any, Dict, Iterator, List, Optional

from limitguard.core.errors import DuplicateLimitVersionError
from limitguard.models import TransactionIn
from limitguard.models.constants import ExpenseCategory
from limitguard.services.money import ZERO, round2
from limitguard.services.timeline import utc_key

UTC_NOW_SQL = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"


def _category_value(category: ExpenseCategory | str) -> str:
    return category.value if isinstance(category, ExpenseCategory) else str(category)


class Database:
    def __init__(self, db_path: Path, busy_timeout: float = 5.0):
        self.db_path = db_path
        self.busy_timeout = busy_timeout

    # ------------------------------------------------------------------
    # Connection helpers
    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(sql, params)
            row = cur.fetchone()
            return dict(row) if row else None

    # ------------------------------------------------------------------
    # Exchange rates
    def get_rate_exact(
        self, base_currency: str, target_currency: str, rate_date: date
    ) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            """
            SELECT * FROM exchange_rates
            WHERE base_currency = ? AND target_currency = ? AND rate_date = ?
            ORDER BY id
            LIMIT 1
            """,
            (base_currency, target_currency, rate_date.isoformat()),
        )

    def get_rate_latest_on_or_before(
        self, base_currency: str, target_currency: str, rate_date: date
    ) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            """
            SELECT * FROM exchange_rates
            WHERE base_currency = ? AND target_currency = ? AND rate_date <= ?
            ORDER BY rate_date DESC, id DESC
            LIMIT 1
            """,
            (base_currency, target_currency, rate_date.isoformat()),
        )

    def insert_rate(
        self,
        base_currency: str,
        target_currency: str,
        rate_date: date,
        rate: Decimal,
        source: Optional[str] = None,
    ) -> bool:
        """Insert a rate row; returns False when the natural key already exists."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT OR IGNORE INTO exchange_rates (
                    base_currency, target_currency, rate_date, rate, source,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ({UTC_NOW_SQL}), ({UTC_NOW_SQL}))
                """,
                (base_currency, target_currency, rate_date.isoformat(), str(rate), source),
            )
            return cur.rowcount == 1

    # ------------------------------------------------------------------
    # Limit versions
    def insert_limit(
        self,
        category: ExpenseCategory,
        limit_sum: Decimal,
        effective_from: datetime,
        currency: str,
    ) -> int:
        try:
            with self._connect() as conn:
                cur = conn.cursor()
                cur.execute(
                    f"""
                    INSERT INTO limits (
                        category, limit_sum, effective_from, effective_from_utc, currency,
                        created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ({UTC_NOW_SQL}), ({UTC_NOW_SQL}))
                    """,
                    (
                        _category_value(category),
                        str(round2(limit_sum)),
                        effective_from.isoformat(),
                        utc_key(effective_from),
                        currency,
                    ),
                )
                return int(cur.lastrowid)
        except sqlite3.IntegrityError as e:
            raise DuplicateLimitVersionError(
                f"A {_category_value(category)} limit already takes effect at "
                f"{effective_from.isoformat()}"
            ) from e

    def get_limit(self, limit_id: int) -> Optional[Dict[str, Any]]:
        return self._fetch_one("SELECT * FROM limits WHERE id = ?", (limit_id,))

    def list_limits(self) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                "SELECT * FROM limits ORDER BY effective_from_utc DESC, id DESC"
            )
            return [dict(r) for r in cur.fetchall()]

    def find_limit_at_or_before(
        self, category: ExpenseCategory, instant: datetime
    ) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            """
            SELECT * FROM limits
            WHERE category = ? AND effective_from_utc <= ?
            ORDER BY effective_from_utc DESC
            LIMIT 1
            """,
            (_category_value(category), utc_key(instant)),
        )

    def find_limit_before(
        self, category: ExpenseCategory, instant: datetime
    ) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            """
            SELECT * FROM limits
            WHERE category = ? AND effective_from_utc < ?
            ORDER BY effective_from_utc DESC
            LIMIT 1
            """,
            (_category_value(category), utc_key(instant)),
        )

    # ------------------------------------------------------------------
    # Transactions
    def insert_transaction(
        self,
        tx: TransactionIn,
        usd_amount: Decimal,
        limit_id: Optional[int],
        limit_sum: Decimal,
        limit_exceeded: bool,
    ) -> int:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                f"""
                INSERT INTO transactions (
                    account_from, account_to, currency_shortname, amount, expense_category,
                    occurred_at, occurred_at_utc, usd_amount, limit_id, limit_sum,
                    limit_exceeded, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ({UTC_NOW_SQL}), ({UTC_NOW_SQL}))
                """,
                (
                    tx.account_from,
                    tx.account_to,
                    tx.currency_shortname,
                    str(round2(tx.amount)),
                    _category_value(tx.expense_category),
                    tx.occurred_at.isoformat(),
                    utc_key(tx.occurred_at),
                    str(round2(usd_amount)),
                    limit_id,
                    str(round2(limit_sum)),
                    1 if limit_exceeded else 0,
                ),
            )
            return int(cur.lastrowid)

    def get_transaction(self, transaction_id: int) -> Optional[Dict[str, Any]]:
        return self._fetch_one(
            "SELECT * FROM transactions WHERE id = ?", (transaction_id,)
        )

    def sum_usd_amounts(
        self, category: ExpenseCategory, start: datetime, end: datetime
    ) -> Decimal:
        """Sum normalized amounts for ``category`` with start <= instant < end."""
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT usd_amount FROM transactions
                WHERE expense_category = ?
                  AND occurred_at_utc >= ?
                  AND occurred_at_utc < ?
                """,
                (_category_value(category), utc_key(start), utc_key(end)),
            )
            total = sum((Decimal(r[0]) for r in cur.fetchall()), ZERO)
            return round2(total)

    def list_exceeded_transactions(self) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT t.*,
                       l.effective_from AS limit_effective_from,
                       l.currency AS limit_currency
                FROM transactions t
                LEFT JOIN limits l ON l.id = t.limit_id
                WHERE t.limit_exceeded = 1
                ORDER BY t.occurred_at_utc DESC, t.id DESC
                """
            )
            return [dict(r) for r in cur.fetchall()]


__all__ = ["Database"]
