"""Database schema DDL definitions and initialization utilities.

Tables:
  - exchange_rates: cached daily closes (quote units per reference unit), one row
    per (base, target, requested date)
  - limits: append-only limit versions per category, unique per effective-from instant
  - transactions: evaluated expenses with their verdict (normalized amount, applied
    limit, exceeded flag)

Decimal values are stored as TEXT to keep them exact. Instants are stored twice:
as given (ISO 8601 with the submitter's offset) and as a sortable UTC key used
by every range or ordering query.
"""

from __future__ import annotations
import sqlite3
from typing import Sequence
from pathlib import Path

from limitguard.models.constants import ExpenseCategory

BASIC_UTC_NOW = "strftime('%Y-%m-%dT%H:%M:%fZ','now')"
_CATEGORY_VALUES = ",".join(f"'{c.value}'" for c in ExpenseCategory)

EXCHANGE_RATES_DDL = f"""
CREATE TABLE IF NOT EXISTS exchange_rates (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    base_currency TEXT NOT NULL, -- reference currency, e.g. 'USD'
    target_currency TEXT NOT NULL, -- 'KZT', 'RUB'
    rate_date TEXT NOT NULL, -- ISO date (YYYY-MM-DD) the rate was requested for
    rate TEXT NOT NULL, -- decimal, up to 8 fractional digits
    previous_rate TEXT, -- bookkeeping only; never written by the evaluator
    source TEXT,
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    UNIQUE(base_currency, target_currency, rate_date)
);
"""

LIMITS_DDL = f"""
CREATE TABLE IF NOT EXISTS limits (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    category TEXT NOT NULL CHECK (category IN ({_CATEGORY_VALUES})),
    limit_sum TEXT NOT NULL, -- decimal, 2 fractional digits, reference currency
    effective_from TEXT NOT NULL, -- ISO timestamp with offset
    effective_from_utc TEXT NOT NULL, -- sortable UTC key
    currency TEXT NOT NULL DEFAULT 'USD',
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    UNIQUE(category, effective_from_utc)
);
"""

TRANSACTIONS_DDL = f"""
CREATE TABLE IF NOT EXISTS transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    account_from TEXT NOT NULL,
    account_to TEXT NOT NULL,
    currency_shortname TEXT NOT NULL,
    amount TEXT NOT NULL,
    expense_category TEXT NOT NULL CHECK (expense_category IN ({_CATEGORY_VALUES})),
    occurred_at TEXT NOT NULL, -- ISO timestamp with offset
    occurred_at_utc TEXT NOT NULL, -- sortable UTC key
    usd_amount TEXT NOT NULL,
    limit_id INTEGER, -- NULL when the default limit applied
    limit_sum TEXT NOT NULL, -- limit value applied at evaluation time
    limit_exceeded INTEGER NOT NULL DEFAULT 0 CHECK (limit_exceeded IN (0,1)),
    created_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    updated_at TEXT NOT NULL DEFAULT ({BASIC_UTC_NOW}),
    FOREIGN KEY (limit_id) REFERENCES limits(id)
);
"""

RATES_LOOKUP_INDEX_DDL = """
CREATE INDEX IF NOT EXISTS idx_rates_pair_date
ON exchange_rates(base_currency, target_currency, rate_date);
"""
LIMITS_CATEGORY_INDEX_DDL = """
CREATE INDEX IF NOT EXISTS idx_limits_category_from
ON limits(category, effective_from_utc);
"""
TRANSACTIONS_WINDOW_INDEX_DDL = """
CREATE INDEX IF NOT EXISTS idx_transactions_category_time
ON transactions(expense_category, occurred_at_utc);
"""
TRANSACTIONS_EXCEEDED_INDEX_DDL = """
CREATE INDEX IF NOT EXISTS idx_transactions_exceeded
ON transactions(occurred_at_utc)
WHERE limit_exceeded = 1;
"""

DDL_ORDER: Sequence[str] = (
    EXCHANGE_RATES_DDL,
    LIMITS_DDL,
    TRANSACTIONS_DDL,
    RATES_LOOKUP_INDEX_DDL,
    LIMITS_CATEGORY_INDEX_DDL,
    TRANSACTIONS_WINDOW_INDEX_DDL,
    TRANSACTIONS_EXCEEDED_INDEX_DDL,
)


def init_db(path: Path) -> None:
    """Create all tables and indexes idempotently.

    Parameters
    ----------
    path: Path to SQLite database file.
    """
    conn = sqlite3.connect(path)
    try:
        cur = conn.cursor()
        for ddl in DDL_ORDER:
            cur.execute(ddl)
        conn.commit()
    finally:
        conn.close()
