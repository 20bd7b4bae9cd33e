"""Exceeded-transaction report.

Lists every transaction whose verdict was ``exceeded``, newest first, with the
limit that was in force when it was evaluated:
  limit_sum: value applied at evaluation time (stored with the verdict)
  limit_datetime: effective-from of the applied version, or for the default
                  limit the start of the transaction's month in its own offset
  limit_currency_shortname: currency of the applied version (reference currency
                            for the default)
"""

from __future__ import annotations
from decimal import Decimal
from typing import Any, Dict, List

from limitguard.db.dal import Database
from limitguard.models import ExceededTransactionOut
from limitguard.services.timeline import month_start, parse_instant


def _exceeded_row_to_out(
    row: Dict[str, Any], reference_currency: str
) -> ExceededTransactionOut:
    occurred_at = parse_instant(row["occurred_at"])
    if row.get("limit_effective_from"):
        limit_datetime = parse_instant(row["limit_effective_from"])
        limit_currency = row.get("limit_currency") or reference_currency
    else:
        limit_datetime = month_start(occurred_at)
        limit_currency = reference_currency
    return ExceededTransactionOut(
        id=int(row["id"]),
        account_from=row["account_from"],
        account_to=row["account_to"],
        currency_shortname=row["currency_shortname"],
        amount=Decimal(row["amount"]),
        expense_category=row["expense_category"],
        occurred_at=occurred_at,
        usd_amount=Decimal(row["usd_amount"]),
        limit_sum=Decimal(row["limit_sum"]),
        limit_datetime=limit_datetime,
        limit_currency_shortname=limit_currency,
    )


def collect_exceeded_transactions(
    db: Database, reference_currency: str = "USD"
) -> List[ExceededTransactionOut]:
    return [
        _exceeded_row_to_out(r, reference_currency)
        for r in db.list_exceeded_transactions()
    ]


__all__ = ["collect_exceeded_transactions"]
