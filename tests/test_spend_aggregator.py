from datetime import datetime, timedelta
from decimal import Decimal

from limitguard.models import ExpenseCategory
from limitguard.services.spend import SpendAggregator

from conftest import UTC, make_tx

PRODUCT = ExpenseCategory.PRODUCT
START = datetime(2025, 3, 1, tzinfo=UTC)


def _record(db, amount: str, when: datetime, category=PRODUCT):
    tx = make_tx(amount, when, currency="USD", category=category)
    db.insert_transaction(
        tx,
        usd_amount=Decimal(amount),
        limit_id=None,
        limit_sum=Decimal("1000.00"),
        limit_exceeded=False,
    )


def test_empty_window_is_zero(db):
    total = SpendAggregator(db).cumulative(PRODUCT, START, START + timedelta(days=5))
    assert total == Decimal("0.00")


def test_window_is_half_open(db):
    _record(db, "10.00", START)  # included: at window start
    _record(db, "20.00", START + timedelta(days=1))
    _record(db, "40.00", START + timedelta(days=2))  # excluded: at the end bound
    _record(db, "80.00", START - timedelta(microseconds=1))  # before the window

    total = SpendAggregator(db).cumulative(PRODUCT, START, START + timedelta(days=2))
    assert total == Decimal("30.00")


def test_cumulative_never_decreases_as_bound_moves(db):
    for day, amount in enumerate(["5.00", "0.01", "7.25"]):
        _record(db, amount, START + timedelta(days=day))
    agg = SpendAggregator(db)
    totals = [agg.cumulative(PRODUCT, START, START + timedelta(days=d)) for d in range(5)]
    assert totals == sorted(totals)
    assert totals[-1] == Decimal("12.26")


def test_other_categories_are_ignored(db):
    _record(db, "10.00", START, category=ExpenseCategory.SERVICE)
    total = SpendAggregator(db).cumulative(PRODUCT, START, START + timedelta(days=1))
    assert total == Decimal("0.00")
