"""Shared fixtures.

Every test gets its own SQLite file under ``tmp_path`` and a rate source that
never touches the network: either the configured static series or a stub that
counts how often it was asked.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient

from limitguard.core.config import Settings
from limitguard.db.dal import Database
from limitguard.db.schema import init_db
from limitguard.factory import create_app
from limitguard.models import ExpenseCategory, TransactionIn
from limitguard.services.rates.base import RateSource
from limitguard.services.rates.cache_service import RateService, build_rate_service

UTC = timezone.utc
ALMATY = timezone(timedelta(hours=5))


class CountingRateSource(RateSource):
    """In-memory series that records each fetch."""

    name = "stub"

    def __init__(self, series: Dict[str, Dict[date, Decimal]]):
        self.series = series
        self.calls: List[str] = []

    def fetch_daily_closes(self, currency: str) -> Dict[date, Decimal]:
        self.calls.append(currency)
        return dict(self.series.get(currency, {}))


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    s = Settings(
        data_dir=tmp_path,
        db_filename="test.sqlite3",
        rate_source="static",
        _env_file=None,
    )
    s.init_post_load()
    return s


@pytest.fixture()
def db(settings: Settings) -> Database:
    init_db(settings.db_path)
    return Database(settings.db_path)


@pytest.fixture()
def rate_source() -> CountingRateSource:
    return CountingRateSource(
        {
            "KZT": {
                date(2025, 3, 3): Decimal("500.00"),
                date(2025, 3, 5): Decimal("505.00"),
            },
            "RUB": {date(2025, 3, 3): Decimal("90.00")},
        }
    )


@pytest.fixture()
def rate_service(
    db: Database, settings: Settings, rate_source: CountingRateSource
) -> RateService:
    return build_rate_service(db, settings, rate_source)


@pytest.fixture()
def client(settings: Settings, rate_source: CountingRateSource) -> TestClient:
    app = create_app(settings_override=settings, rate_source=rate_source)
    return TestClient(app)


def make_tx(
    amount: str,
    occurred_at: datetime,
    currency: str = "KZT",
    category: ExpenseCategory = ExpenseCategory.PRODUCT,
) -> TransactionIn:
    return TransactionIn(
        account_from="0000000123",
        account_to="9999999999",
        currency_shortname=currency,
        amount=Decimal(amount),
        expense_category=category,
        occurred_at=occurred_at,
    )
