from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from limitguard.services.money import quantize_rate, round2, to_reference
from limitguard.services.timeline import month_start, parse_instant, utc_key


def test_small_amount_rounds_to_cents():
    assert to_reference(Decimal("10.00"), Decimal("500")) == Decimal("0.02")


def test_half_cent_rounds_up():
    # 0.125 sits exactly on the half-cent boundary
    assert to_reference(Decimal("1.25"), Decimal("10")) == Decimal("0.13")
    assert round2(Decimal("2.675")) == Decimal("2.68")


def test_division_is_exact_before_rounding():
    assert to_reference(Decimal("750000.00"), Decimal("500.00")) == Decimal("1500.00")


def test_non_positive_rate_rejected():
    with pytest.raises(ValueError):
        to_reference(Decimal("1.00"), Decimal("0"))


def test_rate_keeps_eight_places():
    assert quantize_rate(Decimal("471.123456789")) == Decimal("471.12345679")


def test_month_start_keeps_offset():
    tz = timezone(timedelta(hours=5))
    instant = datetime(2025, 3, 1, 2, 30, tzinfo=tz)
    start = month_start(instant)
    assert start == datetime(2025, 3, 1, 0, 0, tzinfo=tz)
    assert start.utcoffset() == timedelta(hours=5)


def test_month_start_rejects_naive():
    with pytest.raises(ValueError):
        month_start(datetime(2025, 3, 1))


def test_utc_key_orders_across_offsets():
    earlier = datetime(2025, 3, 1, 4, 0, tzinfo=timezone(timedelta(hours=5)))  # 23:00Z prev day
    later = datetime(2025, 3, 1, 0, 0, tzinfo=timezone.utc)
    assert utc_key(earlier) < utc_key(later)
    assert utc_key(later) == "2025-03-01T00:00:00.000000Z"


def test_parse_instant_accepts_z_suffix():
    assert parse_instant("2025-03-01T10:00:00.123Z") == datetime(
        2025, 3, 1, 10, 0, 0, 123000, tzinfo=timezone.utc
    )


def test_utc_key_is_fixed_width_for_early_years():
    ancient = datetime(999, 6, 1, tzinfo=timezone.utc)
    modern = datetime(2025, 1, 1, tzinfo=timezone.utc)
    assert utc_key(ancient) == "0999-06-01T00:00:00.000000Z"
    assert len(utc_key(ancient)) == len(utc_key(modern))
    assert utc_key(ancient) < utc_key(modern)
