import http.client
from datetime import date
from decimal import Decimal

import pytest

from limitguard.core.config import Settings
from limitguard.core.errors import RateProviderError
from limitguard.services import http_client
from limitguard.services.http_client import HttpError
from limitguard.services.rates import providers
from limitguard.services.rates.providers import (
    AlphaVantageRateSource,
    StaticRateSource,
    make_rate_source,
    parse_daily_closes,
)

SAMPLE_PAYLOAD = {
    "Meta Data": {"1. Information": "Forex Daily Prices (open, high, low, close)"},
    "Time Series FX (Daily)": {
        "2025-03-05": {"1. open": "504.1", "4. close": "505.25"},
        "2025-03-04": {"1. open": "501.0", "4. close": "502.00"},
        "2025-03-03": {"4. close": "not-a-number"},
        "bad-date": {"4. close": "1.0"},
    },
}


def _source() -> AlphaVantageRateSource:
    return AlphaVantageRateSource("https://av.test/", "key123", "usd", retries=0)


def test_fetch_builds_fx_daily_request(monkeypatch):
    captured = {}

    def fake_get_json(url, params=None, **kwargs):
        captured["url"] = url
        captured["params"] = params
        return SAMPLE_PAYLOAD

    monkeypatch.setattr(providers, "get_json", fake_get_json)
    series = _source().fetch_daily_closes("kzt")

    assert captured["url"] == "https://av.test/query"
    assert captured["params"] == {
        "function": "FX_DAILY",
        "from_symbol": "USD",
        "to_symbol": "KZT",
        "apikey": "key123",
    }
    assert series == {
        date(2025, 3, 5): Decimal("505.25"),
        date(2025, 3, 4): Decimal("502.00"),
    }


@pytest.mark.parametrize(
    "payload",
    [
        {"Error Message": "Invalid API call."},
        {"Note": "Thank you for using Alpha Vantage! Our standard API call frequency is 5 calls per minute."},
        {"Meta Data": {}},
        {"Time Series FX (Daily)": {}},
        ["not", "a", "dict"],
    ],
)
def test_fetch_error_payloads_raise_provider_error(monkeypatch, payload):
    monkeypatch.setattr(providers, "get_json", lambda *a, **kw: payload)
    with pytest.raises(RateProviderError):
        _source().fetch_daily_closes("KZT")


def test_transport_failure_becomes_provider_error(monkeypatch):
    def boom(*a, **kw):
        raise HttpError("HTTP 503 for https://av.test/query", status=503)

    monkeypatch.setattr(providers, "get_json", boom)
    with pytest.raises(RateProviderError):
        _source().fetch_daily_closes("KZT")


def test_truncated_response_becomes_provider_error(monkeypatch):
    class _Truncated:
        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def read(self):
            raise http.client.IncompleteRead(b"{", 10)

    monkeypatch.setattr(
        http_client.urllib.request, "urlopen", lambda request, timeout=None: _Truncated()
    )
    with pytest.raises(RateProviderError):
        _source().fetch_daily_closes("KZT")


def test_parse_daily_closes_drops_non_positive():
    series = parse_daily_closes(
        {"2025-03-01": {"4. close": "0"}, "2025-03-02": {"4. close": "-3"}}
    )
    assert series == {}


def test_make_rate_source_by_kind(tmp_path):
    static = Settings(data_dir=tmp_path, rate_source="static", _env_file=None)
    assert isinstance(make_rate_source(static), StaticRateSource)
    remote = Settings(data_dir=tmp_path, rate_source="alphavantage", _env_file=None)
    assert isinstance(make_rate_source(remote), AlphaVantageRateSource)


def test_static_source_uses_configured_day(tmp_path):
    s = Settings(
        data_dir=tmp_path,
        static_rates={"KZT": Decimal("470.5")},
        static_rates_as_of=date(2024, 1, 1),
        _env_file=None,
    )
    source = StaticRateSource.from_settings(s)
    assert source.fetch_daily_closes("kzt") == {date(2024, 1, 1): Decimal("470.5")}
    assert source.fetch_daily_closes("RUB") == {}
