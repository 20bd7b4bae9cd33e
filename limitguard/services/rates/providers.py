from __future__ import annotations

"""Concrete rate sources, source factory and the fetch-and-cache provider.

'alphavantage' queries the FX_DAILY time series over HTTP. 'static' serves
fixed in-memory series so the service and its tests can run offline.

``RateProvider`` is only consulted after the rate cache came back empty: it
validates the currency, fetches the series, picks the usable close and writes
it to the cache under the requested date before returning it.
"""
import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Mapping, Tuple

from limitguard.core.errors import (
    NoUsableRateError,
    RateProviderError,
    UnsupportedCurrencyError,
)
from limitguard.services.http_client import HttpError, get_json
from limitguard.services.money import quantize_rate
from .base import RateSource

if TYPE_CHECKING:  # pragma: no cover
    from limitguard.core.config import Settings
    from .cache_service import RateCache

logger = logging.getLogger("limitguard.rates")

SERIES_KEY = "Time Series FX (Daily)"
CLOSE_KEY = "4. close"
# Alpha Vantage reports failures inside a 200 payload; 'Note' is its rate-limit notice
_PAYLOAD_ERROR_KEYS = ("Error Message", "Note", "Information")


class StaticRateSource(RateSource):
    name = "static"

    def __init__(self, series: Mapping[str, Mapping[date, Any]]):
        self._series: Dict[str, Dict[date, Decimal]] = {
            currency.upper(): {day: Decimal(str(v)) for day, v in points.items()}
            for currency, points in series.items()
        }

    @classmethod
    def from_settings(cls, settings: "Settings") -> "StaticRateSource":
        return cls(
            {
                currency: {settings.static_rates_as_of: rate}
                for currency, rate in settings.static_rates.items()
            }
        )

    def fetch_daily_closes(self, currency: str) -> Dict[date, Decimal]:  # type: ignore[override]
        return dict(self._series.get(currency.upper(), {}))


class AlphaVantageRateSource(RateSource):
    name = "alphavantage.co"

    def __init__(
        self,
        base_url: str,
        api_key: str,
        reference_currency: str = "USD",
        *,
        timeout: float = 5.0,
        retries: int = 2,
        backoff: float = 0.5,
    ):
        self._query_url = base_url.rstrip("/") + "/query"
        self._api_key = api_key
        self.reference_currency = reference_currency.upper()
        self._timeout = timeout
        self._retries = retries
        self._backoff = backoff

    def fetch_daily_closes(self, currency: str) -> Dict[date, Decimal]:  # type: ignore[override]
        pair = f"{self.reference_currency}/{currency.upper()}"
        params = {
            "function": "FX_DAILY",
            "from_symbol": self.reference_currency,
            "to_symbol": currency.upper(),
            "apikey": self._api_key,
        }
        try:
            payload = get_json(
                self._query_url,
                params,
                timeout=self._timeout,
                retries=self._retries,
                backoff=self._backoff,
            )
        except HttpError as e:
            raise RateProviderError(f"Alpha Vantage request failed for {pair}: {e}") from e
        if not isinstance(payload, dict):
            raise RateProviderError(f"Unexpected Alpha Vantage payload for {pair}")
        for key in _PAYLOAD_ERROR_KEYS:
            if key in payload:
                raise RateProviderError(f"Alpha Vantage API error: {payload[key]}")
        raw_series = payload.get(SERIES_KEY)
        if not isinstance(raw_series, dict) or not raw_series:
            raise RateProviderError(f"No time series data for {pair}")
        return parse_daily_closes(raw_series)


def parse_daily_closes(raw_series: Mapping[str, Any]) -> Dict[date, Decimal]:
    """Keep entries with an ISO date key and a positive '4. close' value."""
    series: Dict[date, Decimal] = {}
    for day_raw, values in raw_series.items():
        try:
            day = date.fromisoformat(day_raw)
            close = Decimal(str(values[CLOSE_KEY]))
        except (ValueError, TypeError, KeyError, InvalidOperation):
            logger.debug("skipping malformed series entry", extra={"entry": day_raw})
            continue
        if not close.is_finite() or close <= 0:
            continue
        series[day] = close
    return series


def pick_close(series: Mapping[date, Decimal], on: date) -> Tuple[date, Decimal]:
    """Exact day if present, else the latest day before ``on``. Never extrapolates forward."""
    if on in series:
        return on, series[on]
    preceding = [day for day in series if day <= on]
    if not preceding:
        raise NoUsableRateError(f"No suitable close rate found for or before {on.isoformat()}")
    best = max(preceding)
    return best, series[best]


_SOURCE_REGISTRY: Dict[str, Callable[["Settings"], RateSource]] = {
    "static": StaticRateSource.from_settings,
    "alphavantage": lambda s: AlphaVantageRateSource(
        s.alphavantage_base_url,
        s.alphavantage_api_key,
        s.reference_currency,
        timeout=s.http_timeout_seconds,
        retries=s.http_retries,
        backoff=s.http_backoff_seconds,
    ),
}


def make_rate_source(settings: "Settings") -> RateSource:
    factory = _SOURCE_REGISTRY.get(settings.rate_source)
    if not factory:
        raise ValueError(f"Unknown rate source kind '{settings.rate_source}'")
    return factory(settings)


class RateProvider:
    def __init__(
        self,
        source: RateSource,
        cache: "RateCache",
        supported_currencies: Iterable[str],
    ):
        self._source = source
        self._cache = cache
        self._supported = frozenset(c.upper() for c in supported_currencies)

    @property
    def supported_currencies(self) -> frozenset:
        return self._supported

    def resolve(self, currency: str, on: date) -> Decimal:
        currency = currency.upper()
        if currency not in self._supported:
            raise UnsupportedCurrencyError(currency)

        pair = f"{self._cache.reference_currency}/{currency}"
        try:
            series = self._source.fetch_daily_closes(currency)
        except RateProviderError as e:
            logger.warning("rate fetch failed", extra={"pair": pair, "detail": str(e)})
            raise
        if not series:
            raise RateProviderError(f"Empty daily series for {pair}")

        matched_on, close = pick_close(series, on)
        rate = quantize_rate(close)
        if matched_on != on:
            logger.info(
                "using closest preceding close",
                extra={"pair": pair, "requested": on, "matched": matched_on},
            )

        # Keyed by the requested day so repeat lookups for it stay local
        inserted = self._cache.store(currency, on, rate, source=self._source.name)
        logger.info(
            "rate fetched",
            extra={"pair": pair, "requested": on, "rate": rate, "inserted": inserted},
        )
        return rate
