from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Request

from limitguard.core.errors import UnsupportedCurrencyError
from limitguard.models import RateRecord
from limitguard.services.rates.cache_service import RateService

"""Rates router exposing the cache-then-fetch lookup the evaluator uses.

    - GET /api/rates/{currency}?date=YYYY-MM-DD -> quote units per reference unit

A miss in the local store triggers one external fetch whose result is cached
under the requested date; later calls for that date are served locally.
"""

router = APIRouter(prefix="/api/rates", tags=["rates"])


def get_rate_service(request: Request) -> RateService:
    return request.app.state.rate_service


@router.get(
    "/{currency}",
    response_model=RateRecord,
    response_model_exclude_none=True,
    summary="Rate applicable to a currency on a calendar day",
)
def get_rate(
    currency: str = Path(..., min_length=3, max_length=3, description="Quote currency"),
    on: Optional[date] = Query(
        None, alias="date", description="Calendar day (defaults to today)"
    ),
    svc: RateService = Depends(get_rate_service),
):
    code = currency.upper()
    if code == svc.reference_currency:
        # The reference currency is the base of every pair, never a quote
        raise UnsupportedCurrencyError(code)
    day = on or date.today()
    return RateRecord(
        base_currency=svc.reference_currency,
        target_currency=code,
        rate_date=day,
        rate=svc.get_rate(code, day),
    )
