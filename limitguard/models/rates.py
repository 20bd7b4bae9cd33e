from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from .validators import currency_code


class RateRecord(BaseModel):
    """Quote-currency units per one unit of the reference currency on rate_date."""

    base_currency: str
    target_currency: str
    rate_date: date
    rate: Decimal = Field(..., gt=0)
    previous_rate: Optional[Decimal] = None
    source: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("base_currency", "target_currency")
    @classmethod
    def valid_currency(cls, v: str) -> str:
        return currency_code(v)

    @field_validator("target_currency")
    @classmethod
    def not_same(cls, v: str, info: ValidationInfo) -> str:
        if info.data.get("base_currency") == v:
            raise ValueError("target cannot equal base")
        return v
