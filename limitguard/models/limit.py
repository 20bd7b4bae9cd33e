from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .constants import AMOUNT_MAX_DIGITS, ExpenseCategory
from .validators import require_offset


class LimitIn(BaseModel):
    category: ExpenseCategory
    limit_sum: Decimal = Field(
        ..., gt=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=2
    )
    # Omitted -> the version takes effect at creation time
    effective_from: Optional[datetime] = None

    @field_validator("effective_from")
    @classmethod
    def has_offset(cls, v: Optional[datetime]) -> Optional[datetime]:
        return require_offset(v)


class LimitOut(BaseModel):
    id: int
    category: ExpenseCategory
    limit_sum: Decimal
    effective_from: datetime
    currency: str
    created_at: datetime
