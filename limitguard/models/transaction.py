from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import ACCOUNT_MAX_LENGTH, AMOUNT_MAX_DIGITS, ExpenseCategory
from .validators import currency_code, not_in_future, require_offset


class TransactionIn(BaseModel):
    """An expense as submitted; immutable once handed to the evaluator."""

    model_config = ConfigDict(frozen=True)

    account_from: str = Field(..., min_length=1, max_length=ACCOUNT_MAX_LENGTH)
    account_to: str = Field(..., min_length=1, max_length=ACCOUNT_MAX_LENGTH)
    currency_shortname: str
    amount: Decimal = Field(
        ..., gt=0, max_digits=AMOUNT_MAX_DIGITS, decimal_places=2
    )
    expense_category: ExpenseCategory
    occurred_at: datetime

    @field_validator("currency_shortname")
    @classmethod
    def valid_currency(cls, v: str) -> str:
        return currency_code(v)

    @field_validator("occurred_at")
    @classmethod
    def offset_and_not_future(cls, v: datetime) -> datetime:
        return not_in_future(require_offset(v))


class TransactionOut(TransactionIn):
    id: int
    usd_amount: Decimal
    limit_id: Optional[int] = None
    limit_sum: Decimal
    limit_exceeded: bool
    created_at: datetime


class ExceededTransactionOut(BaseModel):
    """Exceeded transaction together with the limit in force when it was evaluated."""

    id: int
    account_from: str
    account_to: str
    currency_shortname: str
    amount: Decimal
    expense_category: ExpenseCategory
    occurred_at: datetime
    usd_amount: Decimal
    limit_sum: Decimal
    limit_datetime: datetime
    limit_currency_shortname: str
