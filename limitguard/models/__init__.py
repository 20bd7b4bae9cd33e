"""Pydantic domain models for the expense limit tracker."""

from .constants import (
    ExpenseCategory,
    REFERENCE_CURRENCY,
    SUPPORTED_CURRENCIES,
)  # re-export
from .transaction import TransactionIn, TransactionOut, ExceededTransactionOut
from .limit import LimitIn, LimitOut
from .rates import RateRecord

__all__ = [
    "ExpenseCategory",
    "REFERENCE_CURRENCY",
    "SUPPORTED_CURRENCIES",
    "TransactionIn",
    "TransactionOut",
    "ExceededTransactionOut",
    "LimitIn",
    "LimitOut",
    "RateRecord",
]
