"""Domain constants and enumerations for validation."""

from enum import Enum
from typing import FrozenSet


class ExpenseCategory(str, Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"


REFERENCE_CURRENCY = "USD"
# Defaults only; the live allow-list comes from Settings.supported_currencies
SUPPORTED_CURRENCIES: FrozenSet[str] = frozenset({"KZT", "RUB"})

ACCOUNT_MAX_LENGTH = 20
AMOUNT_MAX_DIGITS = 15
