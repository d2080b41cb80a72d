"""Utility helpers: error taxonomy, validation, calendars."""

from stratlab.utils.calendar import (
    rebalance_mask,
    is_month_end,
    is_week_end,
    is_quarter_end,
    REBALANCE_FREQUENCIES,
)
from stratlab.utils.validation import (
    StratlabValidationError,
    ConfigValidationError,
    UnknownStrategyError,
    DataIntegrityError,
    InsufficientDataError,
    validate_market_data,
)

__all__ = [
    "rebalance_mask", "is_month_end", "is_week_end",
    "is_quarter_end", "REBALANCE_FREQUENCIES",
    "StratlabValidationError", "ConfigValidationError", "UnknownStrategyError",
    "DataIntegrityError", "InsufficientDataError", "validate_market_data",
]
