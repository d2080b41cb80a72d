"""Annualized dispersion measures of step-return sequences."""

from __future__ import annotations

import numpy as np

from stratlab.utils.validation import as_float_array

TRADING_DAYS = 252


def volatility(returns, periods_per_year: int = TRADING_DAYS) -> float:
    """Population standard deviation of *returns*, annualized by ``sqrt(252)``.

    Returns 0 for empty or single-element input.
    """
    r = as_float_array(returns, "returns")
    if len(r) < 2:
        return 0.0
    return float(np.sqrt(r.var() * periods_per_year))


def downside_deviation(returns, periods_per_year: int = TRADING_DAYS) -> float:
    """Annualized downside deviation ``sqrt(sum(r**2 for r < 0) / n * 252)``.

    The sum runs over negative returns only while *n* counts every return.
    """
    r = as_float_array(returns, "returns")
    if len(r) == 0:
        return 0.0
    neg = r[r < 0]
    return float(np.sqrt((neg ** 2).sum() / len(r) * periods_per_year))
