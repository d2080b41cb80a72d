"""Empirical tail-risk measures: Value at Risk and Expected Shortfall."""

from __future__ import annotations

import numpy as np

from stratlab.utils.validation import StratlabValidationError, as_float_array


def _check_confidence(confidence: float) -> None:
    if not 0 < confidence < 1:
        raise StratlabValidationError(
            f"confidence must be in (0, 1); got {confidence}."
        )


def value_at_risk(returns, confidence: float = 0.95) -> float:
    """Historical VaR: the ``floor((1 - confidence) * n)``-th smallest return.

    Returned as a signed return (a loss is negative).  Empty input gives 0.
    """
    _check_confidence(confidence)
    r = as_float_array(returns, "returns")
    n = len(r)
    if n == 0:
        return 0.0
    # tolerance keeps e.g. (1 - 0.9) * 10 == 0.9999999999999998 from flooring to 0
    idx = min(int(np.floor((1 - confidence) * n + 1e-9)), n - 1)
    return float(np.sort(r)[idx])


def expected_shortfall(returns, confidence: float = 0.95) -> float:
    """Mean of all returns at or below the VaR threshold; 0 if none."""
    r = as_float_array(returns, "returns")
    if len(r) == 0:
        return 0.0
    threshold = value_at_risk(r, confidence)
    tail = r[r <= threshold]
    return float(tail.mean()) if len(tail) else 0.0
