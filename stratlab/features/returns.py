"""Return calculations on ordered value sequences."""

from __future__ import annotations

import numpy as np

from stratlab.utils.validation import as_float_array


def simple_returns(values) -> np.ndarray:
    """Arithmetic step returns ``v[t] / v[t-1] - 1`` (length ``n - 1``).

    A zero predecessor yields a 0 return rather than infinity.
    """
    v = as_float_array(values, "values")
    if len(v) < 2:
        return np.zeros(0)
    prev = v[:-1]
    out = np.zeros(len(v) - 1)
    np.divide(v[1:], prev, out=out, where=prev != 0)
    return np.where(prev != 0, out - 1.0, 0.0)


def log_returns(values) -> np.ndarray:
    """Logarithmic step returns ``ln(v[t] / v[t-1])``; requires positive values."""
    v = as_float_array(values, "values")
    if len(v) < 2:
        return np.zeros(0)
    return np.diff(np.log(v))


def cumulative_return(returns) -> float:
    """Compounded return of a step-return sequence."""
    r = as_float_array(returns, "returns")
    return float(np.prod(1.0 + r) - 1.0) if len(r) else 0.0
