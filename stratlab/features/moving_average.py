"""Moving averages and the indicators built on them (MACD, Bollinger bands).

Every function takes an ordered numeric sequence, oldest first, and reads
only values up to its last element.
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np

from stratlab.utils.validation import as_float_array, require_length


def sma(series, period: int) -> float:
    """Arithmetic mean of the last *period* values.

    Raises
    ------
    InsufficientDataError
        If ``len(series) < period``.
    """
    x = as_float_array(series)
    require_length(x, period, "sma")
    return float(x[-period:].mean())


def sma_series(series, period: int) -> np.ndarray:
    """Rolling SMA aligned with *series*; NaN before index ``period - 1``."""
    x = as_float_array(series)
    require_length(x, period, "sma")
    out = np.full(len(x), np.nan)
    csum = np.cumsum(np.insert(x, 0, 0.0))
    out[period - 1:] = (csum[period:] - csum[:-period]) / period
    return out


def ema_series(series, period: int) -> np.ndarray:
    """Exponential moving average aligned with *series*.

    Seeded with the SMA of the first *period* values (at index
    ``period - 1``) and smoothed with ``alpha = 2 / (period + 1)``
    afterwards.  Earlier positions are NaN.
    """
    x = as_float_array(series)
    require_length(x, period, "ema")
    alpha = 2.0 / (period + 1)
    out = np.full(len(x), np.nan)
    out[period - 1] = x[:period].mean()
    for i in range(period, len(x)):
        out[i] = alpha * x[i] + (1 - alpha) * out[i - 1]
    return out


def ema(series, period: int) -> float:
    """Latest value of :func:`ema_series`."""
    return float(ema_series(series, period)[-1])


class MACD(NamedTuple):
    macd: np.ndarray
    signal: np.ndarray
    histogram: np.ndarray


def macd(series, fast: int = 12, slow: int = 26, signal: int = 9) -> MACD:
    """Moving-average convergence/divergence.

    ``macd = ema(fast) - ema(slow)``; the signal line is the EMA of the
    MACD line.  All three arrays align with *series*; the signal line is
    first defined at index ``slow + signal - 2``.
    """
    x = as_float_array(series)
    require_length(x, slow + signal - 1, "macd")
    line = ema_series(x, fast) - ema_series(x, slow)
    start = slow - 1
    sig = np.full(len(x), np.nan)
    sig[start:] = ema_series(line[start:], signal)
    return MACD(line, sig, line - sig)


class Bands(NamedTuple):
    middle: float
    upper: float
    lower: float


def bollinger_bands(series, period: int = 20, num_std: float = 2.0) -> Bands:
    """Bollinger bands over the last *period* values (population std)."""
    x = as_float_array(series)
    require_length(x, period, "bollinger")
    tail = x[-period:]
    mid = float(tail.mean())
    width = num_std * float(tail.std())
    return Bands(mid, mid + width, mid - width)
