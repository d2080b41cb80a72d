"""Relative strength index with Wilder smoothing."""

from __future__ import annotations

import numpy as np

from stratlab.utils.validation import as_float_array, require_length


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def rsi_series(series, period: int = 14) -> np.ndarray:
    """RSI aligned with *series*; NaN before index *period*.

    The first *period* price changes seed the average gain and loss (simple
    means); each later change is folded in with Wilder's smoothing
    ``avg = (avg * (period - 1) + x) / period``.  An average loss of exactly
    zero gives RSI 100.

    Raises
    ------
    InsufficientDataError
        If fewer than ``period + 1`` prices are supplied.
    """
    x = as_float_array(series)
    require_length(x, period + 1, "rsi")
    changes = np.diff(x)
    gains = np.where(changes > 0, changes, 0.0)
    losses = np.where(changes < 0, -changes, 0.0)

    out = np.full(len(x), np.nan)
    avg_gain = gains[:period].mean()
    avg_loss = losses[:period].mean()
    out[period] = _rsi_value(avg_gain, avg_loss)
    for i in range(period, len(changes)):
        avg_gain = (avg_gain * (period - 1) + gains[i]) / period
        avg_loss = (avg_loss * (period - 1) + losses[i]) / period
        out[i + 1] = _rsi_value(avg_gain, avg_loss)
    return out


def rsi(series, period: int = 14) -> float:
    """Latest RSI value in ``[0, 100]``."""
    return float(rsi_series(series, period)[-1])
