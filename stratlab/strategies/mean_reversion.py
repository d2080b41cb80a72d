"""Mean-reversion and relative-value signal generators."""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from stratlab.data.series import HistoricalSeries
from stratlab.features.moving_average import bollinger_bands
from stratlab.features.oscillators import rsi_series
from stratlab.strategies.base import Signal, SignalType


def rsi_mean_reversion(
    window: HistoricalSeries,
    index: int,
    params: Mapping[str, Any],
) -> list[Signal]:
    """BUY when RSI crosses below *oversold*, SELL when it crosses above *overbought*.

    Only the crossing step fires; an RSI that lingers past a threshold
    produces no further signals.
    """
    period = int(params["period"])
    oversold = float(params["oversold"])
    overbought = float(params["overbought"])
    inst = int(params.get("instrument", 0))

    values = rsi_series(window.close(inst)[: index + 1], period)
    cur, prev = values[index], values[index - 1]

    if cur < oversold and prev >= oversold:
        return [
            Signal(
                SignalType.BUY,
                strength=float(params["position_size"]),
                instrument=inst,
                reason=f"RSI oversold: {cur:.2f}",
                confidence=65.0,
            )
        ]
    if cur > overbought and prev <= overbought:
        return [
            Signal(
                SignalType.SELL,
                strength=1.0,
                instrument=inst,
                reason=f"RSI overbought: {cur:.2f}",
                confidence=65.0,
            )
        ]
    return []


def bollinger_breakout(
    window: HistoricalSeries,
    index: int,
    params: Mapping[str, Any],
) -> list[Signal]:
    """Band breakout: BUY on a close crossing above the upper band, SELL below the lower."""
    period = int(params["period"])
    num_std = float(params["num_std"])
    inst = int(params.get("instrument", 0))
    px = window.close(inst)

    cur = bollinger_bands(px[: index + 1], period, num_std)
    prev = bollinger_bands(px[:index], period, num_std)
    price, prev_price = px[index], px[index - 1]

    if price > cur.upper and prev_price <= prev.upper:
        return [
            Signal(
                SignalType.BUY,
                strength=float(params["position_size"]),
                instrument=inst,
                reason=f"Close {price:.2f} broke above upper band {cur.upper:.2f}",
                confidence=60.0,
            )
        ]
    if price < cur.lower and prev_price >= prev.lower:
        return [
            Signal(
                SignalType.SELL,
                strength=1.0,
                instrument=inst,
                reason=f"Close {price:.2f} broke below lower band {cur.lower:.2f}",
                confidence=60.0,
            )
        ]
    return []


def _spread_zscore(log_a: np.ndarray, log_b: np.ndarray, end: int, lookback: int) -> float:
    spread = log_a[end - lookback + 1: end + 1] - log_b[end - lookback + 1: end + 1]
    sd = spread.std()
    if sd == 0:
        return 0.0
    return float((spread[-1] - spread.mean()) / sd)


def pairs_trading(
    window: HistoricalSeries,
    index: int,
    params: Mapping[str, Any],
) -> list[Signal]:
    """Trade the log-price spread ``ln(A) - ln(B)`` on z-score threshold crossings.

    The engine is long-only, so the "short" leg of the pair is expressed by
    exiting it:

    - z crosses above ``+entry_z`` (A rich): BUY B, SELL A
    - z crosses below ``-entry_z`` (A cheap): BUY A, SELL B
    - ``|z|`` crosses back inside ``exit_z``: SELL both
    """
    lookback = int(params["lookback"])
    entry = float(params["entry_z"])
    exit_ = float(params["exit_z"])
    a = int(params.get("instrument_a", 0))
    b = int(params.get("instrument_b", 1))
    size = float(params["position_size"])

    log_a = np.log(window.close(a)[: index + 1])
    log_b = np.log(window.close(b)[: index + 1])
    z = _spread_zscore(log_a, log_b, index, lookback)
    z_prev = _spread_zscore(log_a, log_b, index - 1, lookback)

    def _enter(long_leg: int, short_leg: int, label: str) -> list[Signal]:
        reason = f"Spread z-score {z:.2f} {label}"
        return [
            Signal(SignalType.SELL, 1.0, short_leg, reason, 70.0),
            Signal(SignalType.BUY, size, long_leg, reason, 70.0),
        ]

    if z > entry and z_prev <= entry:
        return _enter(b, a, f"crossed above +{entry}")
    if z < -entry and z_prev >= -entry:
        return _enter(a, b, f"crossed below -{entry}")
    if abs(z) <= exit_ and abs(z_prev) > exit_:
        reason = f"Spread z-score {z:.2f} reverted inside {exit_}"
        return [
            Signal(SignalType.SELL, 1.0, a, reason, 60.0),
            Signal(SignalType.SELL, 1.0, b, reason, 60.0),
        ]
    return []
