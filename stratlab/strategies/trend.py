"""Trend-following signal generators.

Every generator has the signature ``(window, index, params) -> list[Signal]``
where *window* holds rows ``[0..index]`` of the replayed series.  Crossings
are detected between ``index - 1`` and ``index`` so a signal fires once, on
the step where the ordering flips.
"""

from __future__ import annotations

from typing import Any, Mapping

from stratlab.data.series import HistoricalSeries
from stratlab.features.moving_average import macd, sma
from stratlab.strategies.base import Signal, SignalType


def buy_and_hold(
    window: HistoricalSeries,
    index: int,
    params: Mapping[str, Any],
) -> list[Signal]:
    """Single full-size BUY at the first eligible step, nothing afterwards."""
    if index != 0:
        return []
    return [
        Signal(
            SignalType.BUY,
            strength=float(params.get("position_size", 1.0)),
            instrument=int(params.get("instrument", 0)),
            reason="Buy and hold entry",
            confidence=100.0,
        )
    ]


def moving_average_crossover(
    window: HistoricalSeries,
    index: int,
    params: Mapping[str, Any],
) -> list[Signal]:
    """Golden cross (short SMA crosses above long SMA) buys; death cross sells."""
    short = int(params["short_period"])
    long = int(params["long_period"])
    inst = int(params.get("instrument", 0))
    px = window.close(inst)

    cur_s, cur_l = sma(px[: index + 1], short), sma(px[: index + 1], long)
    prev_s, prev_l = sma(px[:index], short), sma(px[:index], long)

    if cur_s > cur_l and prev_s <= prev_l:
        return [
            Signal(
                SignalType.BUY,
                strength=float(params["position_size"]),
                instrument=inst,
                reason=f"Golden cross: {short}MA crossed above {long}MA",
                confidence=75.0,
            )
        ]
    if cur_s < cur_l and prev_s >= prev_l:
        return [
            Signal(
                SignalType.SELL,
                strength=1.0,
                instrument=inst,
                reason=f"Death cross: {short}MA crossed below {long}MA",
                confidence=75.0,
            )
        ]
    return []


def macd_momentum(
    window: HistoricalSeries,
    index: int,
    params: Mapping[str, Any],
) -> list[Signal]:
    """BUY when the MACD line crosses above its signal line, SELL on the reverse."""
    inst = int(params.get("instrument", 0))
    line, sig, _ = macd(
        window.close(inst)[: index + 1],
        fast=int(params["fast_period"]),
        slow=int(params["slow_period"]),
        signal=int(params["signal_period"]),
    )
    cur, prev = line[index] - sig[index], line[index - 1] - sig[index - 1]

    if cur > 0 and prev <= 0:
        return [
            Signal(
                SignalType.BUY,
                strength=float(params["position_size"]),
                instrument=inst,
                reason=f"MACD bullish crossover ({line[index]:.4f} > {sig[index]:.4f})",
                confidence=70.0,
            )
        ]
    if cur < 0 and prev >= 0:
        return [
            Signal(
                SignalType.SELL,
                strength=1.0,
                instrument=inst,
                reason=f"MACD bearish crossover ({line[index]:.4f} < {sig[index]:.4f})",
                confidence=70.0,
            )
        ]
    return []
