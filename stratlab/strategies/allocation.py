"""Portfolio-theory allocation generator."""

from __future__ import annotations

from typing import Any, Mapping

import numpy as np

from stratlab.data.series import HistoricalSeries
from stratlab.portfolio.constraints import apply_position_limits
from stratlab.portfolio.construction import mean_variance_weights
from stratlab.strategies.base import Signal, SignalType


def mean_variance(
    window: HistoricalSeries,
    index: int,
    params: Mapping[str, Any],
) -> list[Signal]:
    """Re-solve long-only mean-variance weights every *rebalance_period* steps.

    Estimates per-step mean and covariance from the last *lookback* simple
    returns of every instrument and emits one target-weight signal per
    instrument: BUY toward a positive weight, SELL to zero otherwise.
    """
    lookback = int(params["lookback"])
    every = int(params["rebalance_period"])
    if (index - lookback) % every != 0:
        return []

    px = window.prices[index - lookback: index + 1]
    rets = px[1:] / px[:-1] - 1.0
    mu = rets.mean(axis=0)
    cov = np.atleast_2d(np.cov(rets, rowvar=False, ddof=0))
    max_w = float(params["max_weight"])
    w = apply_position_limits(
        mean_variance_weights(mu, cov, float(params["risk_aversion"]), max_w),
        max_w,
    )

    signals = []
    for i, weight in enumerate(w):
        if weight > 0:
            signals.append(
                Signal(
                    SignalType.BUY,
                    strength=float(weight),
                    instrument=i,
                    reason=f"Mean-variance target weight {weight:.1%}",
                    confidence=70.0,
                    target_weight=float(weight),
                )
            )
        else:
            signals.append(
                Signal(
                    SignalType.SELL,
                    strength=1.0,
                    instrument=i,
                    reason="Mean-variance target weight 0%",
                    confidence=70.0,
                    target_weight=0.0,
                )
            )
    return signals
