"""Position limits and rebalance order sizing."""

from __future__ import annotations

import numpy as np


def apply_position_limits(
    weights: np.ndarray,
    max_weight: float = 1.0,
) -> np.ndarray:
    """Clip long-only weights to ``[0, max_weight]``.

    Clipped weight is not redistributed; the remainder stays in cash.
    """
    return np.clip(np.asarray(weights, dtype=float), 0.0, max_weight)


def rebalance_orders(
    quantities: np.ndarray,
    prices: np.ndarray,
    target_weights: np.ndarray,
    equity: float,
    buy_factor: float = 1.0,
    tolerance: float = 1e-3,
) -> np.ndarray:
    """Signed share quantities that move holdings toward *target_weights*.

    The target notional of asset ``i`` is ``w[i] * equity / buy_factor``,
    leaving room for buy costs.  Drift smaller than *tolerance* (as a
    fraction of equity) is left alone to avoid churn.

    Returns
    -------
    ndarray
        Positive entries are buys, negative entries are sells.
    """
    q = np.asarray(quantities, dtype=float)
    p = np.asarray(prices, dtype=float)
    w = np.asarray(target_weights, dtype=float)
    if equity <= 0:
        return np.zeros_like(q)
    target_qty = w * equity / buy_factor / p
    delta = target_qty - q
    drift = np.abs(delta * p) / equity
    delta[drift < tolerance] = 0.0
    return delta
