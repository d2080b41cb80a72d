"""Transaction cost and slippage model.

Both rates apply multiplicatively to traded notional: a buy of notional
``n`` costs ``n * (1 + tc) * (1 + slip)`` in cash, a sell of notional ``n``
returns ``n * (1 - tc) * (1 - slip)``.
"""

from __future__ import annotations

from stratlab.backtest.config import BacktestConfig


def buy_factor(config: BacktestConfig) -> float:
    """Cash paid per unit of notional bought."""
    return (1 + config.transaction_cost) * (1 + config.slippage)


def sell_factor(config: BacktestConfig) -> float:
    """Cash received per unit of notional sold."""
    return (1 - config.transaction_cost) * (1 - config.slippage)


def transaction_costs(notional: float, side: str, config: BacktestConfig) -> float:
    """Dollar cost (always non-negative) of trading *notional* on *side*."""
    if side == "buy":
        return abs(notional) * (buy_factor(config) - 1)
    return abs(notional) * (1 - sell_factor(config))
