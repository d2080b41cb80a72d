"""Backtest configuration dataclass."""

from __future__ import annotations

from dataclasses import asdict, dataclass

import pandas as pd

from stratlab.utils.calendar import REBALANCE_FREQUENCIES, RebalanceFrequency
from stratlab.utils.validation import ConfigValidationError


@dataclass(frozen=True)
class BacktestConfig:
    """Immutable run-wide settings for one simulation.

    Parameters
    ----------
    initial_capital : float
        Starting cash.  Must be positive.
    transaction_cost : float
        Proportional cost rate applied to traded notional (0.001 = 10 bp).
    slippage : float
        Proportional slippage rate, applied multiplicatively on top of
        *transaction_cost*.
    risk_free_rate : float
        Annual risk-free rate used by Sharpe, Sortino and alpha.
    rebalance_freq : str
        ``'none'``, ``'daily'``, ``'weekly'``, ``'monthly'`` or ``'quarterly'``.
    start_date, end_date : str or Timestamp, optional
        Inclusive replay window; the full series is used when omitted.
        When both are given ``start_date`` must precede ``end_date``.
    """

    initial_capital: float = 100_000.0
    transaction_cost: float = 0.001
    slippage: float = 0.0005
    risk_free_rate: float = 0.02
    rebalance_freq: RebalanceFrequency = "monthly"
    start_date: str | pd.Timestamp | None = None
    end_date: str | pd.Timestamp | None = None

    def __post_init__(self) -> None:
        if not self.initial_capital > 0:
            raise ConfigValidationError(
                f"initial_capital must be positive; got {self.initial_capital}."
            )
        for name in ("transaction_cost", "slippage"):
            rate = getattr(self, name)
            if not 0 <= rate < 1:
                raise ConfigValidationError(f"{name} must be in [0, 1); got {rate}.")
        if self.rebalance_freq not in REBALANCE_FREQUENCIES:
            raise ConfigValidationError(
                f"rebalance_freq must be one of {REBALANCE_FREQUENCIES}; "
                f"got {self.rebalance_freq!r}."
            )
        try:
            start = None if self.start_date is None else pd.Timestamp(self.start_date)
            end = None if self.end_date is None else pd.Timestamp(self.end_date)
        except (TypeError, ValueError) as e:
            raise ConfigValidationError(f"Unparseable date: {e}") from e
        if start is not None and end is not None and not start < end:
            raise ConfigValidationError(
                f"start_date {start.date()} must be before end_date {end.date()}."
            )

    def to_dict(self) -> dict:
        d = asdict(self)
        for key in ("start_date", "end_date"):
            if d[key] is not None:
                d[key] = str(pd.Timestamp(d[key]).date())
        return d
