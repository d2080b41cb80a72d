"""Immutable records produced by one simulation run."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

import numpy as np
import pandas as pd

from stratlab.backtest.config import BacktestConfig
from stratlab.strategies.base import Signal, Strategy


class TradeStatus(str, enum.Enum):
    closed = "closed"
    open = "open"
    rejected = "rejected"


class TradeOrigin(str, enum.Enum):
    signal = "signal"
    rebalance = "rebalance"


@dataclass(frozen=True)
class Trade:
    """An executed (or rejected) position change.

    Long-only: ``side`` is always ``'long'``.  A ``closed`` trade is a lot
    that was opened and then sold; an ``open`` trade is a lot still held at
    the end of the run, marked at the final price; a ``rejected`` trade is a
    buy that would have overdrawn cash and never executed.
    """

    instrument: int
    side: str
    entry_date: pd.Timestamp
    entry_price: float
    exit_date: pd.Timestamp
    exit_price: float
    quantity: float
    reason: str
    exit_reason: str
    status: TradeStatus
    origin: TradeOrigin
    costs: float = 0.0

    @property
    def pnl(self) -> float:
        """Gross profit ``(exit - entry) * quantity``, excluding costs."""
        return (self.exit_price - self.entry_price) * self.quantity

    @property
    def return_pct(self) -> float:
        if self.entry_price == 0:
            return 0.0
        return (self.exit_price - self.entry_price) / self.entry_price * 100

    def to_dict(self) -> dict:
        return {
            "instrument": self.instrument,
            "side": self.side,
            "entry_date": str(self.entry_date.date()),
            "entry_price": self.entry_price,
            "exit_date": str(self.exit_date.date()),
            "exit_price": self.exit_price,
            "quantity": self.quantity,
            "pnl": self.pnl,
            "return_pct": self.return_pct,
            "reason": self.reason,
            "exit_reason": self.exit_reason,
            "status": self.status.value,
            "origin": self.origin.value,
            "costs": self.costs,
        }


@dataclass(frozen=True)
class PortfolioSnapshot:
    """Portfolio state after one step: ``value == cash + sum(qty * price)``."""

    date: pd.Timestamp
    step: int
    value: float
    cash: float
    positions: Mapping[int, float]
    position_values: Mapping[int, float]
    step_return: float

    def __post_init__(self) -> None:
        object.__setattr__(self, "positions", MappingProxyType(dict(self.positions)))
        object.__setattr__(
            self, "position_values", MappingProxyType(dict(self.position_values))
        )


@dataclass(frozen=True)
class SignalEvent:
    date: pd.Timestamp
    step: int
    signal: Signal


@dataclass(frozen=True)
class SimulationResult:
    """Output of one replay.

    ``snapshots`` has one entry per replayed step, i.e. ``N - lookback``
    entries for a series of length N.
    """

    strategy: Strategy
    config: BacktestConfig
    instruments: tuple[str, ...]
    lookback: int
    trades: tuple[Trade, ...]
    snapshots: tuple[PortfolioSnapshot, ...]
    signals: tuple[SignalEvent, ...]

    @property
    def dates(self) -> pd.DatetimeIndex:
        return pd.DatetimeIndex([s.date for s in self.snapshots])

    def values(self) -> np.ndarray:
        """Total portfolio value per snapshot."""
        return np.array([s.value for s in self.snapshots], dtype=float)

    def returns(self) -> np.ndarray:
        """Step returns excluding the first snapshot's defined-zero return."""
        return np.array([s.step_return for s in self.snapshots[1:]], dtype=float)

    def position_values(self) -> np.ndarray:
        """``T x K`` matrix of marked position values per snapshot."""
        out = np.zeros((len(self.snapshots), len(self.instruments)))
        for t, snap in enumerate(self.snapshots):
            for k, v in snap.position_values.items():
                out[t, k] = v
        return out

    @property
    def final_value(self) -> float:
        if not self.snapshots:
            return self.config.initial_capital
        return self.snapshots[-1].value

    def to_frame(self) -> pd.DataFrame:
        """Snapshot history as a date-indexed frame."""
        return pd.DataFrame(
            {
                "value": self.values(),
                "cash": [s.cash for s in self.snapshots],
                "step_return": [s.step_return for s in self.snapshots],
            },
            index=self.dates,
        )
