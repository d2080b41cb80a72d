"""Metrics engine: derive a :class:`PerformanceRecord` from a simulation.

Conventions
-----------
- Return-like fields (returns, volatility, drawdown, VaR, Expected
  Shortfall, win rate, average win/loss, alpha, Kelly) are in **percent**.
  Ratios (Sharpe, Sortino, Calmar, profit factor, beta, information ratio)
  are unitless.
- Step returns skip the first snapshot, whose return is 0 by definition.
- ``years = snapshots / 252``; the initial value is the configured capital.
- Degenerate inputs (zero variance, zero drawdown, no trades, no losing
  steps) produce defined finite values, never NaN or infinity.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Sequence

import numpy as np
import pandas as pd

from stratlab.backtest.result import SimulationResult, Trade, TradeOrigin, TradeStatus
from stratlab.features.returns import cumulative_return, simple_returns
from stratlab.features.volatility import TRADING_DAYS, downside_deviation, volatility
from stratlab.risk.drawdown import max_drawdown
from stratlab.risk.tail import expected_shortfall, value_at_risk

# Finite stand-in for an unbounded Sortino ratio (no losing steps).
RATIO_CAP = 100.0
# Largest annual log-growth reported; only reachable on very short runs.
_MAX_LOG_GROWTH = np.log(1e4)


@dataclass(frozen=True)
class PerformanceRecord:
    total_return: float
    annualized_return: float
    volatility: float
    sharpe_ratio: float
    sortino_ratio: float
    calmar_ratio: float
    max_drawdown: float
    var_95: float
    expected_shortfall: float
    total_trades: int
    winning_trades: int
    losing_trades: int
    rejected_trades: int
    win_rate: float
    profit_factor: float
    average_win: float
    average_loss: float
    max_consecutive_wins: int
    max_consecutive_losses: int
    beta: float
    alpha: float
    information_ratio: float
    kelly_criterion: float
    final_value: float
    trading_days: int

    def to_dict(self) -> dict:
        return asdict(self)


def annualized_return(initial: float, final: float, periods: int) -> float:
    """Geometric annual growth as a fraction; 0 for an empty run."""
    if periods <= 0 or initial <= 0:
        return 0.0
    if final <= 0:
        return -1.0
    years = periods / TRADING_DAYS
    growth = min(np.log(final / initial) / years, _MAX_LOG_GROWTH)
    return float(np.expm1(growth))


def sharpe_ratio(ann_return: float, vol: float, risk_free_rate: float) -> float:
    """``(annualized return - rf) / volatility``; 0 when volatility is 0."""
    if vol == 0:
        return 0.0
    return float((ann_return - risk_free_rate) / vol)


def sortino_ratio(returns: np.ndarray, ann_return: float, risk_free_rate: float) -> float:
    """Excess annual return over annualized downside deviation.

    With no negative step returns the ratio is :data:`RATIO_CAP` when the
    excess return is positive and 0 otherwise.
    """
    excess = ann_return - risk_free_rate
    if not (returns < 0).any():
        return RATIO_CAP if excess > 0 else 0.0
    dd = downside_deviation(returns)
    if dd == 0:
        return 0.0
    return float(excess / dd)


def calmar_ratio(ann_return: float, mdd: float) -> float:
    if mdd == 0:
        return 0.0
    return float(ann_return / abs(mdd))


def _streaks(outcomes: Sequence[int]) -> tuple[int, int]:
    """Longest run of wins (+1) and of losses (-1); breakeven (0) breaks both."""
    best_win = best_loss = run_win = run_loss = 0
    for o in outcomes:
        run_win = run_win + 1 if o > 0 else 0
        run_loss = run_loss + 1 if o < 0 else 0
        best_win = max(best_win, run_win)
        best_loss = max(best_loss, run_loss)
    return best_win, best_loss


def evaluated_trades(trades: Sequence[Trade]) -> list[Trade]:
    """Trades counted by trade statistics: executed, signal-originated."""
    return [
        t for t in trades
        if t.status is not TradeStatus.rejected and t.origin is not TradeOrigin.rebalance
    ]


def trade_statistics(trades: Sequence[Trade]) -> dict:
    """Win/loss partition by ``(exit - entry) * quantity``."""
    counted = evaluated_trades(trades)
    pnls = np.array([t.pnl for t in counted], dtype=float)
    wins = [t for t, p in zip(counted, pnls) if p > 0]
    losses = [t for t, p in zip(counted, pnls) if p < 0]
    gross_profit = float(pnls[pnls > 0].sum()) if len(pnls) else 0.0
    gross_loss = float(-pnls[pnls < 0].sum()) if len(pnls) else 0.0
    max_wins, max_losses = _streaks(np.sign(pnls).astype(int).tolist())
    return {
        "total_trades": len(counted),
        "winning_trades": len(wins),
        "losing_trades": len(losses),
        "win_rate": len(wins) / len(counted) * 100 if counted else 0.0,
        "profit_factor": gross_profit / gross_loss if gross_loss > 0 else 0.0,
        "average_win": float(np.mean([t.return_pct for t in wins])) if wins else 0.0,
        "average_loss": float(np.mean([t.return_pct for t in losses])) if losses else 0.0,
        "max_consecutive_wins": max_wins,
        "max_consecutive_losses": max_losses,
    }


def kelly_criterion(win_rate_pct: float, average_win: float, average_loss: float) -> float:
    """Kelly fraction ``p - (1 - p) / b`` in percent, with ``b = avg win / |avg loss|``.

    0 when there are no losing trades to estimate ``b`` from.
    """
    if average_loss == 0 or average_win == 0:
        return 0.0
    p = win_rate_pct / 100
    b = average_win / abs(average_loss)
    return float((p - (1 - p) / b) * 100)


def benchmark_statistics(
    returns: np.ndarray,
    benchmark_returns: np.ndarray | None,
    ann_return: float,
    risk_free_rate: float,
) -> tuple[float, float, float]:
    """``(beta, alpha, information_ratio)`` against an aligned benchmark.

    Beta is population covariance over benchmark variance.  Alpha (a
    fraction) is ``ann_return - (rf + beta * (bench_ann - rf))`` where the
    benchmark's annual return compounds its step returns over the same
    horizon.  Without a benchmark, or with a constant one, all three are 0.
    """
    if benchmark_returns is None or len(returns) < 2:
        return 0.0, 0.0, 0.0
    bench = np.asarray(benchmark_returns, dtype=float)
    n = min(len(bench), len(returns))
    r, b = returns[-n:], bench[-n:]
    var_b = b.var()
    if var_b == 0:
        return 0.0, 0.0, 0.0
    beta = float(((r - r.mean()) * (b - b.mean())).mean() / var_b)
    bench_ann = annualized_return(1.0, float(np.prod(1 + b)), n + 1)
    alpha = ann_return - (risk_free_rate + beta * (bench_ann - risk_free_rate))
    active = r - b
    tracking = volatility(active)
    ir = float(active.mean() * TRADING_DAYS / tracking) if tracking > 0 else 0.0
    return beta, float(alpha), ir


def compute_performance(
    sim: SimulationResult,
    benchmark_returns: np.ndarray | None = None,
) -> PerformanceRecord:
    """Derive the full metric record for a completed simulation.

    Parameters
    ----------
    sim : SimulationResult
        Output of :meth:`Simulator.run`.
    benchmark_returns : array-like, optional
        Benchmark step returns aligned with ``sim.returns()`` (the last
        ``len(sim.returns())`` entries are used).
    """
    cfg = sim.config
    values = sim.values()
    returns = sim.returns()
    initial = cfg.initial_capital
    final = sim.final_value
    periods = len(values)

    ann = annualized_return(initial, final, periods)
    vol = volatility(returns)
    mdd = max_drawdown(values)
    beta, alpha, ir = benchmark_statistics(
        returns,
        None if benchmark_returns is None else np.asarray(benchmark_returns, dtype=float),
        ann,
        cfg.risk_free_rate,
    )
    stats = trade_statistics(sim.trades)
    rejected = sum(1 for t in sim.trades if t.status is TradeStatus.rejected)

    return PerformanceRecord(
        total_return=(final - initial) / initial * 100,
        annualized_return=ann * 100,
        volatility=vol * 100,
        sharpe_ratio=sharpe_ratio(ann, vol, cfg.risk_free_rate),
        sortino_ratio=sortino_ratio(returns, ann, cfg.risk_free_rate),
        calmar_ratio=calmar_ratio(ann, mdd),
        max_drawdown=mdd * 100,
        var_95=value_at_risk(returns, 0.95) * 100,
        expected_shortfall=expected_shortfall(returns, 0.95) * 100,
        rejected_trades=rejected,
        beta=beta,
        alpha=alpha * 100,
        information_ratio=ir,
        kelly_criterion=kelly_criterion(
            stats["win_rate"], stats["average_win"], stats["average_loss"]
        ),
        final_value=float(final),
        trading_days=periods,
        **stats,
    )


def monthly_returns(sim: SimulationResult) -> pd.Series:
    """Compounded return per calendar month, in percent, indexed by month end."""
    if not sim.snapshots:
        return pd.Series(dtype=float)
    values = pd.Series(sim.values(), index=sim.dates)
    month_end = values.resample("ME").last().dropna()
    prev = month_end.shift(1)
    prev.iloc[0] = sim.config.initial_capital
    return (month_end / prev - 1) * 100


def benchmark_comparison(
    sim: SimulationResult,
    benchmark_values: np.ndarray,
) -> dict:
    """Compare against a passive value path aligned with the snapshots.

    Returns strategy and benchmark total return (percent), the excess
    return, and beta / alpha / information ratio against the benchmark.
    """
    bench = np.asarray(benchmark_values, dtype=float)
    bench_returns = simple_returns(bench)
    bench_total = cumulative_return(bench_returns) * 100
    record = compute_performance(sim, bench_returns)
    return {
        "strategy_return": record.total_return,
        "benchmark_return": float(bench_total),
        "excess_return": record.total_return - float(bench_total),
        "beta": record.beta,
        "alpha": record.alpha,
        "information_ratio": record.information_ratio,
    }
