"""Multi-strategy comparison, ranking and blending.

Strategies are run independently (order-insensitive, partial failures
collected), ranked per metric, correlated pairwise on their step returns,
and combined on a small weight grid to find the blend with the best Sharpe.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import pandas as pd
from scipy.stats import pearsonr

from stratlab.backtest.config import BacktestConfig
from stratlab.backtest.engine import Simulator
from stratlab.backtest.result import SimulationResult
from stratlab.data.series import HistoricalSeries
from stratlab.features.volatility import volatility
from stratlab.optimize.pool import describe_error, run_all
from stratlab.portfolio.construction import blend_returns, weight_grid
from stratlab.risk.drawdown import max_drawdown
from stratlab.risk.metrics import (
    PerformanceRecord,
    annualized_return,
    compute_performance,
    sharpe_ratio,
)
from stratlab.risk.scoring import composite_score, score_values
from stratlab.strategies.base import Strategy
from stratlab.utils.validation import ConfigValidationError

# metric -> (record attribute, higher is better)
RANKING_METRICS = {
    "return": ("annualized_return", True),
    "sharpe": ("sharpe_ratio", True),
    "drawdown": ("max_drawdown", False),
    "win_rate": ("win_rate", True),
}


@dataclass(frozen=True)
class StrategyRun:
    strategy: Strategy
    simulation: SimulationResult
    record: PerformanceRecord
    score: float

    def returns(self) -> pd.Series:
        """Step returns indexed by the date they were earned."""
        return pd.Series(self.simulation.returns(), index=self.simulation.dates[1:])


@dataclass(frozen=True)
class Combination:
    allocation: dict[str, float]
    sharpe_ratio: float
    annualized_return: float
    volatility: float
    max_drawdown: float
    score: float
    best_single_sharpe: float

    @property
    def diversification_benefit(self) -> float:
        """Sharpe gained over the best constituent on the same dates."""
        return self.sharpe_ratio - self.best_single_sharpe

    def to_dict(self) -> dict:
        return {
            "allocation": {k: v * 100 for k, v in self.allocation.items()},
            "sharpe_ratio": self.sharpe_ratio,
            "annualized_return": self.annualized_return,
            "volatility": self.volatility,
            "max_drawdown": self.max_drawdown,
            "score": self.score,
            "diversification_benefit": self.diversification_benefit,
        }


@dataclass(frozen=True)
class ComparisonResult:
    runs: dict[str, StrategyRun]
    errors: dict[str, str]
    rankings: dict[str, list[str]]
    correlation: pd.DataFrame
    best_combination: Combination | None = None
    efficient: tuple[str, ...] = field(default=())

    @property
    def champion(self) -> str | None:
        """Top strategy by composite score."""
        return self.rankings["score"][0] if self.runs else None

    @property
    def best_risk_adjusted(self) -> str | None:
        return self.rankings["sharpe"][0] if self.runs else None


def rank_runs(runs: dict[str, StrategyRun]) -> dict[str, list[str]]:
    """Strict orderings of run names, best first, per metric and by score.

    Ties on the metric fall back to the lower max drawdown, then the name,
    so every strategy appears exactly once in every ranking.
    """
    def _order(value, higher_better: bool):
        def key(name: str):
            run = runs[name]
            v = value(run)
            return (-v if higher_better else v, run.record.max_drawdown, name)
        return sorted(runs, key=key)

    rankings = {
        metric: _order(lambda r, a=attr: getattr(r.record, a), higher)
        for metric, (attr, higher) in RANKING_METRICS.items()
    }
    rankings["score"] = _order(lambda r: r.score, True)
    return rankings


def _safe_pearson(x: np.ndarray, y: np.ndarray) -> float:
    if len(x) < 2 or np.ptp(x) == 0 or np.ptp(y) == 0:
        return 0.0
    return float(pearsonr(x, y)[0])


def correlation_matrix(runs: dict[str, StrategyRun]) -> pd.DataFrame:
    """Pairwise Pearson correlation of step returns over shared dates.

    Pairs with fewer than two shared dates or a constant series get 0.
    """
    names = list(runs)
    returns = {n: runs[n].returns() for n in names}
    corr = pd.DataFrame(np.eye(len(names)), index=names, columns=names)
    for i, a in enumerate(names):
        for b in names[i + 1:]:
            joined = pd.concat([returns[a], returns[b]], axis=1, join="inner")
            rho = _safe_pearson(joined.iloc[:, 0].to_numpy(), joined.iloc[:, 1].to_numpy())
            corr.loc[a, b] = corr.loc[b, a] = rho
    return corr


def _path_stats(returns: np.ndarray, rf: float) -> tuple[float, float, float, float]:
    values = np.concatenate([[1.0], np.cumprod(1 + returns)])
    ann = annualized_return(1.0, float(values[-1]), len(values))
    vol = volatility(returns)
    return ann, vol, sharpe_ratio(ann, vol, rf), max_drawdown(values)


def best_combination(
    runs: dict[str, StrategyRun],
    risk_free_rate: float,
    step: float = 0.25,
) -> Combination | None:
    """Constant-mix blend on a *step* weight grid with the highest Sharpe.

    Returns are aligned on the dates every run shares.  Ties on Sharpe go
    to the higher composite score, then to the earlier grid point.  The grid
    is laid out over the sorted run names, so the result does not depend on
    the order the runs were given in.
    """
    if len(runs) < 2:
        return None
    names = sorted(runs)
    frame = pd.concat([runs[n].returns() for n in names], axis=1, join="inner")
    if len(frame) < 2:
        return None
    matrix = frame.to_numpy()
    singles = [_path_stats(matrix[:, j], risk_free_rate)[2] for j in range(len(names))]

    best = None
    best_key = None
    for w in weight_grid(len(names), step):
        ann, vol, sharpe, mdd = _path_stats(blend_returns(matrix, w), risk_free_rate)
        score = score_values(ann * 100, sharpe, mdd * 100)
        key = (sharpe, score)
        if best_key is None or key > best_key:
            best_key = key
            best = Combination(
                allocation={n: float(x) for n, x in zip(names, w) if x > 0},
                sharpe_ratio=sharpe,
                annualized_return=ann * 100,
                volatility=vol * 100,
                max_drawdown=mdd * 100,
                score=score,
                best_single_sharpe=max(s for s, x in zip(singles, w) if x > 0),
            )
    return best


def efficient_set(runs: dict[str, StrategyRun]) -> tuple[str, ...]:
    """Names not dominated on (higher annualized return, lower volatility)."""
    out = []
    for a, ra in runs.items():
        dominated = False
        for b, rb in runs.items():
            if a == b:
                continue
            ge = (rb.record.annualized_return >= ra.record.annualized_return
                  and rb.record.volatility <= ra.record.volatility)
            strict = (rb.record.annualized_return > ra.record.annualized_return
                      or rb.record.volatility < ra.record.volatility)
            if ge and strict:
                dominated = True
                break
        if not dominated:
            out.append(a)
    return tuple(sorted(out))


def _run_one(strategy: Strategy, series: HistoricalSeries, config: BacktestConfig) -> StrategyRun:
    sim = Simulator(strategy, config).run(series)
    record = compute_performance(sim)
    return StrategyRun(strategy, sim, record, composite_score(record))


def compare_strategies(
    strategies: Sequence[Strategy],
    series: HistoricalSeries,
    config: BacktestConfig | None = None,
    max_workers: int | None = None,
    weight_step: float = 0.25,
) -> ComparisonResult:
    """Run, rank, correlate and blend several strategies.

    Parameters
    ----------
    strategies : sequence of Strategy
        Distinct names required; results are keyed by name.
    series : HistoricalSeries
        Shared price history.
    config : BacktestConfig, optional
        Shared run settings.
    max_workers : int, optional
        Worker pool size; ``1`` runs sequentially.
    weight_step : float
        Lattice step for the blend search.

    Returns
    -------
    ComparisonResult
        Runs that failed appear only in ``errors`` as ``"<Type>: <message>"``.
    """
    config = config or BacktestConfig()
    names = [s.name for s in strategies]
    dupes = sorted({n for n in names if names.count(n) > 1})
    if dupes:
        raise ConfigValidationError(f"Duplicate strategy names: {dupes}")

    tasks = {s.name: (lambda s=s: _run_one(s, series, config)) for s in strategies}
    results, failures = run_all(tasks, max_workers=max_workers)
    runs = {n: results[n] for n in names if n in results}

    return ComparisonResult(
        runs=runs,
        errors={n: describe_error(e) for n, e in failures.items()},
        rankings=rank_runs(runs),
        correlation=correlation_matrix(runs),
        best_combination=best_combination(runs, config.risk_free_rate, weight_step),
        efficient=efficient_set(runs),
    )
