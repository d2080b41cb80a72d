"""Grid-search parameter optimization.

Every grid point is an independent Simulation + Metrics evaluation.  The
best point is selected by a pure reduction over the evaluated points in
grid order, so ties keep the earlier point and the original parameters
(always the first point) win any tie against the grid.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

from stratlab.backtest.config import BacktestConfig
from stratlab.backtest.engine import Simulator
from stratlab.data.series import HistoricalSeries
from stratlab.optimize.pool import describe_error, run_all
from stratlab.risk.metrics import PerformanceRecord, compute_performance
from stratlab.risk.scoring import composite_score
from stratlab.strategies.base import Strategy
from stratlab.strategies.registry import registry
from stratlab.utils.validation import ConfigValidationError


@dataclass(frozen=True)
class GridPoint:
    parameters: dict[str, Any]
    record: PerformanceRecord
    score: float


@dataclass(frozen=True)
class OptimizationResult:
    strategy: Strategy
    original_parameters: dict[str, Any]
    optimized_parameters: dict[str, Any]
    baseline: PerformanceRecord
    optimized: PerformanceRecord
    baseline_score: float
    optimized_score: float
    evaluated: tuple[GridPoint, ...]
    errors: dict[int, str] = field(default_factory=dict)

    @property
    def score_improvement(self) -> float:
        """Relative score gain in percent; 0 when the baseline scored 0."""
        if self.baseline_score == 0:
            return 0.0
        return (self.optimized_score - self.baseline_score) / self.baseline_score * 100

    @property
    def return_improvement(self) -> float:
        return self.optimized.annualized_return - self.baseline.annualized_return

    @property
    def sharpe_improvement(self) -> float:
        return self.optimized.sharpe_ratio - self.baseline.sharpe_ratio

    @property
    def drawdown_improvement(self) -> float:
        """Reduction of max drawdown; positive is better."""
        return self.baseline.max_drawdown - self.optimized.max_drawdown

    @property
    def optimized_strategy(self) -> Strategy:
        return Strategy(self.strategy.kind, self.optimized_parameters, self.strategy.name)

    def to_dict(self) -> dict:
        return {
            "strategy": self.strategy.to_dict(),
            "original_parameters": self.original_parameters,
            "optimized_parameters": self.optimized_parameters,
            "baseline_score": self.baseline_score,
            "optimized_score": self.optimized_score,
            "score_improvement": self.score_improvement,
            "return_improvement": self.return_improvement,
            "sharpe_improvement": self.sharpe_improvement,
            "drawdown_improvement": self.drawdown_improvement,
            "points_evaluated": len(self.evaluated),
            "errors": {str(k): v for k, v in self.errors.items()},
        }


def parameter_grid(
    base: Mapping[str, Any],
    ranges: Mapping[str, Sequence[Any]],
) -> list[dict[str, Any]]:
    """Cartesian grid over *ranges*, with *base* as the first point.

    Names not in *ranges* keep their *base* value; duplicate points
    (including a grid point equal to *base*) appear once.
    """
    points = [dict(base)]
    names = list(ranges)
    for combo in itertools.product(*(ranges[n] for n in names)):
        point = {**base, **dict(zip(names, combo))}
        if point not in points:
            points.append(point)
    return points


def _evaluate(
    strategy: Strategy,
    params: dict[str, Any],
    series: HistoricalSeries,
    config: BacktestConfig,
) -> GridPoint:
    sim = Simulator(Strategy(strategy.kind, params, strategy.name), config).run(series)
    record = compute_performance(sim)
    return GridPoint(params, record, composite_score(record))


def optimize_parameters(
    strategy: Strategy,
    series: HistoricalSeries,
    config: BacktestConfig | None = None,
    param_grid: Mapping[str, Sequence[Any]] | None = None,
    max_workers: int | None = None,
) -> OptimizationResult:
    """Grid-search *strategy*'s parameters by composite score.

    Parameters
    ----------
    strategy : Strategy
        The strategy whose current parameters form the baseline point.
    series : HistoricalSeries
        Price history replayed for every point.
    config : BacktestConfig, optional
        Shared run settings.
    param_grid : mapping, optional
        Candidate values per parameter; the registry's grid when omitted.
    max_workers : int, optional
        Worker pool size; ``1`` evaluates sequentially.

    Raises
    ------
    ConfigValidationError, DataIntegrityError, InsufficientDataError
        If the baseline point itself cannot be evaluated.  Failures of
        other points are collected in ``errors``.
    """
    config = config or BacktestConfig()
    entry = registry.get(strategy.kind)
    base = entry.resolve_params(strategy.parameters)
    entry.validate(base)
    ranges = entry.param_grid if param_grid is None else param_grid
    unknown = sorted(set(ranges) - set(base))
    if unknown:
        raise ConfigValidationError(
            f"Grid names unknown parameters for {entry.kind.value}: {unknown}"
        )

    points: list[dict[str, Any]] = []
    for params in parameter_grid(base, ranges):
        try:
            entry.validate(params)
        except ConfigValidationError:
            continue
        points.append(params)

    tasks = {
        i: (lambda p=p: _evaluate(strategy, p, series, config))
        for i, p in enumerate(points)
    }
    results, errors = run_all(tasks, max_workers=max_workers)
    if 0 in errors:
        raise errors[0]

    evaluated = tuple(results[i] for i in sorted(results))
    baseline = results[0]
    best = baseline
    for point in evaluated:
        if point.score > best.score:
            best = point

    return OptimizationResult(
        strategy=strategy,
        original_parameters=baseline.parameters,
        optimized_parameters=best.parameters,
        baseline=baseline.record,
        optimized=best.record,
        baseline_score=baseline.score,
        optimized_score=best.score,
        evaluated=evaluated,
        errors={i: describe_error(e) for i, e in errors.items()},
    )
