"""Grid-search optimizer and multi-strategy comparator."""

from stratlab.optimize.grid import (
    GridPoint,
    OptimizationResult,
    optimize_parameters,
    parameter_grid,
)
from stratlab.optimize.compare import (
    Combination,
    ComparisonResult,
    StrategyRun,
    best_combination,
    compare_strategies,
    correlation_matrix,
    efficient_set,
    rank_runs,
)
from stratlab.optimize.pool import describe_error, run_all

__all__ = [
    "GridPoint", "OptimizationResult", "optimize_parameters", "parameter_grid",
    "Combination", "ComparisonResult", "StrategyRun", "best_combination",
    "compare_strategies", "correlation_matrix", "efficient_set", "rank_runs",
    "describe_error", "run_all",
]
