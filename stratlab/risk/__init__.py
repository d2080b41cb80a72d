"""Risk and performance analysis."""

from stratlab.risk.drawdown import (
    max_drawdown,
    drawdown_series,
    drawdown_details,
)
from stratlab.risk.tail import value_at_risk, expected_shortfall
from stratlab.risk.metrics import (
    PerformanceRecord,
    RATIO_CAP,
    compute_performance,
    annualized_return,
    sharpe_ratio,
    sortino_ratio,
    calmar_ratio,
    trade_statistics,
    kelly_criterion,
    monthly_returns,
    benchmark_comparison,
)
from stratlab.risk.scoring import (
    component_scores,
    composite_score,
    score_values,
    strategy_grade,
    recommendation,
)

__all__ = [
    "max_drawdown", "drawdown_series", "drawdown_details",
    "value_at_risk", "expected_shortfall",
    "PerformanceRecord", "RATIO_CAP", "compute_performance",
    "annualized_return", "sharpe_ratio", "sortino_ratio", "calmar_ratio",
    "trade_statistics", "kelly_criterion", "monthly_returns",
    "benchmark_comparison",
    "component_scores", "composite_score", "score_values", "strategy_grade",
    "recommendation",
]
