"""Stress test engine: deterministic scenarios on realized value paths."""

from stratlab.stress.scenarios import (
    ScenarioResult,
    market_crash,
    volatility_shock,
    bear_market,
    interest_rate_shock,
    correlation_breakdown,
    run_stress_tests,
    DEFAULT_BEAR_DRIFT_PCT,
)

__all__ = [
    "ScenarioResult", "market_crash", "volatility_shock", "bear_market",
    "interest_rate_shock", "correlation_breakdown", "run_stress_tests",
    "DEFAULT_BEAR_DRIFT_PCT",
]
