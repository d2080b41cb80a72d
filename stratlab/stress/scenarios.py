"""Deterministic stress scenarios on a realized value path.

Each scenario transforms the snapshot values (or step returns) of a
completed :class:`SimulationResult` and reports the impact against that
unstressed baseline.  Signal generation is never re-run: these stress what
the portfolio actually held, not how the strategy would have reacted.

``portfolio_impact`` is the change of the final value versus baseline in
percent; drawdowns are in percent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import numpy as np

from stratlab.backtest.result import SimulationResult
from stratlab.data.series import HistoricalSeries
from stratlab.features.returns import cumulative_return
from stratlab.risk.drawdown import max_drawdown
from stratlab.utils.validation import StratlabValidationError

DEFAULT_BEAR_DRIFT_PCT = (0.80 ** (1 / 252) - 1) * 100


@dataclass(frozen=True)
class ScenarioResult:
    scenario: str
    portfolio_impact: float
    max_drawdown: float
    baseline_max_drawdown: float
    stressed_values: tuple[float, ...]
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self, include_path: bool = False) -> dict:
        d = {
            "scenario": self.scenario,
            "portfolio_impact": self.portfolio_impact,
            "max_drawdown": self.max_drawdown,
            "baseline_max_drawdown": self.baseline_max_drawdown,
            "details": dict(self.details),
        }
        if include_path:
            d["stressed_values"] = list(self.stressed_values)
        return d


def _baseline(sim: SimulationResult) -> np.ndarray:
    values = sim.values()
    if len(values) == 0:
        raise StratlabValidationError("cannot stress a simulation with no snapshots.")
    return values


def _result(
    name: str,
    baseline: np.ndarray,
    stressed: np.ndarray,
    **details: Any,
) -> ScenarioResult:
    stressed = np.maximum(stressed, 0.0)
    impact = (stressed[-1] / baseline[-1] - 1) * 100 if baseline[-1] > 0 else 0.0
    return ScenarioResult(
        scenario=name,
        portfolio_impact=float(impact),
        max_drawdown=max_drawdown(stressed) * 100,
        baseline_max_drawdown=max_drawdown(baseline) * 100,
        stressed_values=tuple(float(v) for v in stressed),
        details=details,
    )


def _rebuild(start: float, returns: np.ndarray) -> np.ndarray:
    return start * np.concatenate([[1.0], np.cumprod(1.0 + returns)])


def market_crash(
    sim: SimulationResult,
    pct: float = -0.30,
    at_step: int | None = None,
) -> ScenarioResult:
    """Instantaneous multiplicative shock of *pct* from *at_step* onward.

    The path keeps its shape after the shock.  By default the shock hits at
    the running peak, the worst point for a crash.
    """
    if not -1 < pct < 0:
        raise StratlabValidationError(f"crash pct must be in (-1, 0); got {pct}.")
    values = _baseline(sim)
    at = int(np.argmax(values)) if at_step is None else at_step
    if not 0 <= at < len(values):
        raise StratlabValidationError(f"at_step {at} outside 0..{len(values) - 1}.")
    stressed = values.copy()
    stressed[at:] *= 1 + pct
    return _result(
        "market_crash", values, stressed,
        shock_pct=pct * 100, at_step=at, date=str(sim.snapshots[at].date.date()),
    )


def volatility_shock(sim: SimulationResult, multiplier: float = 2.0) -> ScenarioResult:
    """Scale each step return's deviation from the mean by *multiplier*.

    Shocked returns are floored at -100 % so values stay non-negative.
    """
    if multiplier < 0:
        raise StratlabValidationError(f"multiplier must be >= 0; got {multiplier}.")
    values = _baseline(sim)
    r = sim.returns()
    mean = r.mean() if len(r) else 0.0
    shocked = np.maximum(mean + multiplier * (r - mean), -1.0)
    return _result(
        "volatility_shock", values, _rebuild(values[0], shocked),
        multiplier=multiplier,
    )


def bear_market(
    sim: SimulationResult,
    daily_drift_pct: float = DEFAULT_BEAR_DRIFT_PCT,
    duration_days: int = 252,
    start_step: int = 0,
) -> ScenarioResult:
    """Overlay a sustained daily drift on the step returns for *duration_days*.

    The default drift compounds to -20 % over 252 trading days.  The window
    is cut at the end of the run; ``window_return`` is the stressed path's
    cumulative return over it.
    """
    if duration_days < 1:
        raise StratlabValidationError(f"duration_days must be >= 1; got {duration_days}.")
    values = _baseline(sim)
    r = sim.returns().copy()
    if not 0 <= start_step < max(len(r), 1):
        raise StratlabValidationError(
            f"start_step {start_step} outside 0..{max(len(r) - 1, 0)}."
        )
    lo = start_step
    hi = min(lo + duration_days, len(r))
    drift = daily_drift_pct / 100
    r[lo:hi] = np.maximum((1 + r[lo:hi]) * (1 + drift) - 1, -1.0)
    stressed = _rebuild(values[0], r)
    window_return = cumulative_return(r[lo:hi]) * 100 if stressed[lo] > 0 else 0.0
    return _result(
        "bear_market", values, stressed,
        daily_drift_pct=daily_drift_pct, duration_days=hi - lo,
        window_return=float(window_return),
    )


def interest_rate_shock(
    sim: SimulationResult,
    bps: float = 500.0,
    durations: Mapping[int, float] | None = None,
) -> ScenarioResult:
    """Parallel rate shift of *bps* applied to rate-sensitive holdings.

    *durations* maps instrument index to modified duration; only those
    instruments lose ``duration * bps / 10_000`` of their marked value at
    every step.  Everything else, cash included, is unaffected.
    """
    values = _baseline(sim)
    durations = dict(durations or {})
    pv = sim.position_values()
    dy = bps / 10_000
    loss = np.zeros(len(values))
    for i, d in durations.items():
        if 0 <= i < pv.shape[1]:
            loss += d * dy * pv[:, i]
    valid = [i for i in durations if 0 <= i < pv.shape[1]]
    exposure = float(pv[-1, valid].sum()) if valid else 0.0
    return _result(
        "interest_rate_shock", values, values - loss,
        bps=bps, rate_sensitive=sorted(durations), final_exposure=exposure,
    )


def correlation_breakdown(
    sim: SimulationResult,
    series: HistoricalSeries,
) -> ScenarioResult:
    """Assume every pairwise correlation among held instruments jumps to 1.

    Uses the average holding weights over the run and the instruments'
    step returns over the replayed dates.  The diversification benefit
    ``1 - sigma_actual / sigma_undiversified`` is lost entirely; the stressed
    path scales return deviations by ``sigma_undiversified / sigma_actual``.
    """
    values = _baseline(sim)
    aligned = series.between(sim.dates[0], sim.dates[-1])
    px = aligned.prices
    asset_r = px[1:] / px[:-1] - 1 if len(px) > 1 else np.zeros((0, aligned.width))

    pv = sim.position_values()
    weights = (pv / values[:, None]).mean(axis=0) if values.all() else np.zeros(pv.shape[1])
    held = weights > 0

    if held.sum() < 2 or len(asset_r) < 2:
        benefit, ratio = 0.0, 1.0
        actual = undiversified = 0.0
    else:
        w = weights[held]
        cov = np.atleast_2d(np.cov(asset_r[:, held], rowvar=False, ddof=0))
        actual = float(np.sqrt(max(w @ cov @ w, 0.0)))
        undiversified = float(w @ np.sqrt(np.diag(cov)))
        benefit = 1 - actual / undiversified if undiversified > 0 else 0.0
        ratio = undiversified / actual if actual > 0 else 1.0

    r = sim.returns()
    mean = r.mean() if len(r) else 0.0
    stressed = _rebuild(values[0], np.maximum(mean + ratio * (r - mean), -1.0))
    return _result(
        "correlation_breakdown", values, stressed,
        diversification_benefit_lost=benefit * 100,
        actual_volatility=actual * np.sqrt(252) * 100,
        undiversified_volatility=undiversified * np.sqrt(252) * 100,
        instruments=[int(i) for i in np.flatnonzero(held)],
    )


def run_stress_tests(
    sim: SimulationResult,
    series: HistoricalSeries | None = None,
    durations: Mapping[int, float] | None = None,
) -> dict[str, ScenarioResult]:
    """Run the default scenario battery.

    -30 % crash, 2x volatility, -20 % bear year, +500 bp rates and (when
    *series* is given) correlation breakdown.
    """
    results = {
        "market_crash": market_crash(sim, -0.30),
        "volatility_shock": volatility_shock(sim, 2.0),
        "bear_market": bear_market(sim, DEFAULT_BEAR_DRIFT_PCT, 252),
        "interest_rate_shock": interest_rate_shock(sim, 500.0, durations),
    }
    if series is not None:
        results["correlation_breakdown"] = correlation_breakdown(sim, series)
    return results
