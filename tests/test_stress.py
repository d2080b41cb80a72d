"""Tests for stratlab.stress."""

import numpy as np
import pandas as pd
import pytest

from stratlab.backtest import BacktestConfig, run_simulation
from stratlab.data import HistoricalSeries
from stratlab.strategies import Strategy
from stratlab.stress import (
    DEFAULT_BEAR_DRIFT_PCT,
    bear_market,
    correlation_breakdown,
    interest_rate_shock,
    market_crash,
    run_stress_tests,
    volatility_shock,
)
from stratlab.utils import StratlabValidationError


@pytest.fixture()
def hold_linear(linear_series, frictionless):
    return run_simulation(Strategy("buy_and_hold"), linear_series, frictionless)


class TestMarketCrash:
    def test_crash_at_start(self, hold_linear):
        res = market_crash(hold_linear, -0.30, at_step=0)
        assert res.portfolio_impact == pytest.approx(-30.0)
        assert res.baseline_max_drawdown == pytest.approx(0.0)

    def test_crash_at_peak_by_default(self, hold_linear):
        res = market_crash(hold_linear)
        assert res.details["at_step"] == len(hold_linear.snapshots) - 1
        assert res.max_drawdown > res.baseline_max_drawdown

    @pytest.mark.parametrize("pct", [0.1, -1.0])
    def test_invalid_pct(self, hold_linear, pct):
        with pytest.raises(StratlabValidationError):
            market_crash(hold_linear, pct)


class TestVolatilityShock:
    def test_unit_multiplier_is_identity(self, hold_linear):
        res = volatility_shock(hold_linear, 1.0)
        assert res.portfolio_impact == pytest.approx(0.0, abs=1e-9)
        np.testing.assert_allclose(res.stressed_values, hold_linear.values())

    def test_values_stay_non_negative(self, single_series):
        sim = run_simulation(Strategy("buy_and_hold"), single_series)
        res = volatility_shock(sim, 50.0)
        assert min(res.stressed_values) >= 0


class TestBearMarket:
    def test_window_cut_at_end(self, flat_series, frictionless):
        sim = run_simulation(Strategy("buy_and_hold"), flat_series, frictionless)
        res = bear_market(sim)
        n = len(sim.snapshots) - 1
        assert res.details["duration_days"] == n
        expected = ((1 + DEFAULT_BEAR_DRIFT_PCT / 100) ** n - 1) * 100
        assert res.details["window_return"] == pytest.approx(expected)
        assert res.portfolio_impact == pytest.approx(expected)

    def test_late_window_leaves_prefix_untouched(self, hold_linear):
        res = bear_market(hold_linear, duration_days=10, start_step=50)
        np.testing.assert_allclose(res.stressed_values[:51], hold_linear.values()[:51])
        assert res.details["duration_days"] == 10

    @pytest.mark.parametrize("start_step", [-1, 99, 200])
    def test_start_step_out_of_range(self, hold_linear, start_step):
        with pytest.raises(StratlabValidationError, match="start_step"):
            bear_market(hold_linear, start_step=start_step)

    def test_default_drift_is_twenty_percent_a_year(self):
        assert (1 + DEFAULT_BEAR_DRIFT_PCT / 100) ** 252 == pytest.approx(0.8)


class TestInterestRate:
    def test_no_rate_sensitive_holdings(self, hold_linear):
        assert interest_rate_shock(hold_linear).portfolio_impact == 0.0

    def test_duration_loss(self, hold_linear):
        res = interest_rate_shock(hold_linear, 500, {0: 5.0})
        assert res.portfolio_impact == pytest.approx(-25.0)
        assert res.details["final_exposure"] == pytest.approx(200_000.0)


class TestCorrelationBreakdown:
    def test_single_holding_has_no_benefit(self, hold_linear, linear_series):
        res = correlation_breakdown(hold_linear, linear_series)
        assert res.details["diversification_benefit_lost"] == 0.0
        assert res.portfolio_impact == pytest.approx(0.0, abs=1e-9)

    def test_hedged_pair_loses_benefit(self):
        rng = np.random.default_rng(11)
        n = 200
        shock = rng.normal(0, 0.01, n)
        a = 100 * np.cumprod(1 + 0.0005 + shock)
        b = 100 * np.cumprod(1 + 0.0005 - shock)
        series = HistoricalSeries(dates=pd.bdate_range("2021-01-04", periods=n),
                                  prices=np.column_stack([a, b]))
        sim = run_simulation(
            Strategy("mean_variance", {"lookback": 20, "max_weight": 0.5}),
            series, BacktestConfig(rebalance_freq="weekly"),
        )
        res = correlation_breakdown(sim, series)
        assert res.details["instruments"] == [0, 1]
        assert res.details["diversification_benefit_lost"] > 50
        assert res.details["undiversified_volatility"] > res.details["actual_volatility"]


def test_battery(single_series):
    sim = run_simulation(Strategy("moving_average_crossover"), single_series)
    results = run_stress_tests(sim, single_series)
    assert set(results) == {
        "market_crash", "volatility_shock", "bear_market",
        "interest_rate_shock", "correlation_breakdown",
    }
    d = results["market_crash"].to_dict(include_path=True)
    assert len(d["stressed_values"]) == len(sim.snapshots)
    assert "correlation_breakdown" not in run_stress_tests(sim)
