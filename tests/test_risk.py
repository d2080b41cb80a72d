"""Tests for stratlab.risk."""

import numpy as np
import pandas as pd
import pytest

from stratlab.backtest import run_simulation
from stratlab.risk import (
    RATIO_CAP,
    annualized_return,
    benchmark_comparison,
    calmar_ratio,
    component_scores,
    composite_score,
    compute_performance,
    drawdown_details,
    drawdown_series,
    expected_shortfall,
    kelly_criterion,
    max_drawdown,
    monthly_returns,
    recommendation,
    sharpe_ratio,
    sortino_ratio,
    strategy_grade,
    trade_statistics,
    value_at_risk,
)
from stratlab.risk.metrics import PerformanceRecord, _streaks
from stratlab.strategies import Strategy


def _record(**overrides) -> PerformanceRecord:
    base = dict.fromkeys(PerformanceRecord.__dataclass_fields__, 0)
    base.update(overrides)
    return PerformanceRecord(**base)


class TestRatios:
    def test_annualized_one_year(self):
        assert annualized_return(100, 110, 252) == pytest.approx(0.10)

    def test_annualized_degenerate(self):
        assert annualized_return(100, 110, 0) == 0.0
        assert annualized_return(100, 0, 10) == -1.0

    def test_annualized_is_capped(self):
        assert np.isfinite(annualized_return(1, 1e9, 2))

    def test_sharpe_zero_vol(self):
        assert sharpe_ratio(0.1, 0.0, 0.02) == 0.0

    def test_sortino_no_losses_is_capped(self):
        assert sortino_ratio(np.array([0.01, 0.02]), 0.5, 0.02) == RATIO_CAP
        assert sortino_ratio(np.array([0.0, 0.0]), 0.0, 0.02) == 0.0

    def test_calmar_zero_drawdown(self):
        assert calmar_ratio(0.2, 0.0) == 0.0

    def test_kelly(self):
        assert kelly_criterion(60, 10, -10) == pytest.approx(20.0)
        assert kelly_criterion(100, 10, 0) == 0.0

    def test_streaks(self):
        assert _streaks([1, 1, -1, 0, -1, -1, -1, 1]) == (2, 3)
        assert _streaks([]) == (0, 0)


class TestDrawdown:
    def test_max_drawdown_fraction(self):
        assert max_drawdown([100, 120, 90, 130]) == pytest.approx(0.25)

    def test_monotone_has_no_drawdown(self):
        assert max_drawdown(np.linspace(1, 2, 50)) == 0.0
        assert max_drawdown([]) == 0.0

    def test_drawdown_series_non_positive(self):
        v = pd.Series([100.0, 110, 99, 105, 120], index=pd.bdate_range("2020-01-01", periods=5))
        dd = drawdown_series(v)
        assert (dd <= 0).all()
        assert dd.iloc[-1] == 0.0

    def test_drawdown_details(self):
        v = pd.Series(
            [100.0, 90, 95, 101, 100, 80, 85],
            index=pd.bdate_range("2020-01-01", periods=7),
        )
        details = drawdown_details(v)
        assert list(details.columns) == [
            "start", "trough", "end", "depth", "days", "recovery_days",
        ]
        assert len(details) == 2
        worst = details.iloc[0]
        assert worst["depth"] == pytest.approx(80 / 101 - 1)
        assert worst["end"] == v.index[-1]

    def test_drawdown_details_empty(self):
        v = pd.Series([1.0, 2.0, 3.0], index=pd.bdate_range("2020-01-01", periods=3))
        assert drawdown_details(v).empty


class TestTail:
    def test_var_index(self):
        r = np.arange(-50, 50) / 1000
        assert value_at_risk(r, 0.95) == pytest.approx(r[5])

    def test_var_index_exact_on_inexact_complement(self):
        r = np.arange(10) / 100
        assert value_at_risk(r, 0.9) == pytest.approx(r[1])

    def test_es_below_var(self):
        rng = np.random.default_rng(1)
        r = rng.normal(0, 0.01, 1000)
        assert expected_shortfall(r) <= value_at_risk(r)

    def test_empty(self):
        assert value_at_risk([]) == 0.0
        assert expected_shortfall([]) == 0.0

    def test_bad_confidence(self):
        with pytest.raises(ValueError):
            value_at_risk([0.1], 1.5)


class TestScoring:
    def test_component_clipping(self):
        rec = _record(annualized_return=50.0, sharpe_ratio=-1.0, max_drawdown=30.0)
        assert component_scores(rec) == (100.0, 0.0, 0.0)

    def test_composite_weights(self):
        rec = _record(annualized_return=10.0, sharpe_ratio=1.0, max_drawdown=10.0)
        assert composite_score(rec) == pytest.approx(0.4 * 50 + 0.3 * 50 + 0.3 * 50)

    def test_grade_and_recommendation(self):
        great = _record(annualized_return=30.0, sharpe_ratio=2.5, max_drawdown=1.0)
        poor = _record(annualized_return=-5.0, sharpe_ratio=-0.5, max_drawdown=40.0)
        assert strategy_grade(great) == "A+"
        assert recommendation(great).startswith("HIGHLY RECOMMENDED")
        assert strategy_grade(poor) == "D"
        assert recommendation(poor).startswith("NOT RECOMMENDED")


class TestPerformance:
    def test_buy_and_hold_linear(self, linear_series, frictionless):
        sim = run_simulation(Strategy("buy_and_hold"), linear_series, frictionless)
        rec = compute_performance(sim)
        assert rec.total_trades == 1
        assert rec.winning_trades == 1
        assert rec.total_return == pytest.approx(100.0)
        assert rec.max_drawdown == pytest.approx(0.0)
        assert rec.sortino_ratio == RATIO_CAP
        assert rec.final_value == pytest.approx(200_000.0)
        assert rec.trading_days == 100
        assert rec.win_rate == 100.0
        assert rec.profit_factor == 0.0

    def test_empty_ledger(self):
        stats = trade_statistics([])
        assert stats["total_trades"] == 0
        assert stats["win_rate"] == 0.0
        assert stats["profit_factor"] == 0.0
        assert stats["max_consecutive_wins"] == stats["max_consecutive_losses"] == 0

    def test_no_signals(self, flat_series, frictionless):
        sim = run_simulation(Strategy("moving_average_crossover"), flat_series, frictionless)
        assert sim.trades == ()
        rec = compute_performance(sim)
        assert rec.total_trades == 0
        assert rec.win_rate == 0.0
        assert rec.profit_factor == 0.0
        assert rec.kelly_criterion == 0.0
        assert rec.total_return == 0.0

    def test_flat_series_is_finite(self, flat_series, frictionless):
        sim = run_simulation(Strategy("buy_and_hold"), flat_series, frictionless)
        rec = compute_performance(sim)
        assert rec.volatility == 0.0
        assert rec.sharpe_ratio == 0.0
        assert rec.calmar_ratio == 0.0
        assert all(np.isfinite(v) for v in rec.to_dict().values())

    def test_keys_and_units(self, single_series):
        sim = run_simulation(Strategy("moving_average_crossover"), single_series)
        rec = compute_performance(sim)
        assert set(rec.to_dict()) == set(PerformanceRecord.__dataclass_fields__)
        assert 0 <= rec.win_rate <= 100
        assert 0 <= rec.max_drawdown <= 100
        assert rec.winning_trades + rec.losing_trades <= rec.total_trades

    def test_benchmark_against_itself(self, linear_series, frictionless):
        sim = run_simulation(Strategy("buy_and_hold"), linear_series, frictionless)
        cmp = benchmark_comparison(sim, linear_series.close(0))
        assert cmp["excess_return"] == pytest.approx(0.0, abs=1e-9)
        assert cmp["beta"] == pytest.approx(1.0)

    def test_monthly_returns_compound_to_total(self, single_series):
        sim = run_simulation(Strategy("buy_and_hold"), single_series)
        monthly = monthly_returns(sim)
        total = (np.prod(1 + monthly.values / 100) - 1) * 100
        assert total == pytest.approx(compute_performance(sim).total_return)
