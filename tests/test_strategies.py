"""Tests for stratlab.strategies."""

import numpy as np
import pandas as pd
import pytest

from stratlab.data import HistoricalSeries
from stratlab.strategies import (
    Signal,
    SignalType,
    Strategy,
    StrategyKind,
    generate_signals,
    make_strategy,
    registry,
)
from stratlab.strategies.mean_reversion import pairs_trading
from stratlab.utils import ConfigValidationError, UnknownStrategyError

from conftest import make_series


def _replay(kind: str, series: HistoricalSeries, **params) -> list[tuple[int, Signal]]:
    entry = registry.get(kind)
    resolved = entry.resolve_params(params)
    entry.validate(resolved)
    out = []
    for step in range(len(series)):
        for sig in generate_signals(entry, series.window(step), step, resolved):
            out.append((step, sig))
    return out


class TestTypes:
    def test_kind_parse(self):
        assert StrategyKind.parse("macd_momentum") is StrategyKind.macd_momentum
        with pytest.raises(UnknownStrategyError):
            StrategyKind.parse("martingale")

    def test_strategy_defaults_name(self):
        s = Strategy("rsi_mean_reversion", {"period": 10})
        assert s.name == "rsi_mean_reversion"
        assert s.kind is StrategyKind.rsi_mean_reversion

    def test_strategy_parameters_frozen(self):
        s = Strategy("rsi_mean_reversion", {"period": 10})
        with pytest.raises(TypeError):
            s.parameters["period"] = 5
        assert s.with_parameters(period=5).parameters["period"] == 5
        assert s.parameters["period"] == 10

    def test_signal_strength_bounds(self):
        with pytest.raises(ConfigValidationError):
            Signal(SignalType.BUY, 1.5)
        with pytest.raises(ConfigValidationError):
            Signal(SignalType.BUY, 0.5, target_weight=-0.1)


class TestRegistry:
    def test_every_kind_registered(self):
        assert {e.kind for e in registry.list_all()} == set(StrategyKind)

    def test_unknown_parameter_rejected(self):
        with pytest.raises(ConfigValidationError, match="Unknown parameters"):
            make_strategy("moving_average_crossover", {"shrt_period": 5})

    def test_invalid_parameters_rejected(self):
        with pytest.raises(ConfigValidationError):
            make_strategy("moving_average_crossover", {"short_period": 50, "long_period": 20})
        with pytest.raises(ConfigValidationError):
            make_strategy("rsi_mean_reversion", {"oversold": 80})
        with pytest.raises(ConfigValidationError):
            make_strategy("pairs_trading", {"entry_z": 0.5, "exit_z": 1.0})

    def test_make_strategy_fills_defaults(self):
        s = make_strategy("macd_momentum", {"fast_period": 8})
        assert s.parameters["fast_period"] == 8
        assert s.parameters["slow_period"] == 26

    def test_lookbacks(self):
        assert registry.get("buy_and_hold").lookback({}) == 0
        assert registry.get("rsi_mean_reversion").lookback({"period": 14}) == 15
        assert registry.get("macd_momentum").lookback(
            {"slow_period": 26, "signal_period": 9}) == 35

    def test_no_signals_before_lookback(self):
        entry = registry.get("moving_average_crossover")
        params = entry.resolve_params()
        series = make_series(np.linspace(100, 120, 60))
        assert generate_signals(entry, series.window(10), 10, params) == []


class TestGenerators:
    def test_buy_and_hold_single_entry(self):
        signals = _replay("buy_and_hold", make_series(np.linspace(100, 110, 30)))
        assert len(signals) == 1
        step, sig = signals[0]
        assert step == 0 and sig.type is SignalType.BUY and sig.strength == 1.0

    def test_golden_cross(self):
        prices = np.concatenate([np.linspace(150, 100, 60), np.linspace(101, 160, 60)])
        signals = _replay("moving_average_crossover", make_series(prices),
                          short_period=5, long_period=20)
        types = [s.type for _, s in signals]
        assert types == [SignalType.BUY]
        assert signals[0][0] > 60

    def test_rsi_single_buy_on_crossing(self):
        prices = np.concatenate([np.linspace(100, 120, 21), 120 - 2.0 * np.arange(1, 16)])
        signals = _replay("rsi_mean_reversion", make_series(prices))
        assert [s.type for _, s in signals] == [SignalType.BUY]
        assert signals[0][1].strength == pytest.approx(0.7)
        assert "oversold" in signals[0][1].reason

    def test_bollinger_breakout_up(self):
        prices = 100 + 0.2 * np.sin(np.arange(40.0))
        prices[35] = 110
        signals = _replay("bollinger_bands", make_series(prices))
        assert (35, SignalType.BUY) in [(i, s.type) for i, s in signals]

    def test_macd_crossovers_alternate(self):
        t = np.arange(300)
        prices = 100 + 10 * np.sin(t / 15)
        types = [s.type for _, s in _replay("macd_momentum", make_series(prices))]
        assert types
        assert all(a != b for a, b in zip(types, types[1:]))

    def test_pairs_entry_on_spread_jump(self):
        n = 80
        a = 100 * np.exp(0.001 * np.sin(np.arange(n)))
        b = np.full(n, 100.0)
        a[70:] *= 1.1
        series = HistoricalSeries(dates=pd.bdate_range("2021-01-04", periods=n),
                                  prices=np.column_stack([a, b]))
        params = registry.get("pairs_trading").resolve_params()
        signals = pairs_trading(series.window(70), 70, params)
        assert [(s.type, s.instrument) for s in signals] == [
            (SignalType.SELL, 0), (SignalType.BUY, 1),
        ]

    def test_mean_variance_targets(self, series):
        params = registry.get("mean_variance").resolve_params({"lookback": 60})
        signals = generate_signals(registry.get("mean_variance"), series.window(60), 60, params)
        assert len(signals) == series.width
        weights = [s.target_weight for s in signals]
        assert all(w is not None and 0 <= w <= 1 for w in weights)
        assert sum(weights) == pytest.approx(1.0)
        # off-cycle steps are silent
        assert generate_signals(registry.get("mean_variance"), series.window(61), 61, params) == []

    def test_generators_do_not_look_ahead(self, single_series):
        entry = registry.get("rsi_mean_reversion")
        params = entry.resolve_params()
        truncated = single_series.window(150)
        for step in range(100, 151):
            assert generate_signals(entry, single_series.window(step), step, params) == \
                generate_signals(entry, truncated.window(step), step, params)
