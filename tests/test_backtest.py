"""Tests for stratlab.backtest."""

import numpy as np
import pandas as pd
import pytest

from stratlab.backtest import (
    BacktestConfig,
    Simulator,
    TradeOrigin,
    TradeStatus,
    buy_factor,
    run_simulation,
    sell_factor,
    transaction_costs,
)
from stratlab.backtest.engine import _Book
from stratlab.data import HistoricalSeries
from stratlab.strategies import Signal, SignalType, Strategy
from stratlab.utils import ConfigValidationError, DataIntegrityError, InsufficientDataError

from conftest import make_series


class TestConfig:
    def test_defaults(self):
        cfg = BacktestConfig()
        assert cfg.initial_capital == 100_000
        assert cfg.rebalance_freq == "monthly"

    @pytest.mark.parametrize("kwargs", [
        {"initial_capital": 0},
        {"transaction_cost": 1.0},
        {"slippage": -0.1},
        {"rebalance_freq": "hourly"},
        {"start_date": "2021-06-01", "end_date": "2021-01-01"},
        {"start_date": "not a date"},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigValidationError):
            BacktestConfig(**kwargs)

    def test_to_dict_dates(self):
        d = BacktestConfig(start_date=pd.Timestamp("2021-01-04")).to_dict()
        assert d["start_date"] == "2021-01-04"
        assert d["end_date"] is None


class TestCosts:
    def test_factors(self):
        cfg = BacktestConfig(transaction_cost=0.001, slippage=0.0005)
        assert buy_factor(cfg) == pytest.approx(1.001 * 1.0005)
        assert sell_factor(cfg) == pytest.approx(0.999 * 0.9995)

    def test_costs_non_negative(self):
        cfg = BacktestConfig()
        assert transaction_costs(-1000, "buy", cfg) > 0
        assert transaction_costs(1000, "sell", cfg) > 0
        assert transaction_costs(1000, "buy", BacktestConfig(transaction_cost=0, slippage=0)) == 0


class TestBook:
    def test_rejects_overdraw(self):
        book = _Book(BacktestConfig(), 1)
        date = pd.Timestamp("2021-01-04")
        book.buy(0, 500_000, 10.0, date, "too big", TradeOrigin.signal)
        assert book.cash == 100_000
        assert [t.status for t in book.trades] == [TradeStatus.rejected]

    def test_round_trip_costs(self):
        cfg = BacktestConfig(transaction_cost=0.01, slippage=0.0)
        book = _Book(cfg, 1)
        date = pd.Timestamp("2021-01-04")
        book.buy(0, 1_000, 10.0, date, "entry", TradeOrigin.signal)
        book.sell(0, 100.0, 12.0, date, "exit")
        (trade,) = book.trades
        expected = transaction_costs(1_000, "buy", cfg) + transaction_costs(1_200, "sell", cfg)
        assert trade.costs == pytest.approx(expected)
        assert book.cash == pytest.approx(100_000 - 1_010 + 1_188)

    def test_rebalance_buy_is_clamped(self):
        book = _Book(BacktestConfig(), 1)
        date = pd.Timestamp("2021-01-04")
        book.buy(0, 500_000, 10.0, date, "rebalance", TradeOrigin.rebalance)
        assert book.trades == []
        assert book.cash == pytest.approx(0.0)
        assert book.quantities()[0] > 0

    def test_fifo_lots(self, frictionless):
        book = _Book(frictionless, 1)
        d = pd.bdate_range("2021-01-04", periods=3)
        book.buy(0, 1000, 10.0, d[0], "first", TradeOrigin.signal)
        book.buy(0, 1000, 20.0, d[1], "second", TradeOrigin.signal)
        book.sell(0, 120, 15.0, d[2], "exit")
        closed = book.trades
        assert [t.entry_price for t in closed] == [10.0, 20.0]
        assert [t.quantity for t in closed] == pytest.approx([100, 20])
        assert book.quantities()[0] == pytest.approx(30)


class TestSimulator:
    def test_snapshot_count(self, single_series):
        sim = run_simulation(Strategy("moving_average_crossover"), single_series)
        assert len(sim.snapshots) == len(single_series) - 50
        assert sim.snapshots[0].step == 50
        assert sim.snapshots[0].step_return == 0.0

    def test_value_identity(self, series):
        sim = run_simulation(Strategy("mean_variance", {"lookback": 40}), series)
        for snap in sim.snapshots:
            assert snap.value == pytest.approx(snap.cash + sum(snap.position_values.values()))
            assert snap.cash >= -1e-6

    def test_buy_and_hold_linear(self, linear_series, frictionless):
        sim = run_simulation(Strategy("buy_and_hold"), linear_series, frictionless)
        assert len(sim.trades) == 1
        trade = sim.trades[0]
        assert trade.status is TradeStatus.open
        assert trade.quantity == pytest.approx(1000.0)
        assert sim.final_value == pytest.approx(200_000.0)

    def test_costs_reduce_value(self, linear_series, frictionless):
        free = run_simulation(Strategy("buy_and_hold"), linear_series, frictionless)
        costly = run_simulation(Strategy("buy_and_hold"), linear_series,
                                BacktestConfig(rebalance_freq="none"))
        assert costly.final_value < free.final_value
        assert costly.trades[0].costs > 0

    def test_deterministic(self, series):
        strat = Strategy("pairs_trading", {"lookback": 30, "entry_z": 1.5})
        a = run_simulation(strat, series)
        b = run_simulation(strat, series)
        np.testing.assert_array_equal(a.values(), b.values())
        assert a.trades == b.trades

    def test_date_window(self, single_series):
        cfg = BacktestConfig(start_date="2020-03-02", end_date="2020-12-31")
        sim = run_simulation(Strategy("buy_and_hold"), single_series, cfg)
        assert sim.dates[0] >= pd.Timestamp("2020-03-02")
        assert sim.dates[-1] <= pd.Timestamp("2020-12-31")

    def test_insufficient_data(self):
        with pytest.raises(InsufficientDataError):
            run_simulation(Strategy("moving_average_crossover"), make_series(np.arange(1.0, 41.0)))

    def test_too_narrow_for_pairs(self, single_series):
        with pytest.raises(ConfigValidationError):
            run_simulation(Strategy("pairs_trading"), single_series)

    def test_instrument_out_of_range(self, single_series):
        with pytest.raises(ConfigValidationError):
            run_simulation(Strategy("buy_and_hold", {"instrument": 3}), single_series)

    def test_unknown_parameter_fails_before_run(self):
        with pytest.raises(ConfigValidationError):
            Simulator(Strategy("buy_and_hold", {"size": 1.0}))

    @pytest.mark.parametrize("step", [5, 80])
    def test_malformed_row(self, step):
        prices = np.linspace(100, 120, 100)
        prices[step] = np.nan
        with pytest.raises(DataIntegrityError, match=f"step {step}"):
            run_simulation(Strategy("moving_average_crossover"), make_series(prices))

    def test_negative_volume(self):
        dates = pd.bdate_range("2021-01-04", periods=10)
        vols = np.ones(10)
        vols[3] = -1
        bad = HistoricalSeries(dates=dates, prices=np.linspace(10, 11, 10), volumes=vols)
        with pytest.raises(DataIntegrityError):
            run_simulation(Strategy("buy_and_hold"), bad)

    def test_sell_without_holding_is_ignored(self, frictionless):
        sim = Simulator(Strategy("buy_and_hold"), frictionless)
        book = _Book(frictionless, 1)
        sell = Signal(SignalType.SELL, 1.0, 0, "nothing to sell")
        sim._execute(book, [sell], np.array([10.0]), pd.Timestamp("2021-01-04"))
        assert book.trades == []
        assert book.cash == frictionless.initial_capital

    def test_sells_execute_before_buys(self, frictionless):
        sim = Simulator(Strategy("buy_and_hold"), frictionless)
        book = _Book(frictionless, 2)
        date = pd.Timestamp("2021-01-04")
        prices = np.array([10.0, 10.0])
        book.buy(0, 100_000, 10.0, date, "setup", TradeOrigin.signal)
        # the BUY only fits once the SELL has freed the cash
        signals = [Signal(SignalType.BUY, 1.0, 1), Signal(SignalType.SELL, 1.0, 0)]
        sim._execute(book, signals, prices, date)
        assert not any(t.status is TradeStatus.rejected for t in book.trades)
        assert book.quantities()[1] == pytest.approx(10_000)

    def test_target_weight_signals_and_rebalance(self, series):
        cfg = BacktestConfig(rebalance_freq="weekly")
        sim = run_simulation(
            Strategy("mean_variance", {"lookback": 40, "rebalance_period": 63}), series, cfg,
        )
        assert sim.signals
        assert all(e.signal.target_weight is not None for e in sim.signals)
        assert not any(t.status is TradeStatus.rejected for t in sim.trades)

    def test_to_frame(self, single_series):
        sim = run_simulation(Strategy("buy_and_hold"), single_series)
        frame = sim.to_frame()
        assert list(frame.columns) == ["value", "cash", "step_return"]
        assert len(frame) == len(sim.snapshots)
