"""Shared test fixtures for stratlab."""

from __future__ import annotations

import numpy as np
import pandas as pd
import pytest

from stratlab.backtest import BacktestConfig
from stratlab.data import HistoricalSeries


@pytest.fixture()
def sample_dates() -> pd.DatetimeIndex:
    """300 business days starting 2020-01-02."""
    return pd.bdate_range("2020-01-02", periods=300, freq="B")


@pytest.fixture()
def tickers() -> list[str]:
    return ["AAA", "BBB", "CCC"]


@pytest.fixture()
def sample_prices(sample_dates, tickers) -> pd.DataFrame:
    """Deterministic synthetic stacked OHLCV data."""
    rng = np.random.default_rng(0)
    parts = []
    for ticker in tickers:
        n = len(sample_dates)
        close = 100.0 * np.exp(np.cumsum(rng.normal(0.0003, 0.015, n)))
        volume = rng.integers(1_000_000, 5_000_000, n).astype(float)
        df = pd.DataFrame(
            {
                "open": close,
                "high": close * 1.01,
                "low": close * 0.99,
                "close": close,
                "volume": volume,
                "adj_close": close,
            },
            index=pd.MultiIndex.from_arrays(
                [sample_dates, np.full(n, ticker)], names=["date", "ticker"]
            ),
        )
        parts.append(df)
    return pd.concat(parts).sort_index()


@pytest.fixture()
def series(sample_prices, tickers) -> HistoricalSeries:
    """Three-instrument random walk."""
    return HistoricalSeries.from_frame(sample_prices, tickers=tickers)


@pytest.fixture()
def single_series(series) -> HistoricalSeries:
    """First instrument only."""
    return HistoricalSeries(
        dates=series.dates, prices=series.prices[:, :1],
        volumes=series.volumes[:, :1], instruments=series.instruments[:1],
    )


@pytest.fixture()
def linear_series() -> HistoricalSeries:
    """Prices rising linearly from 100 to 200 over 100 days."""
    dates = pd.bdate_range("2021-01-04", periods=100)
    return HistoricalSeries(dates=dates, prices=np.linspace(100.0, 200.0, 100))


@pytest.fixture()
def flat_series() -> HistoricalSeries:
    dates = pd.bdate_range("2021-01-04", periods=120)
    return HistoricalSeries(dates=dates, prices=np.full(120, 50.0))


@pytest.fixture()
def frictionless() -> BacktestConfig:
    """No costs, no risk-free rate, no rebalancing."""
    return BacktestConfig(
        transaction_cost=0.0, slippage=0.0, risk_free_rate=0.0, rebalance_freq="none"
    )


def make_series(prices, start: str = "2021-01-04") -> HistoricalSeries:
    arr = np.asarray(prices, dtype=float)
    dates = pd.bdate_range(start, periods=len(arr))
    return HistoricalSeries(dates=dates, prices=arr)
