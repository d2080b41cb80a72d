"""Indicator library: moving averages, oscillators, volatility, returns."""

from stratlab.features.moving_average import (
    sma,
    sma_series,
    ema,
    ema_series,
    macd,
    bollinger_bands,
    MACD,
    Bands,
)
from stratlab.features.oscillators import rsi, rsi_series
from stratlab.features.returns import simple_returns, log_returns, cumulative_return
from stratlab.features.volatility import volatility, downside_deviation, TRADING_DAYS

__all__ = [
    "sma", "sma_series", "ema", "ema_series", "macd", "bollinger_bands",
    "MACD", "Bands",
    "rsi", "rsi_series",
    "simple_returns", "log_returns", "cumulative_return",
    "volatility", "downside_deviation", "TRADING_DAYS",
]
