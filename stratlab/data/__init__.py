"""Market data: series container, providers, synthetic data."""

from stratlab.data.base import MarketDataProvider, load_series
from stratlab.data.csv_provider import CsvProvider, generate_synthetic
from stratlab.data.series import HistoricalSeries

__all__ = [
    "MarketDataProvider",
    "load_series",
    "CsvProvider",
    "generate_synthetic",
    "HistoricalSeries",
    "YFinanceProvider",
]


def __getattr__(name: str):
    """Lazy-import optional providers so missing deps don't break the package."""
    if name == "YFinanceProvider":
        from stratlab.data.yfinance_provider import YFinanceProvider
        return YFinanceProvider
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
