"""Abstract market data provider interface and timeout-bounded loading."""

from __future__ import annotations

import abc
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import TYPE_CHECKING, Sequence

import pandas as pd

from stratlab.utils.validation import DataIntegrityError, validate_market_data

if TYPE_CHECKING:
    from stratlab.data.series import HistoricalSeries


class MarketDataProvider(abc.ABC):
    """Base class for all market data providers.

    Subclasses must implement :meth:`fetch`, which returns a stacked
    DataFrame with MultiIndex ``(date, ticker)`` and at least the columns
    ``close`` and ``volume``.
    """

    @abc.abstractmethod
    def fetch(
        self,
        tickers: Sequence[str],
        start: str | pd.Timestamp,
        end: str | pd.Timestamp,
    ) -> pd.DataFrame:
        """Fetch daily bars for the given tickers and date range.

        Parameters
        ----------
        tickers : sequence of str
            Instrument symbols (e.g. ``['AAPL', 'MSFT']``).
        start, end : str or Timestamp
            Inclusive date boundaries.

        Returns
        -------
        DataFrame
            MultiIndex ``(date, ticker)`` with columns
            ``open, high, low, close, volume, adj_close``.
        """


def load_series(
    provider: MarketDataProvider,
    tickers: Sequence[str],
    start: str | pd.Timestamp,
    end: str | pd.Timestamp,
    timeout: float | None = 30.0,
    price_column: str = "close",
) -> "HistoricalSeries":
    """Fetch once through *provider* and convert to a :class:`HistoricalSeries`.

    The provider call runs on a worker thread and is bounded by *timeout*
    seconds; a timeout raises :class:`DataIntegrityError`.  The fetch is
    abandoned, not interrupted, since a blocked network call cannot be
    cancelled from Python.  The fetched frame goes through
    :func:`validate_market_data` first, so data-quality findings surface
    as warnings before any structural error is raised.
    """
    from stratlab.data.series import HistoricalSeries

    pool = ThreadPoolExecutor(max_workers=1)
    future = pool.submit(provider.fetch, list(tickers), start, end)
    try:
        frame = future.result(timeout=timeout)
    except FutureTimeout:
        future.cancel()
        raise DataIntegrityError(
            f"Timed out after {timeout}s fetching {list(tickers)} "
            f"from {type(provider).__name__}."
        )
    finally:
        pool.shutdown(wait=False)
    validate_market_data(frame)
    return HistoricalSeries.from_frame(frame, price_column=price_column, tickers=list(tickers))
