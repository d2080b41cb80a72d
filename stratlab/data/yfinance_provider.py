"""Yahoo Finance data provider via the ``yfinance`` package.

Install the optional dependency with::

    pip install "stratlab[yfinance]"

.. note::
   Yahoo Finance is a free, unofficial API.  Rate limits and data
   availability may change without notice; bound calls with
   :func:`~stratlab.data.base.load_series` and its ``timeout``.
"""

from __future__ import annotations

import warnings
from typing import Sequence

import pandas as pd

from stratlab.data.base import MarketDataProvider
from stratlab.utils.validation import DataIntegrityError


def _require_yfinance():
    try:
        import yfinance
        return yfinance
    except ImportError:
        raise ImportError(
            "yfinance is required for YFinanceProvider.  "
            "Install it with:  pip install 'stratlab[yfinance]'"
        )


class YFinanceProvider(MarketDataProvider):
    """Fetch daily OHLCV data from Yahoo Finance.

    Parameters
    ----------
    auto_adjust : bool
        Use split- and dividend-adjusted prices (default True).
    progress : bool
        Show a yfinance download progress bar (default False).
    """

    def __init__(self, auto_adjust: bool = True, progress: bool = False) -> None:
        self.auto_adjust = auto_adjust
        self.progress = progress

    def fetch(
        self,
        tickers: Sequence[str],
        start: str | pd.Timestamp,
        end: str | pd.Timestamp,
    ) -> pd.DataFrame:
        yf = _require_yfinance()

        tickers = [t.strip().upper() for t in tickers if t.strip()]
        if not tickers:
            raise DataIntegrityError("tickers must be a non-empty sequence.")

        try:
            raw = yf.download(
                tickers=tickers,
                start=str(start),
                end=str(end),
                auto_adjust=self.auto_adjust,
                progress=self.progress,
                group_by="ticker",
                threads=True,
            )
        except Exception as e:
            raise DataIntegrityError(
                f"Data source/network error fetching {tickers}: {e}"
            ) from e

        if raw.empty:
            raise DataIntegrityError(
                f"No data returned for tickers={tickers}, start={start}, end={end}."
            )

        has_multi_cols = isinstance(raw.columns, pd.MultiIndex)
        ticker_level = 0
        if has_multi_cols:
            lvl0 = set(raw.columns.get_level_values(0).str.upper())
            ticker_level = 0 if lvl0 & set(tickers) else 1

        parts: list[pd.DataFrame] = []
        missing_tickers: list[str] = []
        for ticker in tickers:
            if not has_multi_cols:
                sub = raw.copy()
            else:
                try:
                    sub = raw.xs(ticker, level=ticker_level, axis=1).copy()
                except KeyError:
                    missing_tickers.append(ticker)
                    continue
            df = self._normalize_single(sub, ticker)
            if df.empty:
                missing_tickers.append(ticker)
            else:
                parts.append(df)

        if missing_tickers:
            warnings.warn(f"Tickers not found in data source: {missing_tickers}")
        if not parts:
            raise DataIntegrityError(
                f"No valid data returned from yfinance. Missing: {missing_tickers}"
            )
        return pd.concat(parts).sort_index()

    def _normalize_single(self, df: pd.DataFrame, ticker: str) -> pd.DataFrame:
        df = df.copy()
        df.columns = df.columns.str.strip().str.lower().str.replace(" ", "_")
        missing = {"open", "high", "low", "close", "volume"} - set(df.columns)
        if missing:
            raise DataIntegrityError(
                f"yfinance data for {ticker} missing columns: {sorted(missing)}"
            )
        if "adj_close" not in df.columns:
            df["adj_close"] = df["close"]
        df = df[["open", "high", "low", "close", "volume", "adj_close"]]
        df = df.dropna(subset=["close"])
        df.index = pd.to_datetime(df.index).normalize()
        df.index.name = "date"
        df["ticker"] = ticker
        return df.reset_index().set_index(["date", "ticker"])
