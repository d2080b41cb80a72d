"""Immutable historical price/volume series consumed by the simulator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np
import pandas as pd

from stratlab.utils.validation import DataIntegrityError, validate_dates


def _frozen_matrix(values, name: str) -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 1:
        arr = arr.reshape(-1, 1)
    if arr.ndim != 2:
        raise DataIntegrityError(f"{name} must be 1-D or 2-D; got shape {arr.shape}.")
    if arr.flags.writeable:
        arr = arr.copy()
        arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class HistoricalSeries:
    """Ordered sequence of ``(date, price-vector, volume-vector)`` rows.

    Instruments are addressed by column index; ``instruments`` holds their
    display names.  ``prices`` and ``volumes`` are read-only ``N x K`` arrays.

    Parameters
    ----------
    dates : DatetimeIndex
        Strictly increasing trading days, length N.
    prices : array-like
        ``N x K`` close prices (a 1-D array is treated as one instrument).
    volumes : array-like, optional
        ``N x K`` traded volumes; zeros when omitted.
    instruments : sequence of str, optional
        K instrument names; defaults to ``'I0', 'I1', ...``.
    """

    dates: pd.DatetimeIndex
    prices: np.ndarray
    volumes: np.ndarray | None = None
    instruments: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        dates = pd.DatetimeIndex(self.dates)
        validate_dates(dates)
        prices = _frozen_matrix(self.prices, "prices")
        if self.volumes is None:
            volumes = np.zeros_like(prices)
            volumes.setflags(write=False)
        else:
            volumes = _frozen_matrix(self.volumes, "volumes")
        if prices.shape[0] != len(dates):
            raise DataIntegrityError(
                f"prices has {prices.shape[0]} rows but there are {len(dates)} dates."
            )
        if volumes.shape != prices.shape:
            raise DataIntegrityError(
                f"volume matrix shape {volumes.shape} does not match "
                f"price matrix shape {prices.shape}."
            )
        instruments = tuple(self.instruments) or tuple(
            f"I{k}" for k in range(prices.shape[1])
        )
        if len(instruments) != prices.shape[1]:
            raise DataIntegrityError(
                f"{len(instruments)} instrument names for a price vector "
                f"of width {prices.shape[1]}."
            )
        object.__setattr__(self, "dates", dates)
        object.__setattr__(self, "prices", prices)
        object.__setattr__(self, "volumes", volumes)
        object.__setattr__(self, "instruments", instruments)

    def __len__(self) -> int:
        return len(self.dates)

    @property
    def width(self) -> int:
        """Number of instruments K."""
        return self.prices.shape[1]

    def close(self, instrument: int = 0) -> np.ndarray:
        """Read-only close-price column for one instrument."""
        return self.prices[:, instrument]

    def window(self, step: int) -> "HistoricalSeries":
        """Rows ``[0..step]`` inclusive; no data after *step* is visible."""
        if step < 0 or step >= len(self):
            raise IndexError(f"step {step} outside series of length {len(self)}.")
        return HistoricalSeries(
            dates=self.dates[: step + 1],
            prices=self.prices[: step + 1],
            volumes=self.volumes[: step + 1],
            instruments=self.instruments,
        )

    def between(
        self,
        start: str | pd.Timestamp | None = None,
        end: str | pd.Timestamp | None = None,
    ) -> "HistoricalSeries":
        """Restrict to the inclusive date range ``[start, end]``."""
        mask = np.ones(len(self), dtype=bool)
        if start is not None:
            mask &= self.dates >= pd.Timestamp(start)
        if end is not None:
            mask &= self.dates <= pd.Timestamp(end)
        return HistoricalSeries(
            dates=self.dates[mask],
            prices=self.prices[mask],
            volumes=self.volumes[mask],
            instruments=self.instruments,
        )

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        price_column: str = "close",
        tickers: Sequence[str] | None = None,
    ) -> "HistoricalSeries":
        """Build from a stacked ``(date, ticker)`` frame.

        A ticker missing on some date leaves a gap, which is a contract
        violation of the data provider and raises :class:`DataIntegrityError`.
        """
        if not isinstance(frame.index, pd.MultiIndex) or frame.index.nlevels != 2:
            raise DataIntegrityError(
                "frame must have a 2-level MultiIndex (date, ticker)."
            )
        if price_column not in frame.columns:
            raise DataIntegrityError(f"frame has no {price_column!r} column.")
        if frame.index.duplicated().any():
            raise DataIntegrityError("frame contains duplicate (date, ticker) rows.")
        wide_px = frame[price_column].unstack(level=1)
        if "volume" in frame.columns:
            wide_vol = frame["volume"].unstack(level=1)
        else:
            wide_vol = pd.DataFrame(0.0, index=wide_px.index, columns=wide_px.columns)
        if tickers is not None:
            absent = [t for t in tickers if t not in wide_px.columns]
            if absent:
                raise DataIntegrityError(f"tickers missing from frame: {absent}")
            wide_px = wide_px[list(tickers)]
            wide_vol = wide_vol[list(tickers)]
        if wide_px.isna().any().any():
            gaps = wide_px.index[wide_px.isna().any(axis=1)]
            raise DataIntegrityError(
                f"series has {len(gaps)} incomplete rows, first at {gaps[0].date()}."
            )
        return cls.from_wide(wide_px.sort_index(), wide_vol.sort_index().fillna(0.0))

    @classmethod
    def from_wide(
        cls,
        prices: pd.DataFrame | pd.Series,
        volumes: pd.DataFrame | pd.Series | None = None,
    ) -> "HistoricalSeries":
        """Build from a wide ``date x ticker`` price frame (or a single Series)."""
        if isinstance(prices, pd.Series):
            prices = prices.to_frame(name=prices.name or "I0")
        if isinstance(volumes, pd.Series):
            volumes = volumes.to_frame(name=prices.columns[0])
        return cls(
            dates=pd.DatetimeIndex(prices.index),
            prices=prices.to_numpy(dtype=float),
            volumes=None if volumes is None else volumes.to_numpy(dtype=float),
            instruments=tuple(str(c) for c in prices.columns),
        )

    def to_frame(self) -> pd.DataFrame:
        """Wide ``date x instrument`` frame of prices."""
        return pd.DataFrame(
            np.array(self.prices), index=self.dates, columns=list(self.instruments)
        )
