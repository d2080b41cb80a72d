"""Trading calendar utilities.

Rebalance boundaries are derived from the series' own dates, so a boundary
is always a day that actually traded and exchange holidays need no separate
calendar.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
import pandas as pd

from stratlab.utils.validation import ConfigValidationError

RebalanceFrequency = Literal["none", "daily", "weekly", "monthly", "quarterly"]
REBALANCE_FREQUENCIES = ("none", "daily", "weekly", "monthly", "quarterly")


def _last_of_group(dates: pd.DatetimeIndex, keys: list) -> np.ndarray:
    s = pd.Series(dates, index=dates)
    last = s.groupby(keys).transform("last")
    return np.asarray(dates == last.values)


def is_month_end(dates: pd.DatetimeIndex) -> np.ndarray:
    """Boolean mask: True on the last trading day of each month."""
    return _last_of_group(dates, [dates.year, dates.month])


def is_week_end(dates: pd.DatetimeIndex) -> np.ndarray:
    """Boolean mask: True on the last trading day of each ISO week."""
    iso = dates.isocalendar()
    return _last_of_group(dates, [iso.year.values, iso.week.values])


def is_quarter_end(dates: pd.DatetimeIndex) -> np.ndarray:
    """Boolean mask: True on the last trading day of each calendar quarter."""
    return _last_of_group(dates, [dates.year, dates.quarter])


def rebalance_mask(
    dates: pd.DatetimeIndex,
    freq: RebalanceFrequency = "monthly",
) -> np.ndarray:
    """Return a boolean mask marking the rebalance days in *dates*.

    Parameters
    ----------
    dates : DatetimeIndex
        Full set of trading days of the replayed series.
    freq : str
        One of ``'none'``, ``'daily'``, ``'weekly'``, ``'monthly'``,
        ``'quarterly'``.
    """
    if freq == "none":
        return np.zeros(len(dates), dtype=bool)
    if freq == "daily":
        return np.ones(len(dates), dtype=bool)
    if freq == "weekly":
        return is_week_end(dates)
    if freq == "monthly":
        return is_month_end(dates)
    if freq == "quarterly":
        return is_quarter_end(dates)
    raise ConfigValidationError(f"Unknown rebalance frequency: {freq!r}")
