"""Error taxonomy and input validation helpers.

Every public entry point calls these to produce clear, early error messages
rather than cryptic pandas/numpy exceptions (or silent NaNs) downstream.

Error classes
-------------
:class:`StratlabValidationError` is the common base and subclasses
:class:`ValueError`.  The concrete classes map to the failure kinds callers
need to tell apart:

- :class:`ConfigValidationError` -- bad dates, non-positive capital, bad
  strategy parameters.
- :class:`UnknownStrategyError` -- a strategy kind with no registered generator.
- :class:`DataIntegrityError` -- gaps, malformed rows, mismatched widths.
- :class:`InsufficientDataError` -- a window shorter than an indicator needs.
  Signal generation converts it into "no signals"; it never aborts a run.
"""

from __future__ import annotations

import warnings

import numpy as np
import pandas as pd

PRICE_COLUMNS = {"close", "volume"}


class StratlabValidationError(ValueError):
    """Raised when input data violates expected invariants."""


class ConfigValidationError(StratlabValidationError):
    """Raised for invalid run-wide settings or strategy parameters."""


class UnknownStrategyError(StratlabValidationError):
    """Raised when a strategy kind has no registered signal generator."""


class DataIntegrityError(StratlabValidationError):
    """Raised for malformed, misaligned or non-monotonic market data."""


class InsufficientDataError(StratlabValidationError):
    """Raised when a sequence is shorter than an indicator's look-back."""


def as_float_array(values, name: str = "series") -> np.ndarray:
    """Coerce an ordered numeric sequence to a 1-D float array."""
    arr = np.asarray(values, dtype=float)
    if arr.ndim != 1:
        raise StratlabValidationError(
            f"{name} must be one-dimensional; got shape {arr.shape}."
        )
    return arr


def require_length(values: np.ndarray, length: int, name: str = "series") -> None:
    """Raise :class:`InsufficientDataError` if *values* is shorter than *length*."""
    if length <= 0:
        raise StratlabValidationError(f"{name} period must be positive; got {length}.")
    if len(values) < length:
        raise InsufficientDataError(
            f"{name} needs at least {length} observations; got {len(values)}."
        )


def validate_dates(dates: pd.DatetimeIndex) -> None:
    """Dates must be unique and strictly increasing."""
    if not isinstance(dates, pd.DatetimeIndex):
        raise DataIntegrityError(
            f"dates must be a DatetimeIndex; got {type(dates).__name__}."
        )
    if dates.hasnans:
        raise DataIntegrityError("dates contain missing values.")
    if len(dates) > 1 and not (np.diff(dates.asi8) > 0).all():
        raise DataIntegrityError("dates must be strictly increasing.")


def validate_row(prices: np.ndarray, volumes: np.ndarray, step: int, date) -> None:
    """Validate one time step of a price/volume matrix.

    Prices must be finite and strictly positive, volumes finite and
    non-negative.  A single bad entry invalidates the step.
    """
    if not np.isfinite(prices).all() or (prices <= 0).any():
        raise DataIntegrityError(
            f"Malformed price entry at step {step} ({date}): {prices.tolist()}."
        )
    if not np.isfinite(volumes).all() or (volumes < 0).any():
        raise DataIntegrityError(
            f"Malformed volume entry at step {step} ({date}): {volumes.tolist()}."
        )


def validate_market_data(
    prices: pd.DataFrame,
    max_missing_rate: float = 0.05,
) -> dict:
    """Validate a stacked ``(date, ticker)`` frame before conversion.

    Checks
    ------
    - 2-level MultiIndex with a datetime ``date`` level, no duplicate rows
    - monotonic dates per ticker
    - positive close prices, non-negative volume
    - per-ticker missing-rate below *max_missing_rate*

    Returns a dict ``{"valid": bool, "global_issues": [...], "ticker_issues": {...}}``.
    Emits :mod:`warnings` for each problem found.
    """
    idx = prices.index
    if not isinstance(idx, pd.MultiIndex) or idx.nlevels != 2:
        raise DataIntegrityError(
            "prices must have a 2-level MultiIndex (date, ticker); "
            f"got {type(idx).__name__}."
        )
    missing_cols = PRICE_COLUMNS - set(prices.columns)
    if missing_cols:
        raise DataIntegrityError(
            f"prices DataFrame missing required columns: {sorted(missing_cols)}."
        )

    global_issues: list[str] = []
    ticker_issues: dict[str, list[str]] = {}

    if idx.duplicated().any():
        msg = f"Found {int(idx.duplicated().sum())} duplicate index entries"
        global_issues.append(msg)
        warnings.warn(f"Data integrity: {msg}")

    for t in idx.get_level_values(1).unique():
        t_data = prices.xs(t, level=1)
        t_issues: list[str] = []
        if not t_data.index.is_monotonic_increasing:
            t_issues.append("non-monotonic date index")
        non_pos = int((t_data["close"] <= 0).sum())
        if non_pos:
            t_issues.append(f"{non_pos} non-positive close prices")
        missing = float(t_data["close"].isna().mean())
        if missing > max_missing_rate:
            t_issues.append(
                f"close missing rate {missing:.1%} exceeds {max_missing_rate:.1%}"
            )
        neg_vol = int((t_data["volume"] < 0).sum())
        if neg_vol:
            t_issues.append(f"{neg_vol} negative volume entries")
        if t_issues:
            ticker_issues[t] = t_issues
            for issue in t_issues:
                warnings.warn(f"Data integrity [{t}]: {issue}")

    return {
        "valid": not global_issues and not ticker_issues,
        "global_issues": global_issues,
        "ticker_issues": ticker_issues,
    }
