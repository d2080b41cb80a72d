"""Drawdown analysis on portfolio value paths."""

from __future__ import annotations

import numpy as np
import pandas as pd

from stratlab.utils.validation import as_float_array


def max_drawdown(values) -> float:
    """Largest peak-to-trough decline of *values* as a fraction in ``[0, 1]``.

    The running peak is tracked forward from the first value; drawdown at
    step ``i`` is ``(peak - v[i]) / peak``.  Empty input gives 0.
    """
    v = as_float_array(values, "values")
    if len(v) == 0:
        return 0.0
    peak = np.maximum.accumulate(v)
    with np.errstate(divide="ignore", invalid="ignore"):
        dd = np.where(peak > 0, (peak - v) / peak, 0.0)
    return float(np.clip(dd.max(), 0.0, 1.0))


def drawdown_series(values: pd.Series) -> pd.Series:
    """Drawdown at each date as a non-positive fraction (0 at peaks)."""
    running_max = values.cummax()
    return (values / running_max - 1).where(running_max > 0, 0.0)


def drawdown_details(values: pd.Series) -> pd.DataFrame:
    """Identify individual drawdown episodes of a value path.

    Returns
    -------
    DataFrame
        Columns: ``start``, ``trough``, ``end``, ``depth``, ``days``,
        ``recovery_days``.  Rows are sorted by depth (worst first).  An
        episode still open at the end of the series ends on the last date.
    """
    columns = ["start", "trough", "end", "depth", "days", "recovery_days"]
    dd = drawdown_series(values)
    episodes: list[dict] = []
    start = trough = None
    trough_val = 0.0
    for pos, (date, val) in enumerate(dd.items()):
        if val < 0 and start is None:
            start, trough, trough_val = pos, pos, val
        elif val < 0:
            if val < trough_val:
                trough, trough_val = pos, val
        elif start is not None:
            episodes.append((start, trough, pos, trough_val))
            start = None
    if start is not None:
        episodes.append((start, trough, len(dd) - 1, trough_val))

    if not episodes:
        return pd.DataFrame(columns=columns)

    idx = dd.index
    df = pd.DataFrame(
        [
            {
                "start": idx[s],
                "trough": idx[t],
                "end": idx[e],
                "depth": depth,
                "days": e - s,
                "recovery_days": e - t,
            }
            for s, t, e, depth in episodes
        ],
        columns=columns,
    )
    return df.sort_values("depth", kind="stable").reset_index(drop=True)
