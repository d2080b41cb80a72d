"""Long-only allocation: mean-variance weights and blended return paths.

All weight vectors are plain numpy arrays aligned with instrument (or
strategy) indices, non-negative and summing to one unless stated otherwise.
"""

from __future__ import annotations

import numpy as np
from scipy.optimize import minimize

from stratlab.utils.validation import StratlabValidationError


def equal_weights(n: int) -> np.ndarray:
    """``1/n`` for each of *n* assets."""
    if n <= 0:
        raise StratlabValidationError(f"need at least one asset; got {n}.")
    return np.full(n, 1.0 / n)


def mean_variance_weights(
    mean_returns: np.ndarray,
    covariance: np.ndarray,
    risk_aversion: float = 1.0,
    max_weight: float = 1.0,
) -> np.ndarray:
    """Maximise ``w'mu - risk_aversion / 2 * w'Sigma w`` subject to a budget.

    Solved with SLSQP under ``sum(w) == 1`` and ``0 <= w <= max_weight``.
    Falls back to equal weights when the solver does not converge.

    Parameters
    ----------
    mean_returns : ndarray
        Expected per-step return of each asset, shape ``(n,)``.
    covariance : ndarray
        Per-step covariance matrix, shape ``(n, n)``.
    risk_aversion : float
        Penalty on portfolio variance; larger values favour diversification.
    max_weight : float
        Per-asset upper bound; must allow a feasible budget
        (``max_weight * n >= 1``).
    """
    mu = np.asarray(mean_returns, dtype=float)
    cov = np.atleast_2d(np.asarray(covariance, dtype=float))
    n = len(mu)
    if cov.shape != (n, n):
        raise StratlabValidationError(
            f"covariance shape {cov.shape} does not match {n} assets."
        )
    if max_weight * n < 1 - 1e-12:
        raise StratlabValidationError(
            f"max_weight {max_weight} cannot satisfy a full budget across {n} assets."
        )
    if n == 1:
        return np.ones(1)

    def objective(w: np.ndarray) -> float:
        return -(w @ mu - 0.5 * risk_aversion * w @ cov @ w)

    def gradient(w: np.ndarray) -> np.ndarray:
        return -(mu - risk_aversion * cov @ w)

    x0 = equal_weights(n)
    res = minimize(
        objective,
        x0,
        jac=gradient,
        method="SLSQP",
        bounds=[(0.0, max_weight)] * n,
        constraints=[{"type": "eq", "fun": lambda w: w.sum() - 1.0}],
    )
    if not res.success or not np.isfinite(res.x).all():
        return x0
    w = np.clip(res.x, 0.0, max_weight)
    # snap solver noise so tiny weights become exact zeros
    w[w < 1e-6] = 0.0
    return w / w.sum()


def blend_returns(returns: np.ndarray, weights: np.ndarray) -> np.ndarray:
    """Per-step return of a constant-mix portfolio.

    Parameters
    ----------
    returns : ndarray
        Shape ``(T, n)``, one column per component.
    weights : ndarray
        Shape ``(n,)``.
    """
    return np.asarray(returns, dtype=float) @ np.asarray(weights, dtype=float)


def weight_grid(n: int, step: float = 0.25) -> list[np.ndarray]:
    """All non-negative weight vectors on a *step* lattice summing to one.

    Enumerated in lexicographic order of the first component descending,
    so single-asset corner portfolios come before mixes.
    """
    units = int(round(1.0 / step))
    if units <= 0 or not np.isclose(units * step, 1.0):
        raise StratlabValidationError(f"step must divide 1 evenly; got {step}.")
    out: list[np.ndarray] = []

    def _fill(prefix: list[int], remaining: int) -> None:
        if len(prefix) == n - 1:
            out.append(np.array(prefix + [remaining], dtype=float) / units)
            return
        for k in range(remaining, -1, -1):
            _fill(prefix + [k], remaining - k)

    if n == 1:
        return [np.ones(1)]
    _fill([], units)
    return out
