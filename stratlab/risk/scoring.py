"""Composite score, letter grade and recommendation for a PerformanceRecord.

The three components are clipped to ``[0, 100]``:

- return score ``= 5 * annualized return (%)``
- Sharpe score ``= 50 * Sharpe``
- drawdown score ``= 100 - 5 * max drawdown (%)``

The composite score weights them 0.4 / 0.3 / 0.3 and is the objective of
both parameter optimization and strategy ranking.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from stratlab.risk.metrics import PerformanceRecord

RETURN_WEIGHT = 0.4
SHARPE_WEIGHT = 0.3
DRAWDOWN_WEIGHT = 0.3

_GRADES = ((85, "A+"), (75, "A"), (65, "B+"), (55, "B"), (45, "C+"), (35, "C"))
_RECOMMENDATIONS = (
    (80, "HIGHLY RECOMMENDED - excellent risk-adjusted returns"),
    (60, "RECOMMENDED - good performance with acceptable risk"),
    (40, "PROCEED WITH CAUTION - requires optimization"),
)


def _clip(x: float) -> float:
    return float(np.clip(x, 0.0, 100.0))


def component_scores(record: "PerformanceRecord") -> tuple[float, float, float]:
    """``(return_score, sharpe_score, drawdown_score)``, each in ``[0, 100]``."""
    return (
        _clip(record.annualized_return * 5),
        _clip(record.sharpe_ratio * 50),
        _clip(100 - record.max_drawdown * 5),
    )


def score_values(annualized_return: float, sharpe: float, max_drawdown: float) -> float:
    """Composite score from raw values (returns and drawdown in percent)."""
    return (
        RETURN_WEIGHT * _clip(annualized_return * 5)
        + SHARPE_WEIGHT * _clip(sharpe * 50)
        + DRAWDOWN_WEIGHT * _clip(100 - max_drawdown * 5)
    )


def composite_score(record: "PerformanceRecord") -> float:
    """Weighted composite in ``[0, 100]``; higher is better."""
    return score_values(record.annualized_return, record.sharpe_ratio, record.max_drawdown)


def strategy_grade(record: "PerformanceRecord") -> str:
    """Letter grade from the unweighted mean of the component scores."""
    overall = sum(component_scores(record)) / 3
    for threshold, grade in _GRADES:
        if overall >= threshold:
            return grade
    return "D"


def recommendation(record: "PerformanceRecord") -> str:
    score = composite_score(record)
    for threshold, text in _RECOMMENDATIONS:
        if score >= threshold:
            return text
    return "NOT RECOMMENDED - poor risk-return profile"
