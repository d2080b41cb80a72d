"""Portfolio construction: allocation, weight grids and rebalancing."""

from stratlab.portfolio.construction import (
    equal_weights,
    mean_variance_weights,
    blend_returns,
    weight_grid,
)
from stratlab.portfolio.constraints import (
    apply_position_limits,
    rebalance_orders,
)

__all__ = [
    "equal_weights", "mean_variance_weights", "blend_returns", "weight_grid",
    "apply_position_limits", "rebalance_orders",
]
