"""Tests for stratlab.portfolio."""

import numpy as np
import pytest

from stratlab.portfolio import (
    apply_position_limits,
    blend_returns,
    equal_weights,
    mean_variance_weights,
    rebalance_orders,
    weight_grid,
)
from stratlab.utils import StratlabValidationError


class TestConstruction:
    def test_equal_weights(self):
        np.testing.assert_allclose(equal_weights(4), [0.25] * 4)
        with pytest.raises(StratlabValidationError):
            equal_weights(0)

    def test_mean_variance_prefers_higher_return(self):
        mu = np.array([0.002, 0.0])
        cov = np.diag([0.0001, 0.0001])
        w = mean_variance_weights(mu, cov, risk_aversion=1.0)
        assert w.sum() == pytest.approx(1.0)
        assert w[0] > w[1]

    def test_mean_variance_respects_cap(self):
        mu = np.array([0.01, 0.0, 0.0])
        cov = np.eye(3) * 1e-4
        w = mean_variance_weights(mu, cov, max_weight=0.5)
        assert w.max() <= 0.5 + 1e-6
        assert (w >= 0).all()

    def test_mean_variance_infeasible_cap(self):
        with pytest.raises(StratlabValidationError):
            mean_variance_weights(np.zeros(3), np.eye(3), max_weight=0.2)

    def test_single_asset(self):
        np.testing.assert_allclose(mean_variance_weights([0.001], [[1e-4]]), [1.0])

    def test_blend_returns(self):
        r = np.array([[0.01, 0.03], [0.02, -0.02]])
        np.testing.assert_allclose(blend_returns(r, [0.5, 0.5]), [0.02, 0.0])

    def test_weight_grid_corners_first(self):
        grid = weight_grid(2, 0.25)
        assert len(grid) == 5
        np.testing.assert_allclose(grid[0], [1.0, 0.0])
        assert all(g.sum() == pytest.approx(1.0) for g in grid)
        assert len(weight_grid(3, 0.25)) == 15

    def test_weight_grid_bad_step(self):
        with pytest.raises(StratlabValidationError):
            weight_grid(2, 0.3)


class TestConstraints:
    def test_position_limits(self):
        np.testing.assert_allclose(
            apply_position_limits([0.7, -0.1, 0.4], 0.5), [0.5, 0.0, 0.4]
        )

    def test_rebalance_orders(self):
        orders = rebalance_orders(
            quantities=np.array([100.0, 0.0]),
            prices=np.array([10.0, 20.0]),
            target_weights=np.array([0.5, 0.5]),
            equity=2000.0,
        )
        np.testing.assert_allclose(orders, [0.0, 50.0])

    def test_rebalance_tolerance(self):
        orders = rebalance_orders(
            np.array([100.0]), np.array([10.0]), np.array([1.0]), 1000.5,
        )
        assert orders[0] == 0.0
