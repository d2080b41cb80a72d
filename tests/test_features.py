"""Tests for stratlab.features."""

import numpy as np
import pytest

from stratlab.features import (
    bollinger_bands,
    cumulative_return,
    downside_deviation,
    ema,
    ema_series,
    log_returns,
    macd,
    rsi,
    rsi_series,
    simple_returns,
    sma,
    sma_series,
    volatility,
)
from stratlab.utils import InsufficientDataError, StratlabValidationError


class TestMovingAverages:
    def test_sma_last_window(self):
        assert sma([1, 2, 3, 4, 5], 3) == pytest.approx(4.0)

    def test_sma_insufficient(self):
        with pytest.raises(InsufficientDataError):
            sma([1, 2], 3)

    def test_sma_nonpositive_period(self):
        with pytest.raises(StratlabValidationError):
            sma([1, 2, 3], 0)

    def test_sma_series_alignment(self):
        out = sma_series(np.arange(1.0, 7.0), 3)
        assert np.isnan(out[:2]).all()
        np.testing.assert_allclose(out[2:], [2, 3, 4, 5])

    def test_ema_seeded_with_sma(self):
        out = ema_series([2.0, 4.0, 6.0, 8.0], 3)
        assert out[2] == pytest.approx(4.0)
        assert out[3] == pytest.approx(0.5 * 8 + 0.5 * 4)

    def test_ema_constant_series(self):
        assert ema(np.full(30, 7.0), 10) == pytest.approx(7.0)

    def test_sma_does_not_look_ahead(self):
        x = np.arange(50.0)
        full = sma_series(x, 5)
        for t in range(4, 50):
            assert full[t] == pytest.approx(sma(x[: t + 1], 5))


class TestMACD:
    def test_signal_defined_from_expected_index(self):
        x = np.linspace(10, 20, 60)
        m = macd(x, 12, 26, 9)
        first = 26 + 9 - 2
        assert np.isnan(m.signal[first - 1])
        assert not np.isnan(m.signal[first])
        np.testing.assert_allclose(m.histogram[first:], (m.macd - m.signal)[first:])

    def test_rising_series_positive_macd(self):
        m = macd(np.linspace(10, 20, 60))
        assert m.macd[-1] > 0

    def test_insufficient(self):
        with pytest.raises(InsufficientDataError):
            macd(np.ones(30), 12, 26, 9)


class TestBollinger:
    def test_constant_series_collapses(self):
        b = bollinger_bands(np.full(20, 5.0), 20, 2.0)
        assert b.upper == b.middle == b.lower == 5.0

    def test_band_width_uses_population_std(self):
        x = np.array([1.0, 2.0, 3.0, 4.0])
        b = bollinger_bands(x, 4, 1.0)
        assert b.upper - b.middle == pytest.approx(np.std(x))


class TestRSI:
    def test_bounds(self):
        rng = np.random.default_rng(3)
        x = 100 + np.cumsum(rng.normal(0, 1, 200))
        out = rsi_series(x, 14)
        valid = out[~np.isnan(out)]
        assert ((valid >= 0) & (valid <= 100)).all()

    def test_nan_before_period(self):
        out = rsi_series(np.arange(1.0, 30.0), 14)
        assert np.isnan(out[:14]).all()
        assert out[14] == 100.0

    def test_monotone_down_is_zero(self):
        assert rsi(np.arange(30.0, 0.0, -1.0), 14) == pytest.approx(0.0)

    def test_insufficient(self):
        with pytest.raises(InsufficientDataError):
            rsi(np.arange(14.0), 14)


class TestReturnsAndVolatility:
    def test_simple_returns(self):
        np.testing.assert_allclose(simple_returns([100, 110, 99]), [0.1, -0.1])

    def test_simple_returns_zero_predecessor(self):
        np.testing.assert_allclose(simple_returns([0, 5, 10]), [0.0, 1.0])

    def test_log_returns_sum(self):
        r = log_returns([100, 120, 150])
        assert r.sum() == pytest.approx(np.log(1.5))

    def test_cumulative_return(self):
        assert cumulative_return([0.1, -0.1]) == pytest.approx(-0.01)
        assert cumulative_return([]) == 0.0

    def test_flat_volatility_is_zero(self):
        assert volatility(np.zeros(50)) == 0.0
        assert volatility([0.01]) == 0.0

    def test_volatility_annualized(self):
        r = np.array([0.01, -0.01] * 50)
        assert volatility(r) == pytest.approx(0.01 * np.sqrt(252))

    def test_downside_ignores_gains(self):
        assert downside_deviation([0.01, 0.02, 0.03]) == 0.0
        r = np.array([0.02, -0.02])
        assert downside_deviation(r) == pytest.approx(np.sqrt(0.0004 / 2 * 252))
