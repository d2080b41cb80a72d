"""Tests for stratlab.utils."""

import numpy as np
import pandas as pd
import pytest

from stratlab.utils import (
    ConfigValidationError,
    DataIntegrityError,
    is_month_end,
    is_quarter_end,
    is_week_end,
    rebalance_mask,
    validate_market_data,
)


class TestCalendar:
    def test_month_end(self):
        dates = pd.bdate_range("2021-01-25", "2021-02-05")
        mask = is_month_end(dates)
        assert list(dates[mask]) == [pd.Timestamp("2021-01-29"), pd.Timestamp("2021-02-05")]

    def test_week_end(self):
        dates = pd.bdate_range("2021-01-04", periods=10)
        assert is_week_end(dates).sum() == 2

    def test_quarter_end(self):
        dates = pd.bdate_range("2021-03-25", "2021-04-02")
        assert dates[is_quarter_end(dates)][0] == pd.Timestamp("2021-03-31")

    @pytest.mark.parametrize("freq,expected", [("none", 0), ("daily", 10)])
    def test_trivial_masks(self, freq, expected):
        dates = pd.bdate_range("2021-01-04", periods=10)
        assert rebalance_mask(dates, freq).sum() == expected

    def test_unknown_frequency(self):
        with pytest.raises(ConfigValidationError):
            rebalance_mask(pd.bdate_range("2021-01-04", periods=3), "hourly")


class TestMarketDataValidation:
    def test_clean_data(self, sample_prices):
        report = validate_market_data(sample_prices)
        assert report["valid"]

    def test_non_positive_close_warns(self, sample_prices):
        bad = sample_prices.copy()
        bad.iloc[0, bad.columns.get_loc("close")] = -1.0
        with pytest.warns(UserWarning, match="non-positive"):
            report = validate_market_data(bad)
        assert not report["valid"]

    def test_requires_multiindex(self):
        with pytest.raises(DataIntegrityError):
            validate_market_data(pd.DataFrame({"close": [1.0], "volume": [1.0]}))

    def test_missing_columns(self, sample_prices):
        with pytest.raises(DataIntegrityError):
            validate_market_data(sample_prices.drop(columns=["volume"]))
