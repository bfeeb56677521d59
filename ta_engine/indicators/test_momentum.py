"""
Tests for the momentum module.
"""

import numpy as np
import pandas as pd
import pytest

from ta_engine.exceptions import InsufficientDataError, MissingColumnError
from ta_engine.indicators.momentum import (
    calculate_bop,
    calculate_cci,
    calculate_cmo,
    calculate_momentum,
    calculate_roc,
    calculate_rocp,
    calculate_rocr,
)


class TestCalculateCCI:
    """Tests for calculate_cci function."""

    def test_cci_known_value(self):
        """Test CCI against a hand-computed window."""
        tp = [1.0, 2.0, 3.0]
        df = pd.DataFrame({"high": tp, "low": tp, "close": tp})
        result = calculate_cci(df, 3)
        assert result.name == "cci_3"
        # mean 2, mean deviation 2/3 -> (3 - 2) / (0.015 * 2/3)
        assert result.iloc[2] == pytest.approx(1.0 / (0.015 * 2.0 / 3.0))
        assert result.iloc[:2].isna().all()

    def test_cci_flat_is_zero(self):
        """Test a flat window gives 0."""
        df = pd.DataFrame({"high": [5.0] * 5, "low": [5.0] * 5, "close": [5.0] * 5})
        assert calculate_cci(df, 3).iloc[2:].eq(0.0).all()

    def test_cci_missing_column(self):
        """Test missing high raises."""
        with pytest.raises(MissingColumnError):
            calculate_cci(pd.DataFrame({"low": [1.0], "close": [1.0]}), 1)


class TestCalculateCMO:
    """Tests for calculate_cmo function."""

    def test_cmo_all_up(self):
        """Test CMO is 100 for a rising series."""
        result = calculate_cmo(pd.DataFrame({"close": np.arange(1.0, 11.0)}), 3)
        assert result.name == "cmo_3"
        assert result.iloc[:3].isna().all()
        assert result.iloc[3:].eq(100.0).all()

    def test_cmo_mixed(self):
        """Test CMO with gains and losses."""
        # changes: +2, -1, +1
        result = calculate_cmo(pd.DataFrame({"close": [10.0, 12.0, 11.0, 12.0]}), 3)
        assert result.iloc[3] == pytest.approx(100.0 * (3.0 - 1.0) / 4.0)

    def test_cmo_flat_is_nan(self):
        """Test no movement gives NaN."""
        result = calculate_cmo(pd.DataFrame({"close": [5.0] * 6}), 3)
        assert result.isna().all()


class TestRateOfChange:
    """Tests for momentum and the rate-of-change family."""

    @pytest.fixture
    def prices(self):
        return pd.DataFrame({"close": [10.0, 11.0, 12.0, 15.0]})

    def test_momentum(self, prices):
        """Test x[i] - x[i - window]."""
        result = calculate_momentum(prices, 2)
        assert result.name == "mom_2"
        assert result.iloc[:2].isna().all()
        assert result.iloc[3] == pytest.approx(4.0)

    def test_roc(self, prices):
        """Test ROC in percent."""
        assert calculate_roc(prices, 2).iloc[2] == pytest.approx(20.0)

    def test_rocp(self, prices):
        """Test ROC as a fraction."""
        assert calculate_rocp(prices, 2).iloc[2] == pytest.approx(0.2)

    def test_rocr(self, prices):
        """Test ROC ratio."""
        assert calculate_rocr(prices, 3).iloc[3] == pytest.approx(1.5)

    def test_zero_base_is_nan(self):
        """Test a zero earlier value gives NaN."""
        df = pd.DataFrame({"close": [0.0, 1.0]})
        assert pd.isna(calculate_roc(df, 1).iloc[1])
        assert pd.isna(calculate_rocr(df, 1).iloc[1])

    def test_insufficient_data(self, prices):
        """Test window larger than the table raises."""
        with pytest.raises(InsufficientDataError):
            calculate_roc(prices, 10)


class TestCalculateBOP:
    """Tests for calculate_bop function."""

    def test_bop(self):
        """Test (close - open) / (high - low)."""
        df = pd.DataFrame({"open": [10.0], "high": [14.0], "low": [9.0], "close": [13.0]})
        result = calculate_bop(df)
        assert result.name == "bop"
        assert result.iloc[0] == pytest.approx(0.6)

    def test_bop_no_range(self):
        """Test a bar with no range gives 0."""
        df = pd.DataFrame({"open": [10.0], "high": [10.0], "low": [10.0], "close": [10.0]})
        assert calculate_bop(df).iloc[0] == 0.0

    def test_bop_range(self, sample_ohlcv_data):
        """Test BOP lies within [-1, 1]."""
        assert calculate_bop(sample_ohlcv_data).between(-1, 1).all()
