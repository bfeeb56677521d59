"""
Tests for the moving_averages module.
"""

import numpy as np
import pandas as pd
import pytest

from ta_engine.exceptions import InsufficientDataError, InvalidParameterError, MissingColumnError
from ta_engine.indicators.moving_averages import (
    calculate_ema,
    calculate_hma,
    calculate_sma,
    calculate_vwap,
    calculate_wma,
)


def _frame(close, **extra):
    data = {"close": close}
    data.update(extra)
    return pd.DataFrame(data)


class TestCalculateSMA:
    """Tests for calculate_sma function."""

    def test_sma_basic(self):
        """Test basic SMA calculation."""
        result = calculate_sma(_frame([1.0, 2.0, 3.0, 4.0, 5.0]), 3)
        assert result.name == "sma_3"
        assert pd.isna(result.iloc[0])
        assert pd.isna(result.iloc[1])
        assert result.iloc[2] == pytest.approx(2.0)  # (1+2+3)/3
        assert result.iloc[3] == pytest.approx(3.0)
        assert result.iloc[4] == pytest.approx(4.0)

    def test_sma_insufficient_data(self):
        """Test SMA with fewer rows than the window raises."""
        with pytest.raises(InsufficientDataError):
            calculate_sma(_frame([1.0, 2.0]), 5)

    def test_sma_exact_period(self):
        """Test SMA when data length equals period."""
        result = calculate_sma(_frame([1.0, 2.0, 3.0]), 3)
        assert result.iloc[2] == pytest.approx(2.0)

    def test_sma_period_1(self):
        """Test SMA with period 1 returns original values."""
        result = calculate_sma(_frame([1.0, 2.0, 3.0]), 1)
        assert result.tolist() == [1.0, 2.0, 3.0]

    def test_sma_nan_handling(self):
        """Test a NaN in the window makes the result NaN."""
        result = calculate_sma(_frame([1.0, np.nan, 3.0, 4.0, 5.0]), 3)
        assert pd.isna(result.iloc[2])
        assert result.iloc[4] == pytest.approx(4.0)

    def test_sma_missing_column(self):
        """Test a missing column raises MissingColumnError."""
        with pytest.raises(MissingColumnError):
            calculate_sma(pd.DataFrame({"open": [1.0]}), 1)

    def test_sma_invalid_window(self):
        """Test window 0 raises InvalidParameterError."""
        with pytest.raises(InvalidParameterError):
            calculate_sma(_frame([1.0, 2.0]), 0)

    def test_sma_custom_column(self, sample_ohlcv_data):
        """Test averaging a non-default column."""
        result = calculate_sma(sample_ohlcv_data, 5, column="volume")
        assert result.iloc[4] == pytest.approx(sample_ohlcv_data["volume"].iloc[:5].mean())

    def test_sma_preserves_index(self):
        """Test the output is aligned to the input index."""
        df = _frame([1.0, 2.0, 3.0])
        df.index = [5, 6, 7]
        assert list(calculate_sma(df, 2).index) == [5, 6, 7]


class TestCalculateEMA:
    """Tests for calculate_ema function."""

    def test_ema_starts_at_first_value(self):
        """Test EMA has no warm-up region."""
        result = calculate_ema(_frame([1.0, 2.0, 3.0, 4.0, 5.0]), 3)
        assert result.name == "ema_3"
        assert result.iloc[0] == 1.0
        assert not result.isna().any()

    def test_ema_formula(self):
        """Test EMA formula: alpha = 2/(period+1)."""
        df = _frame([1.0, 2.0] + [2.0] * 7)
        result = calculate_ema(df, 9)
        # alpha = 0.2: 0.2 * 2.0 + 0.8 * 1.0
        assert result.iloc[1] == pytest.approx(1.2)

    def test_ema_requires_window_rows(self):
        """Test EMA still requires window rows."""
        with pytest.raises(InsufficientDataError):
            calculate_ema(_frame([1.0, 2.0]), 3)

    def test_ema_converges(self):
        """Test EMA of a constant series stays constant."""
        result = calculate_ema(_frame([5.0] * 100), 10)
        assert result.iloc[-1] == pytest.approx(5.0)


class TestCalculateWMA:
    """Tests for calculate_wma function."""

    def test_wma_basic(self):
        """Test linear weights 1..window."""
        result = calculate_wma(_frame([1.0, 2.0, 3.0, 4.0]), 3)
        assert pd.isna(result.iloc[1])
        assert result.iloc[2] == pytest.approx(14.0 / 6.0)
        assert result.iloc[3] == pytest.approx(20.0 / 6.0)

    def test_wma_insufficient_data(self):
        """Test WMA with fewer rows than the window raises."""
        with pytest.raises(InsufficientDataError):
            calculate_wma(_frame([1.0, 2.0]), 3)


class TestMovingAverageContracts:
    """Behaviour shared by SMA, WMA and EMA."""

    @pytest.mark.parametrize("func", [calculate_sma, calculate_wma, calculate_ema])
    def test_short_table_raises(self, func):
        """Test seven rows with a window of ten raises."""
        with pytest.raises(InsufficientDataError):
            func(_frame(np.arange(1.0, 8.0)), 10)

    @pytest.mark.parametrize("func", [calculate_sma, calculate_wma, calculate_ema])
    def test_constant_series(self, func):
        """Test a constant series averages to the constant once warmed up."""
        result = func(_frame([7.5] * 12), 4)
        assert result.dropna().tolist() == pytest.approx([7.5] * len(result.dropna()))
        assert len(result.dropna()) >= 12 - 3


class TestCalculateHMA:
    """Tests for calculate_hma function."""

    def test_hma_linear_series(self):
        """Test HMA tracks a linear trend without lag."""
        df = _frame(np.arange(1.0, 31.0))
        result = calculate_hma(df, 9)
        assert result.name == "hma_9"
        assert result.iloc[-1] == pytest.approx(30.0)

    def test_hma_warmup(self):
        """Test leading values are NaN."""
        result = calculate_hma(_frame(np.arange(1.0, 31.0)), 9)
        # WMA(9) defined from row 8, then WMA(3) over it
        assert result.iloc[:10].isna().all()
        assert not pd.isna(result.iloc[10])


class TestCalculateVWAP:
    """Tests for calculate_vwap function."""

    def test_cumulative_vwap(self):
        """Test cumulative VWAP from typical price."""
        df = pd.DataFrame(
            {
                "high": [11.0, 12.0],
                "low": [9.0, 10.0],
                "close": [10.0, 11.0],
                "volume": [100.0, 300.0],
            }
        )
        result = calculate_vwap(df)
        assert result.name == "vwap"
        assert result.iloc[0] == pytest.approx(10.0)
        assert result.iloc[1] == pytest.approx((10.0 * 100 + 11.0 * 300) / 400)

    def test_rolling_vwap(self):
        """Test rolling VWAP over a lookback."""
        df = pd.DataFrame(
            {
                "high": [10.0, 20.0, 30.0],
                "low": [10.0, 20.0, 30.0],
                "close": [10.0, 20.0, 30.0],
                "volume": [1.0, 1.0, 3.0],
            }
        )
        result = calculate_vwap(df, lookback=2)
        assert result.name == "vwap_2"
        assert pd.isna(result.iloc[0])
        assert result.iloc[2] == pytest.approx((20.0 + 90.0) / 4.0)

    def test_zero_volume_falls_back_to_close(self):
        """Test zero cumulative volume gives the close price."""
        df = pd.DataFrame({"high": [11.0], "low": [9.0], "close": [10.5], "volume": [0.0]})
        assert calculate_vwap(df).iloc[0] == pytest.approx(10.5)

    def test_nan_bar_skipped(self):
        """Test a bar with missing data is NaN and excluded from the sums."""
        df = pd.DataFrame(
            {
                "high": [10.0, np.nan, 30.0],
                "low": [10.0, 20.0, 30.0],
                "close": [10.0, 20.0, 30.0],
                "volume": [1.0, 1.0, 1.0],
            }
        )
        result = calculate_vwap(df)
        assert pd.isna(result.iloc[1])
        assert result.iloc[2] == pytest.approx(20.0)

    def test_negative_lookback(self, sample_ohlcv_data):
        """Test negative lookback raises."""
        with pytest.raises(InvalidParameterError):
            calculate_vwap(sample_ohlcv_data, lookback=-1)
