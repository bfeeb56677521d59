"""
Tests for the primitives module.

Covers rolling reductions, the exponential recurrences, the normal
distribution helpers and guarded arithmetic.
"""

import math

import numpy as np
import pandas as pd
import pytest

from ta_engine.primitives import (
    as_series,
    ema_recurrence,
    exponential_smoothing,
    norm_cdf,
    norm_pdf,
    rolling_max,
    rolling_mean,
    rolling_min,
    rolling_nanmean,
    rolling_std,
    rolling_sum,
    rolling_weighted_mean,
    round_half_away,
    safe_divide,
    shift,
    sma_seeded_ema,
    true_range,
    typical_price,
    wilder_recurrence,
)


class TestRollingWindows:
    """Tests for the rolling reductions."""

    def test_rolling_mean_warmup(self):
        """Test that the first window-1 values are NaN."""
        result = rolling_mean([1.0, 2.0, 3.0, 4.0], 3)
        assert np.isnan(result[:2]).all()
        assert result[2] == pytest.approx(2.0)
        assert result[3] == pytest.approx(3.0)

    def test_rolling_mean_nan_in_window(self):
        """Test that a NaN inside the window gives NaN."""
        result = rolling_mean([1.0, np.nan, 3.0, 4.0, 5.0], 3)
        assert np.isnan(result[2])
        assert np.isnan(result[3])
        assert result[4] == pytest.approx(4.0)

    def test_rolling_sum(self):
        """Test trailing sum."""
        result = rolling_sum([1.0, 2.0, 3.0, 4.0], 2)
        assert np.isnan(result[0])
        assert list(result[1:]) == [3.0, 5.0, 7.0]

    def test_rolling_max_min(self):
        """Test trailing max and min."""
        values = [3.0, 1.0, 4.0, 1.0, 5.0]
        assert list(rolling_max(values, 3)[2:]) == [4.0, 4.0, 5.0]
        assert list(rolling_min(values, 3)[2:]) == [1.0, 1.0, 1.0]

    def test_rolling_std_sample_vs_population(self):
        """Test ddof selects sample or population deviation."""
        values = [2.0, 4.0, 4.0, 4.0, 5.0, 5.0, 7.0, 9.0]
        assert rolling_std(values, 8, ddof=0)[-1] == pytest.approx(2.0)
        assert rolling_std(values, 8, ddof=1)[-1] == pytest.approx(math.sqrt(32 / 7))

    def test_rolling_nanmean_skips_nan(self):
        """Test that NaN values inside a full window are skipped."""
        result = rolling_nanmean([1.0, np.nan, 3.0, 5.0], 2)
        assert np.isnan(result[0])
        assert result[1] == pytest.approx(1.0)
        assert result[2] == pytest.approx(3.0)
        assert result[3] == pytest.approx(4.0)

    def test_rolling_weighted_mean(self):
        """Test linear weights with the newest value heaviest."""
        result = rolling_weighted_mean([1.0, 2.0, 3.0], 3)
        # (1*1 + 2*2 + 3*3) / 6
        assert result[2] == pytest.approx(14.0 / 6.0)

    def test_does_not_modify_input(self):
        """Test that inputs are left untouched."""
        values = np.array([1.0, 2.0, 3.0])
        rolling_mean(values, 2)
        np.testing.assert_array_equal(values, [1.0, 2.0, 3.0])

    @pytest.mark.parametrize(
        "func", [rolling_mean, rolling_sum, rolling_max, rolling_min, rolling_std, rolling_nanmean]
    )
    def test_result_is_writable(self, func):
        """Test rolling results can be edited in place."""
        result = func(pd.Series([1.0, 2.0, 3.0, 4.0]), 2)
        result[0] = 0.0
        assert result[0] == 0.0

    def test_series_input_is_copied(self):
        """Test a Series passed in is not written through."""
        series = pd.Series([1.0, 2.0, 3.0])
        result = shift(series, 1)
        result[1] = 99.0
        assert series.tolist() == [1.0, 2.0, 3.0]


class TestExponentialRecurrences:
    """Tests for EMA, Wilder and SMA-seeded smoothing."""

    def test_ema_formula(self):
        """Test EMA formula: alpha = 2/(period+1)."""
        result = ema_recurrence([1.0, 2.0], 9)
        # alpha = 0.2: 0.2 * 2.0 + 0.8 * 1.0 = 1.2
        assert result[0] == pytest.approx(1.0)
        assert result[1] == pytest.approx(1.2)

    def test_ema_period_1(self):
        """Test EMA with period 1 returns the input."""
        np.testing.assert_allclose(ema_recurrence([1.0, 5.0, 3.0], 1), [1.0, 5.0, 3.0])

    def test_ema_converges(self):
        """Test that EMA of a constant series is the constant."""
        assert ema_recurrence([5.0] * 50, 10)[-1] == pytest.approx(5.0)

    def test_nan_holds_state(self):
        """Test that a NaN input yields NaN and the state carries over."""
        result = exponential_smoothing([1.0, np.nan, 2.0], 0.5)
        assert np.isnan(result[1])
        assert result[2] == pytest.approx(1.5)

    def test_leading_nan_delays_seed(self):
        """Test that the seed forms on the first finite value."""
        result = ema_recurrence([np.nan, np.nan, 4.0, 6.0], 3)
        assert np.isnan(result[:2]).all()
        assert result[2] == pytest.approx(4.0)
        assert result[3] == pytest.approx(5.0)

    def test_ema_interior_nan_holds_state(self):
        """Test an interior NaN is NaN and the average resumes from the last value."""
        result = ema_recurrence([1.0, np.nan, 3.0], 3)
        assert result[0] == pytest.approx(1.0)
        assert np.isnan(result[1])
        # alpha = 0.5: 0.5 * 3.0 + 0.5 * 1.0
        assert result[2] == pytest.approx(2.0)

    def test_ema_matches_loop(self):
        """Test EMA agrees with the explicit smoothing loop."""
        values = [3.0, np.nan, 5.0, 4.0, np.nan, np.nan, 8.0, 7.5]
        np.testing.assert_allclose(
            ema_recurrence(values, 4), exponential_smoothing(values, 2.0 / 5.0)
        )

    def test_ema_result_is_writable(self):
        """Test the EMA result can be edited in place."""
        result = ema_recurrence(pd.Series([1.0, 2.0, 3.0]), 2)
        result[0] = np.nan
        assert np.isnan(result[0])

    def test_wilder_seed_is_sma(self):
        """Test Wilder smoothing is seeded with the simple mean."""
        result = wilder_recurrence([1.0, 2.0, 3.0, 7.0], 3)
        assert np.isnan(result[:2]).all()
        assert result[2] == pytest.approx(2.0)
        # (2 * 2 + 7) / 3
        assert result[3] == pytest.approx(11.0 / 3.0)

    def test_sma_seeded_ema(self):
        """Test SMA-seeded EMA."""
        result = sma_seeded_ema([2.0, 4.0, 6.0, 8.0], 3)
        assert result[2] == pytest.approx(4.0)
        assert result[3] == pytest.approx(0.5 * 8.0 + 0.5 * 4.0)


class TestNormalDistribution:
    """Tests for norm_cdf and norm_pdf."""

    def test_cdf_at_zero(self):
        """Test N(0) = 0.5."""
        assert norm_cdf(0.0) == pytest.approx(0.5, abs=1e-7)

    def test_cdf_known_value(self):
        """Test N(1.96) against the tabulated value."""
        assert norm_cdf(1.96) == pytest.approx(0.9750021, abs=1e-6)

    def test_cdf_symmetry(self):
        """Test N(-x) = 1 - N(x)."""
        assert norm_cdf(-0.7) == pytest.approx(1.0 - norm_cdf(0.7), abs=1e-7)

    def test_cdf_saturates(self):
        """Test values beyond +/-6 saturate."""
        assert norm_cdf(7.0) == 1.0
        assert norm_cdf(-7.0) == 0.0

    def test_cdf_array_and_nan(self):
        """Test array input with NaN passes NaN through."""
        result = norm_cdf(np.array([0.0, np.nan]))
        assert result[0] == pytest.approx(0.5, abs=1e-7)
        assert np.isnan(result[1])

    def test_pdf_at_zero(self):
        """Test N'(0) = 1/sqrt(2 pi)."""
        assert norm_pdf(0.0) == pytest.approx(1.0 / math.sqrt(2.0 * math.pi))


class TestGuardedArithmetic:
    """Tests for safe_divide, shift and bar transforms."""

    def test_safe_divide_zero(self):
        """Test division by zero gives NaN rather than inf."""
        result = safe_divide([1.0, 4.0], [0.0, 2.0])
        assert np.isnan(result[0])
        assert result[1] == pytest.approx(2.0)

    def test_shift(self):
        """Test shift fills with NaN."""
        result = shift([1.0, 2.0, 3.0], 1)
        assert np.isnan(result[0])
        assert list(result[1:]) == [1.0, 2.0]

    def test_shift_beyond_length(self):
        """Test shifting past the end gives all NaN."""
        assert np.isnan(shift([1.0, 2.0], 5)).all()

    def test_true_range_first_bar(self):
        """Test the first bar uses high - low."""
        tr = true_range([10.0, 12.0], [8.0, 11.0], [9.0, 11.5])
        assert tr[0] == pytest.approx(2.0)
        # max(1, |12 - 9|, |11 - 9|)
        assert tr[1] == pytest.approx(3.0)

    def test_typical_price(self):
        """Test (H + L + C) / 3."""
        assert typical_price([12.0], [9.0], [9.0])[0] == pytest.approx(10.0)

    def test_round_half_away(self):
        """Test halves round away from zero."""
        np.testing.assert_array_equal(round_half_away([2.5, -2.5, 1.4, -1.6]), [3.0, -3.0, 1.0, -2.0])

    def test_as_series_alignment(self):
        """Test values are aligned to the frame's index."""
        df = pd.DataFrame({"close": [1.0, 2.0]}, index=[10, 20])
        series = as_series([3.0, 4.0], df, "x")
        assert series.name == "x"
        assert list(series.index) == [10, 20]
