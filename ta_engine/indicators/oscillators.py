"""
Oscillator indicators.

    - RSI (Wilder smoothing) and Stochastic RSI
    - MACD line, signal and histogram
    - Stochastic oscillator %K / %D with slowing
    - Williams %R
    - PPO, TRIX, Ultimate Oscillator, Detrended Price Oscillator
"""

import logging
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from ta_engine.config import IndicatorConfig
from ta_engine.exceptions import InvalidParameterError
from ta_engine.primitives import (
    as_series,
    ema_recurrence,
    rolling_max,
    rolling_mean,
    rolling_min,
    safe_divide,
    shift,
    wilder_recurrence,
)
from ta_engine.validators import as_float_array, validate_inputs, validate_window

logger = logging.getLogger(__name__)

# Price range below which the high/low window is treated as flat
FLAT_RANGE_EPSILON = 1e-10


def _gains_and_losses(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Split bar-to-bar changes into gains and (positive) losses.

    The first bar has no change and contributes 0 to both. A NaN change
    yields NaN in both arrays.
    """
    diff = np.diff(values, prepend=np.nan)
    gains = np.where(diff > 0, diff, 0.0)
    losses = np.where(diff > 0, 0.0, -diff)

    missing = np.isnan(diff)
    gains[missing] = np.nan
    losses[missing] = np.nan
    if len(values):
        gains[0] = 0.0
        losses[0] = 0.0
    return gains, losses


def _rsi_from_averages(avg_gain: np.ndarray, avg_loss: np.ndarray) -> np.ndarray:
    # avg_loss == 0 pins RSI at 100 instead of dividing by zero
    with np.errstate(divide="ignore", invalid="ignore"):
        rsi = 100.0 - 100.0 / (1.0 + avg_gain / avg_loss)
    rsi = np.where(avg_loss == 0, 100.0, rsi)
    return np.where(np.isnan(avg_gain) | np.isnan(avg_loss), np.nan, rsi)


def _window_position(
    high: np.ndarray, low: np.ndarray, window: int
) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Highest high, lowest low and a flat-range mask over a trailing window."""
    highest_high = rolling_max(high, window)
    lowest_low = rolling_min(low, window)
    flat = np.abs(highest_high - lowest_low) < FLAT_RANGE_EPSILON
    return highest_high, lowest_low, flat


# =============================================================================
# RSI (Relative Strength Index)
# =============================================================================


def calculate_rsi(df: pd.DataFrame, window: int = 14, column: str = "close") -> pd.Series:
    """
    Calculate Relative Strength Index using Wilder's smoothing.

    RSI = 100 - (100 / (1 + RS)), RS = average gain / average loss.

    The first average is the simple mean of the first ``window`` gains
    (the first bar contributes 0), so the first value appears at index
    ``window - 1``. Later averages use ``(avg * (window - 1) + x) / window``.
    When the average loss is exactly 0, RSI is 100.

    Args:
        df: Input DataFrame.
        window: Lookback period (default 14).
        column: Price column.

    Returns:
        Series ``rsi_{window}`` on a 0-100 scale.
    """
    validate_inputs(df, [column], "RSI", window)
    gains, losses = _gains_and_losses(as_float_array(df, column))

    avg_gain = wilder_recurrence(gains, window)
    avg_loss = wilder_recurrence(losses, window)

    return as_series(_rsi_from_averages(avg_gain, avg_loss), df, f"rsi_{window}")


def calculate_stoch_rsi(
    df: pd.DataFrame,
    rsi_period: int = 14,
    stoch_period: int = 14,
    column: str = "close",
) -> pd.Series:
    """
    Calculate Stochastic RSI on a 0-1 scale.

    The underlying RSI uses simple rolling means of gains and losses (not
    Wilder smoothing). The stochastic step is
    ``(rsi - min(rsi)) / (max(rsi) - min(rsi))`` over ``stoch_period``;
    a flat RSI window gives NaN.

    Returns:
        Series ``stoch_rsi_{rsi_period}_{stoch_period}``.
    """
    validate_inputs(df, [column], "StochRSI", rsi_period)
    validate_window(stoch_period, "StochRSI", "stoch_period")

    gains, losses = _gains_and_losses(as_float_array(df, column))
    rsi = _rsi_from_averages(rolling_mean(gains, rsi_period), rolling_mean(losses, rsi_period))

    lowest = rolling_min(rsi, stoch_period)
    highest = rolling_max(rsi, stoch_period)
    rsi_range = highest - lowest
    stoch_rsi = np.where(
        np.abs(rsi_range) > np.finfo(float).eps,
        safe_divide(rsi - lowest, rsi_range),
        np.nan,
    )

    return as_series(stoch_rsi, df, f"stoch_rsi_{rsi_period}_{stoch_period}")


# =============================================================================
# MACD (Moving Average Convergence Divergence)
# =============================================================================


def calculate_macd(
    df: pd.DataFrame,
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
    column: str = "close",
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """
    Calculate MACD indicator components.

    Args:
        df: Input DataFrame.
        fast_period: Fast EMA period (default 12).
        slow_period: Slow EMA period (default 26).
        signal_period: Signal line EMA period (default 9).
        column: Price column.

    Returns:
        Tuple of (macd_line, signal_line, histogram).

    Raises:
        InvalidParameterError: If ``fast_period >= slow_period``.
        InsufficientDataError: If the table has fewer than ``slow_period`` rows.
    """
    validate_window(fast_period, "MACD", "fast_period")
    validate_window(signal_period, "MACD", "signal_period")
    validate_inputs(df, [column], "MACD", slow_period)
    if fast_period >= slow_period:
        raise InvalidParameterError(
            f"fast_period ({fast_period}) must be less than slow_period ({slow_period})",
            "MACD",
        )

    values = as_float_array(df, column)
    macd_line = ema_recurrence(values, fast_period) - ema_recurrence(values, slow_period)
    signal_line = ema_recurrence(macd_line, signal_period)
    histogram = macd_line - signal_line

    base = f"{fast_period}_{slow_period}"
    suffix = f"{base}_{signal_period}"
    return (
        as_series(macd_line, df, f"macd_{base}"),
        as_series(signal_line, df, f"macd_signal_{suffix}"),
        as_series(histogram, df, f"macd_hist_{suffix}"),
    )


def calculate_ppo(
    df: pd.DataFrame,
    fast_period: int = 12,
    slow_period: int = 26,
    column: str = "close",
) -> pd.Series:
    """
    Calculate Percentage Price Oscillator: ``100 * (ema_fast - ema_slow) / ema_slow``.

    Both EMAs are seeded with the first price. A zero slow EMA gives NaN.
    """
    validate_window(fast_period, "PPO", "fast_period")
    validate_inputs(df, [column], "PPO", slow_period)
    if fast_period >= slow_period:
        raise InvalidParameterError(
            f"fast_period ({fast_period}) must be less than slow_period ({slow_period})",
            "PPO",
        )

    values = as_float_array(df, column)
    ema_fast = ema_recurrence(values, fast_period)
    ema_slow = ema_recurrence(values, slow_period)
    ppo = 100.0 * safe_divide(ema_fast - ema_slow, ema_slow)

    return as_series(ppo, df, f"ppo_{fast_period}_{slow_period}")


def calculate_trix(df: pd.DataFrame, window: int = 15, column: str = "close") -> pd.Series:
    """
    Calculate TRIX, the 1-bar percent change of a triple-smoothed EMA.

    Each EMA stage is seeded at the first row; the first output is NaN.
    """
    validate_inputs(df, [column], "TRIX", window)
    values = as_float_array(df, column)

    triple = ema_recurrence(ema_recurrence(ema_recurrence(values, window), window), window)
    previous = shift(triple, 1)
    trix = 100.0 * safe_divide(triple - previous, previous)

    return as_series(trix, df, f"trix_{window}")


# =============================================================================
# Stochastic Oscillator / Williams %R
# =============================================================================


def calculate_stochastic(
    df: pd.DataFrame,
    k_period: int = 14,
    slowing: int = 3,
    d_period: int = 3,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> Tuple[pd.Series, pd.Series]:
    """
    Calculate the Stochastic Oscillator with slowing.

    raw %K = 100 * (close - lowest_low) / (highest_high - lowest_low) over
    ``k_period`` bars; NaN when any high/low in the window is NaN or the
    range is below 1e-10.

    Slowed %K is the mean of the last ``slowing`` raw values and %D the mean
    of the last ``d_period`` slowed values; a NaN anywhere in either window
    gives NaN. Warm-up accumulates across stages: slowed %K starts at index
    ``k_period + slowing - 1`` and %D at ``k_period + slowing + d_period - 2``.

    Returns:
        Tuple of (%K, %D) named ``stoch_k_{k}_{slowing}_{d}`` / ``stoch_d_...``.
    """
    validate_window(k_period, "Stochastic", "k_period")
    validate_window(slowing, "Stochastic", "slowing")
    validate_window(d_period, "Stochastic", "d_period")
    validate_inputs(df, [high, low, close], "Stochastic", k_period + slowing + d_period - 1)

    high_values = as_float_array(df, high)
    low_values = as_float_array(df, low)
    close_values = as_float_array(df, close)

    highest_high, lowest_low, flat = _window_position(high_values, low_values, k_period)
    raw_k = 100.0 * safe_divide(close_values - lowest_low, highest_high - lowest_low)
    raw_k = np.where(flat, np.nan, raw_k)

    k_offset = k_period + slowing - 1
    slowed_k = rolling_mean(raw_k, slowing)
    slowed_k[:k_offset] = np.nan

    d_offset = k_offset + d_period - 1
    d_line = rolling_mean(slowed_k, d_period)
    d_line[:d_offset] = np.nan

    suffix = f"{k_period}_{slowing}_{d_period}"
    return (
        as_series(slowed_k, df, f"stoch_k_{suffix}"),
        as_series(d_line, df, f"stoch_d_{suffix}"),
    )


def calculate_williams_r(
    df: pd.DataFrame,
    window: int = 14,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """
    Calculate Williams %R: ``-100 * (highest_high - close) / (highest_high - lowest_low)``.

    Same window and NaN guards as raw stochastic %K; output is in [-100, 0].
    """
    validate_inputs(df, [high, low, close], "Williams %R", window)

    close_values = as_float_array(df, close)
    highest_high, lowest_low, flat = _window_position(
        as_float_array(df, high), as_float_array(df, low), window
    )
    williams_r = -100.0 * safe_divide(highest_high - close_values, highest_high - lowest_low)
    williams_r = np.where(flat, np.nan, williams_r)

    return as_series(williams_r, df, f"williams_r_{window}")


# =============================================================================
# Ultimate Oscillator / DPO
# =============================================================================


def calculate_ultimate_oscillator(
    df: pd.DataFrame,
    short: int = 7,
    medium: int = 14,
    long: int = 28,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """
    Calculate the Ultimate Oscillator.

    Buying pressure BP = close - min(low, prev_close) and true range
    TR = max(high, prev_close) - min(low, prev_close); the first bar uses
    its own low/high. For each period the average is sum(BP) / sum(TR)
    (NaN bars skipped), and the oscillator is
    ``100 * (4 * A_short + 2 * A_medium + A_long) / 7``.
    """
    validate_window(short, "Ultimate Oscillator", "short")
    validate_window(medium, "Ultimate Oscillator", "medium")
    validate_inputs(df, [high, low, close], "Ultimate Oscillator", long)

    high_values = as_float_array(df, high)
    low_values = as_float_array(df, low)
    close_values = as_float_array(df, close)

    prev_close = shift(close_values, 1)
    true_low = np.where(np.isnan(prev_close), low_values, np.minimum(low_values, prev_close))
    true_high = np.where(np.isnan(prev_close), high_values, np.maximum(high_values, prev_close))
    if len(prev_close) > 1:
        # Only the first bar lacks a previous close; later gaps stay NaN
        gap = np.isnan(prev_close)
        gap[0] = False
        true_low[gap] = np.nan
        true_high[gap] = np.nan

    buying_pressure = pd.Series(close_values - true_low)
    true_range = pd.Series(true_high - true_low)

    def average(period: int) -> np.ndarray:
        bp_sum = buying_pressure.rolling(period, min_periods=1).sum().to_numpy(copy=True)
        tr_sum = true_range.rolling(period, min_periods=1).sum().to_numpy(copy=True)
        return safe_divide(bp_sum, tr_sum)

    oscillator = 100.0 * (4.0 * average(short) + 2.0 * average(medium) + average(long)) / 7.0
    oscillator[: long - 1] = np.nan

    return as_series(oscillator, df, f"ultosc_{short}_{medium}_{long}")


def calculate_dpo(df: pd.DataFrame, window: int = 20, column: str = "close") -> pd.Series:
    """
    Calculate the Detrended Price Oscillator.

    ``dpo[i] = close[i - (window // 2 + 1)] - SMA(close, window)[i]``
    """
    validate_inputs(df, [column], "DPO", window)
    values = as_float_array(df, column)

    displaced = shift(values, window // 2 + 1)
    dpo = displaced - rolling_mean(values, window)

    return as_series(dpo, df, f"dpo_{window}")


# =============================================================================
# Aggregator
# =============================================================================


def add_oscillator_indicators(
    df: pd.DataFrame, config: Optional[IndicatorConfig] = None
) -> pd.DataFrame:
    """
    Add RSI, MACD, Stochastic and Williams %R columns.

    Works on a copy: the input DataFrame is unchanged even if a calculation
    fails part way through.

    Args:
        df: DataFrame with canonical high/low/close columns.
        config: Indicator parameters; defaults if None.

    Returns:
        New DataFrame with the oscillator columns appended.
    """
    config = config or IndicatorConfig()
    result = df.copy()

    columns = [calculate_rsi(df, config.rsi.window)]
    columns.extend(
        calculate_macd(df, config.macd.fast, config.macd.slow, config.macd.signal)
    )
    columns.extend(
        calculate_stochastic(
            df,
            config.stochastic.k_period,
            config.stochastic.slowing,
            config.stochastic.d_period,
        )
    )
    columns.append(calculate_williams_r(df, config.stochastic.k_period))

    for series in columns:
        result[series.name] = series

    logger.debug(f"Added oscillator columns: {[s.name for s in columns]}")
    return result
