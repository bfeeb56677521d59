"""
Volatility indicators.

    - True Range, ATR (Wilder) and normalized ATR
    - Bollinger Bands and %B
    - Keltner and Donchian channels
    - Rolling standard deviation
    - Historical (close-to-close) and Garman-Klass volatility
"""

import logging
import math
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from ta_engine.config import IndicatorConfig
from ta_engine.exceptions import InvalidParameterError
from ta_engine.primitives import (
    as_series,
    rolling_max,
    rolling_mean,
    rolling_min,
    rolling_std,
    safe_divide,
    shift,
    sma_seeded_ema,
    true_range,
    wilder_recurrence,
)
from ta_engine.validators import as_float_array, validate_inputs, validate_window

logger = logging.getLogger(__name__)

# Garman-Klass close-to-open weight. This is 2 * 0.386, twice the textbook
# 2 * ln(2) - 1, kept so published gk_vol values stay comparable.
GK_CLOSE_OPEN_WEIGHT = 2.0 * 0.386


def _true_range_values(df: pd.DataFrame, high: str, low: str, close: str) -> np.ndarray:
    return true_range(as_float_array(df, high), as_float_array(df, low), as_float_array(df, close))


def _rolling_population_variance(values: np.ndarray, window: int) -> np.ndarray:
    """
    Population variance over a trailing window using only valid values.

    Needs at least two valid values; negative round-off is clamped to 0.
    """
    variance = pd.Series(values).rolling(window=window, min_periods=2).var(ddof=0).to_numpy(copy=True)
    variance = np.where(variance < 0, 0.0, variance)
    return variance


# =============================================================================
# True Range / ATR
# =============================================================================


def calculate_true_range(
    df: pd.DataFrame, high: str = "high", low: str = "low", close: str = "close"
) -> pd.Series:
    """
    Calculate True Range.

    The first bar has no previous close and uses ``high - low``.

    Returns:
        Series ``trange``.
    """
    validate_inputs(df, [high, low, close], "True Range")
    return as_series(_true_range_values(df, high, low, close), df, "trange")


def calculate_atr(
    df: pd.DataFrame,
    window: int = 14,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """
    Calculate Average True Range using Wilder's smoothing.

    The seed is the mean of the first ``window`` true ranges, so the first
    ``window - 1`` values are NaN.

    Args:
        df: Input DataFrame with high, low and close.
        window: Smoothing period (default 14).

    Returns:
        Series ``atr_{window}``.
    """
    validate_inputs(df, [high, low, close], "ATR", window)
    tr = _true_range_values(df, high, low, close)
    return as_series(wilder_recurrence(tr, window), df, f"atr_{window}")


def calculate_natr(
    df: pd.DataFrame,
    window: int = 14,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """Calculate normalized ATR, ``100 * ATR / close`` (NaN where close is 0)."""
    atr = calculate_atr(df, window, high, low, close).to_numpy(copy=True)
    natr = 100.0 * safe_divide(atr, as_float_array(df, close))
    return as_series(natr, df, f"natr_{window}")


# =============================================================================
# Bands and Channels
# =============================================================================


def calculate_bollinger_bands(
    df: pd.DataFrame,
    window: int = 20,
    num_std: float = 2.0,
    column: str = "close",
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """
    Calculate Bollinger Bands.

    Middle band is the SMA; the outer bands sit ``num_std`` sample standard
    deviations (ddof=1) away from it.

    Args:
        df: Input DataFrame.
        window: Lookback period (default 20).
        num_std: Band width in standard deviations (default 2.0).
        column: Price column.

    Returns:
        Tuple of (middle, upper, lower) named ``bb_middle_{w}_{k}`` etc.

    Raises:
        InvalidParameterError: If ``num_std`` is negative.
    """
    validate_inputs(df, [column], "Bollinger Bands", window)
    if num_std < 0:
        raise InvalidParameterError(f"num_std must be >= 0, got {num_std}", "Bollinger Bands")

    values = as_float_array(df, column)
    middle = rolling_mean(values, window)
    std = rolling_std(values, window, ddof=1)
    if window == 1:
        # A single observation has no spread
        std = np.where(np.isnan(middle), np.nan, 0.0)

    suffix = f"{window}_{num_std:g}"
    return (
        as_series(middle, df, f"bb_middle_{suffix}"),
        as_series(middle + num_std * std, df, f"bb_upper_{suffix}"),
        as_series(middle - num_std * std, df, f"bb_lower_{suffix}"),
    )


def calculate_bollinger_percent_b(
    df: pd.DataFrame,
    window: int = 20,
    num_std: float = 2.0,
    column: str = "close",
) -> pd.Series:
    """
    Calculate Bollinger %B: ``(close - lower) / (upper - lower)``.

    NaN when the band width is 0.
    """
    _, upper, lower = calculate_bollinger_bands(df, window, num_std, column)
    width = upper.to_numpy(copy=True) - lower.to_numpy(copy=True)
    percent_b = safe_divide(as_float_array(df, column) - lower.to_numpy(copy=True), width)
    return as_series(percent_b, df, f"bb_b_{window}_{num_std:g}")


def calculate_keltner_channels(
    df: pd.DataFrame,
    window: int = 20,
    multiplier: float = 2.0,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """
    Calculate Keltner Channels.

    Middle line is an EMA of close seeded with the SMA of the first
    ``window`` values; the channels are ``middle +/- multiplier * ATR``.

    Returns:
        Tuple of (upper, middle, lower).
    """
    validate_inputs(df, [high, low, close], "Keltner Channels", window)
    if multiplier < 0:
        raise InvalidParameterError(
            f"multiplier must be >= 0, got {multiplier}", "Keltner Channels"
        )

    middle = sma_seeded_ema(as_float_array(df, close), window)
    atr = wilder_recurrence(_true_range_values(df, high, low, close), window)

    return (
        as_series(middle + multiplier * atr, df, f"keltner_upper_{window}"),
        as_series(middle, df, f"keltner_middle_{window}"),
        as_series(middle - multiplier * atr, df, f"keltner_lower_{window}"),
    )


def calculate_donchian_channels(
    df: pd.DataFrame, window: int = 20, high: str = "high", low: str = "low"
) -> Tuple[pd.Series, pd.Series, pd.Series]:
    """Calculate Donchian Channels as (upper, lower, middle)."""
    validate_inputs(df, [high, low], "Donchian Channels", window)

    upper = rolling_max(as_float_array(df, high), window)
    lower = rolling_min(as_float_array(df, low), window)

    return (
        as_series(upper, df, f"donchian_upper_{window}"),
        as_series(lower, df, f"donchian_lower_{window}"),
        as_series((upper + lower) / 2.0, df, f"donchian_middle_{window}"),
    )


# =============================================================================
# Dispersion Estimators
# =============================================================================


def calculate_stddev(df: pd.DataFrame, window: int = 20, column: str = "close") -> pd.Series:
    """
    Calculate rolling population standard deviation.

    The first ``window - 1`` values are NaN. Inside a full window NaN values
    are skipped, and at least two valid values are needed.
    """
    validate_inputs(df, [column], "StdDev", window)

    variance = _rolling_population_variance(as_float_array(df, column), window)
    variance[: window - 1] = np.nan

    return as_series(np.sqrt(variance), df, f"stddev_{window}")


def calculate_historical_volatility(
    df: pd.DataFrame,
    window: int = 20,
    trading_periods: int = 252,
    column: str = "close",
) -> pd.Series:
    """
    Calculate annualized close-to-close historical volatility in percent.

    Log returns ``ln(c[i] / c[i-1])`` are taken over the trailing ``window``
    bars, and their population standard deviation is scaled by
    ``sqrt(trading_periods) * 100``. The first ``window`` values are NaN;
    a window with zero variance gives 0.

    Args:
        df: Input DataFrame.
        window: Number of returns per window (default 20).
        trading_periods: Periods per year (default 252).

    Returns:
        Series ``hist_vol_{window}``.
    """
    validate_inputs(df, [column], "Historical Volatility", window, extra_rows=1)
    validate_window(trading_periods, "Historical Volatility", "trading_periods")

    values = as_float_array(df, column)
    previous = shift(values, 1)
    with np.errstate(divide="ignore", invalid="ignore"):
        log_returns = np.where(
            (values > 0) & (previous > 0), np.log(values / previous), np.nan
        )

    variance = _rolling_population_variance(log_returns, window)
    variance[:window] = np.nan

    hist_vol = np.sqrt(variance) * math.sqrt(trading_periods) * 100.0
    return as_series(hist_vol, df, f"hist_vol_{window}")


def calculate_garman_klass_volatility(
    df: pd.DataFrame,
    window: int = 10,
    open_: str = "open",
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """
    Calculate the Garman-Klass volatility estimator.

    Per bar: ``0.5 * ln(h / l)^2 - 0.772 * ln(c / o)^2``, or 0 when high,
    low or open is not positive. The series is smoothed by a rolling mean
    that accepts partial windows, so there is no warm-up.
    """
    validate_inputs(df, [open_, high, low, close], "Garman-Klass Volatility", window)

    o = as_float_array(df, open_)
    h = as_float_array(df, high)
    l = as_float_array(df, low)
    c = as_float_array(df, close)

    with np.errstate(divide="ignore", invalid="ignore"):
        raw = 0.5 * np.log(h / l) ** 2 - GK_CLOSE_OPEN_WEIGHT * np.log(c / o) ** 2
    degenerate = (h <= 0) | (l <= 0) | (o <= 0)
    raw = np.where(degenerate, 0.0, raw)

    smoothed = pd.Series(raw).rolling(window=window, min_periods=1).mean().to_numpy(copy=True)
    return as_series(smoothed, df, f"gk_vol_{window}")


# =============================================================================
# Aggregator
# =============================================================================


def add_volatility_indicators(
    df: pd.DataFrame, config: Optional[IndicatorConfig] = None
) -> pd.DataFrame:
    """
    Add ATR, Bollinger Bands, %B and Garman-Klass volatility columns.

    Returns a new DataFrame; the input is never modified.
    """
    config = config or IndicatorConfig()
    result = df.copy()

    bollinger = config.bollinger
    columns = [calculate_atr(df, config.atr.window)]
    columns.extend(calculate_bollinger_bands(df, bollinger.window, bollinger.num_std))
    columns.append(calculate_bollinger_percent_b(df, bollinger.window, bollinger.num_std))
    columns.append(calculate_garman_klass_volatility(df, config.volatility.gk_window))

    for series in columns:
        result[series.name] = series

    logger.debug(f"Added volatility columns: {[s.name for s in columns]}")
    return result
