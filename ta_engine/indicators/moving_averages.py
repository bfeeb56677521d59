"""
Moving average indicators.

    - SMA: arithmetic mean over a trailing window
    - EMA: exponential recurrence seeded with the first observation
    - WMA: linearly weighted trailing mean
    - HMA: Hull moving average built from WMAs
    - VWAP: cumulative or rolling volume weighted average price
"""

import math

import numpy as np
import pandas as pd

from ta_engine.exceptions import InvalidParameterError
from ta_engine.primitives import (
    as_series,
    ema_recurrence,
    rolling_mean,
    rolling_sum,
    rolling_weighted_mean,
    typical_price,
)
from ta_engine.validators import as_float_array, validate_inputs


def calculate_sma(df: pd.DataFrame, window: int = 20, column: str = "close") -> pd.Series:
    """
    Calculate Simple Moving Average.

    Args:
        df: Input DataFrame.
        window: Lookback period.
        column: Column to average.

    Returns:
        Series ``sma_{window}``; the first ``window - 1`` values are NaN.

    Raises:
        MissingColumnError: If ``column`` is absent.
        InsufficientDataError: If the table has fewer than ``window`` rows.
    """
    validate_inputs(df, [column], "SMA", window)
    values = as_float_array(df, column)
    return as_series(rolling_mean(values, window), df, f"sma_{window}")


def calculate_ema(df: pd.DataFrame, window: int = 20, column: str = "close") -> pd.Series:
    """
    Calculate Exponential Moving Average.

    ``ema[0] = x[0]``; ``ema[i] = alpha * x[i] + (1 - alpha) * ema[i-1]``
    with ``alpha = 2 / (window + 1)``. Defined from the first row, so there
    is no NaN warm-up region, but the table must still hold ``window`` rows.

    Returns:
        Series ``ema_{window}``.
    """
    validate_inputs(df, [column], "EMA", window)
    values = as_float_array(df, column)
    return as_series(ema_recurrence(values, window), df, f"ema_{window}")


def calculate_wma(df: pd.DataFrame, window: int = 20, column: str = "close") -> pd.Series:
    """
    Calculate Weighted Moving Average with linear weights 1..window.

    Returns:
        Series ``wma_{window}``; the first ``window - 1`` values are NaN.
    """
    validate_inputs(df, [column], "WMA", window)
    values = as_float_array(df, column)
    return as_series(rolling_weighted_mean(values, window), df, f"wma_{window}")


def calculate_hma(df: pd.DataFrame, window: int = 20, column: str = "close") -> pd.Series:
    """
    Calculate Hull Moving Average.

    ``HMA = WMA(2 * WMA(x, window // 2) - WMA(x, window), round(sqrt(window)))``

    Returns:
        Series ``hma_{window}``.
    """
    validate_inputs(df, [column], "HMA", window)
    values = as_float_array(df, column)

    half_window = max(window // 2, 1)
    sqrt_window = max(int(round(math.sqrt(window))), 1)

    wma_half = rolling_weighted_mean(values, half_window)
    wma_full = rolling_weighted_mean(values, window)
    raw_hma = 2.0 * wma_half - wma_full

    return as_series(rolling_weighted_mean(raw_hma, sqrt_window), df, f"hma_{window}")


def calculate_vwap(
    df: pd.DataFrame,
    lookback: int = 0,
    high: str = "high",
    low: str = "low",
    close: str = "close",
    volume: str = "volume",
) -> pd.Series:
    """
    Calculate Volume Weighted Average Price from typical price.

    Args:
        df: Input DataFrame.
        lookback: Rolling window length. 0 (or a value >= the table height)
            accumulates over the whole table.

    Returns:
        Series ``vwap`` (cumulative) or ``vwap_{lookback}`` (rolling). Rows
        where the volume sum is 0 fall back to the close price.
    """
    validate_inputs(df, [high, low, close, volume], "VWAP")
    if lookback < 0:
        raise InvalidParameterError(f"lookback must be >= 0, got {lookback}", "VWAP")

    close_values = as_float_array(df, close)
    volume_values = as_float_array(df, volume)
    price = typical_price(as_float_array(df, high), as_float_array(df, low), close_values)
    price_volume = price * volume_values

    cumulative = lookback == 0 or lookback >= len(df)
    if cumulative:
        # Bars with missing data are skipped by the running sums
        valid = ~np.isnan(price_volume)
        pv_sum = np.cumsum(np.where(valid, price_volume, 0.0))
        volume_sum = np.cumsum(np.where(valid, volume_values, 0.0))
        name = "vwap"
    else:
        valid = np.ones(len(df), dtype=bool)
        pv_sum = rolling_sum(price_volume, lookback)
        volume_sum = rolling_sum(volume_values, lookback)
        name = f"vwap_{lookback}"

    with np.errstate(divide="ignore", invalid="ignore"):
        vwap = pv_sum / volume_sum
    vwap = np.where(volume_sum == 0, close_values, vwap)
    vwap = np.where(valid, vwap, np.nan)

    return as_series(vwap, df, name)
