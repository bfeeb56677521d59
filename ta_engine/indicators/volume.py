"""
Volume-based indicators.

    - On-Balance Volume (OBV)
    - Money Flow Index (MFI)
    - Chaikin Money Flow (CMF) and Accumulation/Distribution Line (ADL)
    - Price Volume Trend (PVT)
    - Ease of Movement (EOM)
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from ta_engine.config import IndicatorConfig
from ta_engine.primitives import (
    as_series,
    rolling_nanmean,
    rolling_sum,
    safe_divide,
    shift,
    typical_price,
)
from ta_engine.validators import as_float_array, validate_inputs

logger = logging.getLogger(__name__)

# Flow sums below this are treated as zero
FLOW_EPSILON = 1e-10


def _money_flow_multiplier(high: np.ndarray, low: np.ndarray, close: np.ndarray) -> np.ndarray:
    """``((c - l) - (h - c)) / (h - l)``; NaN where the bar has no range."""
    return safe_divide((close - low) - (high - close), high - low)


def _running_total(increments: np.ndarray) -> np.ndarray:
    """
    Cumulative sum where a NaN increment yields NaN for that row only.

    The running total carries across the gap unchanged.
    """
    missing = np.isnan(increments)
    total = np.cumsum(np.where(missing, 0.0, increments))
    return np.where(missing, np.nan, total)


def calculate_obv(df: pd.DataFrame, close: str = "close", volume: str = "volume") -> pd.Series:
    """
    Calculate On-Balance Volume.

    OBV starts at the first bar's volume. Each later bar adds its volume when
    the close rises, subtracts it when the close falls, and adds nothing when
    the close is unchanged.

    Returns:
        Series ``obv``.
    """
    validate_inputs(df, [close, volume], "OBV")

    close_values = as_float_array(df, close)
    volume_values = as_float_array(df, volume)

    direction = np.sign(close_values - shift(close_values, 1))
    increments = direction * volume_values
    increments[0] = volume_values[0]

    return as_series(_running_total(increments), df, "obv")


def calculate_mfi(
    df: pd.DataFrame,
    window: int = 14,
    high: str = "high",
    low: str = "low",
    close: str = "close",
    volume: str = "volume",
) -> pd.Series:
    """
    Calculate Money Flow Index.

    Raw money flow is typical price times volume. It counts as positive when
    the typical price rose from the previous bar and negative when it fell.
    ``MFI = 100 - 100 / (1 + positive_sum / negative_sum)`` over the last
    ``window`` bars.

    When the negative sum is (near) zero the value is 100, or 50 if the
    positive sum is also zero.

    Args:
        df: Input DataFrame.
        window: Lookback period (default 14).

    Returns:
        Series ``mfi_{window}``; the first ``window`` values are NaN.
    """
    validate_inputs(df, [high, low, close, volume], "MFI", window, extra_rows=1)

    tp = typical_price(as_float_array(df, high), as_float_array(df, low), as_float_array(df, close))
    raw_flow = tp * as_float_array(df, volume)
    tp_change = tp - shift(tp, 1)

    positive_flow = np.where(tp_change > 0, raw_flow, 0.0)
    negative_flow = np.where(tp_change < 0, raw_flow, 0.0)
    positive_flow[np.isnan(raw_flow)] = np.nan
    negative_flow[np.isnan(raw_flow)] = np.nan
    positive_flow[0] = 0.0
    negative_flow[0] = 0.0

    positive_sum = rolling_sum(positive_flow, window)
    negative_sum = rolling_sum(negative_flow, window)

    with np.errstate(divide="ignore", invalid="ignore"):
        mfi = 100.0 - 100.0 / (1.0 + positive_sum / negative_sum)
    no_outflow = negative_sum < FLOW_EPSILON
    mfi = np.where(no_outflow, np.where(positive_sum < FLOW_EPSILON, 50.0, 100.0), mfi)
    mfi = np.where(np.isnan(positive_sum) | np.isnan(negative_sum), np.nan, mfi)
    mfi[:window] = np.nan

    return as_series(mfi, df, f"mfi_{window}")


def calculate_cmf(
    df: pd.DataFrame,
    window: int = 20,
    high: str = "high",
    low: str = "low",
    close: str = "close",
    volume: str = "volume",
) -> pd.Series:
    """
    Calculate Chaikin Money Flow.

    ``sum(multiplier * volume) / sum(volume)`` over the window. Bars with
    ``high == low`` or missing data are left out of both sums; a window with
    no remaining volume gives NaN.
    """
    validate_inputs(df, [high, low, close, volume], "CMF", window)

    volume_values = as_float_array(df, volume)
    multiplier = _money_flow_multiplier(
        as_float_array(df, high), as_float_array(df, low), as_float_array(df, close)
    )
    flow_volume = multiplier * volume_values
    usable = ~np.isnan(flow_volume)

    flow_sum = pd.Series(np.where(usable, flow_volume, 0.0)).rolling(window).sum().to_numpy(copy=True)
    volume_sum = pd.Series(np.where(usable, volume_values, 0.0)).rolling(window).sum().to_numpy(copy=True)

    cmf = np.where(volume_sum > 0, safe_divide(flow_sum, volume_sum), np.nan)
    return as_series(cmf, df, f"cmf_{window}")


def calculate_adl(
    df: pd.DataFrame,
    high: str = "high",
    low: str = "low",
    close: str = "close",
    volume: str = "volume",
) -> pd.Series:
    """Calculate the Accumulation/Distribution Line (multiplier 0 when high == low)."""
    validate_inputs(df, [high, low, close, volume], "ADL")

    high_values = as_float_array(df, high)
    low_values = as_float_array(df, low)
    multiplier = _money_flow_multiplier(high_values, low_values, as_float_array(df, close))
    multiplier = np.where(high_values == low_values, 0.0, multiplier)

    return as_series(_running_total(multiplier * as_float_array(df, volume)), df, "adl")


def calculate_pvt(df: pd.DataFrame, close: str = "close", volume: str = "volume") -> pd.Series:
    """
    Calculate Price Volume Trend.

    ``pvt[0] = 0``; ``pvt[i] = pvt[i-1] + volume * (c - prev_c) / prev_c``.
    A zero previous close carries the prior value forward.
    """
    validate_inputs(df, [close, volume], "PVT")

    close_values = as_float_array(df, close)
    previous = shift(close_values, 1)
    increments = safe_divide(close_values - previous, previous) * as_float_array(df, volume)
    increments = np.where(previous == 0, 0.0, increments)
    increments[0] = 0.0

    return as_series(_running_total(increments), df, "pvt")


def calculate_eom(
    df: pd.DataFrame,
    window: int = 14,
    high: str = "high",
    low: str = "low",
    volume: str = "volume",
) -> pd.Series:
    """
    Calculate Ease of Movement.

    ``distance = midpoint - prev_midpoint`` and
    ``box_ratio = volume / (high - low)``; the raw value is
    ``distance / box_ratio``, NaN where volume or range is 0. The result is
    the NaN-skipping mean over the window.
    """
    validate_inputs(df, [high, low, volume], "EOM", window)

    high_values = as_float_array(df, high)
    low_values = as_float_array(df, low)
    volume_values = as_float_array(df, volume)

    midpoint = (high_values + low_values) / 2.0
    distance = midpoint - shift(midpoint, 1)
    box_ratio = safe_divide(volume_values, high_values - low_values)
    box_ratio = np.where(volume_values == 0, np.nan, box_ratio)
    raw = safe_divide(distance, box_ratio)

    return as_series(rolling_nanmean(raw, window), df, f"eom_{window}")


def add_volume_indicators(
    df: pd.DataFrame, config: Optional[IndicatorConfig] = None
) -> pd.DataFrame:
    """Add OBV, MFI and CMF columns to a copy of ``df``."""
    config = config or IndicatorConfig()
    result = df.copy()

    columns = [
        calculate_obv(df),
        calculate_mfi(df, config.volume.mfi_window),
        calculate_cmf(df, config.volume.cmf_window),
    ]
    for series in columns:
        result[series.name] = series

    logger.debug(f"Added volume columns: {[s.name for s in columns]}")
    return result
