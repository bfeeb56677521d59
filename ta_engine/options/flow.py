"""
Options volume and open interest analytics.
"""

import logging

import numpy as np
import pandas as pd

from ta_engine.primitives import as_series, shift
from ta_engine.validators import as_bool_array, as_float_array, require_columns, validate_window

logger = logging.getLogger(__name__)

CONTRACT_MULTIPLIER = 100.0


def _positive_ratio(numerator: np.ndarray, denominator: np.ndarray) -> np.ndarray:
    """``numerator / denominator`` where the denominator is positive, else NaN."""
    with np.errstate(divide="ignore", invalid="ignore"):
        ratio = numerator / denominator
    return np.where(denominator > 0, ratio, np.nan)


def calculate_volume_oi_ratio(
    df: pd.DataFrame, volume: str = "volume", open_interest: str = "open_interest"
) -> pd.Series:
    """Volume divided by open interest; NaN where open interest is not positive."""
    require_columns(df, [volume, open_interest], "Volume/OI Ratio")
    ratio = _positive_ratio(as_float_array(df, volume), as_float_array(df, open_interest))
    return as_series(ratio, df, "volume_oi_ratio")


def calculate_put_call_ratio(
    df: pd.DataFrame, window: int = 5, volume: str = "volume", is_call: str = "is_call"
) -> pd.Series:
    """
    Calculate the rolling put/call volume ratio.

    Put and call volume are summed over the last ``window`` rows (missing
    volume counts as 0). NaN during warm-up or when no call volume traded.
    """
    require_columns(df, [volume, is_call], "Put/Call Ratio")
    validate_window(window, "Put/Call Ratio")

    volumes = np.nan_to_num(as_float_array(df, volume), nan=0.0)
    calls = as_bool_array(df, is_call)

    call_sum = pd.Series(np.where(calls, volumes, 0.0)).rolling(window).sum().to_numpy(copy=True)
    put_sum = pd.Series(np.where(calls, 0.0, volumes)).rolling(window).sum().to_numpy(copy=True)

    return as_series(_positive_ratio(put_sum, call_sum), df, "put_call_ratio")


def calculate_unusual_activity(
    df: pd.DataFrame,
    volume: str = "volume",
    avg_volume: str = "avg_volume",
    open_interest: str = "open_interest",
) -> pd.Series:
    """
    Score unusual activity as ``(volume / avg_volume) * (volume / open_interest)``.

    NaN where average volume or open interest is not positive.
    """
    require_columns(df, [volume, avg_volume, open_interest], "Unusual Activity")
    volumes = as_float_array(df, volume)
    score = _positive_ratio(volumes, as_float_array(df, avg_volume)) * _positive_ratio(
        volumes, as_float_array(df, open_interest)
    )
    return as_series(score, df, "unusual_activity")


def calculate_oi_change(df: pd.DataFrame, open_interest: str = "open_interest") -> pd.Series:
    """Percent change in open interest from the previous row (NaN if it was <= 0)."""
    require_columns(df, [open_interest], "OI Change")
    current = as_float_array(df, open_interest)
    previous = shift(current, 1)
    change = _positive_ratio(current - previous, previous) * 100.0
    return as_series(change, df, "oi_change_pct")


def calculate_options_money_flow(
    df: pd.DataFrame,
    volume: str = "volume",
    price: str = "price",
    is_call: str = "is_call",
    buy_probability: str = "buy_probability",
) -> pd.Series:
    """
    Estimate signed dollar flow, ``volume * price * 100 * direction``.

    ``direction`` is ``2p - 1`` for calls and ``1 - 2p`` for puts, where p is
    the probability that the trade was a buy.
    """
    require_columns(df, [volume, price, is_call, buy_probability], "Options Money Flow")

    probability = as_float_array(df, buy_probability)
    direction = np.where(as_bool_array(df, is_call), 2.0 * probability - 1.0, 1.0 - 2.0 * probability)
    dollar_value = as_float_array(df, volume) * as_float_array(df, price) * CONTRACT_MULTIPLIER

    return as_series(dollar_value * direction, df, "options_money_flow")


def add_flow_indicators(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add volume and open interest analytics.

    Nothing is added unless both ``volume`` and ``open_interest`` exist.
    Then volume/OI ratio and OI change are always added, the put/call ratio
    with ``is_call``, unusual activity with ``avg_volume``, and money flow
    with ``price``, ``is_call`` and ``buy_probability``.
    """
    result = df.copy()
    if "volume" not in df.columns or "open_interest" not in df.columns:
        logger.debug("Skipping flow columns: volume/open_interest not present")
        return result

    columns = [calculate_volume_oi_ratio(df), calculate_oi_change(df)]
    if "is_call" in df.columns:
        columns.append(calculate_put_call_ratio(df))
    if "avg_volume" in df.columns:
        columns.append(calculate_unusual_activity(df))
    if {"price", "is_call", "buy_probability"}.issubset(df.columns):
        columns.append(calculate_options_money_flow(df))

    for series in columns:
        result[series.name] = series

    logger.debug(f"Added flow columns: {[s.name for s in columns]}")
    return result
