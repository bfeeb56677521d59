"""
Intraday VWAP with session resets, deviation bands and anchored VWAP.
"""

import logging
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from ta_engine.config import IndicatorConfig
from ta_engine.exceptions import InvalidParameterError
from ta_engine.primitives import as_series, safe_divide, typical_price
from ta_engine.validators import as_float_array, require_columns, validate_inputs, validate_window

logger = logging.getLogger(__name__)


def _price_volume(
    df: pd.DataFrame, high: str, low: str, close: str, volume: str
) -> pd.DataFrame:
    """Typical price x volume and volume, zeroed where the bar is incomplete."""
    tp = typical_price(as_float_array(df, high), as_float_array(df, low), as_float_array(df, close))
    volume_values = as_float_array(df, volume)
    price_volume = tp * volume_values
    valid = ~np.isnan(price_volume)
    return pd.DataFrame(
        {
            "pv": np.where(valid, price_volume, 0.0),
            "volume": np.where(valid, volume_values, 0.0),
            "valid": valid,
        }
    )


def session_keys(dates: pd.Series) -> pd.Series:
    """
    Return the session (calendar day) each timestamp belongs to.

    Datetime columns map to their calendar date. Anything else is read as
    text and keyed on its first whitespace-separated token, so
    "2023-01-01 09:30" and "2023-01-01 10:30" share a session.
    """
    if pd.api.types.is_datetime64_any_dtype(dates):
        return dates.dt.normalize()
    return dates.astype("string").str.strip().str.split().str[0].fillna("")


def calculate_session_vwap(
    df: pd.DataFrame,
    reset_daily: bool = True,
    date_column: str = "date",
    high: str = "high",
    low: str = "low",
    close: str = "close",
    volume: str = "volume",
) -> pd.Series:
    """
    Calculate VWAP that restarts at each new trading day.

    Cumulative sums of typical price x volume and of volume reset on the
    first row whose date part differs from the previous row. With
    ``reset_daily`` off, or without a date column, the sums run over the
    whole table. Incomplete bars are skipped and yield NaN; rows where the
    cumulative volume is still 0 are NaN.

    Returns:
        Series ``session_vwap``.
    """
    validate_inputs(df, [high, low, close, volume], "Session VWAP")

    sums = _price_volume(df, high, low, close, volume)

    if reset_daily and date_column in df.columns:
        keys = session_keys(df[date_column]).reset_index(drop=True)
        session = keys.ne(keys.shift()).fillna(True).astype(int).cumsum()
        cum_pv = sums.groupby(session)["pv"].cumsum()
        cum_volume = sums.groupby(session)["volume"].cumsum()
    else:
        cum_pv = sums["pv"].cumsum()
        cum_volume = sums["volume"].cumsum()

    cum_pv = cum_pv.to_numpy(copy=True)
    cum_volume = cum_volume.to_numpy(copy=True)
    vwap = np.where(cum_volume > 0, safe_divide(cum_pv, cum_volume), np.nan)
    vwap = np.where(sums["valid"].to_numpy(copy=True), vwap, np.nan)

    return as_series(vwap, df, "session_vwap")


def calculate_vwap_bands(
    df: pd.DataFrame,
    multipliers: Iterable[float] = (1.0, 2.0),
    window: int = 20,
    reset_daily: bool = True,
    date_column: str = "date",
    close: str = "close",
) -> pd.DataFrame:
    """
    Calculate session VWAP with standard deviation bands.

    The band deviation is ``sqrt(mean((close - vwap)^2))`` over the trailing
    ``window`` rows (fewer at the start of the table), skipping NaN.

    Args:
        df: Input DataFrame with high, low, close, volume.
        multipliers: Band multipliers; each adds an upper and lower column.
        window: Deviation window, capped at the table height.

    Returns:
        DataFrame with ``session_vwap`` and ``vwap_upper_{m}`` /
        ``vwap_lower_{m}`` for every multiplier.
    """
    validate_window(window, "VWAP Bands")
    multipliers = tuple(float(m) for m in multipliers)
    if any(m < 0 for m in multipliers):
        raise InvalidParameterError(f"multipliers must be >= 0, got {multipliers}", "VWAP Bands")

    vwap = calculate_session_vwap(df, reset_daily=reset_daily, date_column=date_column, close=close)
    vwap_values = vwap.to_numpy(copy=True)

    squared = (as_float_array(df, close) - vwap_values) ** 2
    effective_window = min(window, len(df))
    deviation = np.sqrt(
        pd.Series(squared).rolling(window=effective_window, min_periods=1).mean().to_numpy(copy=True)
    )

    bands = pd.DataFrame({"session_vwap": vwap_values}, index=df.index)
    for m in multipliers:
        bands[f"vwap_upper_{m:g}"] = vwap_values + m * deviation
        bands[f"vwap_lower_{m:g}"] = vwap_values - m * deviation

    return bands


def calculate_anchored_vwap(
    df: pd.DataFrame,
    anchor_index: int,
    high: str = "high",
    low: str = "low",
    close: str = "close",
    volume: str = "volume",
) -> pd.Series:
    """
    Calculate VWAP accumulated from ``anchor_index`` onward.

    Rows before the anchor are NaN.

    Raises:
        InvalidParameterError: If the anchor is negative or past the last row.
    """
    require_columns(df, [high, low, close, volume], "Anchored VWAP")
    if anchor_index < 0 or anchor_index >= len(df):
        raise InvalidParameterError(
            f"anchor_index {anchor_index} is out of bounds for {len(df)} rows",
            "Anchored VWAP",
        )

    sums = _price_volume(df, high, low, close, volume).iloc[anchor_index:]
    cum_pv = sums["pv"].cumsum().to_numpy(copy=True)
    cum_volume = sums["volume"].cumsum().to_numpy(copy=True)

    anchored = np.full(len(df), np.nan)
    tail = np.where(cum_volume > 0, safe_divide(cum_pv, cum_volume), np.nan)
    anchored[anchor_index:] = np.where(sums["valid"].to_numpy(copy=True), tail, np.nan)

    return as_series(anchored, df, "anchored_vwap")


def add_vwap_indicators(
    df: pd.DataFrame, config: Optional[IndicatorConfig] = None
) -> pd.DataFrame:
    """Add session VWAP and its bands to a copy of ``df``."""
    config = config or IndicatorConfig()
    result = df.copy()
    bands = calculate_vwap_bands(
        df,
        multipliers=config.vwap.multipliers,
        window=config.vwap.band_window,
        reset_daily=config.vwap.reset_daily,
    )
    for column in bands.columns:
        result[column] = bands[column]

    logger.debug(f"Added VWAP columns: {list(bands.columns)}")
    return result
