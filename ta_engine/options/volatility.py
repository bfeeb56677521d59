"""
Implied volatility analytics for options tables.

    - IV percentile over a trailing window
    - IV term structure slope across expiries
    - Mean-reverting IV forecast
"""

import logging

import numpy as np
import pandas as pd

from ta_engine.primitives import as_series
from ta_engine.validators import as_float_array, require_columns, validate_inputs, validate_window

logger = logging.getLogger(__name__)

# Forecast weights: current IV, long-term mean, previous IV
FORECAST_CURRENT_WEIGHT = 0.1
FORECAST_MEAN_WEIGHT = 0.8
FORECAST_PREVIOUS_WEIGHT = 1.0 - FORECAST_CURRENT_WEIGHT - FORECAST_MEAN_WEIGHT

# Rows needed before the forecast is produced
FORECAST_MIN_ROWS = 30


def _percentile_of_last(window_values: np.ndarray) -> float:
    current = window_values[-1]
    if np.isnan(current):
        return np.nan
    history = window_values[~np.isnan(window_values)]
    return 100.0 * np.count_nonzero(history < current) / len(history)


def calculate_iv_percentile(df: pd.DataFrame, window: int = 252, iv_column: str = "iv") -> pd.Series:
    """
    Calculate the IV percentile within a trailing window.

    The percentage of valid IV values in the last ``window`` rows (current
    row included) that are strictly below the current IV.

    Returns:
        Series ``iv_percentile_{window}``; the first ``window - 1`` values
        are NaN, as is any row whose IV is missing.
    """
    validate_inputs(df, [iv_column], "IV Percentile", window)

    percentile = (
        pd.Series(as_float_array(df, iv_column))
        .rolling(window=window, min_periods=1)
        .apply(_percentile_of_last, raw=True)
        .to_numpy(copy=True)
    )
    percentile[: window - 1] = np.nan

    return as_series(percentile, df, f"iv_percentile_{window}")


def calculate_iv_term_structure(
    df: pd.DataFrame, iv_column: str = "iv", expiry_column: str = "expiry"
) -> pd.Series:
    """
    Calculate the slope of mean IV against days to expiry.

    IV is averaged per expiry label; labels are read as a number of days
    (labels that are not numeric are ignored). The least-squares slope over
    the expiries is broadcast to every row.

    Returns:
        Series ``iv_term_structure``; all NaN with fewer than two usable
        expiries.
    """
    require_columns(df, [iv_column, expiry_column], "IV Term Structure")

    labels = df[expiry_column].astype(str).reset_index(drop=True)
    chain = pd.DataFrame(
        {
            "label": labels,
            "days": pd.to_numeric(labels, errors="coerce"),
            "iv": as_float_array(df, iv_column),
        }
    ).dropna()

    by_expiry = chain.groupby("label").agg(days=("days", "first"), iv=("iv", "mean"))

    slope = np.nan
    if len(by_expiry) >= 2:
        days = by_expiry["days"].to_numpy(copy=True)
        days_dev = days - days.mean()
        denominator = np.dot(days_dev, days_dev)
        if denominator != 0:
            slope = np.dot(days_dev, by_expiry["iv"].to_numpy(copy=True)) / denominator

    return as_series(np.full(len(df), slope), df, "iv_term_structure")


def calculate_iv_forecast(df: pd.DataFrame, iv_column: str = "iv") -> pd.Series:
    """
    Calculate a mean-reverting IV forecast.

    ``0.1 * iv[i] + 0.8 * mean(iv) + 0.1 * iv[i-1]`` from row 29 onward,
    where ``mean(iv)`` is over the whole table. A missing previous IV is
    replaced by the current one.

    Returns:
        Series ``iv_forecast``; all NaN for tables shorter than 30 rows.
    """
    require_columns(df, [iv_column], "IV Forecast")

    iv = as_float_array(df, iv_column)
    forecast = np.full(len(df), np.nan)
    if len(iv) < FORECAST_MIN_ROWS or np.isnan(iv).all():
        return as_series(forecast, df, "iv_forecast")

    long_term = np.nanmean(iv)
    previous = np.roll(iv, 1)
    previous = np.where(np.isnan(previous), iv, previous)

    forecast = (
        FORECAST_CURRENT_WEIGHT * iv
        + FORECAST_MEAN_WEIGHT * long_term
        + FORECAST_PREVIOUS_WEIGHT * previous
    )
    forecast[: FORECAST_MIN_ROWS - 1] = np.nan

    return as_series(forecast, df, "iv_forecast")


def add_iv_indicators(df: pd.DataFrame, window: int = 252) -> pd.DataFrame:
    """
    Add IV percentile, term structure and forecast columns.

    The percentile is added only when the table holds at least ``window``
    rows, and the term structure only when an ``expiry`` column exists.

    Raises:
        MissingColumnError: If the ``iv`` column is missing.
    """
    require_columns(df, ["iv"], "IV Analytics")
    validate_window(window, "IV Analytics")
    result = df.copy()

    columns = []
    if len(df) >= window:
        columns.append(calculate_iv_percentile(df, window))
    if "expiry" in df.columns:
        columns.append(calculate_iv_term_structure(df))
    columns.append(calculate_iv_forecast(df))

    for series in columns:
        result[series.name] = series

    logger.debug(f"Added IV columns: {[s.name for s in columns]}")
    return result
