"""
Momentum indicators.

    - CCI (Commodity Channel Index)
    - CMO (Chande Momentum Oscillator)
    - Momentum and the rate-of-change family (ROC, ROCP, ROCR)
    - BOP (Balance of Power)
"""

import numpy as np
import pandas as pd

from ta_engine.primitives import as_series, safe_divide, shift, typical_price
from ta_engine.validators import as_float_array, validate_inputs

# Dispersion / range below which CCI and BOP report 0
FLAT_EPSILON = 1e-10

# Lambert's constant: scales CCI so most values fall within +/-100
CCI_CONSTANT = 0.015


def _mean_absolute_deviation(window_values: np.ndarray) -> float:
    valid = window_values[~np.isnan(window_values)]
    if len(valid) == 0:
        return np.nan
    return float(np.mean(np.abs(valid - valid.mean())))


def calculate_cci(
    df: pd.DataFrame,
    window: int = 20,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """
    Calculate the Commodity Channel Index.

    ``CCI = (tp - mean(tp)) / (0.015 * mean_deviation(tp))`` over the
    window, where the mean and deviation skip NaN typical prices. A mean
    deviation below 1e-10 gives 0.

    Returns:
        Series ``cci_{window}``; the first ``window - 1`` values are NaN.
    """
    validate_inputs(df, [high, low, close], "CCI", window)

    tp = typical_price(as_float_array(df, high), as_float_array(df, low), as_float_array(df, close))
    rolling = pd.Series(tp).rolling(window=window, min_periods=1)
    mean_tp = rolling.mean().to_numpy(copy=True)
    mean_dev = rolling.apply(_mean_absolute_deviation, raw=True).to_numpy(copy=True)

    with np.errstate(divide="ignore", invalid="ignore"):
        cci = (tp - mean_tp) / (CCI_CONSTANT * mean_dev)
    cci = np.where(np.abs(mean_dev) < FLAT_EPSILON, 0.0, cci)
    cci = np.where(np.isnan(tp) | np.isnan(mean_dev), np.nan, cci)
    cci[: window - 1] = np.nan

    return as_series(cci, df, f"cci_{window}")


def calculate_cmo(df: pd.DataFrame, window: int = 14, column: str = "close") -> pd.Series:
    """
    Calculate the Chande Momentum Oscillator.

    ``CMO = 100 * (sum_up - sum_down) / (sum_up + sum_down)`` over the last
    ``window`` bar-to-bar changes, skipping NaN changes. NaN when both sums
    are 0.

    Returns:
        Series ``cmo_{window}``; the first ``window`` values are NaN.
    """
    validate_inputs(df, [column], "CMO", window)

    change = pd.Series(as_float_array(df, column)).diff()
    up = change.clip(lower=0.0).rolling(window=window, min_periods=1).sum().to_numpy(copy=True)
    down = (-change).clip(lower=0.0).rolling(window=window, min_periods=1).sum().to_numpy(copy=True)

    total = up + down
    cmo = np.where(total > 0, 100.0 * safe_divide(up - down, total), np.nan)
    cmo[:window] = np.nan

    return as_series(cmo, df, f"cmo_{window}")


def calculate_momentum(df: pd.DataFrame, window: int = 10, column: str = "close") -> pd.Series:
    """Calculate Momentum, ``x[i] - x[i - window]``."""
    validate_inputs(df, [column], "Momentum", window)
    values = as_float_array(df, column)
    return as_series(values - shift(values, window), df, f"mom_{window}")


def calculate_roc(df: pd.DataFrame, window: int = 10, column: str = "close") -> pd.Series:
    """
    Calculate Rate of Change in percent, ``(x / x[i - window] - 1) * 100``.

    NaN when the earlier value is 0.
    """
    validate_inputs(df, [column], "ROC", window)
    values = as_float_array(df, column)
    roc = (safe_divide(values, shift(values, window)) - 1.0) * 100.0
    return as_series(roc, df, f"roc_{window}")


def calculate_rocp(df: pd.DataFrame, window: int = 10, column: str = "close") -> pd.Series:
    """Calculate Rate of Change as a fraction, ``(x - x[i - window]) / x[i - window]``."""
    validate_inputs(df, [column], "ROCP", window)
    values = as_float_array(df, column)
    previous = shift(values, window)
    return as_series(safe_divide(values - previous, previous), df, f"rocp_{window}")


def calculate_rocr(df: pd.DataFrame, window: int = 10, column: str = "close") -> pd.Series:
    """Calculate Rate of Change ratio, ``x / x[i - window]``."""
    validate_inputs(df, [column], "ROCR", window)
    values = as_float_array(df, column)
    return as_series(safe_divide(values, shift(values, window)), df, f"rocr_{window}")


def calculate_bop(
    df: pd.DataFrame,
    open_: str = "open",
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """
    Calculate Balance of Power, ``(close - open) / (high - low)``.

    A bar with no range (below 1e-10) gives 0.
    """
    validate_inputs(df, [open_, high, low, close], "BOP")

    bar_range = as_float_array(df, high) - as_float_array(df, low)
    body = as_float_array(df, close) - as_float_array(df, open_)

    with np.errstate(divide="ignore", invalid="ignore"):
        bop = body / bar_range
    bop = np.where(np.abs(bar_range) < FLAT_EPSILON, 0.0, bop)
    bop = np.where(np.isnan(body), np.nan, bop)

    return as_series(bop, df, "bop")
