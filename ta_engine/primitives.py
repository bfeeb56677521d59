"""
Shared numeric building blocks.

Indicator modules express their window and recurrence logic through
these helpers instead of re-implementing loops per indicator:

    - Rolling reductions (mean, sum, max, min, std, linearly weighted mean)
    - Exponential recurrences (EMA, Wilder smoothing, SMA-seeded EMA)
    - Normal distribution approximations used by the options Greeks
    - Guarded arithmetic (division by zero -> NaN) and bar-level transforms

All functions take and return 1-D float64 numpy arrays (or scalars for the
normal helpers) and never modify their inputs.
"""

import math
from typing import Union

import numpy as np
import pandas as pd

ArrayLike = Union[np.ndarray, pd.Series]

# Abramowitz-Stegun 26.2.17 coefficients
_CDF_B1 = 0.31938153
_CDF_B2 = -0.356563782
_CDF_B3 = 1.781477937
_CDF_B4 = -1.821255978
_CDF_B5 = 1.330274429
_CDF_P = 0.2316419
_CDF_C = 0.39894228
_CDF_CUTOFF = 6.0

_SQRT_2PI = math.sqrt(2.0 * math.pi)


def _as_array(values: ArrayLike) -> np.ndarray:
    return np.array(values, dtype=float)


def as_series(values: ArrayLike, df: pd.DataFrame, name: str) -> pd.Series:
    """Wrap computed values as a Series aligned to ``df``'s index."""
    return pd.Series(np.asarray(values, dtype=float), index=df.index, name=name)


# =============================================================================
# Rolling Windows
# =============================================================================


def rolling_mean(values: ArrayLike, window: int) -> np.ndarray:
    """Trailing mean; NaN until ``window`` values exist or if any is NaN."""
    series = pd.Series(_as_array(values))
    return series.rolling(window=window, min_periods=window).mean().to_numpy(copy=True)


def rolling_sum(values: ArrayLike, window: int) -> np.ndarray:
    """Trailing sum with the same NaN policy as :func:`rolling_mean`."""
    series = pd.Series(_as_array(values))
    return series.rolling(window=window, min_periods=window).sum().to_numpy(copy=True)


def rolling_max(values: ArrayLike, window: int) -> np.ndarray:
    """Trailing maximum."""
    series = pd.Series(_as_array(values))
    return series.rolling(window=window, min_periods=window).max().to_numpy(copy=True)


def rolling_min(values: ArrayLike, window: int) -> np.ndarray:
    """Trailing minimum."""
    series = pd.Series(_as_array(values))
    return series.rolling(window=window, min_periods=window).min().to_numpy(copy=True)


def rolling_std(values: ArrayLike, window: int, ddof: int = 1) -> np.ndarray:
    """
    Trailing standard deviation.

    Args:
        values: Input values.
        window: Window length.
        ddof: 1 for sample std, 0 for population std.
    """
    series = pd.Series(_as_array(values))
    return series.rolling(window=window, min_periods=window).std(ddof=ddof).to_numpy(copy=True)


def rolling_nanmean(values: ArrayLike, window: int) -> np.ndarray:
    """
    Trailing mean that skips NaN values inside a full window.

    The first ``window - 1`` outputs are NaN; a window with no valid
    value is NaN.
    """
    values = _as_array(values)
    out = pd.Series(values).rolling(window=window, min_periods=1).mean().to_numpy(copy=True)
    out[: window - 1] = np.nan
    return out


def rolling_weighted_mean(values: ArrayLike, window: int) -> np.ndarray:
    """
    Linearly weighted trailing mean (weights 1..window, newest heaviest).
    """
    weights = np.arange(1, window + 1, dtype=float)
    total = weights.sum()
    series = pd.Series(_as_array(values))
    return (
        series.rolling(window=window, min_periods=window)
        .apply(lambda x: np.dot(x, weights) / total, raw=True)
        .to_numpy(copy=True)
    )


# =============================================================================
# Exponential Recurrences
# =============================================================================


def exponential_smoothing(values: ArrayLike, alpha: float, seed_window: int = 1) -> np.ndarray:
    """
    Run ``s[i] = alpha * x[i] + (1 - alpha) * s[i-1]`` over ``values``.

    The state is seeded with the mean of the first ``seed_window`` values and
    the first output is written at index ``seed_window - 1``. A NaN input
    produces NaN at that row and leaves the state untouched. While no seed
    has been formed (leading NaN), the seed is retried on each later row
    whose trailing ``seed_window`` inputs are all finite.

    Args:
        values: Input values.
        alpha: Smoothing weight of the newest value, 0 < alpha <= 1.
        seed_window: Number of values averaged to form the seed.

    Returns:
        Smoothed values, same length as the input.
    """
    values = _as_array(values)
    n = len(values)
    out = np.full(n, np.nan)
    state = np.nan

    for i in range(seed_window - 1, n):
        x = values[i]
        if np.isnan(state):
            seed = values[i - seed_window + 1 : i + 1]
            if not np.isnan(seed).any():
                state = seed.mean()
                out[i] = state
            continue
        if np.isnan(x):
            continue
        state = alpha * x + (1.0 - alpha) * state
        out[i] = state

    return out


def ema_recurrence(values: ArrayLike, period: int) -> np.ndarray:
    """
    EMA with ``alpha = 2 / (period + 1)``, seeded with the first valid value.

    Rows with a NaN input are NaN and do not move the average.
    """
    values = _as_array(values)
    smoothed = (
        pd.Series(values)
        .ewm(span=period, adjust=False, ignore_na=True)
        .mean()
        .to_numpy(copy=True)
    )
    return np.where(np.isnan(values), np.nan, smoothed)


def wilder_recurrence(values: ArrayLike, period: int) -> np.ndarray:
    """
    Wilder smoothing: ``avg = (avg * (period - 1) + x) / period``.

    Seeded with the simple mean of the first ``period`` values, so the
    first ``period - 1`` outputs are NaN.
    """
    return exponential_smoothing(values, 1.0 / period, seed_window=period)


def sma_seeded_ema(values: ArrayLike, period: int) -> np.ndarray:
    """EMA with ``alpha = 2 / (period + 1)`` seeded by an SMA of ``period`` values."""
    return exponential_smoothing(values, 2.0 / (period + 1.0), seed_window=period)


# =============================================================================
# Normal Distribution
# =============================================================================


def norm_cdf(x):
    """
    Standard normal CDF via the Abramowitz-Stegun polynomial.

    Accurate to roughly 1e-7. Inputs beyond +/-6 saturate to 1 and 0.
    Accepts scalars or arrays; NaN maps to NaN.
    """
    x = np.asarray(x, dtype=float)
    t = 1.0 / (1.0 + _CDF_P * np.abs(x))
    poly = t * (_CDF_B1 + t * (_CDF_B2 + t * (_CDF_B3 + t * (_CDF_B4 + t * _CDF_B5))))
    tail = _CDF_C * np.exp(-x * x / 2.0) * poly

    result = np.where(x >= 0.0, 1.0 - tail, tail)
    result = np.where(x > _CDF_CUTOFF, 1.0, result)
    result = np.where(x < -_CDF_CUTOFF, 0.0, result)
    result = np.where(np.isnan(x), np.nan, result)

    if result.ndim == 0:
        return float(result)
    return result


def norm_pdf(x):
    """Standard normal density ``exp(-x^2 / 2) / sqrt(2 pi)``."""
    x = np.asarray(x, dtype=float)
    result = np.exp(-(x * x) / 2.0) / _SQRT_2PI
    if result.ndim == 0:
        return float(result)
    return result


# =============================================================================
# Guarded Arithmetic and Bar Transforms
# =============================================================================


def safe_divide(numerator: ArrayLike, denominator: ArrayLike) -> np.ndarray:
    """Element-wise division returning NaN where the denominator is 0."""
    numerator = _as_array(numerator)
    denominator = _as_array(denominator)
    with np.errstate(divide="ignore", invalid="ignore"):
        result = numerator / denominator
    return np.where(denominator == 0, np.nan, result)


def shift(values: ArrayLike, periods: int = 1) -> np.ndarray:
    """Shift values forward by ``periods`` rows, filling with NaN."""
    values = _as_array(values)
    out = np.full(len(values), np.nan)
    if periods < len(values):
        out[periods:] = values[: len(values) - periods]
    return out


def true_range(high: ArrayLike, low: ArrayLike, close: ArrayLike) -> np.ndarray:
    """
    True Range per bar.

    ``TR = max(high - low, |high - prev_close|, |low - prev_close|)``;
    the first bar has no previous close and uses ``high - low``.
    NaN anywhere in a bar's inputs yields NaN for that bar.
    """
    high = _as_array(high)
    low = _as_array(low)
    prev_close = shift(close, 1)

    tr = np.maximum(
        high - low,
        np.maximum(np.abs(high - prev_close), np.abs(low - prev_close)),
    )
    if len(tr):
        tr[0] = high[0] - low[0]
    return tr


def typical_price(high: ArrayLike, low: ArrayLike, close: ArrayLike) -> np.ndarray:
    """``(high + low + close) / 3``."""
    return (_as_array(high) + _as_array(low) + _as_array(close)) / 3.0


def round_half_away(values):
    """Round to the nearest integer, halves away from zero."""
    values = np.asarray(values, dtype=float)
    return np.sign(values) * np.floor(np.abs(values) + 0.5)
