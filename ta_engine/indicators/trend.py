"""
Trend indicators.

    - Directional movement (+DM / -DM), directional indicators (+DI / -DI)
    - ADX (Average Directional Index)
    - Aroon up / down and the Aroon oscillator
    - Parabolic SAR
"""

from typing import Tuple

import numpy as np
import pandas as pd

from ta_engine.exceptions import InvalidParameterError
from ta_engine.primitives import as_series, rolling_mean, shift, true_range
from ta_engine.validators import as_float_array, check_window_size, require_columns, validate_inputs


def _directional_movement(
    high: np.ndarray, low: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Raw +DM and -DM per bar; the first bar has no movement."""
    up_move = high - shift(high, 1)
    down_move = shift(low, 1) - low

    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    missing = np.isnan(up_move) | np.isnan(down_move)
    plus_dm[missing] = np.nan
    minus_dm[missing] = np.nan
    if len(high):
        plus_dm[0] = 0.0
        minus_dm[0] = 0.0
    return plus_dm, minus_dm


def _directional_indicator(dm_sma: np.ndarray, tr_sma: np.ndarray) -> np.ndarray:
    with np.errstate(divide="ignore", invalid="ignore"):
        di = 100.0 * dm_sma / tr_sma
    return np.where(tr_sma == 0, 0.0, di)


def _directional_indicators(
    df: pd.DataFrame, window: int, high: str, low: str, close: str
) -> Tuple[np.ndarray, np.ndarray]:
    high_values = as_float_array(df, high)
    low_values = as_float_array(df, low)

    plus_dm, minus_dm = _directional_movement(high_values, low_values)
    tr_sma = rolling_mean(true_range(high_values, low_values, as_float_array(df, close)), window)

    return (
        _directional_indicator(rolling_mean(plus_dm, window), tr_sma),
        _directional_indicator(rolling_mean(minus_dm, window), tr_sma),
    )


# =============================================================================
# Directional Movement
# =============================================================================


def calculate_plus_dm(
    df: pd.DataFrame, window: int = 14, high: str = "high", low: str = "low"
) -> pd.Series:
    """
    Calculate smoothed Plus Directional Movement.

    The up-move ``high - prev_high`` counts when it exceeds the down-move
    and is positive; the raw values are averaged over ``window`` bars.
    """
    validate_inputs(df, [high, low], "+DM", window)
    plus_dm, _ = _directional_movement(as_float_array(df, high), as_float_array(df, low))
    return as_series(rolling_mean(plus_dm, window), df, f"plus_dm_{window}")


def calculate_minus_dm(
    df: pd.DataFrame, window: int = 14, high: str = "high", low: str = "low"
) -> pd.Series:
    """Calculate smoothed Minus Directional Movement (mirror of +DM)."""
    validate_inputs(df, [high, low], "-DM", window)
    _, minus_dm = _directional_movement(as_float_array(df, high), as_float_array(df, low))
    return as_series(rolling_mean(minus_dm, window), df, f"minus_dm_{window}")


def calculate_plus_di(
    df: pd.DataFrame,
    window: int = 14,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """
    Calculate the Plus Directional Indicator, ``100 * SMA(+DM) / SMA(TR)``.

    A window with zero true range gives 0.
    """
    validate_inputs(df, [high, low, close], "+DI", window)
    plus_di, _ = _directional_indicators(df, window, high, low, close)
    return as_series(plus_di, df, f"plus_di_{window}")


def calculate_minus_di(
    df: pd.DataFrame,
    window: int = 14,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """Calculate the Minus Directional Indicator, ``100 * SMA(-DM) / SMA(TR)``."""
    validate_inputs(df, [high, low, close], "-DI", window)
    _, minus_di = _directional_indicators(df, window, high, low, close)
    return as_series(minus_di, df, f"minus_di_{window}")


def calculate_adx(
    df: pd.DataFrame,
    window: int = 14,
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """
    Calculate the Average Directional Index.

    ``DX = 100 * |+DI - -DI| / (+DI + -DI)`` (0 when both are 0) and ADX
    is the SMA of DX over ``window``. The first value appears at index
    ``2 * window - 2``.

    Returns:
        Series ``adx_{window}``.
    """
    validate_inputs(df, [high, low, close], "ADX", window)
    plus_di, minus_di = _directional_indicators(df, window, high, low, close)

    di_sum = plus_di + minus_di
    with np.errstate(divide="ignore", invalid="ignore"):
        dx = 100.0 * np.abs(plus_di - minus_di) / di_sum
    dx = np.where(di_sum == 0, 0.0, dx)

    return as_series(rolling_mean(dx, window), df, f"adx_{window}")


# =============================================================================
# Aroon
# =============================================================================


def _bars_since(window_values: np.ndarray, use_max: bool) -> float:
    """Bars since the window extreme; ties resolve to the most recent bar."""
    if np.isnan(window_values).any():
        return np.nan
    newest_first = window_values[::-1]
    position = np.argmax(newest_first) if use_max else np.argmin(newest_first)
    return float(position)


def calculate_aroon(
    df: pd.DataFrame, window: int = 25, high: str = "high", low: str = "low"
) -> Tuple[pd.Series, pd.Series]:
    """
    Calculate Aroon Up and Aroon Down.

    ``100 * (window - bars_since_extreme) / window`` where the extreme is
    the highest high (up) or lowest low (down) of the trailing ``window``
    bars. A new extreme on the current bar scores 100.

    Returns:
        Tuple of (aroon_up, aroon_down).
    """
    validate_inputs(df, [high, low], "Aroon", window)

    def score(values: np.ndarray, use_max: bool) -> np.ndarray:
        bars = (
            pd.Series(values)
            .rolling(window=window, min_periods=window)
            .apply(_bars_since, raw=True, args=(use_max,))
            .to_numpy(copy=True)
        )
        return 100.0 * (window - bars) / window

    return (
        as_series(score(as_float_array(df, high), True), df, f"aroon_up_{window}"),
        as_series(score(as_float_array(df, low), False), df, f"aroon_down_{window}"),
    )


def calculate_aroon_oscillator(
    df: pd.DataFrame, window: int = 25, high: str = "high", low: str = "low"
) -> pd.Series:
    """Calculate the Aroon Oscillator, Aroon Up minus Aroon Down."""
    up, down = calculate_aroon(df, window, high, low)
    return as_series(up.to_numpy(copy=True) - down.to_numpy(copy=True), df, f"aroon_osc_{window}")


# =============================================================================
# Parabolic SAR
# =============================================================================


def calculate_psar(
    df: pd.DataFrame,
    af_step: float = 0.02,
    af_max: float = 0.2,
    high: str = "high",
    low: str = "low",
) -> pd.Series:
    """
    Calculate the Parabolic Stop and Reverse.

    The trend starts up with SAR at the first low and the extreme point at
    the first high. Each bar moves SAR toward the extreme point by the
    acceleration factor, which grows by ``af_step`` on every new extreme up
    to ``af_max``. When price crosses SAR the trend flips, SAR jumps to the
    old extreme point and the factor resets.

    Bars where the current or previous high/low is NaN yield NaN and leave
    the state unchanged.

    Returns:
        Series ``psar``; the first value is NaN.

    Raises:
        InvalidParameterError: If ``af_step`` or ``af_max`` is not positive
            or ``af_step > af_max``.
        InsufficientDataError: If there are fewer than 2 rows.
    """
    require_columns(df, [high, low], "PSAR")
    if af_step <= 0 or af_max <= 0 or af_step > af_max:
        raise InvalidParameterError(
            f"need 0 < af_step <= af_max, got af_step={af_step}, af_max={af_max}", "PSAR"
        )
    check_window_size(df, 2, "PSAR")

    highs = as_float_array(df, high)
    lows = as_float_array(df, low)
    psar = np.full(len(df), np.nan)

    uptrend = True
    sar = lows[0]
    extreme = highs[0]
    af = af_step

    for i in range(1, len(df)):
        h, l = highs[i], lows[i]
        prev_h, prev_l = highs[i - 1], lows[i - 1]
        if np.isnan(h) or np.isnan(l) or np.isnan(prev_h) or np.isnan(prev_l):
            continue

        # Penetration is tested on the unclamped SAR
        if uptrend:
            sar = sar + af * (extreme - sar)
            if l < sar:
                uptrend = False
                sar, extreme, af = extreme, l, af_step
            else:
                sar = min(sar, prev_l, l)
                if h > extreme:
                    extreme = h
                    af = min(af + af_step, af_max)
        else:
            sar = sar - af * (sar - extreme)
            if h > sar:
                uptrend = True
                sar, extreme, af = extreme, h, af_step
            else:
                sar = max(sar, prev_h, h)
                if l < extreme:
                    extreme = l
                    af = min(af + af_step, af_max)

        psar[i] = sar

    return as_series(psar, df, "psar")
