"""
Pairs-trading spread and z-score.
"""

from typing import Union

import numpy as np
import pandas as pd

from ta_engine.exceptions import InsufficientDataError
from ta_engine.primitives import rolling_mean, rolling_std, safe_divide
from ta_engine.validators import require_columns, validate_window

ZERO_DISPERSION = 1e-12


def _to_float_series(values: Union[pd.Series, np.ndarray]) -> pd.Series:
    return pd.Series(pd.to_numeric(pd.Series(values), errors="coerce"), dtype=float)


def calculate_spread(
    series_a: Union[pd.Series, np.ndarray], series_b: Union[pd.Series, np.ndarray]
) -> pd.Series:
    """
    Calculate ``a - b`` position by position.

    The inputs are not aligned by index; the longer one is truncated to the
    length of the shorter.

    Returns:
        Series ``spread`` with a fresh RangeIndex.
    """
    a = _to_float_series(series_a).to_numpy(copy=True)
    b = _to_float_series(series_b).to_numpy(copy=True)
    length = min(len(a), len(b))
    return pd.Series(a[:length] - b[:length], name="spread")


def calculate_zscore(series: Union[pd.Series, np.ndarray], window: int = 20) -> pd.Series:
    """
    Calculate the rolling z-score ``(x - mean) / std``.

    Uses the population standard deviation. Values are NaN during the first
    ``window - 1`` rows and wherever the window has zero dispersion.

    Returns:
        Series ``zscore_{window}`` on the input's index.
    """
    validate_window(window, "Z-Score")
    values = _to_float_series(series)
    array = values.to_numpy(copy=True)

    mean = rolling_mean(array, window)
    std = rolling_std(array, window, ddof=0)
    # Rolling variance of a constant window can come back as round-off
    std = np.where(std < ZERO_DISPERSION, 0.0, std)
    zscore = safe_divide(array - mean, std)

    index = series.index if isinstance(series, pd.Series) else values.index
    return pd.Series(zscore, index=index, name=f"zscore_{window}")


def calculate_pairs_zscore(
    df_a: pd.DataFrame,
    col_a: str,
    df_b: pd.DataFrame,
    col_b: str,
    window: int = 20,
) -> pd.Series:
    """
    Calculate the z-score of the spread between two instruments.

    Args:
        df_a: Table holding the first leg.
        col_a: Column of the first leg.
        df_b: Table holding the second leg.
        col_b: Column of the second leg.
        window: Z-score window (default 20).

    Returns:
        Series ``pairs_zscore_{window}`` over the truncated length.

    Raises:
        MissingColumnError: If either column is absent.
        InsufficientDataError: If the truncated length is below ``window``.
    """
    require_columns(df_a, [col_a], "Pairs Z-Score")
    require_columns(df_b, [col_b], "Pairs Z-Score")
    validate_window(window, "Pairs Z-Score")

    spread = calculate_spread(df_a[col_a], df_b[col_b])
    if len(spread) < window:
        raise InsufficientDataError(window, len(spread), "Pairs Z-Score")

    return calculate_zscore(spread, window).rename(f"pairs_zscore_{window}")
