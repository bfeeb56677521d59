"""
Statistical indicators.
"""

import numpy as np
import pandas as pd

from ta_engine.primitives import as_series
from ta_engine.validators import as_float_array, validate_inputs


def _ols_slope(pairs: np.ndarray) -> float:
    """Least-squares slope of column 0 on column 1 over the valid rows."""
    valid = ~np.isnan(pairs).any(axis=1)
    y = pairs[valid, 0]
    x = pairs[valid, 1]
    if len(x) < 2:
        return np.nan

    x_dev = x - x.mean()
    denominator = np.dot(x_dev, x_dev)
    if denominator == 0:
        return np.nan
    return float(np.dot(x_dev, y - y.mean()) / denominator)


def calculate_beta(
    df: pd.DataFrame,
    column: str = "close",
    market_column: str = "market",
    window: int = 20,
) -> pd.Series:
    """
    Calculate rolling beta of a price series against a market series.

    Beta is the OLS slope of ``column`` regressed on ``market_column`` over
    the trailing ``window`` rows, using only rows where both are present.

    Args:
        df: DataFrame holding both series.
        column: Dependent series (default "close").
        market_column: Independent series (default "market").
        window: Regression window (default 20).

    Returns:
        Series ``beta_{window}``. NaN during warm-up, with fewer than two
        valid pairs, or when the market does not move.
    """
    validate_inputs(df, [column, market_column], "Beta", window)

    pairs = np.column_stack([as_float_array(df, column), as_float_array(df, market_column)])
    beta = np.full(len(df), np.nan)
    for end in range(window, len(df) + 1):
        beta[end - 1] = _ols_slope(pairs[end - window : end])

    return as_series(beta, df, f"beta_{window}")
