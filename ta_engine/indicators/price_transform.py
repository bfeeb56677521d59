"""
Per-bar price transforms.
"""

import pandas as pd

from ta_engine.primitives import as_series, typical_price
from ta_engine.validators import as_float_array, validate_inputs


def calculate_avg_price(
    df: pd.DataFrame,
    open_: str = "open",
    high: str = "high",
    low: str = "low",
    close: str = "close",
) -> pd.Series:
    """Average price, ``(open + high + low + close) / 4``."""
    validate_inputs(df, [open_, high, low, close], "AVGPRICE")
    total = (
        as_float_array(df, open_)
        + as_float_array(df, high)
        + as_float_array(df, low)
        + as_float_array(df, close)
    )
    return as_series(total / 4.0, df, "avgprice")


def calculate_median_price(df: pd.DataFrame, high: str = "high", low: str = "low") -> pd.Series:
    """Median price, ``(high + low) / 2``."""
    validate_inputs(df, [high, low], "MEDPRICE")
    return as_series(
        (as_float_array(df, high) + as_float_array(df, low)) / 2.0, df, "medprice"
    )


def calculate_typical_price(
    df: pd.DataFrame, high: str = "high", low: str = "low", close: str = "close"
) -> pd.Series:
    """Typical price, ``(high + low + close) / 3``."""
    validate_inputs(df, [high, low, close], "TYPPRICE")
    tp = typical_price(as_float_array(df, high), as_float_array(df, low), as_float_array(df, close))
    return as_series(tp, df, "typprice")


def calculate_weighted_close(
    df: pd.DataFrame, high: str = "high", low: str = "low", close: str = "close"
) -> pd.Series:
    """Weighted close, ``(high + low + 2 * close) / 4``."""
    validate_inputs(df, [high, low, close], "WCLPRICE")
    weighted = (
        as_float_array(df, high) + as_float_array(df, low) + 2.0 * as_float_array(df, close)
    ) / 4.0
    return as_series(weighted, df, "wclprice")
