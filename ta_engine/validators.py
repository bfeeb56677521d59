"""
Input Validation Module.

This module provides the guards shared by every indicator function:
column presence, window sanity, minimum row count, and conversion of
columns into float or boolean arrays.
"""

from typing import Iterable, Sequence

import numpy as np
import pandas as pd

from ta_engine.exceptions import (
    InsufficientDataError,
    InvalidDataTypeError,
    InvalidParameterError,
    MissingColumnError,
)

# Canonical OHLCV column names produced by the classifier
OHLCV_COLUMNS = ("open", "high", "low", "close", "volume")

_TRUE_STRINGS = frozenset({"true", "t", "1", "yes", "y", "call", "c"})


def require_columns(df: pd.DataFrame, columns: Iterable[str], indicator: str) -> None:
    """
    Validate that all columns needed by an indicator are present.

    Args:
        df: Input DataFrame.
        columns: Column names the indicator reads.
        indicator: Indicator name used in the error message.

    Raises:
        MissingColumnError: For the first column that is not in ``df``.
    """
    for column in columns:
        if column not in df.columns:
            raise MissingColumnError(column, indicator)


def validate_window(window: int, indicator: str, name: str = "window") -> None:
    """
    Validate that a window length is a positive integer.

    Raises:
        InvalidParameterError: If the window is not an int or is < 1.
    """
    if isinstance(window, bool) or not isinstance(window, (int, np.integer)):
        raise InvalidParameterError(f"{name} must be an integer, got {window!r}", indicator)
    if window < 1:
        raise InvalidParameterError(f"{name} must be greater than 0, got {window}", indicator)


def check_window_size(df: pd.DataFrame, required: int, indicator: str) -> None:
    """
    Validate that the table has at least ``required`` rows.

    Args:
        df: Input DataFrame.
        required: Minimum number of rows.
        indicator: Indicator name used in the error message.

    Raises:
        InsufficientDataError: If ``len(df) < required``.
    """
    if len(df) < required:
        raise InsufficientDataError(required, len(df), indicator)


def validate_inputs(
    df: pd.DataFrame,
    columns: Sequence[str],
    indicator: str,
    window: int = 1,
    extra_rows: int = 0,
) -> None:
    """
    Run the standard column, window and row-count checks in order.

    ``extra_rows`` is added to the window for differencing indicators
    that consume one bar before the first window.
    """
    require_columns(df, columns, indicator)
    validate_window(window, indicator)
    check_window_size(df, window + extra_rows, indicator)


def as_float_array(df: pd.DataFrame, column: str) -> np.ndarray:
    """
    Return a column as a float64 numpy array.

    Missing values become NaN. Values that are present but cannot be
    parsed as numbers are rejected.

    Raises:
        InvalidDataTypeError: If a non-null value cannot be converted.
    """
    original = df[column]
    if pd.api.types.is_bool_dtype(original):
        return original.to_numpy(dtype=float, copy=True)

    converted = pd.to_numeric(original, errors="coerce")

    # Values that became NaN but weren't originally
    conversion_failures = converted.isna() & ~original.isna()
    if conversion_failures.any():
        first_fail_value = original[conversion_failures].iloc[0]
        raise InvalidDataTypeError(
            column, f"Cannot convert '{first_fail_value}' to numeric"
        )

    return converted.to_numpy(dtype=float, copy=True)


def as_bool_array(df: pd.DataFrame, column: str) -> np.ndarray:
    """
    Return a flag column (e.g. ``is_call``) as a boolean numpy array.

    Missing values count as False. String columns accept the usual
    truthy spellings ("true", "1", "yes", "call", "c").
    """
    values = df[column]
    if pd.api.types.is_bool_dtype(values):
        return values.to_numpy(dtype=bool, copy=True)
    if pd.api.types.is_numeric_dtype(values):
        return values.fillna(0).to_numpy(copy=True) != 0

    return (
        values.astype("string")
        .str.strip()
        .str.lower()
        .isin(_TRUE_STRINGS)
        .fillna(False)
        .to_numpy(dtype=bool, copy=True)
    )


def coerce_numeric_columns(df: pd.DataFrame, columns: Iterable[str] = OHLCV_COLUMNS) -> pd.DataFrame:
    """
    Convert the given columns to float64, skipping any that are absent.

    Returns a new DataFrame.

    Raises:
        InvalidDataTypeError: If a column holds unparseable values.
    """
    df = df.copy()
    for column in columns:
        if column not in df.columns:
            continue
        df[column] = as_float_array(df, column)
    return df
