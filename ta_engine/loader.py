"""
Financial Data Loader Module.

This module reads CSV and Parquet files into DataFrames and pairs them
with a FinancialColumns mapping produced by the column classifier.
"""

import logging
from pathlib import Path
from typing import Optional, Tuple, Union

import pandas as pd

from ta_engine.classifier import FinancialColumns, classify_columns, standardize_columns
from ta_engine.exceptions import EmptyFileError
from ta_engine.exceptions import FileNotFoundError as CustomFileNotFoundError
from ta_engine.exceptions import LoaderError, UnsupportedFileTypeError
from ta_engine.validators import coerce_numeric_columns

logger = logging.getLogger(__name__)

SUPPORTED_FILE_TYPES = ("csv", "parquet")

PathLike = Union[str, Path]


def _check_file(file_path: PathLike) -> Path:
    path = Path(file_path)

    if not path.exists():
        raise CustomFileNotFoundError(str(file_path))

    if path.stat().st_size == 0:
        raise EmptyFileError(str(file_path))

    return path


def read_csv(file_path: PathLike, has_header: bool = True, delimiter: str = ",") -> pd.DataFrame:
    """
    Load a delimited text file into a raw DataFrame.

    Args:
        file_path: Path to the CSV file.
        has_header: Whether the first row holds column names. Headerless
            files get positional names ``col_0 .. col_{n-1}``.
        delimiter: Field separator.

    Returns:
        Raw DataFrame with no type coercion beyond pandas' inference.

    Raises:
        FileNotFoundError: If the file does not exist.
        EmptyFileError: If the file is empty or has a header only.
        LoaderError: If the file cannot be parsed.
    """
    _check_file(file_path)

    try:
        df = pd.read_csv(file_path, sep=delimiter, header=0 if has_header else None)
    except pd.errors.EmptyDataError:
        raise EmptyFileError(str(file_path))
    except Exception as e:
        raise LoaderError(f"Failed to parse CSV: {e}")

    if df.empty:
        raise EmptyFileError(str(file_path))

    if has_header:
        df.columns = [str(column).strip() for column in df.columns]
    else:
        df.columns = [f"col_{i}" for i in range(df.shape[1])]

    logger.debug(f"Read {len(df)} rows x {df.shape[1]} columns from {file_path}")
    return df


def read_parquet(file_path: PathLike) -> pd.DataFrame:
    """
    Load a Parquet file into a DataFrame.

    Raises:
        FileNotFoundError: If the file does not exist.
        EmptyFileError: If the file is empty.
        LoaderError: If the file cannot be read.
    """
    _check_file(file_path)

    try:
        df = pd.read_parquet(file_path)
    except Exception as e:
        raise LoaderError(f"Failed to read Parquet: {e}")

    logger.debug(f"Read {len(df)} rows x {df.shape[1]} columns from {file_path}")
    return df


def infer_file_type(file_path: PathLike) -> str:
    """Return the file type implied by the path suffix ("csv", "parquet", ...)."""
    suffix = Path(file_path).suffix.lower().lstrip(".")
    if suffix in ("txt", "tsv"):
        return "csv"
    if suffix == "pq":
        return "parquet"
    return suffix


def read_financial_data(
    file_path: PathLike,
    has_header: bool = True,
    file_type: Optional[str] = None,
    delimiter: str = ",",
) -> Tuple[pd.DataFrame, FinancialColumns]:
    """
    Read a file and classify its columns.

    Args:
        file_path: Path to the input file.
        has_header: Whether the file carries column names. Parquet files
            always do; the flag then only selects the classifier.
        file_type: "csv" or "parquet"; inferred from the suffix if None.
        delimiter: Field separator for CSV input.

    Returns:
        Tuple of (raw DataFrame, FinancialColumns).

    Raises:
        UnsupportedFileTypeError: For anything other than csv/parquet.
        LoaderError: If the file cannot be read.
    """
    file_type = (file_type or infer_file_type(file_path)).lower()

    if file_type == "csv":
        df = read_csv(file_path, has_header=has_header, delimiter=delimiter)
    elif file_type == "parquet":
        df = read_parquet(file_path)
    else:
        raise UnsupportedFileTypeError(file_type)

    columns = classify_columns(df, has_header=has_header)
    missing = columns.missing_roles()
    if missing:
        logger.debug(f"Unmatched roles in {file_path}: {', '.join(missing)}")

    return df, columns


def load_options_table(
    file_path: PathLike,
    file_type: Optional[str] = None,
    delimiter: str = ",",
) -> pd.DataFrame:
    """
    Load an options table as-is.

    Options tables use their own column names (price, strike, iv, ...), so
    no OHLCV classification or renaming is applied. Column names are
    stripped and lower-cased.

    Raises:
        UnsupportedFileTypeError: For anything other than csv/parquet.
        LoaderError: If the file cannot be read.
    """
    file_type = (file_type or infer_file_type(file_path)).lower()

    if file_type == "csv":
        df = read_csv(file_path, has_header=True, delimiter=delimiter)
    elif file_type == "parquet":
        df = read_parquet(file_path)
    else:
        raise UnsupportedFileTypeError(file_type)

    df.columns = [str(column).strip().lower() for column in df.columns]
    return df


def parse_dates(df: pd.DataFrame, date_column: str = "date") -> pd.DataFrame:
    """
    Parse the date column to datetime format.

    Raises:
        LoaderError: If date parsing fails.
    """
    if date_column not in df.columns:
        return df

    df = df.copy()

    try:
        df[date_column] = pd.to_datetime(df[date_column])
    except Exception as e:
        raise LoaderError(f"Failed to parse dates in column '{date_column}': {e}")

    return df


def sort_by_date(df: pd.DataFrame, date_column: str = "date") -> pd.DataFrame:
    """Sort DataFrame by date in ascending order and reset the index."""
    if date_column not in df.columns:
        return df

    return df.sort_values(date_column, ascending=True, kind="stable").reset_index(drop=True)


def load_and_prepare(
    file_path: PathLike,
    has_header: bool = True,
    file_type: Optional[str] = None,
    delimiter: str = ",",
) -> pd.DataFrame:
    """
    Load a file into a canonical OHLCV DataFrame.

    This is the main entry point for loading data. It combines:
    - File loading and column classification
    - Renaming matched columns to date/open/high/low/close/volume
    - Numeric coercion of the price and volume columns
    - Date parsing and chronological sorting (when a date column exists)

    Returns:
        Prepared DataFrame ready for indicator calculation.

    Raises:
        LoaderError: If the file cannot be read or dates cannot be parsed.
        InvalidDataTypeError: If a price/volume column holds non-numeric text.
    """
    df, columns = read_financial_data(
        file_path, has_header=has_header, file_type=file_type, delimiter=delimiter
    )
    df = standardize_columns(df, columns)
    df = coerce_numeric_columns(df)
    df = parse_dates(df)
    df = sort_by_date(df)
    return df
