"""
Column Classifier Module.

Maps the columns of an arbitrary table onto the canonical OHLCV roles
(date, open, high, low, close, volume).

Two strategies are provided:
    - HeaderColumnClassifier: case-insensitive substring matching of column
      names against fixed synonym lists.
    - StatisticalColumnClassifier: for headerless files, infers roles from
      dtypes and value statistics (magnitude, dispersion, range).

Both return an immutable FinancialColumns record; neither modifies the
input table. The statistical heuristic is best-effort: its rank-based
OHLC assignment assumes typical price behaviour and can mislabel columns.
"""

import logging
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Roles in the order they are tried for each column
ROLE_ORDER = ("date", "open", "high", "low", "close", "volume")

COLUMN_SYNONYMS = MappingProxyType(
    {
        "date": ("date", "time", "datetime", "timestamp", "dt"),
        "open": ("open", "o", "opening"),
        "high": ("high", "h", "highest"),
        "low": ("low", "l", "lowest"),
        "close": ("close", "c", "closing"),
        "volume": ("volume", "vol", "v"),
    }
)

# Headerless volume detection thresholds
VOLUME_MAGNITUDE_RATIO = 100.0
VOLUME_DISPERSION_RATIO = 0.1

# Rank (by descending range) -> role for headerless price columns
PRICE_RANK_ROLES = ("high", "low", "close", "open")


@dataclass(frozen=True)
class FinancialColumns:
    """
    Mapping of canonical roles to raw column names.

    Attributes:
        date: Column holding timestamps or date labels.
        open: Opening price column.
        high: High price column.
        low: Low price column.
        close: Closing price column.
        volume: Traded volume column.

    Each field is None when no column was matched to that role.
    """

    date: Optional[str] = None
    open: Optional[str] = None
    high: Optional[str] = None
    low: Optional[str] = None
    close: Optional[str] = None
    volume: Optional[str] = None

    def as_dict(self) -> Dict[str, Optional[str]]:
        return asdict(self)

    def missing_roles(self) -> List[str]:
        """Roles that were not matched to any column."""
        return [role for role in ROLE_ORDER if getattr(self, role) is None]

    def is_empty(self) -> bool:
        return len(self.missing_roles()) == len(ROLE_ORDER)

    def rename_map(self) -> Dict[str, str]:
        """Raw column name -> canonical role name, for matched roles only."""
        return {
            column: role
            for role, column in self.as_dict().items()
            if column is not None
        }


class ColumnClassifier:
    """Base class for column-role classification strategies."""

    def classify(self, df: pd.DataFrame) -> FinancialColumns:
        raise NotImplementedError


class HeaderColumnClassifier(ColumnClassifier):
    """
    Classify columns by name.

    Columns are visited left to right. For each one, roles are tried in
    ROLE_ORDER and the first still-unfilled role whose synonym appears in
    the lower-cased name claims the column. Single-letter synonyms make
    the check order significant: "close" contains "o", so it would be
    claimed by open if open were still unfilled.
    """

    def classify(self, df: pd.DataFrame) -> FinancialColumns:
        assigned: Dict[str, str] = {}

        for column in df.columns:
            name = str(column).lower()
            for role in ROLE_ORDER:
                if role in assigned:
                    continue
                if any(synonym in name for synonym in COLUMN_SYNONYMS[role]):
                    assigned[role] = column
                    break

        logger.debug(f"Header classification: {assigned}")
        return FinancialColumns(**assigned)


class StatisticalColumnClassifier(ColumnClassifier):
    """
    Classify columns of a headerless table from their values.

    1. Date: first column (left to right) with string/object or
       date/datetime dtype.
    2. Volume: first numeric column whose mean exceeds 100x the mean of
       all other numeric columns and whose std exceeds 10% of its mean.
    3. OHLC: remaining numeric columns sorted by (max - min) then std,
       both descending; ranks 0..3 map to high, low, close, open.

    Columns beyond the four price ranks are left unassigned.
    """

    def classify(self, df: pd.DataFrame) -> FinancialColumns:
        if df.shape[0] == 0 or df.shape[1] == 0:
            return FinancialColumns()

        assigned: Dict[str, str] = {}

        date_column = self._find_date_column(df)
        if date_column is not None:
            assigned["date"] = date_column

        numeric_columns = [
            column
            for column in df.columns
            if column != date_column
            and pd.api.types.is_numeric_dtype(df[column])
            and not pd.api.types.is_bool_dtype(df[column])
        ]

        volume_column = self._find_volume_column(df, numeric_columns)
        if volume_column is not None:
            assigned["volume"] = volume_column

        price_columns = [column for column in numeric_columns if column != volume_column]
        for role, column in zip(PRICE_RANK_ROLES, self._rank_price_columns(df, price_columns)):
            assigned[role] = column

        logger.debug(f"Statistical classification: {assigned}")
        return FinancialColumns(**assigned)

    @staticmethod
    def _find_date_column(df: pd.DataFrame) -> Optional[str]:
        for column in df.columns:
            values = df[column]
            if (
                pd.api.types.is_object_dtype(values)
                or pd.api.types.is_string_dtype(values)
                or pd.api.types.is_datetime64_any_dtype(values)
            ):
                return column
        return None

    @staticmethod
    def _find_volume_column(df: pd.DataFrame, numeric_columns: List[str]) -> Optional[str]:
        if len(numeric_columns) < 2:
            return None

        for column in numeric_columns:
            values = df[column].to_numpy(dtype=float, copy=True)
            mean = np.nanmean(values)
            std = np.nanstd(values)

            others = np.concatenate(
                [df[other].to_numpy(dtype=float, copy=True) for other in numeric_columns if other != column]
            )
            other_mean = np.nanmean(others)

            if mean > VOLUME_MAGNITUDE_RATIO * other_mean and std > VOLUME_DISPERSION_RATIO * mean:
                return column
        return None

    @staticmethod
    def _rank_price_columns(df: pd.DataFrame, price_columns: List[str]) -> List[str]:
        stats: List[Tuple[float, float, str]] = []
        for column in price_columns:
            values = df[column].to_numpy(dtype=float, copy=True)
            if np.isnan(values).all():
                continue
            value_range = np.nanmax(values) - np.nanmin(values)
            stats.append((value_range, np.nanstd(values), column))

        # Stable sort keeps left-to-right order for exact ties
        stats.sort(key=lambda item: (item[0], item[1]), reverse=True)
        return [column for _, _, column in stats]


def map_columns_with_headers(df: pd.DataFrame) -> FinancialColumns:
    """
    Identify OHLCV roles from column names.

    Args:
        df: Table whose header row names its columns.

    Returns:
        FinancialColumns with every role that matched a synonym.
    """
    return HeaderColumnClassifier().classify(df)


def infer_columns_without_headers(df: pd.DataFrame) -> FinancialColumns:
    """
    Identify OHLCV roles from column dtypes and statistics.

    Args:
        df: Table without meaningful column names (e.g. ``col_0..col_n``).

    Returns:
        FinancialColumns; all fields None for an empty table.
    """
    return StatisticalColumnClassifier().classify(df)


def classify_columns(df: pd.DataFrame, has_header: bool = True) -> FinancialColumns:
    """Dispatch to the header or statistical classifier."""
    if has_header:
        return map_columns_with_headers(df)
    return infer_columns_without_headers(df)


def standardize_columns(df: pd.DataFrame, columns: FinancialColumns) -> pd.DataFrame:
    """
    Rename matched columns to their canonical role names.

    Unmatched columns are kept unchanged. Returns a new DataFrame.
    """
    return df.rename(columns=columns.rename_map())
