"""
Tests for the classifier module.

Tests verify:
- Header synonym matching and its left-to-right, first-role-wins order
- Statistical inference for headerless tables
- Renaming to canonical column names
"""

import numpy as np
import pandas as pd
import pytest

from ta_engine.classifier import (
    ROLE_ORDER,
    FinancialColumns,
    classify_columns,
    infer_columns_without_headers,
    map_columns_with_headers,
    standardize_columns,
)


class TestFinancialColumns:
    """Tests for the FinancialColumns record."""

    def test_defaults_are_none(self):
        """Test every role defaults to None."""
        columns = FinancialColumns()
        assert columns.is_empty()
        assert columns.missing_roles() == ["date", "open", "high", "low", "close", "volume"]

    def test_frozen(self):
        """Test the record is immutable."""
        columns = FinancialColumns(close="Close")
        with pytest.raises(Exception):
            columns.close = "Other"

    def test_rename_map(self):
        """Test only matched roles are renamed."""
        columns = FinancialColumns(date="Date", close="Last")
        assert columns.rename_map() == {"Date": "date", "Last": "close"}


class TestMapColumnsWithHeaders:
    """Tests for header-based classification."""

    def test_standard_headers(self):
        """Test standard Yahoo-style headers."""
        df = pd.DataFrame(columns=["Date", "Open", "High", "Low", "Close", "Volume"])
        columns = map_columns_with_headers(df)
        assert columns == FinancialColumns(
            date="Date", open="Open", high="High", low="Low", close="Close", volume="Volume"
        )

    def test_case_insensitive_synonyms(self):
        """Test synonyms match regardless of case."""
        df = pd.DataFrame(columns=["TIMESTAMP", "OPENING", "HIGHEST", "LOWEST", "CLOSING", "VOL"])
        columns = map_columns_with_headers(df)
        assert columns.date == "TIMESTAMP"
        assert columns.open == "OPENING"
        assert columns.high == "HIGHEST"
        assert columns.low == "LOWEST"
        assert columns.close == "CLOSING"
        assert columns.volume == "VOL"

    def test_single_letter_headers(self):
        """Test single-letter o/h/l/c/v headers."""
        df = pd.DataFrame(columns=["dt", "o", "h", "l", "c", "v"])
        columns = map_columns_with_headers(df)
        assert columns.missing_roles() == []
        assert columns.close == "c"

    def test_first_unfilled_role_wins(self):
        """Test substring matching claims a column for the earliest open role."""
        # "close" contains "o", so with open unfilled it is taken as open
        df = pd.DataFrame(columns=["close"])
        assert map_columns_with_headers(df).open == "close"

    def test_role_filled_once(self):
        """Test a second matching column is left unassigned."""
        df = pd.DataFrame(columns=["Date", "Open", "High", "Low", "Close", "Adj Close", "Volume"])
        columns = map_columns_with_headers(df)
        assert columns.close == "Close"
        assert "Adj Close" not in columns.rename_map()

    def test_no_matches(self):
        """Test names free of every synonym leave all roles empty."""
        df = pd.DataFrame(columns=["xyz", "bar"])
        assert map_columns_with_headers(df).is_empty()

    def test_letter_inside_unrelated_name(self):
        """Test a synonym letter inside an unrelated name still matches."""
        df = pd.DataFrame(columns=["foo", "bar"])
        assert map_columns_with_headers(df).open == "foo"

    def test_does_not_modify_input(self):
        """Test the input frame is untouched."""
        df = pd.DataFrame({"Date": ["2023-01-01"], "Close": [1.0]})
        map_columns_with_headers(df)
        assert list(df.columns) == ["Date", "Close"]


class TestInferColumnsWithoutHeaders:
    """Tests for statistical classification."""

    def test_date_and_volume_detected(self, sample_ohlcv_data):
        """Test date and volume columns are found from their values."""
        df = sample_ohlcv_data.copy()
        df["date"] = df["date"].dt.strftime("%Y-%m-%d")
        df.columns = [f"col_{i}" for i in range(df.shape[1])]

        columns = infer_columns_without_headers(df)
        assert columns.date == "col_0"
        assert columns.volume == "col_5"
        assert sorted([columns.open, columns.high, columns.low, columns.close]) == [
            "col_1",
            "col_2",
            "col_3",
            "col_4",
        ]

    def test_rank_by_range(self):
        """Test price columns are ranked by range: high, low, close, open."""
        df = pd.DataFrame(
            {
                "a": [10.0, 11.0],  # range 1
                "b": [10.0, 14.0],  # range 4
                "c": [10.0, 13.0],  # range 3
                "d": [10.0, 12.0],  # range 2
            }
        )
        columns = infer_columns_without_headers(df)
        assert columns.high == "b"
        assert columns.low == "c"
        assert columns.close == "d"
        assert columns.open == "a"
        assert columns.date is None
        assert columns.volume is None

    def test_no_volume_without_magnitude_gap(self):
        """Test no volume is assigned when magnitudes are similar."""
        df = pd.DataFrame({"a": [1.0, 2.0, 3.0], "b": [2.0, 3.0, 4.0]})
        assert infer_columns_without_headers(df).volume is None

    def test_constant_large_column_not_volume(self):
        """Test a large column without dispersion is not volume."""
        df = pd.DataFrame({"a": [1.0, 2.0, 3.0], "b": [1e6, 1e6, 1e6]})
        assert infer_columns_without_headers(df).volume is None

    def test_empty_table(self):
        """Test an empty table yields no roles."""
        assert infer_columns_without_headers(pd.DataFrame()).is_empty()

    def test_all_nan_column_skipped(self):
        """Test an all-NaN numeric column is not ranked."""
        df = pd.DataFrame({"a": [1.0, 2.0], "b": [np.nan, np.nan]})
        columns = infer_columns_without_headers(df)
        assert columns.high == "a"
        assert "b" not in columns.rename_map()


class TestClassifyAndStandardize:
    """Tests for classify_columns and standardize_columns."""

    def test_dispatch(self):
        """Test has_header selects the strategy."""
        df = pd.DataFrame({"Close": [1.0, 2.0]})
        assert classify_columns(df, has_header=True).close is None
        assert classify_columns(df, has_header=True).open == "Close"
        assert classify_columns(df, has_header=False).high == "Close"

    def test_standardize_renames_matched(self):
        """Test matched columns get canonical names and others are kept."""
        df = pd.DataFrame({"Date": ["2023-01-01"], "Close": [1.0], "Extra": [2.0]})
        result = standardize_columns(df, FinancialColumns(date="Date", close="Close"))
        assert list(result.columns) == ["date", "close", "Extra"]
        assert list(df.columns) == ["Date", "Close", "Extra"]

    def test_header_classification_is_repeatable(self, valid_csv_file):
        """Test classifying the same table twice gives the same mapping."""
        df = pd.read_csv(valid_csv_file)
        first = classify_columns(df, has_header=True)
        second = classify_columns(df, has_header=True)
        assert first == second
        assert list(df.columns) == ["Date", "Open", "High", "Low", "Close", "Volume"]

    def test_standardized_table_maps_to_itself(self, valid_csv_file):
        """Test classifying canonical names maps every role to its own name."""
        df = pd.read_csv(valid_csv_file)
        standardized = standardize_columns(df, classify_columns(df))
        columns = classify_columns(standardized)
        assert columns.as_dict() == {role: role for role in ROLE_ORDER}
