"""
Pytest configuration and fixtures for ta_engine tests.

This module provides shared fixtures and test data generators
for all test modules.
"""

import tempfile
from pathlib import Path

import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def sample_ohlcv_data() -> pd.DataFrame:
    """Create sample OHLCV data (canonical column names) for testing."""
    dates = pd.date_range(start="2023-01-01", periods=100, freq="B")
    np.random.seed(42)

    # Generate realistic price data
    close = 100 + np.cumsum(np.random.randn(100) * 0.5)
    high = close + np.abs(np.random.randn(100) * 0.5)
    low = close - np.abs(np.random.randn(100) * 0.5)
    open_price = low + (high - low) * np.random.rand(100)
    volume = np.random.randint(1000000, 5000000, 100).astype(float)

    return pd.DataFrame(
        {
            "date": dates,
            "open": open_price,
            "high": high,
            "low": low,
            "close": close,
            "volume": volume,
        }
    )


@pytest.fixture
def minimal_ohlcv_data() -> pd.DataFrame:
    """Create minimal OHLCV data (10 rows) for edge case testing."""
    dates = pd.date_range(start="2023-01-01", periods=10, freq="B")

    return pd.DataFrame(
        {
            "date": dates,
            "open": [100.0, 101.0, 102.0, 101.5, 103.0, 102.5, 104.0, 103.5, 105.0, 104.5],
            "high": [101.0, 102.0, 103.0, 102.5, 104.0, 103.5, 105.0, 104.5, 106.0, 105.5],
            "low": [99.0, 100.0, 101.0, 100.5, 102.0, 101.5, 103.0, 102.5, 104.0, 103.5],
            "close": [100.5, 101.5, 102.5, 101.0, 103.5, 102.0, 104.5, 103.0, 105.5, 104.0],
            "volume": [1000000.0, 1100000.0, 1200000.0, 900000.0, 1300000.0, 1000000.0, 1400000.0, 1100000.0, 1500000.0, 1200000.0],
        }
    )


@pytest.fixture
def intraday_data() -> pd.DataFrame:
    """Two sessions of three bars each with string timestamps."""
    return pd.DataFrame(
        {
            "date": [
                "2023-01-02 09:30",
                "2023-01-02 10:30",
                "2023-01-02 11:30",
                "2023-01-03 09:30",
                "2023-01-03 10:30",
                "2023-01-03 11:30",
            ],
            "high": [11.0, 12.0, 13.0, 21.0, 22.0, 23.0],
            "low": [9.0, 10.0, 11.0, 19.0, 20.0, 21.0],
            "close": [10.0, 11.0, 12.0, 20.0, 21.0, 22.0],
            "volume": [100.0, 200.0, 300.0, 100.0, 100.0, 200.0],
        }
    )


@pytest.fixture
def options_chain() -> pd.DataFrame:
    """
    Options chain on a 100.00 underlying across two expiries.

    Each expiry carries puts at 85/90/100 and calls at 100/110/115 so every
    skew bucket used by the analytics is populated.
    """
    rows = []
    for expiry, base_iv, t in (("30", 0.20, 30 / 365), ("60", 0.22, 60 / 365)):
        for strike, is_call, iv_offset in (
            (85.0, False, 0.10),
            (90.0, False, 0.06),
            (100.0, False, 0.00),
            (100.0, True, 0.00),
            (110.0, True, 0.01),
            (115.0, True, 0.02),
        ):
            rows.append(
                {
                    "price": 100.0,
                    "strike": strike,
                    "iv": base_iv + iv_offset,
                    "time_to_expiry": t,
                    "rate": 0.05,
                    "is_call": is_call,
                    "expiry": expiry,
                    "volume": 500.0,
                    "open_interest": 1000.0,
                }
            )
    return pd.DataFrame(rows)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def valid_csv_file(temp_dir, sample_ohlcv_data) -> Path:
    """Create a valid CSV file with Yahoo-style capitalised headers."""
    file_path = temp_dir / "valid.csv"
    sample_ohlcv_data.rename(columns=str.capitalize).to_csv(file_path, index=False)
    return file_path


@pytest.fixture
def valid_parquet_file(temp_dir, sample_ohlcv_data) -> Path:
    """Create a valid Parquet file for testing."""
    file_path = temp_dir / "valid.parquet"
    sample_ohlcv_data.to_parquet(file_path, index=False)
    return file_path


@pytest.fixture
def headerless_csv_file(temp_dir, sample_ohlcv_data) -> Path:
    """Create a CSV file with no header row."""
    file_path = temp_dir / "headerless.csv"
    data = sample_ohlcv_data.copy()
    data["date"] = data["date"].dt.strftime("%Y-%m-%d")
    data.to_csv(file_path, index=False, header=False)
    return file_path


@pytest.fixture
def minimal_csv_file(temp_dir, minimal_ohlcv_data) -> Path:
    """Create a minimal CSV file for testing."""
    file_path = temp_dir / "minimal.csv"
    minimal_ohlcv_data.to_csv(file_path, index=False)
    return file_path


@pytest.fixture
def empty_file(temp_dir) -> Path:
    """Create an empty file."""
    file_path = temp_dir / "empty.csv"
    file_path.touch()
    return file_path


@pytest.fixture
def headers_only_file(temp_dir) -> Path:
    """Create a CSV file with headers only."""
    file_path = temp_dir / "headers_only.csv"
    file_path.write_text("Date,Open,High,Low,Close,Volume\n")
    return file_path


@pytest.fixture
def invalid_dtype_file(temp_dir) -> Path:
    """Create a CSV file with invalid data types."""
    file_path = temp_dir / "invalid_dtype.csv"
    file_path.write_text(
        "Date,Open,High,Low,Close,Volume\n"
        "2023-01-01,100,101,99,100.5,1000000\n"
        "2023-01-02,abc,102,100,101.5,1100000\n"
    )
    return file_path


@pytest.fixture
def unsorted_dates_file(temp_dir) -> Path:
    """Create a CSV file with unsorted dates (but valid data)."""
    file_path = temp_dir / "unsorted_dates.csv"
    file_path.write_text(
        "Date,Open,High,Low,Close,Volume\n"
        "2023-01-03,102,103,101,102.5,1200000\n"
        "2023-01-01,100,101,99,100.5,1000000\n"
        "2023-01-02,101,102,100,101.5,1100000\n"
    )
    return file_path


@pytest.fixture
def adj_close_file(temp_dir) -> Path:
    """Create a CSV file with Adj Close column (like Yahoo Finance)."""
    file_path = temp_dir / "with_adj_close.csv"
    file_path.write_text(
        "Date,Open,High,Low,Close,Adj Close,Volume\n"
        "2023-01-01,100,101,99,100.5,100.5,1000000\n"
        "2023-01-02,101,102,100,101.5,101.5,1100000\n"
        "2023-01-03,102,103,101,102.5,102.5,1200000\n"
    )
    return file_path


@pytest.fixture
def options_csv_file(temp_dir, options_chain) -> Path:
    """Create an options chain CSV file."""
    file_path = temp_dir / "chain.csv"
    options_chain.to_csv(file_path, index=False)
    return file_path


@pytest.fixture
def config_file(temp_dir) -> Path:
    """Create a YAML indicator configuration."""
    file_path = temp_dir / "params.yaml"
    file_path.write_text(
        "rsi:\n"
        "  window: 10\n"
        "bollinger:\n"
        "  window: 15\n"
        "  num_std: 2.5\n"
        "moving_averages:\n"
        "  sma_windows: [5, 30]\n"
        "  ema_windows: [10]\n"
    )
    return file_path
