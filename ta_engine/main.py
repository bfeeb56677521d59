#!/usr/bin/env python3
"""
Technical Indicator Engine.

Computes technical indicators from OHLCV files, or options analytics from
an options table.

Usage (Python API):
    from ta_engine import build_indicators
    df = build_indicators("SPY.csv")

    # Custom parameters
    df = build_indicators("SPY.csv", config=load_config("params.yaml"))

Usage (CLI):
    python -m ta_engine --input_file SPY.csv --output_file SPY_ind.csv
    python -m ta_engine -i prices.txt --no-header
    python -m ta_engine -i chain.csv --options

Indicators calculated (OHLCV):
    Moving averages: SMA / EMA per configured window
    Oscillators: RSI, MACD, Stochastic, Williams %R
    Volatility: ATR, Bollinger Bands, %B, Garman-Klass
    Volume: OBV, MFI, CMF
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from ta_engine.config import IndicatorConfig, load_config
from ta_engine.exceptions import IndicatorError
from ta_engine.indicators import add_technical_indicators
from ta_engine.loader import load_and_prepare, load_options_table
from ta_engine.options import add_options_indicators

logger = logging.getLogger(__name__)

SUMMARY_LIMIT = 10


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure logging based on verbosity level."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def build_indicators(
    input_file: str,
    output_file: Optional[str] = None,
    config: Optional[IndicatorConfig] = None,
    has_header: bool = True,
    options: bool = False,
) -> pd.DataFrame:
    """
    Load a data file and calculate indicators.

    This is the main API function for programmatic usage.

    Args:
        input_file: Path to a CSV or Parquet file.
        output_file: Optional path to save the result as CSV.
        config: Indicator parameters; defaults if None.
        has_header: Whether the file has a header row (OHLCV mode only).
        options: Treat the file as an options table and compute options
            analytics instead of technical indicators.

    Returns:
        DataFrame with the input columns plus all calculated indicators.

    Raises:
        FileNotFoundError: If the input file does not exist.
        EmptyFileError: If the input file is empty.
        LoaderError: If the file cannot be parsed.
        ValidationError: If a required column is missing or the data is
            too short for a configured window.

    Example:
        >>> df = build_indicators("SPY.csv")
        >>> print(df.columns.tolist())
        ['date', 'open', 'high', 'low', 'close', 'volume', 'sma_20', ...]
    """
    if options:
        logger.info(f"Loading options table from {input_file}")
        raw = load_options_table(input_file)
        df = add_options_indicators(raw)
    else:
        logger.info(f"Loading OHLCV data from {input_file}")
        raw = load_and_prepare(input_file, has_header=has_header)
        df = add_technical_indicators(raw, config)

    df.attrs["input_columns"] = list(raw.columns)
    logger.info(f"Added {len(df.columns) - len(raw.columns)} indicator columns")

    if output_file:
        save_to_csv(df, output_file)
        logger.info(f"Saved {len(df)} rows to {output_file}")

    return df


def save_to_csv(df: pd.DataFrame, output_file: str) -> None:
    """
    Save DataFrame to CSV file, creating the parent directory if needed.

    Raises:
        IOError: If file cannot be written.
    """
    output_path = Path(output_file)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)


def create_parser() -> argparse.ArgumentParser:
    """
    Create argument parser for CLI.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="ta-engine",
        description="Calculate technical indicators from OHLCV data or analytics from an options table.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m ta_engine --input_file SPY.csv
  python -m ta_engine --input_file SPY.csv --output_file SPY_indicators.csv
  python -m ta_engine -i SPY.parquet -c params.yaml -v
  python -m ta_engine -i prices.csv --no-header
  python -m ta_engine -i chain.csv --options -o chain_analytics.csv

Indicators calculated (defaults):
  Moving averages: sma_20, sma_50, ema_20
  Oscillators:     rsi_14, macd_12_26, macd_signal_12_26_9, macd_hist_12_26_9,
                   stoch_k_14_3_3, stoch_d_14_3_3, williams_r_14
  Volatility:      atr_14, bb_middle_20_2, bb_upper_20_2, bb_lower_20_2,
                   bb_b_20_2, gk_vol_10
  Volume:          obv, mfi_14, cmf_20
""",
    )

    parser.add_argument(
        "--input_file",
        "-i",
        required=True,
        type=str,
        help="Path to input CSV or Parquet file",
    )

    parser.add_argument(
        "--output_file",
        "-o",
        type=str,
        default=None,
        help="Path to output CSV file (optional, prints summary if not provided)",
    )

    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="YAML file with indicator parameters",
    )

    parser.add_argument(
        "--no-header",
        action="store_true",
        help="Input has no header row; infer OHLCV columns from the values",
    )

    parser.add_argument(
        "--options",
        action="store_true",
        help="Treat input as an options table (price, strike, iv, time_to_expiry, rate, is_call)",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose output",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug output",
    )

    return parser


def print_summary(df: pd.DataFrame, input_columns: List[str], input_file: str, output_file: Optional[str]) -> None:
    """Print row count, indicators added and the latest indicator values."""
    indicator_cols = [col for col in df.columns if col not in input_columns]

    print(f"Processed {len(df)} rows from {input_file}")
    if "date" in df.columns and len(df):
        print(f"Date range: {df['date'].min()} to {df['date'].max()}")
    print(f"Indicators added: {len(indicator_cols)}")

    if output_file:
        print(f"Output saved to: {output_file}")
        return

    if not len(df):
        return

    print("\nLatest indicator values:")
    latest = df.iloc[-1]
    for col in indicator_cols[:SUMMARY_LIMIT]:
        val = latest[col]
        if pd.notna(val):
            print(f"  {col}: {val:.4f}")
    if len(indicator_cols) > SUMMARY_LIMIT:
        print(f"  ... and {len(indicator_cols) - SUMMARY_LIMIT} more")


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for CLI.

    Args:
        args: Command line arguments. If None, uses sys.argv.

    Returns:
        Exit code (0 for success, 1 for error).
    """
    parser = create_parser()
    parsed_args = parser.parse_args(args)

    setup_logging(verbose=parsed_args.verbose, debug=parsed_args.debug)

    try:
        config = load_config(parsed_args.config) if parsed_args.config else None

        df = build_indicators(
            input_file=parsed_args.input_file,
            output_file=parsed_args.output_file,
            config=config,
            has_header=not parsed_args.no_header,
            options=parsed_args.options,
        )

        input_columns = df.attrs.get("input_columns", [])
        print_summary(df, input_columns, parsed_args.input_file, parsed_args.output_file)

        return 0

    except IndicatorError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.debug("Unexpected failure", exc_info=True)
        print(f"Unexpected error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
