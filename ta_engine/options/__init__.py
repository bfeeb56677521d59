"""
Options Analytics.

Indicators computed from an options table (one row per contract or
position) rather than from an OHLCV series.

Modules:
    - greeks: Black-Scholes Greeks, pricing, implied volatility
    - volatility: IV percentile, term structure and forecast
    - skew: strike / wing skew, skew term structure, breakpoints
    - flow: volume and open interest analytics
    - spreads: vertical, calendar and iron condor metrics
"""

import logging

import pandas as pd

from ta_engine.options.flow import add_flow_indicators
from ta_engine.options.greeks import add_greeks_indicators
from ta_engine.options.skew import add_skew_indicators
from ta_engine.options.spreads import add_spread_indicators
from ta_engine.options.volatility import add_iv_indicators

logger = logging.getLogger(__name__)


def add_options_indicators(df: pd.DataFrame, iv_window: int = 252) -> pd.DataFrame:
    """
    Calculate and add all options analytics to an options table.

    Runs, in order: IV analytics, Greeks, spread metrics, volume/open
    interest analytics and skew.

    Args:
        df: Options table with at least price, strike, iv, time_to_expiry,
            rate and is_call columns.
        iv_window: Lookback for the IV percentile.

    Returns:
        New DataFrame with the analytics appended.

    Raises:
        MissingColumnError: If a column required by the IV, Greeks or skew
            analytics is missing.
    """
    result = add_iv_indicators(df, iv_window)
    result = add_greeks_indicators(result)
    result = add_spread_indicators(result)
    result = add_flow_indicators(result)
    result = add_skew_indicators(result)

    added = [column for column in result.columns if column not in df.columns]
    logger.debug(f"Added {len(added)} options columns")
    return result


__all__ = [
    "add_options_indicators",
    "add_iv_indicators",
    "add_greeks_indicators",
    "add_spread_indicators",
    "add_flow_indicators",
    "add_skew_indicators",
]
