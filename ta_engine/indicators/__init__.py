"""
Technical Indicator Engine.

Pure functions that compute indicators from a canonical OHLCV DataFrame.

Modules:
    - moving_averages: SMA, EMA, WMA, HMA, rolling/cumulative VWAP
    - oscillators: RSI, MACD, Stochastic, Williams %R, PPO, TRIX, ...
    - momentum: CCI, CMO, momentum and rate of change, BOP
    - trend: directional movement, ADX, Aroon, Parabolic SAR
    - volatility: ATR, Bollinger, Keltner, Donchian, historical volatility
    - volume: OBV, MFI, CMF, ADL, PVT, EOM
    - vwap: session VWAP, VWAP bands, anchored VWAP
    - pairs: spread and z-score
    - price_transform: average, median, typical and weighted-close prices
    - stats: rolling beta
"""

import logging
from typing import Optional

import pandas as pd

from ta_engine.config import IndicatorConfig
from ta_engine.indicators.moving_averages import calculate_ema, calculate_sma
from ta_engine.indicators.oscillators import add_oscillator_indicators
from ta_engine.indicators.volatility import add_volatility_indicators
from ta_engine.indicators.volume import add_volume_indicators
from ta_engine.indicators.vwap import add_vwap_indicators

logger = logging.getLogger(__name__)


def add_technical_indicators(
    df: pd.DataFrame, config: Optional[IndicatorConfig] = None
) -> pd.DataFrame:
    """
    Calculate and add the standard indicator set to an OHLCV DataFrame.

    Adds, in order:
        - SMA and EMA columns for every configured window
        - Oscillators (RSI, MACD, Stochastic, Williams %R)
        - Volatility (ATR, Bollinger Bands, %B, Garman-Klass)
        - Volume (OBV, MFI, CMF)

    Args:
        df: DataFrame with open, high, low, close and volume columns.
        config: Indicator parameters; defaults if None.

    Returns:
        New DataFrame with all indicator columns appended. ``df`` is left
        untouched, also when a calculation raises.
    """
    config = config or IndicatorConfig()
    result = df.copy()

    # --- Moving averages ---
    for window in config.moving_averages.sma_windows:
        series = calculate_sma(df, window)
        result[series.name] = series
    for window in config.moving_averages.ema_windows:
        series = calculate_ema(df, window)
        result[series.name] = series

    # --- Oscillators / Volatility / Volume ---
    result = add_oscillator_indicators(result, config)
    result = add_volatility_indicators(result, config)
    result = add_volume_indicators(result, config)

    added = [column for column in result.columns if column not in df.columns]
    logger.debug(f"Added {len(added)} technical indicator columns")
    return result


__all__ = [
    "add_technical_indicators",
    "add_oscillator_indicators",
    "add_volatility_indicators",
    "add_volume_indicators",
    "add_vwap_indicators",
]
