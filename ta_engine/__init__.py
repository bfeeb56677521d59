"""
Technical Indicator Engine.

Calculates technical indicators from OHLCV data and analytics from options
tables.

Modules:
    - classifier: Column role detection for headed and headerless files
    - loader: CSV / Parquet loading and preparation
    - validators: Input validation shared by every indicator
    - primitives: Rolling windows, smoothing and other numeric building blocks
    - config: Indicator parameters and YAML loading
    - indicators: OHLCV technical indicators
    - options: Options analytics
    - main: Main entry point with API and CLI
"""

from ta_engine.main import build_indicators

__all__ = ["build_indicators"]
__version__ = "1.0.0"
