"""
Tests for add_options_indicators.
"""

import pytest

from ta_engine.exceptions import MissingColumnError
from ta_engine.options import add_options_indicators


class TestAddOptionsIndicators:
    """Tests for add_options_indicators function."""

    def test_chain_columns(self, options_chain):
        """Test analytics from every group are added."""
        result = add_options_indicators(options_chain)
        for col in (
            "iv_term_structure",
            "iv_forecast",
            "delta",
            "vega",
            "volume_oi_ratio",
            "put_call_ratio",
            "strike_skew",
            "wing_skew",
            "skew_term_structure",
        ):
            assert col in result.columns, f"Missing column: {col}"
        assert "delta" not in options_chain.columns
        assert len(result) == len(options_chain)

    def test_iv_window(self, options_chain):
        """Test the IV percentile window is passed through."""
        result = add_options_indicators(options_chain, iv_window=6)
        assert "iv_percentile_6" in result.columns

    def test_missing_greeks_input(self, options_chain):
        """Test a missing rate column raises."""
        with pytest.raises(MissingColumnError):
            add_options_indicators(options_chain.drop(columns=["rate"]))
