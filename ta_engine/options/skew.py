"""
Volatility skew analytics across strikes and expiries.

Moneyness is expressed as percent out of the money,
``otm_pct = 100 * (strike - price) / price``: negative below the
underlying, positive above it.
"""

import logging
from typing import Dict

import numpy as np
import pandas as pd

from ta_engine.primitives import as_series, round_half_away
from ta_engine.validators import as_bool_array, as_float_array, require_columns

logger = logging.getLogger(__name__)

SKEW_COLUMNS = ("iv", "strike", "price", "is_call")

# Fallback put/call buckets (percent OTM) approximating 25-delta options
PUT_WING_BUCKETS = (-10, -15)
CALL_WING_BUCKETS = (10, 15)

ATM_BAND_PCT = 2.5
FAR_OTM_PUT_PCT = -15.0

# Slope change (IV per unit strike) reported as a skew breakpoint
BREAKPOINT_THRESHOLD = 0.01


def _chain(df: pd.DataFrame, iv: str, strike: str, price: str, is_call: str) -> pd.DataFrame:
    """Numeric view of the chain with percent OTM; rows with price <= 0 get NaN OTM."""
    require_columns(df, [iv, strike, price, is_call], "Skew")
    strikes = as_float_array(df, strike)
    prices = as_float_array(df, price)
    with np.errstate(divide="ignore", invalid="ignore"):
        otm_pct = np.where(prices > 0, (strikes - prices) / prices * 100.0, np.nan)
    return pd.DataFrame(
        {
            "iv": as_float_array(df, iv),
            "strike": strikes,
            "otm_pct": otm_pct,
            "is_call": as_bool_array(df, is_call),
        }
    )


def _bucket_means(chain: pd.DataFrame, calls: bool) -> Dict[int, float]:
    side = chain[(chain["is_call"] == calls) & chain["iv"].notna() & chain["bucket"].notna()]
    return {int(b): float(v) for b, v in side.groupby("bucket")["iv"].mean().items()}


def _first_available(means: Dict[int, float], buckets) -> float:
    for bucket in buckets:
        if bucket in means:
            return means[bucket]
    return np.nan


def calculate_strike_skew(
    df: pd.DataFrame,
    iv: str = "iv",
    strike: str = "strike",
    price: str = "price",
    is_call: str = "is_call",
) -> pd.Series:
    """
    Calculate put-minus-call IV skew at equidistant strikes.

    Contracts are bucketed by percent OTM rounded to a whole number (halves
    away from zero) and IV is averaged per bucket separately for puts and
    calls. A row in bucket ``b < 0`` gets ``put[b] - call[-b]``, a row in
    bucket ``b > 0`` gets ``put[-b] - call[b]``. When that pair is not
    available the row falls back to the 10% (else 15%) OTM put minus the
    10% (else 15%) OTM call.

    Returns:
        Series ``strike_skew``; NaN where the row has no valid moneyness or
        no pair could be found.
    """
    chain = _chain(df, iv, strike, price, is_call)
    chain["bucket"] = round_half_away(chain["otm_pct"].to_numpy(copy=True))

    put_means = _bucket_means(chain, calls=False)
    call_means = _bucket_means(chain, calls=True)
    fallback = _first_available(put_means, PUT_WING_BUCKETS) - _first_available(
        call_means, CALL_WING_BUCKETS
    )

    skew = np.full(len(df), np.nan)
    for i, bucket in enumerate(chain["bucket"].to_numpy(copy=True)):
        if np.isnan(bucket):
            continue
        b = int(bucket)
        if b < 0 and b in put_means and -b in call_means:
            skew[i] = put_means[b] - call_means[-b]
        elif b > 0 and b in call_means and -b in put_means:
            skew[i] = put_means[-b] - call_means[b]
        else:
            skew[i] = fallback

    return as_series(skew, df, "strike_skew")


def calculate_wing_skew(
    df: pd.DataFrame,
    iv: str = "iv",
    strike: str = "strike",
    price: str = "price",
    is_call: str = "is_call",
) -> pd.Series:
    """
    Calculate the ratio of far OTM put IV to ATM IV.

    Far OTM puts are those at or below -15% OTM; ATM contracts (puts and
    calls) are within 2.5% of the underlying. The ratio is broadcast to
    every row, or NaN if either group is empty.
    """
    chain = _chain(df, iv, strike, price, is_call)
    usable = chain["iv"].notna() & chain["otm_pct"].notna()

    atm = chain.loc[usable & (chain["otm_pct"].abs() < ATM_BAND_PCT), "iv"]
    far_puts = chain.loc[usable & ~chain["is_call"] & (chain["otm_pct"] <= FAR_OTM_PUT_PCT), "iv"]

    ratio = np.nan
    if len(atm) and len(far_puts):
        ratio = far_puts.mean() / atm.mean()

    return as_series(np.full(len(df), ratio), df, "wing_skew")


def calculate_skew_term_structure(
    df: pd.DataFrame,
    iv: str = "iv",
    strike: str = "strike",
    price: str = "price",
    is_call: str = "is_call",
    expiry: str = "expiry",
) -> pd.Series:
    """
    Calculate the skew of each expiry.

    Per expiry, skew is mean put IV with OTM% in (-15, -10] minus mean call
    IV with OTM% in [10, 15). Rows receive their expiry's skew once at least
    two expiries have one; otherwise the column is all NaN.
    """
    chain = _chain(df, iv, strike, price, is_call)
    require_columns(df, [expiry], "Skew Term Structure")
    chain["expiry"] = df[expiry].astype(str).to_numpy(copy=True)
    chain = chain[df[expiry].notna().to_numpy(copy=True)]
    usable = chain[chain["iv"].notna() & chain["otm_pct"].notna()]

    otm = usable["otm_pct"]
    puts = usable[~usable["is_call"] & (otm <= -10.0) & (otm > -15.0)]
    calls = usable[usable["is_call"] & (otm >= 10.0) & (otm < 15.0)]
    expiry_skew = (puts.groupby("expiry")["iv"].mean() - calls.groupby("expiry")["iv"].mean()).dropna()

    skew = np.full(len(df), np.nan)
    if len(expiry_skew) >= 2:
        labels = df[expiry].astype(str).where(df[expiry].notna())
        skew = labels.map(expiry_skew).to_numpy(dtype=float, copy=True)

    return as_series(skew, df, "skew_term_structure")


def calculate_skew_breakpoints(
    df: pd.DataFrame,
    iv: str = "iv",
    strike: str = "strike",
) -> pd.DataFrame:
    """
    Find strikes where the IV smile changes slope sharply.

    IV is averaged per strike and the strikes sorted. At each interior
    strike the slope change is ``next_slope - prev_slope``; strikes where it
    exceeds 0.01 in magnitude are reported.

    Returns:
        DataFrame with columns strike, magnitude and direction
        ("steepening" for a positive change, "flattening" otherwise).
    """
    require_columns(df, [iv, strike], "Skew Breakpoints")
    chain = pd.DataFrame({"strike": as_float_array(df, strike), "iv": as_float_array(df, iv)})
    smile = chain.dropna().groupby("strike")["iv"].mean().sort_index()

    strikes = smile.index.to_numpy(dtype=float, copy=True)
    ivs = smile.to_numpy(copy=True)

    rows = []
    for i in range(1, len(strikes) - 1):
        prev_slope = (ivs[i] - ivs[i - 1]) / (strikes[i] - strikes[i - 1])
        next_slope = (ivs[i + 1] - ivs[i]) / (strikes[i + 1] - strikes[i])
        change = next_slope - prev_slope
        if abs(change) > BREAKPOINT_THRESHOLD:
            rows.append(
                {
                    "strike": strikes[i],
                    "magnitude": abs(change),
                    "direction": "steepening" if change > 0 else "flattening",
                }
            )

    return pd.DataFrame(rows, columns=["strike", "magnitude", "direction"])


def add_skew_indicators(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add strike skew, wing skew and (with an ``expiry`` column) the skew
    term structure.

    Breakpoints describe the whole chain and are not added as a column.

    Raises:
        MissingColumnError: If iv, strike, price or is_call is missing.
    """
    require_columns(df, SKEW_COLUMNS, "Skew")
    result = df.copy()

    columns = [calculate_strike_skew(df), calculate_wing_skew(df)]
    if "expiry" in df.columns:
        columns.append(calculate_skew_term_structure(df))

    for series in columns:
        result[series.name] = series

    logger.debug(f"Added skew columns: {[s.name for s in columns]}")
    return result
