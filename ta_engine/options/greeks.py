"""
Black-Scholes Greeks, pricing and implied volatility.

Greeks are computed row by row from an options table with columns:

    price           underlying price S
    strike          strike K
    iv              implied volatility sigma (decimal, 0.25 = 25%)
    time_to_expiry  years to expiration t
    rate            risk-free rate r (decimal)
    is_call         True for calls, False for puts

A row whose inputs are missing, or whose time to expiry is not positive,
gets NaN for every Greek.
"""

import logging
import math
from typing import Iterable, Tuple

import numpy as np
import pandas as pd

from ta_engine.primitives import as_series, norm_cdf, norm_pdf
from ta_engine.validators import as_bool_array, as_float_array, require_columns

logger = logging.getLogger(__name__)

GREEKS_COLUMNS = ("price", "strike", "iv", "time_to_expiry", "rate", "is_call")

# Bisection settings for implied volatility
IV_LOWER_BOUND = 0.001
IV_UPPER_BOUND = 4.0
IV_ACCURACY = 1e-4
IV_MAX_ITERATIONS = 100

DAYS_PER_YEAR = 365.0


def _valid_inputs(*arrays: np.ndarray) -> np.ndarray:
    """Rows where every input is present, S, K and sigma are positive and t > 0."""
    s, k, sigma, t = arrays[:4]
    valid = (s > 0) & (k > 0) & (sigma > 0) & (t > 0)
    for values in arrays[4:]:
        valid &= ~np.isnan(values)
    return valid


def _d1(s, k, sigma, t, r=0.0):
    with np.errstate(divide="ignore", invalid="ignore"):
        return (np.log(s / k) + (r + 0.5 * sigma * sigma) * t) / (sigma * np.sqrt(t))


def _read(df: pd.DataFrame, columns: Iterable[str], indicator: str) -> Tuple[np.ndarray, ...]:
    columns = list(columns)
    require_columns(df, columns, indicator)
    return tuple(as_float_array(df, column) for column in columns)


# =============================================================================
# Greeks
# =============================================================================


def calculate_delta(
    df: pd.DataFrame,
    price: str = "price",
    strike: str = "strike",
    iv: str = "iv",
    time_to_expiry: str = "time_to_expiry",
    is_call: str = "is_call",
) -> pd.Series:
    """
    Calculate option delta.

    Call delta is N(d1) and put delta N(d1) - 1, with
    ``d1 = (ln(S/K) + 0.5 * sigma^2 * t) / (sigma * sqrt(t))``. The
    risk-free rate does not enter this d1.

    Returns:
        Series ``delta``.
    """
    s, k, sigma, t = _read(df, [price, strike, iv, time_to_expiry], "Delta")
    require_columns(df, [is_call], "Delta")
    calls = as_bool_array(df, is_call)

    cdf = norm_cdf(_d1(s, k, sigma, t))
    delta = np.where(calls, cdf, cdf - 1.0)
    delta = np.where(_valid_inputs(s, k, sigma, t), delta, np.nan)

    return as_series(delta, df, "delta")


def calculate_gamma(
    df: pd.DataFrame,
    price: str = "price",
    strike: str = "strike",
    iv: str = "iv",
    time_to_expiry: str = "time_to_expiry",
) -> pd.Series:
    """Calculate gamma, ``N'(d1) / (S * sigma * sqrt(t))`` using the rate-free d1."""
    s, k, sigma, t = _read(df, [price, strike, iv, time_to_expiry], "Gamma")

    with np.errstate(divide="ignore", invalid="ignore"):
        gamma = norm_pdf(_d1(s, k, sigma, t)) / (s * sigma * np.sqrt(t))
    gamma = np.where(_valid_inputs(s, k, sigma, t), gamma, np.nan)

    return as_series(gamma, df, "gamma")


def calculate_theta(
    df: pd.DataFrame,
    price: str = "price",
    strike: str = "strike",
    iv: str = "iv",
    time_to_expiry: str = "time_to_expiry",
    rate: str = "rate",
    is_call: str = "is_call",
) -> pd.Series:
    """
    Calculate theta per calendar day.

    Call: ``-S*sigma*N'(d1) / (2*sqrt(t)) - r*K*exp(-r*t)*N(d2)``
    Put:  ``-S*sigma*N'(d1) / (2*sqrt(t)) + r*K*exp(-r*t)*N(-d2)``

    Both are divided by 365.

    Returns:
        Series ``theta``.
    """
    s, k, sigma, t, r = _read(df, [price, strike, iv, time_to_expiry, rate], "Theta")
    require_columns(df, [is_call], "Theta")
    calls = as_bool_array(df, is_call)

    d1 = _d1(s, k, sigma, t, r)
    with np.errstate(invalid="ignore"):
        sqrt_t = np.sqrt(t)
        d2 = d1 - sigma * sqrt_t
        decay = -(s * sigma * norm_pdf(d1)) / (2.0 * sqrt_t)
        carry = r * k * np.exp(-r * t)
    theta = np.where(calls, decay - carry * norm_cdf(d2), decay + carry * norm_cdf(-d2))
    theta = np.where(_valid_inputs(s, k, sigma, t, r), theta / DAYS_PER_YEAR, np.nan)

    return as_series(theta, df, "theta")


def calculate_vega(
    df: pd.DataFrame,
    price: str = "price",
    strike: str = "strike",
    iv: str = "iv",
    time_to_expiry: str = "time_to_expiry",
    rate: str = "rate",
) -> pd.Series:
    """Calculate vega per 1% volatility change, ``0.01 * S * sqrt(t) * N'(d1)``."""
    s, k, sigma, t, r = _read(df, [price, strike, iv, time_to_expiry, rate], "Vega")

    with np.errstate(invalid="ignore"):
        vega = 0.01 * s * np.sqrt(t) * norm_pdf(_d1(s, k, sigma, t, r))
    vega = np.where(_valid_inputs(s, k, sigma, t, r), vega, np.nan)

    return as_series(vega, df, "vega")


def calculate_gamma_exposure(
    df: pd.DataFrame,
    gamma: str = "gamma",
    contracts: str = "contracts",
    multiplier: str = "multiplier",
) -> pd.Series:
    """
    Calculate gamma exposure, ``gamma * contracts * multiplier``.

    Missing contract counts are treated as 0; missing gamma or multiplier
    gives NaN.
    """
    require_columns(df, [gamma, contracts, multiplier], "Gamma Exposure")
    contract_counts = np.nan_to_num(as_float_array(df, contracts), nan=0.0)
    exposure = as_float_array(df, gamma) * contract_counts * as_float_array(df, multiplier)
    return as_series(exposure, df, "gamma_exposure")


# =============================================================================
# Pricing / Implied Volatility
# =============================================================================


def black_scholes_price(
    price: float,
    strike: float,
    time_to_expiry: float,
    rate: float,
    volatility: float,
    is_call: bool,
) -> float:
    """
    Black-Scholes price of a European option.

    Args:
        price: Underlying price.
        strike: Strike price.
        time_to_expiry: Time to expiration in years.
        rate: Risk-free rate (decimal).
        volatility: Volatility (decimal).
        is_call: True for a call, False for a put.

    Returns:
        Option price. NaN if any input is NaN or t, sigma, S or K is not positive.
    """
    inputs = (price, strike, time_to_expiry, rate, volatility)
    if any(math.isnan(x) for x in inputs) or min(price, strike, time_to_expiry, volatility) <= 0:
        return float("nan")

    sqrt_t = math.sqrt(time_to_expiry)
    d1 = (math.log(price / strike) + (rate + 0.5 * volatility**2) * time_to_expiry) / (
        volatility * sqrt_t
    )
    d2 = d1 - volatility * sqrt_t
    discounted_strike = strike * math.exp(-rate * time_to_expiry)

    if is_call:
        return price * norm_cdf(d1) - discounted_strike * norm_cdf(d2)
    return discounted_strike * norm_cdf(-d2) - price * norm_cdf(-d1)


def calculate_implied_volatility(
    price: float,
    strike: float,
    time_to_expiry: float,
    rate: float,
    option_price: float,
    is_call: bool,
) -> float:
    """
    Solve for implied volatility by bisection.

    Searches [0.001, 4.0] until the model price is within 1e-4 of
    ``option_price``, for at most 100 iterations. If it does not converge
    the midpoint of the final bracket is returned.

    Returns:
        Implied volatility as a decimal (0.25 for 25%).
    """
    low, high = IV_LOWER_BOUND, IV_UPPER_BOUND

    for _ in range(IV_MAX_ITERATIONS):
        mid = (low + high) / 2.0
        diff = black_scholes_price(price, strike, time_to_expiry, rate, mid, is_call) - option_price
        if abs(diff) < IV_ACCURACY:
            return mid
        if diff > 0:
            high = mid
        else:
            low = mid

    return (low + high) / 2.0


def calculate_iv_rank_percentile(current_iv: float, history: Iterable[float]) -> Tuple[float, float]:
    """
    Rank and percentile of the current IV within its history.

    Rank is ``(current - min) / (max - min)`` and percentile the fraction of
    history strictly below the current value, both on a 0-1 scale. NaN
    history values are ignored. Rank is 0.5 when the history has no range,
    percentile is 0.5 when it is empty.
    """
    values = np.asarray(list(history), dtype=float)
    values = values[~np.isnan(values)]

    if len(values) and values.max() > values.min():
        rank = (current_iv - values.min()) / (values.max() - values.min())
    else:
        rank = 0.5

    percentile = float(np.mean(values < current_iv)) if len(values) else 0.5
    return float(rank), percentile


# =============================================================================
# Aggregator
# =============================================================================


def add_greeks_indicators(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add delta, gamma, theta and vega columns.

    ``gamma_exposure`` is added as well when the table has ``contracts``
    and ``multiplier`` columns.

    Raises:
        MissingColumnError: If any of price, strike, iv, time_to_expiry,
            rate or is_call is missing.
    """
    require_columns(df, GREEKS_COLUMNS, "Greeks")
    result = df.copy()

    for series in (
        calculate_delta(df),
        calculate_gamma(df),
        calculate_theta(df),
        calculate_vega(df),
    ):
        result[series.name] = series

    added = ["delta", "gamma", "theta", "vega"]
    if "contracts" in df.columns and "multiplier" in df.columns:
        result["gamma_exposure"] = calculate_gamma_exposure(result)
        added.append("gamma_exposure")

    logger.debug(f"Added Greeks columns: {added}")
    return result
