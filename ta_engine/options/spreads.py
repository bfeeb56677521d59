"""
Multi-leg option spread metrics.

Each function reads one row per position and returns a DataFrame of
metrics aligned to the input index. Rows with any missing leg are NaN.
"""

import logging

import numpy as np
import pandas as pd

from ta_engine.exceptions import InvalidParameterError
from ta_engine.primitives import safe_divide
from ta_engine.validators import as_bool_array, as_float_array, require_columns

logger = logging.getLogger(__name__)

VERTICAL_COLUMNS = ("short_strike", "long_strike", "short_price", "long_price", "is_call")
CALENDAR_COLUMNS = ("near_price", "far_price", "near_iv", "far_iv", "near_time", "far_time")
IRON_CONDOR_COLUMNS = (
    "put_short_strike",
    "put_long_strike",
    "call_short_strike",
    "call_long_strike",
    "put_short_price",
    "put_long_price",
    "call_short_price",
    "call_long_price",
)


def _complete_rows(*arrays: np.ndarray) -> np.ndarray:
    complete = np.ones(len(arrays[0]), dtype=bool)
    for values in arrays:
        complete &= ~np.isnan(values)
    return complete


def _metrics_frame(df: pd.DataFrame, complete: np.ndarray, **metrics: np.ndarray) -> pd.DataFrame:
    return pd.DataFrame(
        {name: np.where(complete, values, np.nan) for name, values in metrics.items()},
        index=df.index,
    )


def calculate_vertical_spread_metrics(
    df: pd.DataFrame,
    short_strike: str = "short_strike",
    long_strike: str = "long_strike",
    short_price: str = "short_price",
    long_price: str = "long_price",
    is_call: str = "is_call",
) -> pd.DataFrame:
    """
    Calculate risk metrics for vertical spreads.

    With ``net = short_price - long_price`` and
    ``width = |short_strike - long_strike|``:

        call, short > long:  profit = net,          loss = width - net
        call, short <= long: profit = width - net,  loss = net
        put,  short > long:  profit = width - net,  loss = net
        put,  short <= long: profit = net,          loss = width - net

    Breakeven is ``long_strike + net`` for calls and ``short_strike - net``
    for puts. ``risk_reward`` is profit / loss when both are positive.

    Returns:
        DataFrame with max_profit, max_loss, breakeven, risk_reward and
        strike_width.
    """
    require_columns(df, [short_strike, long_strike, short_price, long_price, is_call], "Vertical Spread")

    ss = as_float_array(df, short_strike)
    ls = as_float_array(df, long_strike)
    sp = as_float_array(df, short_price)
    lp = as_float_array(df, long_price)
    calls = as_bool_array(df, is_call)

    width = np.abs(ss - ls)
    net = sp - lp
    short_above = ss > ls

    # Calls and puts swap which case collects the net premium
    collects_net = short_above == calls
    max_profit = np.where(collects_net, net, width - net)
    max_loss = np.where(collects_net, width - net, net)
    breakeven = np.where(calls, ls + net, ss - net)

    risk_reward = np.where((max_profit > 0) & (max_loss > 0), safe_divide(max_profit, max_loss), np.nan)

    return _metrics_frame(
        df,
        _complete_rows(ss, ls, sp, lp),
        max_profit=max_profit,
        max_loss=max_loss,
        breakeven=breakeven,
        risk_reward=risk_reward,
        strike_width=width,
    )


def calculate_calendar_spread_metrics(
    df: pd.DataFrame,
    near_price: str = "near_price",
    far_price: str = "far_price",
    near_iv: str = "near_iv",
    far_iv: str = "far_iv",
    near_time: str = "near_time",
    far_time: str = "far_time",
) -> pd.DataFrame:
    """
    Calculate calendar spread metrics.

    Daily theta of each leg is approximated as ``price / (t * 365)`` with t
    in years. ``theta_ratio`` is far / near theta and
    ``time_decay_advantage`` near minus far theta; both are NaN when the near
    theta is 0.

    Returns:
        DataFrame with net_debit, iv_skew, time_decay_advantage, theta_ratio
        and expiry_gap.
    """
    require_columns(
        df, [near_price, far_price, near_iv, far_iv, near_time, far_time], "Calendar Spread"
    )

    np_ = as_float_array(df, near_price)
    fp = as_float_array(df, far_price)
    niv = as_float_array(df, near_iv)
    fiv = as_float_array(df, far_iv)
    nt = as_float_array(df, near_time)
    ft = as_float_array(df, far_time)

    near_theta = safe_divide(np_, nt * 365.0)
    far_theta = safe_divide(fp, ft * 365.0)
    has_near_theta = ~np.isnan(near_theta) & (near_theta != 0)

    return _metrics_frame(
        df,
        _complete_rows(np_, fp, niv, fiv, nt, ft),
        net_debit=fp - np_,
        iv_skew=fiv - niv,
        time_decay_advantage=np.where(has_near_theta, near_theta - far_theta, np.nan),
        theta_ratio=np.where(has_near_theta, safe_divide(far_theta, near_theta), np.nan),
        expiry_gap=ft - nt,
    )


def calculate_iron_condor_metrics(
    df: pd.DataFrame,
    put_short_strike: str = "put_short_strike",
    put_long_strike: str = "put_long_strike",
    call_short_strike: str = "call_short_strike",
    call_long_strike: str = "call_long_strike",
    put_short_price: str = "put_short_price",
    put_long_price: str = "put_long_price",
    call_short_price: str = "call_short_price",
    call_long_price: str = "call_long_price",
) -> pd.DataFrame:
    """
    Calculate iron condor metrics.

    Net credit is the premium of both short legs minus both long legs.

        max_profit     = net credit
        max_loss       = min(put wing, call wing) - net credit
        put_breakeven  = put short strike - net credit
        call_breakeven = call short strike + net credit

    ``profit_probability`` is ``(body_width + credit) / (call long - put
    long)``, clamped to [0, 1], and NaN when the total width is not positive.

    Raises:
        InvalidParameterError: If a complete row has a negative wing width
            (long put above short put, or long call below short call).
    """
    require_columns(
        df,
        [
            put_short_strike,
            put_long_strike,
            call_short_strike,
            call_long_strike,
            put_short_price,
            put_long_price,
            call_short_price,
            call_long_price,
        ],
        "Iron Condor",
    )

    pss = as_float_array(df, put_short_strike)
    pls = as_float_array(df, put_long_strike)
    css = as_float_array(df, call_short_strike)
    cls = as_float_array(df, call_long_strike)
    psp = as_float_array(df, put_short_price)
    plp = as_float_array(df, put_long_price)
    csp = as_float_array(df, call_short_price)
    clp = as_float_array(df, call_long_price)

    complete = _complete_rows(pss, pls, css, cls, psp, plp, csp, clp)
    put_wing = pss - pls
    call_wing = cls - css

    negative = complete & ((put_wing < 0) | (call_wing < 0))
    if negative.any():
        row = df.index[np.argmax(negative)]
        raise InvalidParameterError(
            f"negative wing width at row {row}: put wing {put_wing[negative][0]}, "
            f"call wing {call_wing[negative][0]}",
            "Iron Condor",
        )

    net = (psp - plp) + (csp - clp)
    body_width = css - pss
    total_width = cls - pls
    probability = np.where(
        total_width > 0, np.clip(safe_divide(body_width + net, total_width), 0.0, 1.0), np.nan
    )

    return _metrics_frame(
        df,
        complete,
        max_profit=net,
        max_loss=np.minimum(put_wing, call_wing) - net,
        put_breakeven=pss - net,
        call_breakeven=css + net,
        body_width=body_width,
        put_wing_width=put_wing,
        call_wing_width=call_wing,
        profit_probability=probability,
    )


def add_spread_indicators(df: pd.DataFrame) -> pd.DataFrame:
    """
    Add spread metrics for every position layout present in ``df``.

    Vertical, calendar and iron condor metrics are each added only when all
    of their input columns exist. Iron condor metrics are applied last and
    take precedence for the shared max_profit / max_loss columns.
    """
    result = df.copy()
    added = []

    layouts = (
        (VERTICAL_COLUMNS, calculate_vertical_spread_metrics),
        (CALENDAR_COLUMNS, calculate_calendar_spread_metrics),
        (IRON_CONDOR_COLUMNS, calculate_iron_condor_metrics),
    )
    for columns, calculate in layouts:
        if not set(columns).issubset(df.columns):
            continue
        metrics = calculate(df)
        for name in metrics.columns:
            result[name] = metrics[name]
        added.extend(metrics.columns)

    logger.debug(f"Added spread columns: {added}")
    return result
