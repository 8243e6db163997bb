"""Session reference levels: central pivot range and intraday volume profile.

CPR and classic pivots come from the previous completed day's candle. The
profile spreads each intraday candle's volume evenly over the price ticks it
spans, then grows a value area outward from the point of control.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional

import numpy as np
import pandas as pd

CPRType = Literal["NARROW", "NORMAL", "WIDE"]
Bias = Literal["BULLISH", "BEARISH", "NEUTRAL"]
ProfileType = Literal["BALANCED", "ROTATIONAL", "TRENDING"]

NSE_TICK = 0.05
VALUE_AREA_FRACTION = 0.7

# CPR width as percent of pivot
NARROW_CPR_PERCENT = 0.5
WIDE_CPR_PERCENT = 1.5

# Value-area width as a fraction of the session range
BALANCED_RATIO = 0.7
TRENDING_RATIO = 0.3


@dataclass(frozen=True)
class CPRLevels:
    pivot: float
    top_central: float
    bottom_central: float
    resistance1: float
    resistance2: float
    support1: float
    support2: float
    width: float
    width_percent: float
    cpr_type: CPRType
    bias: Bias

    def position(self, price: float) -> str:
        if price > self.top_central:
            return "above CPR"
        if price < self.bottom_central:
            return "below CPR"
        return "inside CPR"


@dataclass(frozen=True)
class MarketProfile:
    point_of_control: float
    value_area_high: float
    value_area_low: float
    total_volume: float
    profile_type: ProfileType
    volume_nodes: int


@dataclass(frozen=True)
class MarketLevels:
    cpr: Optional[CPRLevels] = None
    profile: Optional[MarketProfile] = None


def compute_cpr(high: float, low: float, close: float) -> Optional[CPRLevels]:
    if not all(np.isfinite([high, low, close])) or high < low:
        return None
    pivot = (high + low + close) / 3.0
    if pivot <= 0:
        return None
    bc = (high + low) / 2.0
    tc = 2.0 * pivot - bc
    top, bottom = max(tc, bc), min(tc, bc)
    rng = high - low
    width = top - bottom
    width_pct = width / pivot * 100.0

    if width_pct < NARROW_CPR_PERCENT:
        cpr_type: CPRType = "NARROW"
    elif width_pct > WIDE_CPR_PERCENT:
        cpr_type = "WIDE"
    else:
        cpr_type = "NORMAL"

    if close > top:
        bias: Bias = "BULLISH"
    elif close < bottom:
        bias = "BEARISH"
    else:
        bias = "NEUTRAL"

    return CPRLevels(
        pivot=round(pivot, 2),
        top_central=round(top, 2),
        bottom_central=round(bottom, 2),
        resistance1=round(2.0 * pivot - low, 2),
        resistance2=round(pivot + rng, 2),
        support1=round(2.0 * pivot - high, 2),
        support2=round(pivot - rng, 2),
        width=round(width, 2),
        width_percent=round(width_pct, 3),
        cpr_type=cpr_type,
        bias=bias,
    )


def cpr_from_daily(df_day: pd.DataFrame, *, before: date) -> Optional[CPRLevels]:
    """CPR from the last daily candle dated strictly before ``before``."""
    if df_day is None or len(df_day) == 0:
        return None
    prior = df_day[pd.to_datetime(df_day["time"]).dt.date < before]
    if len(prior) == 0:
        return None
    row = prior.iloc[-1]
    return compute_cpr(float(row["high"]), float(row["low"]), float(row["close"]))


def volume_profile(df: pd.DataFrame, *, tick: float = NSE_TICK) -> pd.Series:
    """Volume per price tick, indexed by price ascending."""
    if df is None or len(df) == 0:
        return pd.Series(dtype=float)
    lows = df["low"].to_numpy(dtype=float)
    highs = df["high"].to_numpy(dtype=float)
    vols = df["volume"].to_numpy(dtype=float)
    ok = np.isfinite(lows) & np.isfinite(highs) & np.isfinite(vols) & (highs >= lows) & (vols >= 0)

    ticks: list[np.ndarray] = []
    shares: list[np.ndarray] = []
    for lo, hi, v in zip(lows[ok], highs[ok], vols[ok]):
        idx = np.arange(int(round(lo / tick)), int(round(hi / tick)) + 1)
        ticks.append(idx)
        shares.append(np.full(idx.size, v / idx.size))
    if not ticks:
        return pd.Series(dtype=float)

    s = pd.Series(np.concatenate(shares)).groupby(np.concatenate(ticks)).sum().sort_index()
    s.index = np.round(s.index.to_numpy() * tick, 2)
    return s


def value_area(profile: pd.Series, *, fraction: float = VALUE_AREA_FRACTION) -> tuple[float, float]:
    """(low, high) grown from the POC, one tick up then one tick down, until ``fraction`` of volume."""
    vols = profile.to_numpy(dtype=float)
    prices = profile.index.to_numpy(dtype=float)
    target = vols.sum() * fraction
    lo = hi = int(np.argmax(vols))
    acc = vols[lo]
    while acc < target and (hi < len(vols) - 1 or lo > 0):
        if hi < len(vols) - 1:
            hi += 1
            acc += vols[hi]
        if acc < target and lo > 0:
            lo -= 1
            acc += vols[lo]
    return float(prices[lo]), float(prices[hi])


def _profile_type(va_low: float, va_high: float, session_low: float, session_high: float) -> ProfileType:
    rng = session_high - session_low
    if rng <= 0:
        return "BALANCED"
    ratio = (va_high - va_low) / rng
    if ratio > BALANCED_RATIO:
        return "BALANCED"
    if ratio < TRENDING_RATIO:
        return "TRENDING"
    return "ROTATIONAL"


def compute_market_profile(
    df_intraday: pd.DataFrame,
    *,
    tick: float = NSE_TICK,
    fraction: float = VALUE_AREA_FRACTION,
) -> Optional[MarketProfile]:
    profile = volume_profile(df_intraday, tick=tick)
    if profile.empty or profile.sum() <= 0:
        return None
    poc = float(profile.idxmax())
    va_low, va_high = value_area(profile, fraction=fraction)
    return MarketProfile(
        point_of_control=poc,
        value_area_high=va_high,
        value_area_low=va_low,
        total_volume=float(profile.sum()),
        profile_type=_profile_type(va_low, va_high, float(df_intraday["low"].min()), float(df_intraday["high"].max())),
        volume_nodes=int(len(profile)),
    )
