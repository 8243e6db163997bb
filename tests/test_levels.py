from __future__ import annotations

from datetime import date, datetime, timezone

import pandas as pd

from fakes import snapshot
from kite_signals.data.kite_loader import candles_to_frame
from kite_signals.llm.prompts import build_analysis_prompt
from kite_signals.strategy.levels import (
    MarketLevels,
    compute_cpr,
    compute_market_profile,
    cpr_from_daily,
    value_area,
    volume_profile,
)
from kite_signals.types import MarketPhase


def _bars(rows: list[tuple[float, float, float]]) -> pd.DataFrame:
    return pd.DataFrame(
        {
            "time": pd.date_range("2024-01-03 03:45", periods=len(rows), freq="min", tz="UTC"),
            "open": [r[0] for r in rows],
            "high": [r[1] for r in rows],
            "low": [r[0] for r in rows],
            "close": [r[1] for r in rows],
            "volume": [r[2] for r in rows],
        }
    )


def test_cpr_levels_and_bias():
    c = compute_cpr(110.0, 90.0, 105.0)
    assert c is not None
    assert c.pivot == 101.67
    assert (c.top_central, c.bottom_central) == (103.33, 100.0)
    assert (c.resistance1, c.resistance2) == (113.33, 121.67)
    assert (c.support1, c.support2) == (93.33, 81.67)
    assert c.width_percent == 3.279
    assert c.cpr_type == "WIDE"
    assert c.bias == "BULLISH"
    assert c.position(104.0) == "above CPR"
    assert c.position(102.0) == "inside CPR"
    assert c.position(99.0) == "below CPR"


def test_cpr_narrow_neutral_and_bearish():
    flat = compute_cpr(101.0, 100.0, 100.5)
    assert flat.cpr_type == "NARROW"
    assert flat.bias == "NEUTRAL"
    assert compute_cpr(110.0, 90.0, 92.0).bias == "BEARISH"


def test_cpr_rejects_bad_candles():
    assert compute_cpr(90.0, 110.0, 100.0) is None
    assert compute_cpr(0.0, 0.0, 0.0) is None
    assert compute_cpr(float("nan"), 90.0, 100.0) is None


def test_cpr_uses_last_completed_day():
    rows = [
        {"date": datetime(2024, 1, 1, 18, 30, tzinfo=timezone.utc), "open": 95, "high": 110, "low": 90, "close": 105, "volume": 1},
        # today's partial candle, 2024-01-03 IST
        {"date": datetime(2024, 1, 2, 18, 30, tzinfo=timezone.utc), "open": 150, "high": 200, "low": 100, "close": 150, "volume": 1},
    ]
    df = candles_to_frame(rows, tz="Asia/Kolkata")
    assert cpr_from_daily(df, before=date(2024, 1, 3)).pivot == 101.67
    assert cpr_from_daily(df, before=date(2024, 1, 2)) is None
    assert cpr_from_daily(candles_to_frame([]), before=date(2024, 1, 3)) is None


def test_volume_profile_spreads_volume_over_ticks():
    prof = volume_profile(_bars([(100, 100, 600), (99, 101, 300), (95, 95, 100)]), tick=1.0)
    assert list(prof.index) == [95.0, 99.0, 100.0, 101.0]
    assert list(prof) == [100.0, 100.0, 700.0, 100.0]


def test_value_area_grows_from_poc():
    prof = volume_profile(_bars([(100, 109, 1000)]), tick=1.0)
    assert value_area(prof) == (100.0, 106.0)


def test_market_profile_types():
    trending = compute_market_profile(_bars([(100, 100, 600), (99, 101, 300), (95, 95, 100)]), tick=1.0)
    assert trending.point_of_control == 100.0
    assert (trending.value_area_low, trending.value_area_high) == (100.0, 100.0)
    assert trending.profile_type == "TRENDING"
    assert trending.total_volume == 1000.0
    assert trending.volume_nodes == 4

    rotational = compute_market_profile(_bars([(100, 109, 1000)]), tick=1.0)
    assert rotational.profile_type == "ROTATIONAL"

    balanced = compute_market_profile(_bars([(100, 100, 500)]), tick=1.0)
    assert balanced.profile_type == "BALANCED"


def test_market_profile_empty_or_zero_volume():
    assert compute_market_profile(candles_to_frame([])) is None
    assert compute_market_profile(_bars([(100, 101, 0)])) is None


def test_prompt_includes_levels_when_present():
    levels = MarketLevels(
        cpr=compute_cpr(110.0, 90.0, 105.0),
        profile=compute_market_profile(_bars([(100, 100, 600), (99, 101, 300)]), tick=1.0),
    )
    text = build_analysis_prompt(snapshot(last_price=104.0), MarketPhase.REGULAR, levels)
    assert "Pivot: ₹101.67" in text
    assert "bias BULLISH, price above CPR" in text
    assert "POC: ₹100.00" in text
    assert "CPR" not in build_analysis_prompt(snapshot(), MarketPhase.REGULAR)
