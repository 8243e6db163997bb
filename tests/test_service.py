from __future__ import annotations

import json
from datetime import datetime, timezone

from fakes import FakeMarketData, snapshot
from kite_signals.runtime.analyzer import SignalAnalyzer
from kite_signals.runtime.service import run_once
from kite_signals.types import Grade

# Tuesday 10:30 IST
OPEN = datetime(2024, 1, 2, 5, 0, tzinfo=timezone.utc)
# Tuesday 20:30 IST
CLOSED = datetime(2024, 1, 2, 15, 0, tzinfo=timezone.utc)


def _analyzer() -> SignalAnalyzer:
    md = FakeMarketData(
        snapshots={
            # BUY 85 -> EXCELLENT
            "RELIANCE": snapshot("RELIANCE"),
            # HOLD 50 -> POOR
            "TCS": snapshot("TCS", last_price=2451.0, volume=500_000),
        }
    )
    return SignalAnalyzer(md)


def test_regular_phase_writes_graded_signals(tmp_path):
    st = run_once(
        _analyzer(),
        symbols=["RELIANCE", "TCS"],
        out_dir=tmp_path / "out",
        state_file=tmp_path / "state.json",
        max_signals_per_day=5,
        now=OPEN,
    )
    assert st.market_phase == "regular"
    assert (st.analyzed, st.written, st.signals_today) == (2, 1, 1)
    files = list((tmp_path / "out").glob("signal_*.json"))
    assert len(files) == 1
    assert json.loads(files[0].read_text(encoding="utf-8"))["symbol"] == "RELIANCE"
    state = json.loads((tmp_path / "state.json").read_text(encoding="utf-8"))
    assert state == {"day": "2024-01-02", "signals_today": 1}


def test_closed_phase_does_nothing(tmp_path):
    st = run_once(
        _analyzer(),
        symbols=["RELIANCE"],
        out_dir=tmp_path / "out",
        state_file=tmp_path / "state.json",
        max_signals_per_day=5,
        now=CLOSED,
    )
    assert st.market_phase == "closed"
    assert st.analyzed == 0
    assert not (tmp_path / "out").exists()


def test_daily_cap_and_day_rollover(tmp_path):
    state = tmp_path / "state.json"
    state.write_text(json.dumps({"day": "2024-01-02", "signals_today": 3}), encoding="utf-8")
    kw = dict(symbols=["RELIANCE"], out_dir=tmp_path / "out", state_file=state, max_signals_per_day=3)

    st = run_once(_analyzer(), now=OPEN, **kw)
    assert st.last_error == "max_signals_per_day_reached"
    assert st.written == 0

    st = run_once(_analyzer(), now=OPEN.replace(day=3), **kw)
    assert (st.written, st.signals_today) == (1, 1)


def test_min_grade_excellent_filters(tmp_path):
    st = run_once(
        _analyzer(),
        symbols=["RELIANCE", "TCS"],
        out_dir=tmp_path / "out",
        state_file=tmp_path / "state.json",
        max_signals_per_day=5,
        min_grade=Grade.EXCELLENT,
        now=OPEN,
    )
    assert st.written == 1
