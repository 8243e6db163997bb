from __future__ import annotations

import json
from datetime import datetime, timezone

from kite_signals.execution.signal_writer import CSV_HEADER, make_record, record_to_dict, write_record_csv, write_record_json
from kite_signals.policy.grade import make_extracted_signal
from kite_signals.types import Action, MarketPhase

NOW = datetime(2024, 1, 2, 5, 0, tzinfo=timezone.utc)


def _record(**kw):
    signal = make_extracted_signal(action=Action.BUY, confidence=82, entry_price=1141.0, target=1162.93, stop_loss=1137.0)
    base = dict(symbol="AXISBANK", market_phase=MarketPhase.REGULAR, signal=signal, method="llm", last_price=1141.2, when=NOW)
    base.update(kw)
    return make_record(**base)


def test_record_to_dict_is_json_ready():
    d = record_to_dict(_record())
    assert d["time_utc"] == "2024-01-02T05:00:00+00:00"
    assert d["market_phase"] == "regular"
    assert d["signal"]["action"] == "BUY"
    assert d["signal"]["grade"] == "EXCELLENT"
    json.dumps(d)


def test_write_json(tmp_path):
    rec = _record()
    path = write_record_json(rec, out_dir=tmp_path / "out")
    assert path.name == f"signal_{rec.id}.json"
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["symbol"] == "AXISBANK"
    assert payload["signal"]["entry_price"] == 1141.0
    assert not list((tmp_path / "out").glob(".*.tmp"))


def test_write_csv_with_error_record(tmp_path):
    rec = _record(signal=None, method="error", last_price=None, error="Invalid symbol: X, Y")
    path = write_record_csv(rec, out_dir=tmp_path)
    header, line = path.read_text(encoding="utf-8").splitlines()
    assert header == CSV_HEADER
    fields = line.split(",")
    assert len(fields) == len(CSV_HEADER.split(","))
    assert fields[1] == "2024-01-02T05:00:00Z"
    assert fields[4] == "error"
    assert fields[5] == ""
    assert fields[-1] == "Invalid symbol: X; Y"


def test_ids_are_unique():
    assert _record().id != _record().id
