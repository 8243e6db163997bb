from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from uuid import uuid4

from kite_signals.types import AnalysisRecord, ExtractedSignal, MarketPhase

CSV_HEADER = "id,time_utc,symbol,market_phase,method,action,confidence,grade,entry,target,stop_loss,last_price,error"


def _fmt(v: float | None) -> str:
    return "" if v is None else f"{v:.2f}"


def signal_to_dict(signal: ExtractedSignal) -> dict:
    return {
        "action": signal.action.value,
        "confidence": signal.confidence,
        "entry_price": signal.entry_price,
        "target": signal.target,
        "stop_loss": signal.stop_loss,
        "grade": signal.grade.value,
        "risk_reward": signal.risk_reward,
    }


def record_to_dict(record: AnalysisRecord) -> dict:
    return {
        "id": record.id,
        "time_utc": record.time_utc.astimezone(timezone.utc).isoformat(),
        "symbol": record.symbol,
        "market_phase": record.market_phase.value,
        "method": record.method,
        "signal": signal_to_dict(record.signal) if record.signal else None,
        "last_price": record.last_price,
        "reasoning": record.reasoning,
        "error": record.error,
    }


def write_record_json(record: AnalysisRecord, *, out_dir: str | Path) -> Path:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)
    path = p / f"signal_{record.id}.json"
    tmp = p / f".signal_{record.id}.json.tmp"
    tmp.write_text(json.dumps(record_to_dict(record), separators=(",", ":"), ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)
    return path


def record_to_csv_line(record: AnalysisRecord) -> str:
    s = record.signal
    ts = record.time_utc.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return ",".join(
        [
            record.id,
            ts,
            record.symbol,
            record.market_phase.value,
            record.method,
            s.action.value if s else "",
            str(s.confidence) if s else "",
            s.grade.value if s else "",
            _fmt(s.entry_price if s else None),
            _fmt(s.target if s else None),
            _fmt(s.stop_loss if s else None),
            _fmt(record.last_price),
            (record.error or "").replace(",", ";"),
        ]
    )


def write_record_csv(record: AnalysisRecord, *, out_dir: str | Path) -> Path:
    p = Path(out_dir)
    p.mkdir(parents=True, exist_ok=True)
    path = p / f"signal_{record.id}.csv"
    tmp = p / f".signal_{record.id}.csv.tmp"
    tmp.write_text(CSV_HEADER + "\n" + record_to_csv_line(record) + "\n", encoding="utf-8")
    tmp.replace(path)
    return path


def make_record(
    *,
    symbol: str,
    market_phase: MarketPhase,
    signal: ExtractedSignal | None,
    method: str,
    reasoning: str = "",
    last_price: float | None = None,
    error: str | None = None,
    when: datetime | None = None,
) -> AnalysisRecord:
    return AnalysisRecord(
        id=uuid4().hex,
        time_utc=(when or datetime.now(timezone.utc)),
        symbol=symbol,
        market_phase=market_phase,
        signal=signal,
        method=method,  # type: ignore[arg-type]
        last_price=None if last_price is None else float(last_price),
        reasoning=reasoning,
        error=error,
    )
