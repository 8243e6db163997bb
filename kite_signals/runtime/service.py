from __future__ import annotations

import argparse
import json
import logging
import time as time_mod
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path

from kite_signals.config import DEFAULT_CONFIG, Settings
from kite_signals.execution.signal_writer import write_record_json
from kite_signals.log import setup_logging
from kite_signals.runtime.analyzer import SignalAnalyzer
from kite_signals.runtime.wiring import build_analyzer, build_market_data
from kite_signals.session.market_phase import is_trading_phase, resolve_phase
from kite_signals.store.session_store import today_ist
from kite_signals.types import Grade


@dataclass(frozen=True)
class ServiceStatus:
    time_utc: str
    market_phase: str
    analyzed: int
    written: int
    last_signal_id: str | None
    signals_today: int
    last_error: str | None


def _write_json(path: Path, payload: dict) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, separators=(",", ":"), ensure_ascii=False), encoding="utf-8")
    tmp.replace(path)


def _read_state(path: Path, now: datetime) -> dict:
    day = today_ist(now)
    if not path.exists():
        return {"day": day, "signals_today": 0}
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except ValueError:
        logging.warning("state_file_unreadable %s", path)
        raw = {}
    if raw.get("day") != day:
        return {"day": day, "signals_today": 0}
    raw.setdefault("signals_today", 0)
    return raw


def run_once(
    analyzer: SignalAnalyzer,
    *,
    symbols: list[str],
    out_dir: str | Path,
    state_file: str | Path,
    max_signals_per_day: int,
    min_grade: Grade = Grade.GOOD,
    now: datetime | None = None,
) -> ServiceStatus:
    now = now or datetime.now(timezone.utc)
    cfg = analyzer.cfg
    phase = resolve_phase(now, cfg.timezone, cfg.hours)
    state_path = Path(state_file)
    state = _read_state(state_path, now)
    signals_today = int(state["signals_today"])

    def status(analyzed: int = 0, written: int = 0, last_id: str | None = None, err: str | None = None) -> ServiceStatus:
        return ServiceStatus(
            time_utc=now.isoformat(),
            market_phase=phase.value,
            analyzed=analyzed,
            written=written,
            last_signal_id=last_id,
            signals_today=signals_today,
            last_error=err,
        )

    if not is_trading_phase(phase):
        return status()
    if signals_today >= int(max_signals_per_day):
        return status(err="max_signals_per_day_reached")

    accepted = (Grade.EXCELLENT,) if min_grade == Grade.EXCELLENT else (Grade.GOOD, Grade.EXCELLENT)
    batch = analyzer.analyze(symbols, now=now)
    written = 0
    last_id = None
    for record in batch.records:
        if record.signal is None or record.signal.grade not in accepted:
            continue
        if signals_today >= int(max_signals_per_day):
            break
        write_record_json(record, out_dir=out_dir)
        signals_today += 1
        written += 1
        last_id = record.id

    if written:
        state["signals_today"] = signals_today
        _write_json(state_path, state)
    return status(analyzed=len(batch.records), written=written, last_id=last_id)


def main() -> int:
    settings = Settings.from_env()
    ap = argparse.ArgumentParser(description="Poll the watchlist during market hours")
    ap.add_argument("--symbols", nargs="+", default=list(DEFAULT_CONFIG.instruments))
    ap.add_argument("--out-dir", required=True)
    ap.add_argument("--min-grade", choices=["GOOD", "EXCELLENT"], default="GOOD")
    ap.add_argument("--interval-seconds", type=int, default=300)
    ap.add_argument("--status-file", default="service_status.json")
    ap.add_argument("--state-file", default="service_state.json")
    ap.add_argument("--max-signals-per-day", type=int, default=20)
    ap.add_argument("--log-file", default="")
    args = ap.parse_args()

    setup_logging(settings.log_level, args.log_file)
    md = build_market_data(settings)
    analyzer = build_analyzer(settings, md)

    status_path = Path(args.status_file)
    while True:
        try:
            s = run_once(
                analyzer,
                symbols=list(args.symbols),
                out_dir=str(args.out_dir),
                state_file=str(args.state_file),
                max_signals_per_day=int(args.max_signals_per_day),
                min_grade=Grade(args.min_grade),
            )
        except Exception as e:  # noqa: BLE001
            logging.exception("service_run_error")
            s = ServiceStatus(
                time_utc=datetime.now(timezone.utc).isoformat(),
                market_phase="unknown",
                analyzed=0,
                written=0,
                last_signal_id=None,
                signals_today=0,
                last_error=str(e),
            )

        _write_json(status_path, asdict(s))
        time_mod.sleep(max(1, int(args.interval_seconds)))


if __name__ == "__main__":
    raise SystemExit(main())
