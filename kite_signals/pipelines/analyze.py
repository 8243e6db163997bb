from __future__ import annotations

import argparse
from pathlib import Path

from kite_signals.config import Settings
from kite_signals.execution.signal_writer import write_record_csv, write_record_json
from kite_signals.log import setup_logging
from kite_signals.runtime.wiring import build_analyzer, build_market_data
from kite_signals.types import AnalysisRecord


def format_line(r: AnalysisRecord) -> str:
    if r.signal is None:
        return f"{r.symbol:<12} ERROR      {r.error}"
    s = r.signal

    def px(v: float | None) -> str:
        return "-" if v is None else f"{v:.2f}"

    return (
        f"{r.symbol:<12} {s.action.value:<10} {s.confidence:>3}% {s.grade.value:<9} "
        f"entry={px(s.entry_price)} target={px(s.target)} sl={px(s.stop_loss)} [{r.method}]"
    )


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Analyze NSE symbols once")
    ap.add_argument("--symbols", nargs="+", required=True)
    ap.add_argument("--out-dir", default="")
    ap.add_argument("--format", choices=["json", "csv"], default="json")
    ap.add_argument("--log-file", default="")
    args = ap.parse_args(argv)

    settings = Settings.from_env()
    setup_logging(settings.log_level, args.log_file)

    md = build_market_data(settings)
    analyzer = build_analyzer(settings, md)
    batch = analyzer.analyze(args.symbols)

    print(f"market phase: {batch.market_phase.value}")
    for r in batch.records:
        print(format_line(r))

    if args.out_dir:
        out = Path(args.out_dir)
        write = write_record_json if args.format == "json" else write_record_csv
        for r in batch.records:
            write(r, out_dir=out)

    s = batch.summary
    print(f"{s.buy} BUY, {s.sell} SELL, {s.no_trade} NO TRADE, {s.errors} errors")
    return 1 if s.errors == s.total else 0


if __name__ == "__main__":
    raise SystemExit(main())
