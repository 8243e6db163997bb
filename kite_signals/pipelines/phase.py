from __future__ import annotations

import argparse
from datetime import datetime, timezone

from kite_signals.config import DEFAULT_CONFIG
from kite_signals.instruments.registry import DEFAULT_REGISTRY
from kite_signals.session.market_phase import resolve_phase


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Print the NSE market phase")
    ap.add_argument("--at", default="", help="ISO timestamp; naive values are UTC")
    ap.add_argument("--symbol", default="", help="also report the instrument token for this symbol")
    args = ap.parse_args(argv)

    now = datetime.fromisoformat(args.at) if args.at else datetime.now(timezone.utc)
    phase = resolve_phase(now, DEFAULT_CONFIG.timezone, DEFAULT_CONFIG.hours)
    print(phase.value)

    if args.symbol:
        token = DEFAULT_REGISTRY.token_for(args.symbol)
        if token is None:
            print(f"{args.symbol.upper()}: not found")
            return 1
        print(f"{args.symbol.upper()}: {token}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
