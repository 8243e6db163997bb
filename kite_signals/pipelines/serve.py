from __future__ import annotations

import argparse

import uvicorn

from kite_signals.api.app import create_app
from kite_signals.config import Settings
from kite_signals.log import setup_logging
from kite_signals.runtime.wiring import build_analyzer, build_market_data


def main(argv: list[str] | None = None) -> int:
    settings = Settings.from_env()
    ap = argparse.ArgumentParser(description="Serve the manual analysis API")
    ap.add_argument("--host", default=settings.host)
    ap.add_argument("--port", type=int, default=settings.port)
    args = ap.parse_args(argv)

    setup_logging(settings.log_level)
    md = build_market_data(settings)
    app = create_app(build_analyzer(settings, md), md)
    uvicorn.run(app, host=args.host, port=int(args.port), log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
