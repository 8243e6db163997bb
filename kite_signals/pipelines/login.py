from __future__ import annotations

import argparse
import logging
from dataclasses import replace

from kite_signals.config import Settings
from kite_signals.errors import AppError
from kite_signals.log import setup_logging
from kite_signals.runtime.wiring import build_market_data
from kite_signals.store.session_store import mask_token


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Kite Connect daily login helper")
    ap.add_argument("--request-token", default="", help="request_token from the redirect URL")
    ap.add_argument("--session-file", default="")
    args = ap.parse_args(argv)

    settings = Settings.from_env()
    setup_logging(settings.log_level)
    if args.session_file:
        settings = replace(settings, kite_session_file=args.session_file)

    md = build_market_data(settings)
    if md.is_authenticated and not args.request_token:
        print("Found today's session; nothing to do.")
        return 0

    try:
        if not args.request_token:
            print("Open this URL, log in, then rerun with --request-token <token>:")
            print(md.login_url())
            return 0
        session = md.create_session(args.request_token)
    except AppError as e:
        logging.error("login_failed %s", e)
        return 2

    print(f"Logged in as {session.user_name or session.user_id}; token {mask_token(session.access_token)} saved")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
