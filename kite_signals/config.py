from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import time
from typing import Mapping
from zoneinfo import ZoneInfo

from kite_signals.errors import ConfigError

logger = logging.getLogger(__name__)

NSE_INSTRUMENTS: dict[str, int] = {
    "RELIANCE": 738561,
    "TCS": 2953217,
    "HDFCBANK": 341249,
    "INFY": 408065,
    "HINDUNILVR": 356865,
    "ICICIBANK": 1270529,
    "SBIN": 779521,
    "BHARTIARTL": 2714625,
    "ITC": 424961,
    "KOTAKBANK": 492033,
}

_PLACEHOLDERS = {"your_openai_api_key_here", "your_kite_api_key_here", "your_kite_api_secret_here"}


@dataclass(frozen=True)
class MarketHours:
    # NSE session boundaries, local exchange time
    pre_market_start: time = time(9, 0)
    market_open: time = time(9, 15)
    market_close: time = time(15, 30)
    post_market_end: time = time(16, 0)


@dataclass(frozen=True)
class TradingConfig:
    timezone: ZoneInfo = ZoneInfo("Asia/Kolkata")
    hours: MarketHours = MarketHours()
    instruments: Mapping[str, int] = field(default_factory=lambda: dict(NSE_INSTRUMENTS))

    # Risk defaults (percent of entry)
    default_stop_loss_percent: float = 2.0
    default_target_percent: float = 4.0

    # Algorithmic fallback thresholds
    volume_threshold_multiplier: float = 2.0
    price_change_threshold: float = 1.5
    order_imbalance_threshold: float = 0.3
    default_average_volume: float = 1_000_000

    max_symbols_per_request: int = 20


DEFAULT_CONFIG = TradingConfig()


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value or value in _PLACEHOLDERS:
        return None
    return value


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from e


def _float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class Settings:
    kite_api_key: str | None = None
    kite_api_secret: str | None = None
    kite_redirect_url: str | None = None
    kite_session_file: str = ".kite-session.json"
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com"
    max_tokens: int = 800
    temperature: float = 0.3
    openai_timeout: float = 30.0
    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "INFO"

    @staticmethod
    def from_env(environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        port = _int(env, "PORT", 3001)
        settings = Settings(
            kite_api_key=_clean(env.get("KITE_API_KEY")),
            kite_api_secret=_clean(env.get("KITE_API_SECRET")),
            kite_redirect_url=_clean(env.get("KITE_REDIRECT_URL"))
            or f"http://localhost:{port}/auth/kite/callback",
            kite_session_file=_clean(env.get("KITE_SESSION_FILE")) or ".kite-session.json",
            openai_api_key=_clean(env.get("OPENAI_API_KEY")),
            openai_model=_clean(env.get("OPENAI_MODEL")) or "gpt-4o-mini",
            openai_base_url=_clean(env.get("OPENAI_BASE_URL")) or "https://api.openai.com",
            max_tokens=_int(env, "MAX_TOKENS", 800),
            temperature=_float(env, "OPENAI_TEMPERATURE", 0.3),
            openai_timeout=_float(env, "OPENAI_TIMEOUT", 30.0),
            host=_clean(env.get("HOST")) or "127.0.0.1",
            port=port,
            log_level=(_clean(env.get("KITE_SIGNALS_LOG_LEVEL")) or "INFO").upper(),
        )
        missing = settings.missing()
        if missing:
            logger.warning("missing_env_vars %s", ",".join(missing))
        return settings

    def missing(self) -> list[str]:
        out = []
        if not self.kite_api_key:
            out.append("KITE_API_KEY")
        if not self.kite_api_secret:
            out.append("KITE_API_SECRET")
        if not self.openai_api_key:
            out.append("OPENAI_API_KEY")
        return out
