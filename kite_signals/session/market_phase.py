from __future__ import annotations

from datetime import datetime, time, timezone
from zoneinfo import ZoneInfo

from kite_signals.config import DEFAULT_CONFIG, MarketHours, TradingConfig
from kite_signals.types import MarketPhase

TZ_KOLKATA = ZoneInfo("Asia/Kolkata")

# Saturday, Sunday
_WEEKEND = (5, 6)


def hhmm(t: time) -> int:
    return t.hour * 100 + t.minute


def resolve_phase(
    now_utc: datetime,
    tz: ZoneInfo | None = None,
    hours: MarketHours = DEFAULT_CONFIG.hours,
) -> MarketPhase:
    dt = now_utc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)

    local = dt.astimezone(tz if tz is not None else TZ_KOLKATA)
    if local.weekday() in _WEEKEND:
        return MarketPhase.CLOSED

    now = hhmm(local.time())
    pre_start = hhmm(hours.pre_market_start)
    open_ = hhmm(hours.market_open)
    close = hhmm(hours.market_close)
    post_end = hhmm(hours.post_market_end)

    # First match wins; intervals may overlap when boundaries coincide
    if pre_start <= now < open_:
        return MarketPhase.PRE_MARKET
    if open_ <= now <= close:
        return MarketPhase.REGULAR
    if close < now <= post_end:
        return MarketPhase.POST_MARKET
    return MarketPhase.CLOSED


def get_market_phase(cfg: TradingConfig = DEFAULT_CONFIG, now: datetime | None = None) -> MarketPhase:
    return resolve_phase(now or datetime.now(timezone.utc), cfg.timezone, cfg.hours)


def is_trading_phase(phase: MarketPhase) -> bool:
    return phase == MarketPhase.REGULAR
