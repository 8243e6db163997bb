from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import numpy as np
import pandas as pd
import requests
from kiteconnect import KiteConnect
from kiteconnect.exceptions import KiteException

from kite_signals.config import DEFAULT_CONFIG, TradingConfig
from kite_signals.errors import BrokerError, NotAuthenticatedError
from kite_signals.instruments.registry import DEFAULT_REGISTRY, InstrumentRegistry
from kite_signals.store.session_store import KiteSession, MemorySessionStore, SessionBackend, mask_token, today_ist
from kite_signals.strategy.levels import MarketLevels, compute_market_profile, cpr_from_daily
from kite_signals.types import MarketSnapshot, QuoteSource

logger = logging.getLogger(__name__)

EXCHANGE = "NSE"
CANDLE_COLUMNS = ["time", "open", "high", "low", "close", "volume"]

# kiteconnect re-raises transport errors from requests unchanged
BROKER_ERRORS = (KiteException, requests.RequestException)


def _num(value: Any, default: float = 0.0) -> float:
    try:
        out = float(value)
    except (TypeError, ValueError):
        return default
    return out if np.isfinite(out) else default


def candles_to_frame(rows: list[dict], *, tz: Optional[str] = "UTC") -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=CANDLE_COLUMNS)
    df = pd.DataFrame(rows)
    if "date" in df.columns and "time" not in df.columns:
        df = df.rename(columns={"date": "time"})
    for c in CANDLE_COLUMNS:
        if c not in df.columns:
            raise ValueError(f"Missing '{c}' in historical candles")
    df["time"] = pd.to_datetime(df["time"], utc=True)
    if tz and tz != "UTC":
        df["time"] = df["time"].dt.tz_convert(tz)
    df = df[CANDLE_COLUMNS].copy()
    return df.sort_values("time").reset_index(drop=True)


def average_volume(frame: pd.DataFrame) -> Optional[float]:
    if frame is None or len(frame) == 0:
        return None
    vol = frame["volume"].to_numpy(dtype=float)
    # zero-volume rows are non-trading days
    vol = vol[np.isfinite(vol) & (vol > 0)]
    if vol.size == 0:
        return None
    return float(vol.mean())


class KiteMarketData:
    """Kite Connect adapter: login flow, quotes with fallbacks, candles."""

    def __init__(
        self,
        *,
        api_key: str | None,
        api_secret: str | None,
        store: SessionBackend | None = None,
        registry: InstrumentRegistry = DEFAULT_REGISTRY,
        cfg: TradingConfig = DEFAULT_CONFIG,
        kite: Any = None,
        avg_volume_days: int = 20,
    ) -> None:
        self.api_key = api_key
        self.api_secret = api_secret
        self.store = store if store is not None else MemorySessionStore()
        self.registry = registry
        self.cfg = cfg
        self.avg_volume_days = int(avg_volume_days)
        if kite is None and api_key:
            kite = KiteConnect(api_key=api_key)
        self.kite = kite
        self._session: KiteSession | None = None

    @property
    def is_configured(self) -> bool:
        return self.kite is not None

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    def _require_kite(self) -> Any:
        if self.kite is None:
            raise BrokerError("Kite Connect not initialized: KITE_API_KEY missing", status_code=503)
        return self.kite

    def _require_session(self) -> Any:
        kite = self._require_kite()
        if self._session is None and not self.restore_session():
            raise NotAuthenticatedError()
        return kite

    def login_url(self) -> str:
        return self._require_kite().login_url()

    def create_session(self, request_token: str) -> KiteSession:
        kite = self._require_kite()
        if not self.api_secret:
            raise BrokerError("KITE_API_SECRET missing", status_code=503)
        try:
            data = kite.generate_session(request_token, api_secret=self.api_secret)
        except BROKER_ERRORS as e:
            logger.error("kite_session_failed %s", e)
            raise BrokerError(f"Kite session exchange failed: {e}", status_code=400) from e
        session = KiteSession(
            access_token=str(data["access_token"]),
            user_id=data.get("user_id"),
            user_name=data.get("user_name"),
            day=today_ist(),
        )
        self._activate(session)
        self.store.save(session)
        return session

    def restore_session(self) -> bool:
        if self.kite is None:
            return False
        session = self.store.load()
        if session is None:
            return False
        self._activate(session)
        return True

    def _activate(self, session: KiteSession) -> None:
        self.kite.set_access_token(session.access_token)
        self._session = session
        logger.info("kite_authenticated user=%s token=%s", session.user_id, mask_token(session.access_token))

    def logout(self) -> None:
        self._session = None
        self.store.clear()

    def get_profile(self) -> dict:
        kite = self._require_session()
        try:
            return kite.profile()
        except BROKER_ERRORS as e:
            raise BrokerError(f"profile failed: {e}") from e

    def get_snapshot(self, symbol: str, *, now: datetime | None = None) -> MarketSnapshot:
        token = self.registry.require_token(symbol)
        kite = self._require_session()
        sym = symbol.strip().upper()
        key = f"{EXCHANGE}:{sym}"

        errors: list[str] = []
        data: dict | None = None
        source: QuoteSource = "quote"
        for source, call in (("quote", kite.quote), ("ohlc", kite.ohlc), ("ltp", kite.ltp)):
            try:
                data = call([key]).get(key)
            except BROKER_ERRORS as e:
                errors.append(f"{source}: {e}")
                logger.warning("kite_%s_failed symbol=%s err=%s", source, sym, e)
                continue
            if data:
                break
            errors.append(f"{source}: empty response")
        if not data:
            raise BrokerError(f"All quote methods failed for {sym}: " + "; ".join(errors))

        avg = self._average_volume(token) if source == "quote" else None
        return format_snapshot(
            sym,
            token,
            data,
            source,
            average_volume=avg or self.cfg.default_average_volume,
            now=now,
        )

    def get_levels(self, symbol: str, *, now: datetime | None = None) -> MarketLevels:
        """CPR from the previous day plus today's volume profile; parts that fail are left empty."""
        token = self.registry.require_token(symbol)
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        tz = self.cfg.timezone
        # Kite reads naive datetimes as exchange local time
        local = now.astimezone(tz).replace(tzinfo=None)

        cpr = None
        try:
            daily = self.load_candles(token, "day", local - timedelta(days=10), local, tz=str(tz))
            cpr = cpr_from_daily(daily, before=local.date())
        except BrokerError as e:
            logger.warning("cpr_unavailable symbol=%s err=%s", symbol, e)

        profile = None
        session_open = datetime.combine(local.date(), self.cfg.hours.market_open)
        if local > session_open:
            try:
                minute = self.load_candles(token, "minute", session_open, local, tz=str(tz))
                profile = compute_market_profile(minute)
            except BrokerError as e:
                logger.warning("profile_unavailable symbol=%s err=%s", symbol, e)
        return MarketLevels(cpr=cpr, profile=profile)

    def _average_volume(self, token: int) -> Optional[float]:
        if self.avg_volume_days <= 0:
            return None
        end = datetime.now(timezone.utc)
        start = end - timedelta(days=self.avg_volume_days * 2)
        try:
            frame = self.load_candles(token, "day", start, end)
        except BrokerError:
            return None
        return average_volume(frame.tail(self.avg_volume_days))

    def load_candles(
        self,
        symbol_or_token: str | int,
        interval: str,
        start: datetime,
        end: datetime,
        *,
        tz: Optional[str] = "UTC",
    ) -> pd.DataFrame:
        if isinstance(symbol_or_token, int):
            token = symbol_or_token
        else:
            token = self.registry.require_token(symbol_or_token)
        kite = self._require_session()
        try:
            rows = kite.historical_data(token, start, end, interval)
        except BROKER_ERRORS as e:
            logger.warning("kite_historical_failed token=%s err=%s", token, e)
            raise BrokerError(f"historical data failed: {e}") from e
        return candles_to_frame(rows, tz=tz)

    def status(self) -> dict:
        return {
            "initialized": self.is_configured,
            "authenticated": self.is_authenticated,
            "user_id": self._session.user_id if self._session else None,
            "available_symbols": self.registry.symbols(),
        }


def format_snapshot(
    symbol: str,
    token: int,
    data: dict,
    source: QuoteSource,
    *,
    average_volume: float,
    now: datetime | None = None,
) -> MarketSnapshot:
    last = _num(data.get("last_price"))
    ohlc = data.get("ohlc") or {}
    return MarketSnapshot(
        symbol=symbol,
        instrument_token=token,
        last_price=last,
        volume=_num(data.get("volume", data.get("volume_traded"))),
        buy_quantity=_num(data.get("buy_quantity")),
        sell_quantity=_num(data.get("sell_quantity")),
        open=_num(ohlc.get("open"), last),
        high=_num(ohlc.get("high"), last),
        low=_num(ohlc.get("low"), last),
        close=_num(ohlc.get("close"), last),
        average_volume=float(average_volume),
        source=source,
        time_utc=now or datetime.now(timezone.utc),
    )
