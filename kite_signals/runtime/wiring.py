from __future__ import annotations

from kite_signals.config import DEFAULT_CONFIG, Settings, TradingConfig
from kite_signals.data.kite_loader import KiteMarketData
from kite_signals.instruments.registry import InstrumentRegistry
from kite_signals.llm.client import OpenAIChatClient
from kite_signals.runtime.analyzer import SignalAnalyzer
from kite_signals.store.session_store import SessionStore


def build_market_data(settings: Settings, cfg: TradingConfig = DEFAULT_CONFIG) -> KiteMarketData:
    md = KiteMarketData(
        api_key=settings.kite_api_key,
        api_secret=settings.kite_api_secret,
        store=SessionStore(settings.kite_session_file),
        registry=InstrumentRegistry(cfg.instruments),
        cfg=cfg,
    )
    md.restore_session()
    return md


def build_analyzer(
    settings: Settings,
    market_data: KiteMarketData,
    cfg: TradingConfig = DEFAULT_CONFIG,
) -> SignalAnalyzer:
    return SignalAnalyzer(
        market_data,
        OpenAIChatClient.from_settings(settings),
        cfg=cfg,
        registry=market_data.registry,
    )
