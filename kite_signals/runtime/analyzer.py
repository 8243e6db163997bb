from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, Optional, Protocol

from kite_signals.config import DEFAULT_CONFIG, TradingConfig
from kite_signals.errors import AppError, LLMError
from kite_signals.execution.signal_writer import make_record
from kite_signals.instruments.registry import DEFAULT_REGISTRY, InstrumentRegistry
from kite_signals.llm.extractor import parse_model_output
from kite_signals.llm.prompts import SYSTEM_PROMPT, build_analysis_prompt
from kite_signals.session.market_phase import resolve_phase
from kite_signals.strategy.algorithmic import algorithmic_signal, explain
from kite_signals.strategy.levels import MarketLevels
from kite_signals.types import Action, AnalysisRecord, MarketPhase, MarketSnapshot

logger = logging.getLogger(__name__)


class MarketDataSource(Protocol):
    def get_snapshot(self, symbol: str, *, now: datetime | None = None) -> MarketSnapshot: ...

    def get_levels(self, symbol: str, *, now: datetime | None = None) -> MarketLevels: ...


class ChatModel(Protocol):
    def complete(self, system: str, user: str) -> str: ...


@dataclass(frozen=True)
class AnalysisSummary:
    total: int
    buy: int
    sell: int
    no_trade: int
    errors: int


@dataclass(frozen=True)
class AnalysisBatch:
    time_utc: datetime
    market_phase: MarketPhase
    records: list[AnalysisRecord] = field(default_factory=list)

    @property
    def summary(self) -> AnalysisSummary:
        buy = sell = no_trade = errors = 0
        for r in self.records:
            if r.signal is None:
                errors += 1
            elif r.signal.action == Action.BUY:
                buy += 1
            elif r.signal.action == Action.SELL:
                sell += 1
            else:
                no_trade += 1
        return AnalysisSummary(total=len(self.records), buy=buy, sell=sell, no_trade=no_trade, errors=errors)


def _reasoning(text: str) -> str:
    for line in text.splitlines():
        s = line.strip().strip("*").strip()
        if s.upper().startswith("REASONING"):
            return s.split(":", 1)[-1].strip(" *") or text.strip()
    return text.strip()


def _utc(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def unique_symbols(symbols: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for s in symbols:
        key = s.strip().upper() if isinstance(s, str) else ""
        if key in seen:
            continue
        seen.add(key)
        out.append(s)
    return out


class SignalAnalyzer:
    def __init__(
        self,
        market_data: MarketDataSource,
        llm: Optional[ChatModel] = None,
        *,
        cfg: TradingConfig = DEFAULT_CONFIG,
        registry: InstrumentRegistry = DEFAULT_REGISTRY,
    ) -> None:
        self.market_data = market_data
        self.llm = llm
        self.cfg = cfg
        self.registry = registry

    @property
    def analysis_type(self) -> str:
        return "llm" if self.llm is not None else "algorithmic"

    def _levels(self, symbol: str, now: datetime) -> MarketLevels:
        try:
            return self.market_data.get_levels(symbol, now=now)
        except AppError as e:
            logger.warning("levels_failed symbol=%s err=%s", symbol, e)
            return MarketLevels()

    def analyze_symbol(self, symbol: str, now: datetime | None = None) -> AnalysisRecord:
        now = _utc(now)
        phase = resolve_phase(now, self.cfg.timezone, self.cfg.hours)
        sym = symbol.strip().upper() if isinstance(symbol, str) else str(symbol)

        if not self.registry.is_valid_symbol(sym):
            logger.info("unknown_symbol %s", sym)
            return make_record(
                symbol=sym, market_phase=phase, signal=None, method="error",
                reasoning="", error=f"Invalid symbol: {sym}", when=now,
            )

        try:
            snapshot = self.market_data.get_snapshot(sym, now=now)
        except AppError as e:
            logger.warning("snapshot_failed symbol=%s err=%s", sym, e)
            return make_record(
                symbol=sym, market_phase=phase, signal=None, method="error",
                reasoning="", error=str(e), when=now,
            )

        if self.llm is not None:
            prompt = build_analysis_prompt(snapshot, phase, self._levels(sym, now))
            try:
                text = self.llm.complete(SYSTEM_PROMPT, prompt)
            except LLMError as e:
                logger.warning("llm_failed symbol=%s err=%s fallback=algorithmic", sym, e)
            else:
                signal = parse_model_output(text)
                if signal.action != Action.NO_TRADE or signal.confidence > 0:
                    logger.info(
                        "signal symbol=%s action=%s confidence=%d grade=%s method=llm",
                        sym, signal.action.value, signal.confidence, signal.grade.value,
                    )
                    return make_record(
                        symbol=sym, market_phase=phase, signal=signal, method="llm",
                        last_price=snapshot.last_price, reasoning=_reasoning(text), when=now,
                    )
                logger.warning("llm_output_unparsed symbol=%s fallback=algorithmic", sym)

        signal = algorithmic_signal(snapshot, self.cfg)
        logger.info(
            "signal symbol=%s action=%s confidence=%d grade=%s method=algorithmic",
            sym, signal.action.value, signal.confidence, signal.grade.value,
        )
        return make_record(
            symbol=sym, market_phase=phase, signal=signal, method="algorithmic",
            last_price=snapshot.last_price, reasoning=explain(snapshot, signal), when=now,
        )

    def analyze(self, symbols: Iterable[str], now: datetime | None = None) -> AnalysisBatch:
        now = _utc(now)
        records = [self.analyze_symbol(s, now=now) for s in unique_symbols(symbols)]
        # errors last, then highest confidence first
        records.sort(key=lambda r: (r.signal is None, -(r.signal.confidence if r.signal else 0)))
        batch = AnalysisBatch(
            time_utc=now,
            market_phase=resolve_phase(now, self.cfg.timezone, self.cfg.hours),
            records=records,
        )
        s = batch.summary
        logger.info("analysis_complete total=%d buy=%d sell=%d no_trade=%d errors=%d", s.total, s.buy, s.sell, s.no_trade, s.errors)
        return batch
