from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Literal, Optional


class MarketPhase(str, Enum):
    PRE_MARKET = "pre_market"
    REGULAR = "regular"
    POST_MARKET = "post_market"
    CLOSED = "closed"


class Action(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
    NO_TRADE = "NO_TRADE"


class Grade(str, Enum):
    POOR = "POOR"
    GOOD = "GOOD"
    EXCELLENT = "EXCELLENT"


QuoteSource = Literal["quote", "ohlc", "ltp"]
AnalysisMethod = Literal["llm", "algorithmic", "error"]


@dataclass(frozen=True)
class ExtractedSignal:
    action: Action
    confidence: int
    entry_price: Optional[float]
    target: Optional[float]
    stop_loss: Optional[float]
    grade: Grade

    @property
    def is_directional(self) -> bool:
        return self.action in (Action.BUY, Action.SELL)

    @property
    def risk_reward(self) -> Optional[float]:
        if self.entry_price is None or self.target is None or self.stop_loss is None:
            return None
        risk = abs(self.entry_price - self.stop_loss)
        if risk <= 0:
            return None
        return abs(self.target - self.entry_price) / risk


@dataclass(frozen=True)
class MarketSnapshot:
    symbol: str
    instrument_token: int
    last_price: float
    volume: float
    buy_quantity: float
    sell_quantity: float
    open: float
    high: float
    low: float
    close: float
    average_volume: float
    source: QuoteSource
    time_utc: datetime

    @property
    def price_change_percent(self) -> float:
        if self.close <= 0:
            return 0.0
        return (self.last_price - self.close) / self.close * 100.0

    @property
    def volume_ratio(self) -> float:
        if self.average_volume <= 0:
            return 0.0
        return self.volume / self.average_volume

    @property
    def order_imbalance(self) -> float:
        total = self.buy_quantity + self.sell_quantity
        if total <= 0:
            return 0.0
        return (self.buy_quantity - self.sell_quantity) / total


@dataclass(frozen=True)
class AnalysisRecord:
    id: str
    time_utc: datetime
    symbol: str
    market_phase: MarketPhase
    signal: Optional[ExtractedSignal]
    method: AnalysisMethod
    last_price: Optional[float]
    reasoning: str
    error: Optional[str] = None
