from __future__ import annotations

from typing import Optional

from kite_signals.strategy.levels import MarketLevels
from kite_signals.types import MarketPhase, MarketSnapshot

SYSTEM_PROMPT = (
    "You are an expert Indian stock market analyst specializing in NSE equities. "
    "Analyze real-time market data and provide clear BUY/SELL/HOLD recommendations "
    "with specific entry and exit levels."
)

RESPONSE_FORMAT = """Respond with exactly these labeled lines:
SIGNAL: BUY | SELL | HOLD | NO_TRADE
CONFIDENCE: <integer 0-100>
ENTRY_PRICE: ₹<price>
TARGET_PRICE: ₹<price>
STOP_LOSS: ₹<price>
REASONING: <one or two sentences on volume, price action and order book imbalance>"""


def _levels_block(levels: Optional[MarketLevels], price: float) -> str:
    if levels is None:
        return ""
    out = ""
    c = levels.cpr
    if c is not None:
        out += (
            f"CPR (previous day):\n"
            f"- Pivot: ₹{c.pivot:.2f} TC: ₹{c.top_central:.2f} BC: ₹{c.bottom_central:.2f}\n"
            f"- Width: {c.width_percent:.3f}% ({c.cpr_type}), bias {c.bias}, price {c.position(price)}\n"
            f"- R1: ₹{c.resistance1:.2f} R2: ₹{c.resistance2:.2f} S1: ₹{c.support1:.2f} S2: ₹{c.support2:.2f}\n"
            f"\n"
        )
    p = levels.profile
    if p is not None:
        out += (
            f"MARKET PROFILE (today):\n"
            f"- POC: ₹{p.point_of_control:.2f}\n"
            f"- Value Area: ₹{p.value_area_low:.2f} - ₹{p.value_area_high:.2f}\n"
            f"- Profile Type: {p.profile_type}\n"
            f"\n"
        )
    return out


def build_analysis_prompt(
    snapshot: MarketSnapshot,
    phase: MarketPhase,
    levels: Optional[MarketLevels] = None,
) -> str:
    s = snapshot
    return (
        f"Analyze {s.symbol} (NSE) for an intraday trading signal.\n"
        f"\n"
        f"MARKET PHASE: {phase.value}\n"
        f"CURRENT DATA:\n"
        f"- Price: ₹{s.last_price:.2f}\n"
        f"- Change: {s.price_change_percent:.2f}%\n"
        f"- Volume: {int(s.volume):,}\n"
        f"- Volume Ratio: {s.volume_ratio:.2f}x\n"
        f"- OHLC: O:{s.open:.2f} H:{s.high:.2f} L:{s.low:.2f} C:{s.close:.2f}\n"
        f"- Buy Quantity: {int(s.buy_quantity)}\n"
        f"- Sell Quantity: {int(s.sell_quantity)}\n"
        f"- Order Imbalance: {s.order_imbalance * 100:.1f}%\n"
        f"\n"
        f"{_levels_block(levels, s.last_price)}"
        f"{RESPONSE_FORMAT}"
    )
