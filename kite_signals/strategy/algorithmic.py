from __future__ import annotations

from kite_signals.config import DEFAULT_CONFIG, TradingConfig
from kite_signals.policy.grade import make_extracted_signal
from kite_signals.types import Action, ExtractedSignal, MarketSnapshot

MODERATE_VOLUME_RATIO = 1.5
MODERATE_PRICE_CHANGE = 0.8


def algorithmic_signal(snapshot: MarketSnapshot, cfg: TradingConfig = DEFAULT_CONFIG) -> ExtractedSignal:
    volume_ratio = snapshot.volume_ratio
    change = snapshot.price_change_percent
    imbalance = snapshot.order_imbalance

    action, confidence = Action.HOLD, 50
    if (
        volume_ratio > cfg.volume_threshold_multiplier
        and change > cfg.price_change_threshold
        and imbalance > cfg.order_imbalance_threshold
    ):
        action, confidence = Action.BUY, 85
    elif (
        volume_ratio > cfg.volume_threshold_multiplier
        and change < -cfg.price_change_threshold
        and imbalance < -cfg.order_imbalance_threshold
    ):
        action, confidence = Action.SELL, 80
    elif volume_ratio > MODERATE_VOLUME_RATIO and abs(change) > MODERATE_PRICE_CHANGE:
        action = Action.BUY if change > 0 else Action.SELL
        confidence = 65

    entry = float(snapshot.last_price)
    sl_pct = cfg.default_stop_loss_percent / 100.0
    tp_pct = cfg.default_target_percent / 100.0
    if action == Action.SELL:
        stop_loss, target = entry * (1 + sl_pct), entry * (1 - tp_pct)
    else:
        stop_loss, target = entry * (1 - sl_pct), entry * (1 + tp_pct)

    return make_extracted_signal(
        action=action,
        confidence=confidence,
        entry_price=entry,
        target=target,
        stop_loss=stop_loss,
    )


def explain(snapshot: MarketSnapshot, signal: ExtractedSignal) -> str:
    change = snapshot.price_change_percent
    vr = snapshot.volume_ratio
    if signal.action == Action.BUY and signal.confidence >= 85:
        return (
            f"Strong bullish breakout: {change:.2f}% gain with {vr:.1f}x volume "
            f"and {snapshot.order_imbalance * 100:.1f}% buy imbalance"
        )
    if signal.action == Action.SELL and signal.confidence >= 80:
        return f"Bearish breakdown: {abs(change):.2f}% decline with {vr:.1f}x volume and strong sell pressure"
    if signal.is_directional:
        return f"Moderate {signal.action.value.lower()} signal: {abs(change):.2f}% move with above-average volume"
    return "Neutral market conditions - no clear directional bias"
