from __future__ import annotations

import math

from kite_signals.types import Action, ExtractedSignal, Grade

EXCELLENT_MIN_CONFIDENCE = 80
GOOD_MIN_CONFIDENCE = 70


def derive_grade(action: Action, confidence: int) -> Grade:
    # Tiers overlap, so order matters: highest tier first
    if action in (Action.BUY, Action.SELL) and confidence >= EXCELLENT_MIN_CONFIDENCE:
        return Grade.EXCELLENT
    if action in (Action.BUY, Action.SELL) and confidence >= GOOD_MIN_CONFIDENCE:
        return Grade.GOOD
    return Grade.POOR


def clamp_confidence(value: float | int) -> int:
    if math.isnan(value):
        return 0
    if math.isinf(value):
        return 100 if value > 0 else 0
    return max(0, min(100, int(round(value))))


def make_extracted_signal(
    *,
    action: Action = Action.NO_TRADE,
    confidence: float | int = 0,
    entry_price: float | None = None,
    target: float | None = None,
    stop_loss: float | None = None,
) -> ExtractedSignal:
    conf = clamp_confidence(confidence)
    return ExtractedSignal(
        action=action,
        confidence=conf,
        entry_price=None if entry_price is None else float(entry_price),
        target=None if target is None else float(target),
        stop_loss=None if stop_loss is None else float(stop_loss),
        grade=derive_grade(action, conf),
    )
