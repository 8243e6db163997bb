from __future__ import annotations

from kite_signals.policy.grade import clamp_confidence, derive_grade, make_extracted_signal
from kite_signals.types import Action, Grade


def test_grade_boundaries_for_directional_actions():
    for action in (Action.BUY, Action.SELL):
        assert derive_grade(action, 100) == Grade.EXCELLENT
        assert derive_grade(action, 80) == Grade.EXCELLENT
        assert derive_grade(action, 79) == Grade.GOOD
        assert derive_grade(action, 70) == Grade.GOOD
        assert derive_grade(action, 69) == Grade.POOR
        assert derive_grade(action, 0) == Grade.POOR


def test_non_directional_actions_are_always_poor():
    assert derive_grade(Action.HOLD, 95) == Grade.POOR
    assert derive_grade(Action.NO_TRADE, 100) == Grade.POOR


def test_make_extracted_signal_derives_grade_and_clamps():
    s = make_extracted_signal(action=Action.BUY, confidence=120, entry_price=100, target=104, stop_loss=98)
    assert s.confidence == 100
    assert s.grade == Grade.EXCELLENT
    assert s.is_directional
    assert s.risk_reward == 2.0


def test_risk_reward_needs_all_prices():
    assert make_extracted_signal(action=Action.BUY, confidence=75, entry_price=100).risk_reward is None
    flat = make_extracted_signal(action=Action.BUY, confidence=75, entry_price=100, target=110, stop_loss=100)
    assert flat.risk_reward is None


def test_defaults():
    s = make_extracted_signal()
    assert s.action == Action.NO_TRADE
    assert s.confidence == 0
    assert s.grade == Grade.POOR
    assert not s.is_directional


def test_clamp_confidence_handles_non_finite():
    assert clamp_confidence(float("inf")) == 100
    assert clamp_confidence(float("-inf")) == 0
    assert clamp_confidence(float("nan")) == 0
    assert clamp_confidence(-5) == 0
    assert clamp_confidence(79.6) == 80
