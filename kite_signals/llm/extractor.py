"""Pull structured trading fields out of free-text model output.

The model is asked to answer with labeled lines such as::

    **SIGNAL:** BUY
    **CONFIDENCE:** 85%
    **ENTRY_PRICE:** ₹1141.00
    **TARGET_PRICE:** ₹1162.93
    **STOP_LOSS:** ₹1137.00

Each field is matched independently and defaults when absent, so partial or
drifting output still yields a usable record. Nothing here raises on bad
input.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Optional

from kite_signals.policy.grade import make_extracted_signal
from kite_signals.types import Action, ExtractedSignal

_ACTION_WORDS: dict[str, Action] = {
    "BUY": Action.BUY,
    "LONG": Action.BUY,
    "SELL": Action.SELL,
    "SHORT": Action.SELL,
    "HOLD": Action.HOLD,
    "NO_TRADE": Action.NO_TRADE,
    "NO_GOOD": Action.NO_TRADE,
    "NO_SIGNAL": Action.NO_TRADE,
    "NONE": Action.NO_TRADE,
    "WAIT": Action.NO_TRADE,
}


def _labeled(label: str, value: str) -> re.Pattern[str]:
    # Optional markdown bold around the label and/or after the colon
    return re.compile(
        rf"(?<![A-Z0-9_])\**\s*(?:{label})\s*\**\s*:\s*\**\s*{value}",
        re.IGNORECASE,
    )


_PRICE = r"(?:₹|RS\.?|INR)?\s*([0-9][0-9,]*(?:\.[0-9]+)?)"

# Only known action words count, so headings like "TRADING SIGNAL: Analysis" are skipped
_ACTION_VALUE = "|".join(
    w.replace("_", r"[_\s\-]") for w in sorted(_ACTION_WORDS, key=len, reverse=True)
)

_ACTION_RE = _labeled(r"SIGNAL|ACTION", rf"({_ACTION_VALUE})(?![A-Z0-9_])")
_CONFIDENCE_RE = _labeled(r"CONFIDENCE", r"([0-9]+(?:\.[0-9]+)?)")
_ENTRY_RE = _labeled(r"ENTRY(?:[_ ]PRICE)?", _PRICE)
_TARGET_RE = _labeled(r"TARGET(?:[_ ]PRICE)?", _PRICE)
_STOP_RE = _labeled(r"STOP[_ ]?LOSS", _PRICE)
_JSON_DECODER = json.JSONDecoder()


def parse_action(word: Any) -> Action:
    if not isinstance(word, str):
        return Action.NO_TRADE
    key = re.sub(r"[\s\-]+", "_", word.strip().upper())
    return _ACTION_WORDS.get(key, Action.NO_TRADE)


def parse_confidence(value: Any) -> int:
    """0-100 integer; fractions in (0, 1] are read as probabilities."""
    try:
        conf = float(str(value).strip().rstrip("%"))
    except (TypeError, ValueError):
        return 0
    if math.isnan(conf):
        return 0
    if math.isinf(conf):
        return 100 if conf > 0 else 0
    if 0 < conf <= 1 and not float(conf).is_integer():
        conf *= 100
    return max(0, min(100, int(round(conf))))


def _price(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw.replace(",", ""))
    except ValueError:
        return None


def _search(pattern: re.Pattern[str], text: str) -> Optional[str]:
    m = pattern.search(text)
    return m.group(1) if m else None


def extract_signal(text: Optional[str]) -> ExtractedSignal:
    if not isinstance(text, str):
        text = ""

    action_raw = _search(_ACTION_RE, text)
    confidence_raw = _search(_CONFIDENCE_RE, text)

    return make_extracted_signal(
        action=parse_action(action_raw) if action_raw is not None else Action.NO_TRADE,
        confidence=parse_confidence(confidence_raw) if confidence_raw is not None else 0,
        entry_price=_price(_search(_ENTRY_RE, text)),
        target=_price(_search(_TARGET_RE, text)),
        stop_loss=_price(_search(_STOP_RE, text)),
    )


def _json_price(payload: dict, *keys: str) -> Optional[float]:
    for k in keys:
        v = payload.get(k)
        if v is None:
            continue
        try:
            return float(str(v).replace(",", "").lstrip("₹"))
        except ValueError:
            continue
    return None


def _first_json_object(text: str) -> Optional[dict]:
    # Decode from each "{" so prose braces around the object do not matter
    start = text.find("{")
    while start != -1:
        try:
            payload, _ = _JSON_DECODER.raw_decode(text, start)
        except ValueError:
            payload = None
        if isinstance(payload, dict) and ("action" in payload or "signal" in payload):
            return payload
        start = text.find("{", start + 1)
    return None


def extract_json_signal(text: Optional[str]) -> Optional[ExtractedSignal]:
    if not isinstance(text, str):
        return None
    payload = _first_json_object(text)
    if payload is None:
        return None

    action_raw = payload.get("action", payload.get("signal"))
    if action_raw is None:
        return None

    return make_extracted_signal(
        action=parse_action(action_raw),
        confidence=parse_confidence(payload.get("confidence", 0)),
        entry_price=_json_price(payload, "entryPrice", "entry_price", "entry"),
        target=_json_price(payload, "target", "targetPrice", "target_price"),
        stop_loss=_json_price(payload, "stopLoss", "stop_loss"),
    )


def parse_model_output(text: Optional[str]) -> ExtractedSignal:
    return extract_json_signal(text) or extract_signal(text)
