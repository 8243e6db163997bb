from __future__ import annotations

import pytest

from kite_signals.errors import UnknownSymbolError, ValidationError
from kite_signals.instruments.registry import DEFAULT_REGISTRY, InstrumentRegistry


def test_lookup_is_case_insensitive():
    assert DEFAULT_REGISTRY.is_valid_symbol("reliance")
    assert DEFAULT_REGISTRY.is_valid_symbol("RELIANCE")
    assert DEFAULT_REGISTRY.token_for("reliance") == DEFAULT_REGISTRY.token_for("RELIANCE") == 738561
    assert DEFAULT_REGISTRY.token_for(" Tcs ") == 2953217


def test_unknown_symbol_is_not_found():
    assert not DEFAULT_REGISTRY.is_valid_symbol("AXISBANK")
    assert DEFAULT_REGISTRY.token_for("AXISBANK") is None


def test_blank_and_non_string_symbols_are_invalid():
    for bad in ("", "   ", None):
        assert not DEFAULT_REGISTRY.is_valid_symbol(bad)
        assert DEFAULT_REGISTRY.token_for(bad) is None


def test_require_token_raises_validation_error():
    with pytest.raises(UnknownSymbolError) as ei:
        DEFAULT_REGISTRY.require_token("NOPE")
    assert isinstance(ei.value, ValidationError)
    assert ei.value.status_code == 400


def test_custom_registry_normalises_keys():
    reg = InstrumentRegistry({"infy": 408065, "Sbin": 779521})
    assert reg.symbols() == ["INFY", "SBIN"]
    assert reg.tokens() == [408065, 779521]
    assert "sbin" in reg
    assert len(reg) == 2
    assert reg.symbol_for(779521) == "SBIN"
    assert reg.symbol_for(1) is None


def test_registry_rejects_blank_symbol():
    with pytest.raises(ValueError):
        InstrumentRegistry({" ": 1})
