from __future__ import annotations

from typing import Iterator, Mapping

from kite_signals.config import DEFAULT_CONFIG
from kite_signals.errors import UnknownSymbolError


def _normalize(symbol: object) -> str | None:
    if not isinstance(symbol, str):
        return None
    s = symbol.strip().upper()
    return s or None


class InstrumentRegistry:
    """Static symbol -> instrument token lookup.

    Lookups are case-insensitive. A missing symbol is reported as ``None`` and
    never mapped to a fallback token, since a wrong token routes requests to a
    different security.
    """

    def __init__(self, mapping: Mapping[str, int]) -> None:
        self._tokens: dict[str, int] = {}
        for symbol, token in mapping.items():
            key = _normalize(symbol)
            if key is None:
                raise ValueError(f"Invalid symbol in registry: {symbol!r}")
            self._tokens[key] = int(token)
        self._symbols = {token: symbol for symbol, token in self._tokens.items()}

    def is_valid_symbol(self, symbol: str | None) -> bool:
        key = _normalize(symbol)
        return key is not None and key in self._tokens

    def token_for(self, symbol: str | None) -> int | None:
        key = _normalize(symbol)
        if key is None:
            return None
        return self._tokens.get(key)

    def require_token(self, symbol: str | None) -> int:
        token = self.token_for(symbol)
        if token is None:
            raise UnknownSymbolError(str(symbol))
        return token

    def symbol_for(self, token: int) -> str | None:
        return self._symbols.get(token)

    def symbols(self) -> list[str]:
        return list(self._tokens)

    def tokens(self) -> list[int]:
        return list(self._tokens.values())

    def __contains__(self, symbol: object) -> bool:
        return self.is_valid_symbol(symbol)  # type: ignore[arg-type]

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)


DEFAULT_REGISTRY = InstrumentRegistry(DEFAULT_CONFIG.instruments)
