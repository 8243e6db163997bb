from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from kite_signals.config import Settings
from kite_signals.errors import LLMError

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """Minimal chat-completions client over httpx."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4o-mini",
        max_tokens: int = 800,
        temperature: float = 0.3,
        timeout: float = 30.0,
        base_url: str = "https://api.openai.com",
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.temperature = temperature
        self._client = httpx.Client(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["OpenAIChatClient"]:
        if not settings.openai_api_key:
            logger.warning("openai_not_configured using algorithmic analysis")
            return None
        return cls(
            api_key=settings.openai_api_key,
            model=settings.openai_model,
            max_tokens=settings.max_tokens,
            temperature=settings.temperature,
            timeout=settings.openai_timeout,
            base_url=settings.openai_base_url,
        )

    def complete(self, system: str, user: str) -> str:
        body = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        try:
            resp = self._client.post("/v1/chat/completions", json=body)
        except httpx.HTTPError as e:
            raise LLMError(f"request failed: {e}") from e
        if resp.status_code != 200:
            raise LLMError(f"HTTP {resp.status_code}: {resp.text[:200]}")
        try:
            data = resp.json()
        except ValueError as e:
            raise LLMError("response is not JSON") from e
        return _message_text(data)

    def close(self) -> None:
        self._client.close()


def _message_text(payload: dict[str, Any]) -> str:
    try:
        content = payload["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise LLMError("unexpected response shape") from e
    if not isinstance(content, str):
        raise LLMError("empty completion")
    return content
