from __future__ import annotations

from datetime import time

import pytest

from kite_signals.config import DEFAULT_CONFIG, Settings
from kite_signals.errors import ConfigError


def test_default_market_hours():
    h = DEFAULT_CONFIG.hours
    assert (h.pre_market_start, h.market_open, h.market_close, h.post_market_end) == (
        time(9, 0),
        time(9, 15),
        time(15, 30),
        time(16, 0),
    )
    assert str(DEFAULT_CONFIG.timezone) == "Asia/Kolkata"


def test_settings_from_env():
    s = Settings.from_env(
        {
            "KITE_API_KEY": "k",
            "KITE_API_SECRET": "s",
            "OPENAI_API_KEY": "your_openai_api_key_here",
            "PORT": "4000",
            "OPENAI_TEMPERATURE": "0.5",
            "KITE_SIGNALS_LOG_LEVEL": "debug",
        }
    )
    assert s.kite_api_key == "k"
    assert s.openai_api_key is None
    assert s.port == 4000
    assert s.kite_redirect_url == "http://localhost:4000/auth/kite/callback"
    assert s.temperature == 0.5
    assert s.log_level == "DEBUG"
    assert s.missing() == ["OPENAI_API_KEY"]


def test_settings_defaults():
    s = Settings.from_env({})
    assert s.openai_model == "gpt-4o-mini"
    assert s.max_tokens == 800
    assert s.kite_session_file == ".kite-session.json"
    assert s.missing() == ["KITE_API_KEY", "KITE_API_SECRET", "OPENAI_API_KEY"]


def test_bad_numeric_env_raises():
    with pytest.raises(ConfigError):
        Settings.from_env({"PORT": "abc"})
    with pytest.raises(ConfigError):
        Settings.from_env({"OPENAI_TEMPERATURE": "warm"})
