from __future__ import annotations

from fastapi.testclient import TestClient

from fakes import FakeKite, FakeMarketData
from kite_signals.api.app import create_app
from kite_signals.data.kite_loader import KiteMarketData
from kite_signals.runtime.analyzer import SignalAnalyzer
from kite_signals.store.session_store import MemorySessionStore


def _client(with_kite: bool = True) -> TestClient:
    md = None
    if with_kite:
        md = KiteMarketData(api_key="k", api_secret="s", store=MemorySessionStore(), kite=FakeKite())
    return TestClient(create_app(SignalAnalyzer(FakeMarketData()), md))


def test_health_and_status():
    c = _client()
    assert c.get("/health").json()["status"] == "ok"
    body = c.get("/api/status").json()
    assert body["analysis_type"] == "algorithmic"
    assert body["kite"]["authenticated"] is False
    assert "RELIANCE" in body["symbols"]


def test_analyze_manual_stocks():
    r = _client().post("/api/analyze-manual-stocks", json={"symbols": ["reliance", "NOPE"]})
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["summary"]["totalSymbols"] == 2
    assert body["summary"]["errors"] == 1
    assert body["summary"]["analysisMethod"] == "algorithmic"
    assert [s["symbol"] for s in body["stocks"]] == ["RELIANCE", "NOPE"]
    assert body["stocks"][0]["signal"]["action"] == "BUY"
    assert body["stocks"][1]["error"] == "Invalid symbol: NOPE"


def test_bad_payloads_use_error_shape():
    c = _client()
    for payload in ({"symbols": "RELIANCE"}, {"symbols": []}, {"symbols": ["  "]}, {}):
        r = c.post("/api/analyze-manual-stocks", json=payload)
        assert r.status_code == 400, payload
        err = r.json()["error"]
        assert r.json()["success"] is False
        assert err["code"] == "ValidationError"
        assert err["statusCode"] == 400
        assert err["timestamp"]


def test_too_many_symbols_rejected():
    r = _client().post("/api/analyze-manual-stocks", json={"symbols": ["TCS"] * 21})
    assert r.status_code == 400


def test_kite_login_flow():
    c = _client()
    assert c.get("/api/kite/login-url").json()["login_url"].startswith("https://kite.zerodha.com/")

    r = c.get("/auth/kite/callback", params={"status": "cancelled"})
    assert r.status_code == 400
    assert "request_token missing" in r.json()["error"]["message"]

    r = c.get("/auth/kite/callback", params={"request_token": "rt1", "status": "success"})
    assert r.json() == {"success": True, "user_id": "AB1234", "user_name": "Test User"}
    assert c.get("/api/status").json()["kite"]["authenticated"] is True


def test_login_url_without_kite_is_503():
    r = _client(with_kite=False).get("/api/kite/login-url")
    assert r.status_code == 503
    assert r.json()["error"]["code"] == "AppError"
