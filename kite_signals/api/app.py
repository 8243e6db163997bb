"""HTTP boundary for manual symbol analysis.

Request bodies are validated with pydantic and turned into typed records
before anything else sees them.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from kite_signals.config import DEFAULT_CONFIG, TradingConfig
from kite_signals.data.kite_loader import KiteMarketData
from kite_signals.errors import AppError, ValidationError, format_error_response
from kite_signals.execution.signal_writer import record_to_dict
from kite_signals.runtime.analyzer import SignalAnalyzer
from kite_signals.session.market_phase import resolve_phase

logger = logging.getLogger(__name__)


class AnalyzeRequest(BaseModel):
    symbols: list[str] = Field(..., min_length=1, max_length=DEFAULT_CONFIG.max_symbols_per_request)

    @field_validator("symbols")
    @classmethod
    def _non_blank(cls, v: list[str]) -> list[str]:
        cleaned = [s.strip().upper() for s in v]
        if any(not s for s in cleaned):
            raise ValueError("symbols must be non-empty strings")
        return cleaned


def _error(exc: Exception) -> JSONResponse:
    body = format_error_response(exc)
    return JSONResponse(status_code=body["error"]["statusCode"], content=body)


def create_app(
    analyzer: SignalAnalyzer,
    market_data: Optional[KiteMarketData] = None,
    cfg: TradingConfig = DEFAULT_CONFIG,
) -> FastAPI:
    app = FastAPI(title="kite-signals")

    @app.exception_handler(AppError)
    async def _app_error(_request: Request, exc: AppError) -> JSONResponse:
        logger.warning("request_failed code=%s msg=%s", exc.code, exc)
        return _error(exc)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(_request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0] if exc.errors() else {}
        where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
        msg = first.get("msg", "invalid request")
        return _error(ValidationError(f"{where}: {msg}" if where else msg))

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok", "time_utc": datetime.now(timezone.utc).isoformat()}

    @app.get("/api/status")
    def status() -> dict:
        phase = resolve_phase(datetime.now(timezone.utc), cfg.timezone, cfg.hours)
        return {
            "status": "running",
            "market_phase": phase.value,
            "analysis_type": analyzer.analysis_type,
            "kite": market_data.status() if market_data is not None else None,
            "symbols": analyzer.registry.symbols(),
        }

    @app.get("/api/kite/login-url")
    def login_url() -> dict:
        if market_data is None:
            raise AppError("Kite Connect not configured", status_code=503)
        return {"success": True, "login_url": market_data.login_url()}

    @app.get("/auth/kite/callback")
    def kite_callback(request_token: str = "", status: str = "") -> dict:
        if market_data is None:
            raise AppError("Kite Connect not configured", status_code=503)
        if not request_token:
            raise ValidationError(f"request_token missing (status={status or 'unknown'})")
        session = market_data.create_session(request_token)
        return {"success": True, "user_id": session.user_id, "user_name": session.user_name}

    @app.post("/api/analyze-manual-stocks")
    def analyze_manual_stocks(payload: AnalyzeRequest) -> dict:
        batch = analyzer.analyze(payload.symbols)
        s = batch.summary
        return {
            "success": True,
            "market_phase": batch.market_phase.value,
            "summary": {
                "totalSymbols": s.total,
                "buySignals": s.buy,
                "sellSignals": s.sell,
                "noTradeSignals": s.no_trade,
                "errors": s.errors,
                "analysisMethod": analyzer.analysis_type,
            },
            "stocks": [record_to_dict(r) for r in batch.records],
            "timestamp": batch.time_utc.isoformat(),
        }

    return app
