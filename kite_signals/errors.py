from __future__ import annotations

from datetime import datetime, timezone


class AppError(RuntimeError):
    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code

    @property
    def code(self) -> str:
        return type(self).__name__

    @property
    def message(self) -> str:
        return str(self)


class ConfigError(AppError):
    status_code = 500


class ValidationError(AppError):
    status_code = 400


class UnknownSymbolError(ValidationError):
    def __init__(self, symbol: str) -> None:
        super().__init__(f"Invalid symbol: {symbol}")
        self.symbol = symbol


class NotAuthenticatedError(AppError):
    status_code = 401

    def __init__(self, message: str = "Not authenticated with Kite Connect") -> None:
        super().__init__(message)


class BrokerError(AppError):
    status_code = 502


class LLMError(AppError):
    status_code = 503

    def __init__(self, message: str) -> None:
        super().__init__(f"OpenAI API Error: {message}")


def format_error_response(exc: Exception) -> dict:
    if isinstance(exc, AppError):
        status_code, code, message = exc.status_code, exc.code, exc.message
    else:
        status_code, code, message = 500, "InternalServerError", "Internal Server Error"
    return {
        "success": False,
        "error": {
            "message": message,
            "code": code,
            "statusCode": status_code,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    }
