# speechcoach/core/errors.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

log = logging.getLogger("errors")


class ErrorCode(str, Enum):
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    API_KEY_INVALID = "API_KEY_INVALID"
    API_KEY_MISSING = "API_KEY_MISSING"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    API_SERVER_ERROR = "API_SERVER_ERROR"
    API_UNAUTHORIZED = "API_UNAUTHORIZED"
    NOT_FOUND = "NOT_FOUND"
    STORAGE_ERROR = "STORAGE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUDIO_ERROR = "AUDIO_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.NETWORK_ERROR: "Network connection error. Please check your internet connection.",
    ErrorCode.TIMEOUT_ERROR: "Request timed out. Please try again.",
    ErrorCode.API_KEY_INVALID: "Invalid API key. Please check your API key and try again.",
    ErrorCode.API_KEY_MISSING: "API key is missing. Please configure your API key in settings.",
    ErrorCode.API_RATE_LIMIT: "API rate limit exceeded. Please try again later.",
    ErrorCode.API_SERVER_ERROR: "Server error. Please try again later.",
    ErrorCode.API_UNAUTHORIZED: "Unauthorized access. Please check your API key.",
    ErrorCode.NOT_FOUND: "Resource not found.",
    ErrorCode.STORAGE_ERROR: "Storage error. Please try again.",
    ErrorCode.VALIDATION_ERROR: "Invalid input.",
    ErrorCode.AUDIO_ERROR: "Audio could not be processed.",
    ErrorCode.UNKNOWN_ERROR: "An unexpected error occurred.",
}

# Status returned to our own clients (not the vendor's status)
HTTP_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.NETWORK_ERROR: 502,
    ErrorCode.TIMEOUT_ERROR: 504,
    ErrorCode.API_KEY_INVALID: 502,
    ErrorCode.API_KEY_MISSING: 503,
    ErrorCode.API_RATE_LIMIT: 429,
    ErrorCode.API_SERVER_ERROR: 502,
    ErrorCode.API_UNAUTHORIZED: 502,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.STORAGE_ERROR: 500,
    ErrorCode.VALIDATION_ERROR: 422,
    ErrorCode.AUDIO_ERROR: 400,
    ErrorCode.UNKNOWN_ERROR: 500,
}


class AppError(Exception):
    def __init__(self, code: ErrorCode, message: Optional[str] = None, details: Any = None) -> None:
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        self.details = details
        super().__init__(f"{code.value}: {self.message}")

    @property
    def status_code(self) -> int:
        return HTTP_STATUS.get(self.code, 500)


def error_from_status(status_code: int, body: str = "") -> AppError:
    """Map a vendor HTTP status onto our taxonomy."""
    if status_code == 401:
        code = ErrorCode.API_KEY_INVALID
    elif status_code == 403:
        code = ErrorCode.API_UNAUTHORIZED
    elif status_code == 429:
        code = ErrorCode.API_RATE_LIMIT
    elif status_code in (400, 413, 415, 422):
        code = ErrorCode.AUDIO_ERROR
    elif status_code >= 500:
        code = ErrorCode.API_SERVER_ERROR
    else:
        code = ErrorCode.UNKNOWN_ERROR
    return AppError(code, details={"status": status_code, "body": body[:500]})


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    log.warning("[%s] %s %s -> %s", exc.code.value, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"code": exc.code.value, "message": exc.message}},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
