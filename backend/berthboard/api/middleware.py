"""HTTP wiring for the BerthBoard app: CORS, the shared-key gate and
exception handlers.

Errors raised outside the routes' own HTTPExceptions share one body:
    {"error": <code>, "detail": <message>}
"""
from __future__ import annotations

import hmac
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from berthboard.config import settings

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-API-Key"
OPEN_PATHS = frozenset({"/health", "/docs", "/openapi.json", "/redoc"})


def error_response(status_code: int, code: str, detail: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": code, "detail": detail})


class SharedKeyMiddleware(BaseHTTPMiddleware):
    """Requires X-API-Key on every non-open path once BERTHBOARD_API_KEY is set."""

    async def dispatch(self, request: Request, call_next):
        expected = settings.BERTHBOARD_API_KEY
        if expected is None or request.url.path in OPEN_PATHS:
            return await call_next(request)

        supplied = request.headers.get(API_KEY_HEADER, "")
        if not hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8")):
            logger.warning("Rejected %s %s: bad or missing API key", request.method, request.url.path)
            return error_response(401, "unauthorized", "Invalid or missing API key")
        return await call_next(request)


def cors_origins() -> list[str]:
    """CORS_ORIGINS is a comma-separated env var."""
    return [o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()]


def install_middleware(app: FastAPI) -> None:
    # Added last, so CORS wraps the key gate and 401s still carry CORS headers
    app.add_middleware(SharedKeyMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", API_KEY_HEADER],
    )


async def _value_error(request: Request, exc: ValueError) -> JSONResponse:
    return error_response(422, "invalid_request", str(exc))


async def _unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled %s on %s %s", type(exc).__name__, request.method, request.url.path, exc_info=exc)
    return error_response(500, "internal_error", "An unexpected error occurred.")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValueError, _value_error)
    app.add_exception_handler(Exception, _unhandled_error)
