"""Custom exceptions and centralized FastAPI error handlers.

Every failure leaves the API as ``{"status": "error", "message", "statusCode"}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base exception with HTTP status code."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationFailure(AppError):
    """Missing or malformed caller input. Never retried."""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class AuthenticationFailure(AppError):
    def __init__(self, message: str = "Reddit authentication failed"):
        super().__init__(message, status_code=500)


class NotConfigured(AppError):
    def __init__(self, service: str):
        super().__init__(f"{service} not configured", status_code=500)


class NotInitialized(AppError):
    def __init__(self, service: str):
        super().__init__(f"{service} is not initialized or configured", status_code=500)


class PersistenceFailure(AppError):
    def __init__(self, message: str):
        super().__init__(f"Cache store error: {message}", status_code=500)


class UpstreamError(AppError):
    """Non-2xx answer from a third-party API."""

    retryable = False

    def __init__(self, message: str, status_code: int = 502, endpoint: str | None = None):
        super().__init__(message, status_code=status_code)
        self.endpoint = endpoint


class RateLimited(UpstreamError):
    def __init__(self, message: str, endpoint: str | None = None):
        super().__init__(message, status_code=429, endpoint=endpoint)


class UpstreamUnreachable(UpstreamError):
    """Transport-level failure (DNS, connect, timeout). Plausibly retryable."""

    retryable = True

    def __init__(self, message: str, endpoint: str | None = None):
        super().__init__(message, status_code=503, endpoint=endpoint)


def error_body(message: str, status_code: int) -> dict:
    return {"status": "error", "message": message, "statusCode": status_code}


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(AppError)
    async def handle_app_error(_request: Request, exc: AppError):
        if exc.status_code >= 500:
            logger.error("%s: %s", type(exc).__name__, exc.message)
        return JSONResponse(error_body(exc.message, exc.status_code), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(_request: Request, exc: RequestValidationError):
        details = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
        )
        return JSONResponse(error_body(details or "Invalid request", 400), status_code=400)

    @app.exception_handler(ValueError)
    async def handle_value_error(_request: Request, exc: ValueError):
        return JSONResponse(error_body(str(exc), 400), status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(error_body("Internal server error", 500), status_code=500)
