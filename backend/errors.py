"""Custom exceptions and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class QuoteServiceError(Exception):
    """Base exception with HTTP status code."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class MissingSymbolError(QuoteServiceError):
    def __init__(self):
        super().__init__("sym required", status_code=401)


class EntryNotFoundError(QuoteServiceError):
    def __init__(self, key: str):
        super().__init__(f"Not found: {key}", status_code=404)
        self.key = key


class ProviderError(QuoteServiceError):
    """Upstream provider failed: network error, non-2xx status or malformed body."""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation}: {message}", status_code=500)
        self.operation = operation


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(ProviderError)
    async def handle_provider_error(_request: Request, exc: ProviderError):
        logger.error("%s: server error (%s)", exc.operation, exc)
        return JSONResponse({"error": "Server error."}, status_code=exc.status_code)

    @app.exception_handler(QuoteServiceError)
    async def handle_quote_service_error(_request: Request, exc: QuoteServiceError):
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(ValueError)
    async def handle_value_error(_request: Request, exc: ValueError):
        return JSONResponse({"error": str(exc)}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=500,
        )
