"""Custom exceptions and centralized FastAPI error handlers."""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

RETRY_HINT = (
    "Upstream is throttling or unavailable and no cached copy is usable. "
    "Widen the cache window (FRESH_TTL_MS / STALE_TTL_MS) or reduce request frequency."
)


class ProxyError(Exception):
    """Base exception with HTTP status code."""

    def __init__(self, message: str, status_code: int = 500):
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(ProxyError):
    """Final failure of one logical upstream fetch, after any retries.

    `status` is the last HTTP status observed, or None when the last
    attempt failed at the transport level.
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message, status_code=502)
        self.status = status

    @property
    def is_transient(self) -> bool:
        """Throttling, server-side failure or no status at all."""
        return self.status is None or self.status == 429 or 500 <= self.status <= 599


class GatewayError(ProxyError):
    """No fresh or stale copy could be served for a failed fetch."""

    def __init__(self, detail: str, upstream_status: int | None = None, hint: str = RETRY_HINT):
        super().__init__(detail, status_code=502)
        self.upstream_status = upstream_status
        self.detail = detail
        self.hint = hint

    def to_payload(self) -> dict:
        return {
            "error": "Bad gateway",
            "upstream_status": self.upstream_status,
            "detail": self.detail,
            "hint": self.hint,
        }


def register_error_handlers(app: FastAPI) -> None:
    """Register centralized exception handlers on the FastAPI app."""

    @app.exception_handler(GatewayError)
    async def handle_gateway_error(_request: Request, exc: GatewayError):
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(ProxyError)
    async def handle_proxy_error(_request: Request, exc: ProxyError):
        return JSONResponse({"error": str(exc)}, status_code=exc.status_code)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            return JSONResponse({"error": "Not found", "path": request.url.path}, status_code=404)
        return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(_request: Request, exc: Exception):
        logger.exception("Unhandled error: %s", exc)
        return JSONResponse(
            {"error": "Internal server error"},
            status_code=500,
        )
