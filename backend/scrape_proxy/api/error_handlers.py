"""Error Handlers — global exception handlers for the proxy API.

Invariants:
    - ScrapeProxyError → its http_status with {"error": message}
    - Exception (catch-all) → 500 {"error": ...}, never leaks internal details

Design Decisions:
    - Extracted from main.py: routes raise, handlers shape the response
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from scrape_proxy.core.errors import ScrapeProxyError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_proxy_error_handler(app)
    _register_generic_error_handler(app)


def _register_proxy_error_handler(app: FastAPI) -> None:
    """Register domain/infrastructure error handler."""

    @app.exception_handler(ScrapeProxyError)
    async def proxy_error_handler(request: Request, exc: ScrapeProxyError):
        """Handle all scrape-proxy errors."""
        logger.error(
            f"ScrapeProxyError: {exc.message}",
            extra={"error_code": exc.code, "path": request.url.path},
        )
        return JSONResponse(
            status_code=exc.http_status, content=exc.to_response(),
        )


def _register_generic_error_handler(app: FastAPI) -> None:
    """Register catch-all error handler."""

    @app.exception_handler(Exception)
    async def generic_error_handler(request: Request, exc: Exception):
        """Catch-all — never leaks internal details."""
        logger.error(
            f"Unhandled exception on {request.url.path}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "An unexpected error occurred"},
        )
