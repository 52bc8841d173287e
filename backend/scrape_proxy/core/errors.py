"""Error Hierarchy — typed, categorized exceptions for every refresh failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Renderer and extraction errors are absorbed by the refresher (cache stays as it was)
    - ColdFetchError is the only error that reaches an HTTP client
    - to_response() produces the public envelope {"error": message}

Design Decisions:
    - Single hierarchy with ScrapeProxyError base: FastAPI global handler catches all
    - ErrorContext as dataclass: url/attempt details for logs without coupling to logging
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    EXTERNAL = "external"
    TIMEOUT = "timeout"
    EXTRACTION = "extraction"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    url: str | None = None
    source: str | None = None
    debug_info: dict[str, Any] | None = None


class ScrapeProxyError(Exception):
    """Base exception for all scrape-proxy errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to the public REST error body."""
        return {"error": self.message}

    def log_extra(self) -> dict:
        """Fields attached to the structured log record."""
        return {
            "error_code": self.code,
            "category": self.category.value,
            "url": self.context.url,
        }


# ─── Renderer Errors ────────────────────────────────────────────

class RenderError(ScrapeProxyError):
    """Headless browser failed while rendering the target page."""
    def __init__(
        self,
        message: str,
        code: str = "RENDER_ERROR",
        category: ErrorCategory = ErrorCategory.EXTERNAL,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, code, category, ErrorSeverity.ERROR, context, 502,
        )


class LaunchError(RenderError):
    """Browser process could not be started."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            f"Browser launch failed: {message}",
            "LAUNCH_ERROR", ErrorCategory.EXTERNAL, context,
        )


class NavigationTimeout(RenderError):
    """Target page did not reach readiness before the deadline."""
    def __init__(
        self, url: str, timeout_ms: int, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.url = url
        super().__init__(
            f"Navigation to {url} timed out after {timeout_ms}ms",
            "NAVIGATION_TIMEOUT", ErrorCategory.TIMEOUT, ctx,
        )
        self.timeout_ms = timeout_ms


# ─── Extraction Errors ──────────────────────────────────────────

class ExtractionMiss(ScrapeProxyError):
    """Page loaded but no response matched the API prefix."""
    def __init__(self, prefix: str, context: ErrorContext | None = None):
        super().__init__(
            "Fetch response not found",
            "EXTRACTION_MISS", ErrorCategory.EXTRACTION,
            ErrorSeverity.WARNING, context, 502,
        )
        self.prefix = prefix


class ParseError(ScrapeProxyError):
    """A matching response body was not valid JSON."""
    def __init__(self, url: str, reason: str):
        super().__init__(
            f"Response from {url} is not valid JSON: {reason}",
            "PARSE_ERROR", ErrorCategory.EXTRACTION,
            ErrorSeverity.WARNING, ErrorContext(url=url), 502,
        )


# ─── Client-facing ──────────────────────────────────────────────

class ColdFetchError(ScrapeProxyError):
    """Synchronous cold-start fetch failed; surfaced to the client as 500."""
    def __init__(self, message: str, cause_code: str = "INTERNAL_ERROR"):
        super().__init__(
            message, "COLD_FETCH_ERROR", ErrorCategory.EXTERNAL,
            ErrorSeverity.ERROR, ErrorContext(source="cold"), 500,
        )
        self.cause_code = cause_code

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ColdFetchError":
        if isinstance(exc, ScrapeProxyError):
            return cls(exc.message, exc.code)
        return cls(str(exc) or type(exc).__name__)
