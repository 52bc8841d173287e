"""Structured Logging — JSON formatter, setup, and the process-level error boundary.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Extra fields (error_code, url, outcome, duration_ms) surfaced when present
    - JSON format in production, human-readable in development
    - Uncaught exceptions (main thread, other threads, orphaned asyncio tasks) are
      logged and never terminate the service

Design Decisions:
    - JSONFormatter over third-party libs: zero dependencies, full control
    - setup_logging called once on startup via lifespan; repeated calls replace the handler
"""

import asyncio
import json
import logging
import sys
import threading
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

_EXTRA_KEYS = (
    "error_code", "category", "path", "url", "outcome", "duration_ms",
    "match_count", "parse_failures", "source", "attempt",
)

_handler: logging.Handler | None = None


class JSONFormatter(logging.Formatter):
    """Format logs as JSON for structured logging in production."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in _EXTRA_KEYS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json"):
    """Configure logging for the application."""
    global _handler
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s — %(message)s",
        ))
    if _handler is not None:
        logging.root.removeHandler(_handler)
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    _handler = handler


# ─── Process-level error boundary ───────────────────────────────

def _log_uncaught(exc_type, exc_value, exc_traceback):
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logger.critical(
        "Uncaught exception",
        exc_info=(exc_type, exc_value, exc_traceback),
    )


def _log_thread_exception(args: threading.ExceptHookArgs):
    if args.exc_type is SystemExit:
        return
    logger.critical(
        f"Uncaught exception in thread {getattr(args.thread, 'name', '?')}",
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )


def _log_loop_exception(loop: asyncio.AbstractEventLoop, context: dict):
    exc = context.get("exception")
    message = context.get("message", "Unhandled exception in event loop")
    if exc is not None:
        logger.error(
            message, exc_info=(type(exc), exc, exc.__traceback__),
        )
    else:
        logger.error(message)


def install_error_boundary(loop: asyncio.AbstractEventLoop | None = None):
    """Log, never crash: route every unhandled exception into logging."""
    sys.excepthook = _log_uncaught
    threading.excepthook = _log_thread_exception
    if loop is None:
        loop = asyncio.get_running_loop()
    loop.set_exception_handler(_log_loop_exception)
