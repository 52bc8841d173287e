"""Scrape Proxy API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Component graph built eagerly in create_app() and stored on app.state
    - Global error handlers map ScrapeProxyError → {"error": message}
    - Lifespan starts the refresh scheduler and, on shutdown, cancels it and awaits
      any in-flight refresh

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - renderer injectable: tests run the whole app against a scripted fake browser
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from scrape_proxy import __version__
from scrape_proxy.api.error_handlers import register_error_handlers
from scrape_proxy.api.routes import data, health
from scrape_proxy.config import Settings, get_settings
from scrape_proxy.core.renderer_protocols import PageRenderer
from scrape_proxy.infrastructure.observability import (
    install_error_boundary, setup_logging,
)
from scrape_proxy.infrastructure.page_renderer import PlaywrightRenderer
from scrape_proxy.services.cache_refresher import CacheRefresher
from scrape_proxy.services.payload_fetcher import PayloadFetcher
from scrape_proxy.services.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, settings.log_format)
    install_error_boundary(asyncio.get_running_loop())
    scheduler: RefreshScheduler = app.state.scheduler
    scheduler.start()
    logger.info(
        f"Scrape proxy started, rendering {settings.target_page_url}",
    )
    yield
    logger.info("Scrape proxy shutting down")
    await scheduler.stop()
    await app.state.refresher.wait_idle()


def create_app(
    settings: Settings | None = None,
    renderer: PageRenderer | None = None,
) -> FastAPI:
    """Build the app and its refresh components."""
    settings = settings or get_settings()
    renderer = renderer or PlaywrightRenderer(settings)
    refresher = CacheRefresher(PayloadFetcher(renderer, settings))
    scheduler = RefreshScheduler(refresher, settings.refresh_interval_ms)

    app = FastAPI(
        title="Scrape Proxy", version=__version__, lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.refresher = refresher
    app.state.scheduler = scheduler

    app.include_router(data.router)
    app.include_router(health.router)
    register_error_handlers(app)
    return app


app = create_app()
