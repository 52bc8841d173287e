"""Payload Fetcher — one render + extract attempt against the target page.

Invariants:
    - Exactly one RenderSession per fetch(), closed on every exit path
    - Returns the extracted value or raises; never touches the cache
    - Raises LaunchError / NavigationTimeout / RenderError from the renderer,
      ExtractionMiss when no matching response was decoded
"""

import logging
import time
from typing import Any

from scrape_proxy.config import Settings
from scrape_proxy.core.errors import ErrorContext, ExtractionMiss
from scrape_proxy.core.renderer_protocols import PageRenderer
from scrape_proxy.services.extractor import ResponseExtractor

logger = logging.getLogger(__name__)


class PayloadFetcher:
    """Renders the target page and returns the intercepted API payload."""

    def __init__(self, renderer: PageRenderer, settings: Settings):
        self.renderer = renderer
        self.target_page_url = settings.target_page_url
        self.api_url_prefix = settings.api_url_prefix
        self.wait_until = settings.wait_until
        self.navigation_timeout_ms = settings.navigation_timeout_ms
        self.settle_delay_ms = settings.settle_delay_ms

    async def fetch(self) -> Any:
        extractor = ResponseExtractor(self.api_url_prefix)
        started = time.monotonic()

        session = await self.renderer.open()
        async with session:
            session.on_request_finished(extractor.on_request_finished)
            await session.navigate(
                self.target_page_url, self.wait_until, self.navigation_timeout_ms,
            )
            await session.settle(self.settle_delay_ms)
            await session.drain()

        duration_ms = int((time.monotonic() - started) * 1000)
        if not extractor.has_result:
            raise ExtractionMiss(
                self.api_url_prefix,
                ErrorContext(
                    url=self.target_page_url,
                    debug_info={
                        "match_count": extractor.match_count,
                        "parse_failures": extractor.parse_failures,
                        "duration_ms": duration_ms,
                    },
                ),
            )
        logger.debug(
            "Render cycle produced payload",
            extra={
                "url": self.target_page_url,
                "match_count": extractor.match_count,
                "duration_ms": duration_ms,
            },
        )
        return extractor.result
