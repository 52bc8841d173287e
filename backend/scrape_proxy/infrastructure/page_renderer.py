"""Playwright Page Renderer — launches headless chromium and observes page network traffic.

Invariants:
    - open() either returns a fully usable session or raises LaunchError with nothing left running
    - close() runs exactly once per session: context, browser, then the Playwright driver
    - Every close step is attempted even when an earlier one fails
    - Request-finished callbacks run as tracked tasks; drain() awaits them (bounded)
    - Playwright timeouts map to NavigationTimeout, other Playwright errors to RenderError

Design Decisions:
    - One Playwright driver per session: a crashed browser never poisons the next attempt
    - Sync event handler spawning our own tasks: pending callbacks are visible to drain()
"""

import asyncio
import logging

from playwright.async_api import (
    Browser,
    BrowserContext,
    Error as PlaywrightError,
    Page,
    Playwright,
    Request,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

from scrape_proxy.config import Settings
from scrape_proxy.core.errors import (
    ErrorContext, LaunchError, NavigationTimeout, RenderError,
)
from scrape_proxy.core.renderer_protocols import (
    BodyAccessor, RequestFinishedCallback,
)

logger = logging.getLogger(__name__)

_DRAIN_TIMEOUT_SECONDS = 5.0


def _body_accessor(request: Request) -> BodyAccessor:
    """Lazy body reader for one finished request."""

    async def read_body() -> bytes | None:
        response = await request.response()
        if response is None:
            return None
        return await response.body()

    return read_body


class PlaywrightRenderSession:
    """Browser + context + page for a single render attempt."""

    def __init__(
        self,
        playwright: Playwright,
        browser: Browser,
        context: BrowserContext,
        page: Page,
    ):
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self.page = page
        self._callbacks: list[RequestFinishedCallback] = []
        self._pending: set[asyncio.Task] = set()
        self._closed = False
        page.on("requestfinished", self._handle_request_finished)

    @property
    def closed(self) -> bool:
        return self._closed

    async def __aenter__(self) -> "PlaywrightRenderSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def on_request_finished(self, callback: RequestFinishedCallback) -> None:
        self._callbacks.append(callback)

    def _handle_request_finished(self, request: Request) -> None:
        if self._closed:
            return
        accessor = _body_accessor(request)
        for callback in self._callbacks:
            task = asyncio.create_task(
                self._run_callback(callback, request.url, accessor),
            )
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _run_callback(
        self, callback: RequestFinishedCallback, url: str, accessor: BodyAccessor,
    ) -> None:
        try:
            await callback(url, accessor)
        except Exception as e:
            logger.warning(
                f"Request-finished callback failed: {e}",
                extra={"url": url},
            )

    async def navigate(self, url: str, wait_until: str, timeout_ms: int) -> None:
        try:
            await self.page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            raise NavigationTimeout(url, timeout_ms) from e
        except PlaywrightError as e:
            raise RenderError(
                f"Navigation to {url} failed: {e.message}",
                context=ErrorContext(url=url),
            ) from e

    async def settle(self, delay_ms: int) -> None:
        """Give client-side fetches issued after DOM readiness time to finish."""
        if delay_ms > 0:
            await asyncio.sleep(delay_ms / 1000)

    async def drain(self) -> None:
        """Await callbacks still reading bodies; cancel the ones that overrun."""
        if not self._pending:
            return
        pending = set(self._pending)
        _, still_running = await asyncio.wait(
            pending, timeout=_DRAIN_TIMEOUT_SECONDS,
        )
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(
                f"Cancelled {len(still_running)} request callbacks after drain timeout",
            )
            await asyncio.gather(*still_running, return_exceptions=True)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for task in list(self._pending):
            task.cancel()
        if self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)
        await _close_quietly("context", self._context.close)
        await _close_quietly("browser", self._browser.close)
        await _close_quietly("playwright", self._playwright.stop)
        logger.debug("Render session closed")


async def _close_quietly(name: str, close) -> None:
    try:
        await close()
    except Exception as e:
        logger.warning(f"Failed to close {name}: {e}")


class PlaywrightRenderer:
    """Opens isolated chromium sessions configured from Settings."""

    def __init__(self, settings: Settings):
        self.browser_args = list(settings.browser_args)
        self.headless = settings.headless
        self.launch_timeout_ms = settings.launch_timeout_ms

    async def open(self) -> PlaywrightRenderSession:
        playwright = None
        browser = None
        context = None
        try:
            playwright = await async_playwright().start()
            browser = await playwright.chromium.launch(
                args=self.browser_args,
                headless=self.headless,
                timeout=self.launch_timeout_ms,
            )
            context = await browser.new_context()
            page = await context.new_page()
        except Exception as e:
            if context is not None:
                await _close_quietly("context", context.close)
            if browser is not None:
                await _close_quietly("browser", browser.close)
            if playwright is not None:
                await _close_quietly("playwright", playwright.stop)
            raise LaunchError(str(e)) from e
        return PlaywrightRenderSession(playwright, browser, context, page)
