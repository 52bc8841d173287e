"""Playwright Page Renderer — launch, navigation error mapping, callbacks, teardown.

Design Decisions:
    - Playwright replaced at the async_playwright() boundary with AsyncMock doubles:
      no browser binary needed, every close call observable
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from scrape_proxy.core.errors import LaunchError, NavigationTimeout, RenderError
from scrape_proxy.infrastructure import page_renderer as renderer_module
from scrape_proxy.infrastructure.page_renderer import PlaywrightRenderer


class _Fakes:
    """Wires playwright → browser → context → page doubles."""

    def __init__(self):
        self.page = MagicMock()
        self.page.goto = AsyncMock()
        self.context = MagicMock()
        self.context.new_page = AsyncMock(return_value=self.page)
        self.context.close = AsyncMock()
        self.browser = MagicMock()
        self.browser.new_context = AsyncMock(return_value=self.context)
        self.browser.close = AsyncMock()
        self.playwright = MagicMock()
        self.playwright.chromium.launch = AsyncMock(return_value=self.browser)
        self.playwright.stop = AsyncMock()
        manager = MagicMock()
        manager.start = AsyncMock(return_value=self.playwright)
        self.factory = MagicMock(return_value=manager)

    @property
    def request_finished_handler(self):
        event, handler = self.page.on.call_args.args
        assert event == "requestfinished"
        return handler


def _request(url, body=b"{}", has_response=True):
    request = MagicMock()
    request.url = url
    if has_response:
        response = MagicMock()
        response.body = AsyncMock(return_value=body)
        request.response = AsyncMock(return_value=response)
    else:
        request.response = AsyncMock(return_value=None)
    return request


@pytest.fixture
def fakes(monkeypatch):
    f = _Fakes()
    monkeypatch.setattr(renderer_module, "async_playwright", f.factory)
    return f


# ==============================================================================
# Launch
# ==============================================================================


async def test_open_launches_chromium_with_settings(fakes, settings):
    session = await PlaywrightRenderer(settings).open()

    fakes.playwright.chromium.launch.assert_awaited_once_with(
        args=["--no-sandbox"], headless=True, timeout=30_000,
    )
    fakes.browser.new_context.assert_awaited_once()
    fakes.context.new_page.assert_awaited_once()
    assert session.page is fakes.page
    fakes.page.on.assert_called_once()


async def test_launch_failure_raises_launch_error_and_stops_driver(fakes, settings):
    fakes.playwright.chromium.launch.side_effect = PlaywrightError(
        "Executable doesn't exist",
    )

    with pytest.raises(LaunchError) as exc_info:
        await PlaywrightRenderer(settings).open()

    assert "Executable doesn't exist" in exc_info.value.message
    fakes.playwright.stop.assert_awaited_once()
    fakes.browser.close.assert_not_awaited()


async def test_page_failure_releases_everything_acquired(fakes, settings):
    fakes.context.new_page.side_effect = PlaywrightError("Target closed")

    with pytest.raises(LaunchError):
        await PlaywrightRenderer(settings).open()

    fakes.context.close.assert_awaited_once()
    fakes.browser.close.assert_awaited_once()
    fakes.playwright.stop.assert_awaited_once()


# ==============================================================================
# Navigation
# ==============================================================================


async def test_navigate_passes_readiness_and_deadline(fakes, settings):
    session = await PlaywrightRenderer(settings).open()

    await session.navigate("https://www.example.com/feed", "domcontentloaded", 60_000)

    fakes.page.goto.assert_awaited_once_with(
        "https://www.example.com/feed", wait_until="domcontentloaded", timeout=60_000,
    )


async def test_navigation_timeout_mapped(fakes, settings):
    fakes.page.goto.side_effect = PlaywrightTimeoutError("Timeout 60000ms exceeded")
    session = await PlaywrightRenderer(settings).open()

    with pytest.raises(NavigationTimeout) as exc_info:
        await session.navigate("https://www.example.com/feed", "load", 60_000)

    assert exc_info.value.timeout_ms == 60_000


async def test_other_navigation_error_mapped_to_render_error(fakes, settings):
    fakes.page.goto.side_effect = PlaywrightError("net::ERR_NAME_NOT_RESOLVED")
    session = await PlaywrightRenderer(settings).open()

    with pytest.raises(RenderError) as exc_info:
        await session.navigate("https://www.example.com/feed", "load", 60_000)

    assert not isinstance(exc_info.value, NavigationTimeout)
    assert "ERR_NAME_NOT_RESOLVED" in exc_info.value.message


# ==============================================================================
# Request-finished callbacks
# ==============================================================================


async def test_callback_receives_url_and_lazy_body(fakes, settings):
    seen = []

    async def callback(url, read_body):
        seen.append((url, await read_body()))

    session = await PlaywrightRenderer(settings).open()
    session.on_request_finished(callback)
    fakes.request_finished_handler(_request("https://api.example.com/data", b'{"v":1}'))
    await session.drain()

    assert seen == [("https://api.example.com/data", b'{"v":1}')]


async def test_request_without_response_yields_none_body(fakes, settings):
    seen = []

    async def callback(url, read_body):
        seen.append(await read_body())

    session = await PlaywrightRenderer(settings).open()
    session.on_request_finished(callback)
    fakes.request_finished_handler(_request("https://x", has_response=False))
    await session.drain()

    assert seen == [None]


async def test_callback_error_is_contained(fakes, settings, caplog):
    async def callback(url, read_body):
        raise ValueError("bad callback")

    session = await PlaywrightRenderer(settings).open()
    session.on_request_finished(callback)
    fakes.request_finished_handler(_request("https://x"))
    await session.drain()

    assert "bad callback" in caplog.text


async def test_requests_after_close_are_ignored(fakes, settings):
    callback = AsyncMock()
    session = await PlaywrightRenderer(settings).open()
    session.on_request_finished(callback)
    await session.close()

    fakes.request_finished_handler(_request("https://x"))
    await asyncio.sleep(0)

    callback.assert_not_awaited()


# ==============================================================================
# Teardown
# ==============================================================================


async def test_close_runs_exactly_once(fakes, settings):
    session = await PlaywrightRenderer(settings).open()

    await session.close()
    await session.close()

    fakes.context.close.assert_awaited_once()
    fakes.browser.close.assert_awaited_once()
    fakes.playwright.stop.assert_awaited_once()
    assert session.closed


async def test_close_continues_after_step_failure(fakes, settings):
    fakes.context.close.side_effect = PlaywrightError("Target closed")
    session = await PlaywrightRenderer(settings).open()

    await session.close()

    fakes.browser.close.assert_awaited_once()
    fakes.playwright.stop.assert_awaited_once()


async def test_context_manager_closes_on_exception(fakes, settings):
    session = await PlaywrightRenderer(settings).open()

    with pytest.raises(RuntimeError):
        async with session:
            raise RuntimeError("boom")

    fakes.browser.close.assert_awaited_once()


async def test_close_cancels_stuck_callbacks(fakes, settings):
    started = asyncio.Event()

    async def callback(url, read_body):
        started.set()
        await asyncio.Event().wait()

    session = await PlaywrightRenderer(settings).open()
    session.on_request_finished(callback)
    fakes.request_finished_handler(_request("https://x"))
    await started.wait()

    await asyncio.wait_for(session.close(), timeout=1)

    fakes.playwright.stop.assert_awaited_once()
