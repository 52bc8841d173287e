"""Refresh Scheduler — fires the cache refresher at startup and on a fixed period.

Invariants:
    - First tick fires immediately on start(); later ticks sit on a fixed loop.time() grid
    - Ticks are fire-and-forget: the ticker never awaits a refresh
    - No backoff, no jitter; a late tick skips to the next grid point instead of bursting
    - stop() cancels the ticker, then awaits every refresh it started

Design Decisions:
    - Overlap prevention lives in CacheRefresher's guard, not here
"""

import asyncio
import logging
import math

from scrape_proxy.services.cache_refresher import CacheRefresher

logger = logging.getLogger(__name__)


class RefreshScheduler:
    """Periodic, cancellable trigger for CacheRefresher.refresh()."""

    def __init__(self, refresher: CacheRefresher, interval_ms: int):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.refresher = refresher
        self.interval = interval_ms / 1000
        self.tick_count = 0
        self._ticker: asyncio.Task | None = None
        self._refreshes: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._ticker is not None and not self._ticker.done()

    def start(self) -> None:
        if self.running:
            return
        self._ticker = asyncio.create_task(self._run(), name="refresh-scheduler")
        logger.info(f"Refresh scheduler started (every {self.interval:g}s)")

    async def stop(self) -> None:
        ticker, self._ticker = self._ticker, None
        if ticker is not None:
            ticker.cancel()
            await asyncio.gather(ticker, return_exceptions=True)
        if self._refreshes:
            await asyncio.gather(*self._refreshes, return_exceptions=True)
        logger.info("Refresh scheduler stopped")

    def fire(self) -> asyncio.Task:
        """Start one refresh without waiting for it."""
        self.tick_count += 1
        task = asyncio.create_task(self.refresher.refresh())
        self._refreshes.add(task)
        task.add_done_callback(self._on_refresh_done)
        return task

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        self._refreshes.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                f"Scheduled refresh raised: {exc}",
                exc_info=(type(exc), exc, exc.__traceback__),
            )

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        origin = loop.time()
        self.fire()
        next_index = 1
        while True:
            deadline = origin + next_index * self.interval
            await asyncio.sleep(max(0.0, deadline - loop.time()))
            self.fire()
            elapsed = (loop.time() - origin) / self.interval
            next_index = max(next_index + 1, math.floor(elapsed) + 1)
