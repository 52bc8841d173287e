"""Cache Refresher — guarded refresh cycle and cold-start fetch over the payload cache.

Invariants:
    - At most one scheduled refresh in flight; a trigger arriving meanwhile is dropped (SKIPPED)
    - The guard's check-and-set has no await in between (atomic on one event loop)
    - Cache is replaced on success only: a failed refresh never empties or alters it
    - refresh() never raises (except cancellation): every failure is logged and absorbed
    - Building the snapshot is part of the guarded attempt: a payload that cannot be
      copied or serialized fails the refresh like any fetch error
    - Concurrent cold callers share one in-flight fetch; the cold path ignores the scheduled guard
    - A client disconnect never cancels the shared cold fetch (waiters are shielded)

Design Decisions:
    - State enum over a bare bool: readable in logs and health output
    - Cold path kept separate from the scheduled guard: a cold request should not wait
      for, or be dropped by, a scheduled cycle that may end in failure
"""

import asyncio
import logging
import time
from enum import Enum

from scrape_proxy.core.errors import ColdFetchError, ScrapeProxyError
from scrape_proxy.core.payload_cache import (
    CachedPayload, CacheState, PayloadCache, PayloadSource,
)
from scrape_proxy.services.payload_fetcher import PayloadFetcher

logger = logging.getLogger(__name__)


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshOutcome(str, Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    SKIPPED = "skipped"


def _consume_exception(task: asyncio.Task) -> None:
    if not task.cancelled():
        task.exception()


class CacheRefresher:
    """Owns the payload cache and everything that writes to it."""

    def __init__(self, fetcher: PayloadFetcher, cache: PayloadCache | None = None):
        self.fetcher = fetcher
        self.cache = cache or PayloadCache()
        self._state = RefreshState.IDLE
        self._idle = asyncio.Event()
        self._idle.set()
        self._cold_task: asyncio.Task | None = None

        self.refresh_count = 0
        self.failure_count = 0
        self.skipped_count = 0
        self.cold_fetch_count = 0

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_refreshing(self) -> bool:
        return self._state is RefreshState.REFRESHING

    @property
    def cache_state(self) -> CacheState:
        return self.cache.state

    def snapshot(self) -> CachedPayload | None:
        return self.cache.snapshot()

    # ─── Scheduled path ─────────────────────────────────────────

    async def refresh(self) -> RefreshOutcome:
        """Run one guarded refresh cycle."""
        if self._state is RefreshState.REFRESHING:
            self.skipped_count += 1
            logger.debug(
                "Refresh already in flight, dropping trigger",
                extra={"outcome": RefreshOutcome.SKIPPED.value},
            )
            return RefreshOutcome.SKIPPED
        self._state = RefreshState.REFRESHING
        self._idle.clear()

        started = time.monotonic()
        try:
            value = await self.fetcher.fetch()
            self.cache.replace(value, PayloadSource.SCHEDULED)
        except ScrapeProxyError as e:
            self.failure_count += 1
            logger.warning(
                f"Refresh failed, keeping cached payload: {e.message}",
                extra={
                    **e.log_extra(),
                    "outcome": RefreshOutcome.UNCHANGED.value,
                    "duration_ms": _elapsed_ms(started),
                },
            )
            return RefreshOutcome.UNCHANGED
        except Exception as e:
            self.failure_count += 1
            logger.error(
                f"Unexpected refresh error, keeping cached payload: {e}",
                exc_info=True,
                extra={
                    "error_code": "INTERNAL_ERROR",
                    "outcome": RefreshOutcome.UNCHANGED.value,
                },
            )
            return RefreshOutcome.UNCHANGED
        finally:
            self._state = RefreshState.IDLE
            self._idle.set()

        self.refresh_count += 1
        logger.info(
            "Cache refreshed",
            extra={
                "outcome": RefreshOutcome.UPDATED.value,
                "source": PayloadSource.SCHEDULED.value,
                "duration_ms": _elapsed_ms(started),
            },
        )
        return RefreshOutcome.UPDATED

    # ─── Cold-start path ────────────────────────────────────────

    async def fetch_cold(self) -> CachedPayload:
        """Serve the cached payload, fetching it inline if the cache is cold.

        Raises ColdFetchError when the one-off fetch fails.
        """
        snapshot = self.cache.snapshot()
        if snapshot is not None:
            return snapshot
        if self._cold_task is None:
            self._cold_task = asyncio.create_task(self._run_cold_fetch())
            self._cold_task.add_done_callback(_consume_exception)
        return await asyncio.shield(self._cold_task)

    async def _run_cold_fetch(self) -> CachedPayload:
        started = time.monotonic()
        try:
            value = await self.fetcher.fetch()
            payload = self.cache.replace(value, PayloadSource.COLD)
        except Exception as e:
            error = ColdFetchError.from_exception(e)
            logger.warning(
                f"Cold fetch failed: {error.message}",
                extra={
                    "error_code": error.cause_code,
                    "source": PayloadSource.COLD.value,
                    "duration_ms": _elapsed_ms(started),
                },
            )
            raise error from e
        finally:
            self._cold_task = None

        self.cold_fetch_count += 1
        logger.info(
            "Cache populated by cold fetch",
            extra={
                "source": PayloadSource.COLD.value,
                "duration_ms": _elapsed_ms(started),
            },
        )
        return payload

    # ─── Shutdown ───────────────────────────────────────────────

    async def wait_idle(self) -> None:
        """Wait for an in-flight refresh and cold fetch to finish."""
        await self._idle.wait()
        cold = self._cold_task
        if cold is not None:
            await asyncio.wait([cold])


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
