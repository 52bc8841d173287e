"""Boundary Protocols — contracts between the refresh services and the headless browser.

Invariants:
    - Services NEVER import Playwright — they depend on these Protocols only
    - A RenderSession is used for exactly one attempt and closed on every exit path
    - Body accessors are lazy: a body is only read when the extractor asks for it

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
"""

from collections.abc import Awaitable, Callable
from typing import Protocol


BodyAccessor = Callable[[], Awaitable[bytes | None]]
RequestFinishedCallback = Callable[[str, BodyAccessor], Awaitable[None]]


class RenderSession(Protocol):
    """One browser context + page, alive for a single render attempt."""

    def on_request_finished(self, callback: RequestFinishedCallback) -> None: ...
    async def navigate(self, url: str, wait_until: str, timeout_ms: int) -> None: ...
    async def settle(self, delay_ms: int) -> None: ...
    async def drain(self) -> None: ...
    async def close(self) -> None: ...
    async def __aenter__(self) -> "RenderSession": ...
    async def __aexit__(self, exc_type, exc, tb) -> None: ...


class PageRenderer(Protocol):
    """Factory for render sessions — implemented by infrastructure."""

    async def open(self) -> RenderSession: ...
