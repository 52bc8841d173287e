"""Payload Cache — the single cached JSON payload and its snapshot accessor.

Invariants:
    - Absent at process start; COLD → WARM is one-way, never cleared
    - Replaced only by single assignment of a frozen CachedPayload (readers never see partial JSON)
    - body is serialized once per refresh: repeated reads return byte-identical bytes
    - body is strict JSON: non-finite floats are refused, never written out
    - Readers get the frozen snapshot; value_copy() hands out a deep copy, never the live object

Design Decisions:
    - Frozen dataclass + bytes over a lock: one event loop, assignment is atomic
    - Pure module, no IO: testable without mocks
"""

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class CacheState(str, Enum):
    """Server-side cache lifecycle."""
    COLD = "cold"
    WARM = "warm"


class PayloadSource(str, Enum):
    """Which code path produced the payload."""
    SCHEDULED = "scheduled"
    COLD = "cold"


def serialize_payload(value: Any) -> bytes:
    """Serialize an opaque JSON value to the bytes served on /data."""
    return json.dumps(
        value, ensure_ascii=False, allow_nan=False, separators=(",", ":"),
    ).encode("utf-8")


@dataclass(frozen=True)
class CachedPayload:
    """Immutable snapshot of one successful refresh."""
    value: Any
    body: bytes
    source: PayloadSource = PayloadSource.SCHEDULED
    refreshed_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )

    @classmethod
    def from_value(
        cls, value: Any, source: PayloadSource = PayloadSource.SCHEDULED,
    ) -> "CachedPayload":
        # Deep copy detaches the snapshot from whatever the extractor still holds
        return cls(
            value=copy.deepcopy(value),
            body=serialize_payload(value),
            source=source,
        )

    def value_copy(self) -> Any:
        return copy.deepcopy(self.value)

    def age_seconds(self, now: datetime | None = None) -> float:
        now = now or datetime.now(timezone.utc)
        return (now - self.refreshed_at).total_seconds()


class PayloadCache:
    """Owner of the one cached payload slot."""

    def __init__(self):
        self._current: CachedPayload | None = None
        self.replacements = 0

    @property
    def state(self) -> CacheState:
        return CacheState.WARM if self._current is not None else CacheState.COLD

    def snapshot(self) -> CachedPayload | None:
        return self._current

    def replace(
        self, value: Any, source: PayloadSource = PayloadSource.SCHEDULED,
    ) -> CachedPayload:
        """Build the new snapshot fully, then swap it in with one assignment."""
        payload = CachedPayload.from_value(value, source)
        self._current = payload
        self.replacements += 1
        return payload
