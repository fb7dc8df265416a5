"""
In-Memory Configuration Store

Process-local backend used for tests, local runs and load generation.
Entries are kept in an OrderedDict guarded by an asyncio.Lock, with an
optional LRU bound. Expiry is checked lazily against an injectable clock.

Two knobs exist purely for load testing:
- ``failure_rate`` makes a fraction of writes raise BackendUnavailableError
- ``peak_concurrency`` records the most calls ever in flight at once
"""

import asyncio
import random
from collections import OrderedDict
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from prdv_cache.core.config.constants import Stage
from prdv_cache.core.exceptions import BackendUnavailableError
from prdv_cache.core.logging.logger import get_logger
from prdv_cache.models.configuration import CacheEntry, ConfigurationRecord, utc_now

logger = get_logger(__name__)


class InMemoryConfigurationStore:
    """
    ConfigurationStore held in process memory.

    Implementation Details:
    - OrderedDict for O(1) access and LRU ordering
    - asyncio.Lock around every mutation
    - Oldest entries evicted once ``max_size`` is exceeded
- Records are copied in and out, so callers never share the cached object
    """

    backend_type = "memory"

    def __init__(
        self,
        max_size: int | None = None,
        clock: Callable[[], datetime] = utc_now,
        failure_rate: float = 0.0,
        rng: random.Random | None = None,
    ):
        """
        Args:
            max_size: Optional LRU bound (None = unbounded)
            clock: Source of "now" for expiry checks
            failure_rate: Probability in [0, 1] that a write fails
            rng: Random source for injected failures
        """
        if not 0.0 <= failure_rate <= 1.0:
            raise ValueError("failure_rate must be between 0 and 1")

        self._max_size = max_size
        self._clock = clock
        self._failure_rate = failure_rate
        self._rng = rng or random.Random()
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = asyncio.Lock()

        self._in_flight = 0
        self.peak_concurrency = 0
        self.write_calls = 0

    async def initialize(self) -> None:
        return None

    async def close(self) -> None:
        async with self._lock:
            self._entries.clear()

    def _enter(self) -> None:
        self._in_flight += 1
        self.peak_concurrency = max(self.peak_concurrency, self._in_flight)

    def _exit(self) -> None:
        self._in_flight -= 1

    def _maybe_fail(self, device_id: str) -> None:
        if self._failure_rate and self._rng.random() < self._failure_rate:
            raise BackendUnavailableError("Injected in-memory write failure", device_id=device_id)

    def _put(self, device_id: str, entry: CacheEntry) -> None:
        if device_id in self._entries:
            self._entries.move_to_end(device_id)
        self._entries[device_id] = entry

        if self._max_size is not None:
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    async def get(self, device_id: str) -> CacheEntry | None:
        self._enter()
        try:
            # Yield so overlapping calls are observable
            await asyncio.sleep(0)
            async with self._lock:
                entry = self._entries.get(device_id)
                if entry is None:
                    return None
                if entry.is_expired(self._clock()):
                    del self._entries[device_id]
                    return None
                self._entries.move_to_end(device_id)
                return CacheEntry(record=entry.record.model_copy(deep=True), expires_at=entry.expires_at)
        finally:
            self._exit()

    async def set(self, device_id: str, record: ConfigurationRecord, ttl: timedelta) -> None:
        self._enter()
        try:
            await asyncio.sleep(0)
            self.write_calls += 1
            self._maybe_fail(device_id)
            entry = CacheEntry(record=record.model_copy(deep=True), expires_at=self._clock() + ttl)
            async with self._lock:
                self._put(device_id, entry)
        finally:
            self._exit()

    async def exists(self, device_id: str) -> bool:
        return await self.get(device_id) is not None

    async def set_batch(
        self, records: Mapping[str, ConfigurationRecord], ttl: timedelta
    ) -> int:
        self._enter()
        try:
            await asyncio.sleep(0)
            expires_at = self._clock() + ttl
            succeeded = 0
            async with self._lock:
                for device_id, record in records.items():
                    self.write_calls += 1
                    try:
                        self._maybe_fail(device_id)
                    except BackendUnavailableError as e:
                        logger.warning(
                            "In-memory batch item failed",
                            stage=Stage.MEMORY.value,
                            device_id=device_id,
                            error=e.message,
                        )
                        continue
                    self._put(device_id, CacheEntry(record=record.model_copy(deep=True), expires_at=expires_at))
                    succeeded += 1
            return succeeded
        finally:
            self._exit()

    def get_size(self) -> int:
        """Get current number of entries, including expired ones not yet evicted."""
        return len(self._entries)

    def get_keys(self) -> list[str]:
        """Get all device ids in LRU order (oldest first)."""
        return list(self._entries.keys())

    async def health_check(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "backend": self.backend_type,
            "size": len(self._entries),
            "max_size": self._max_size,
            "peak_concurrency": self.peak_concurrency,
        }
