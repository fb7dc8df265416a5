#!/usr/bin/env python3
"""
Cache-Aside Configuration Service

Architecture:
    ConfigurationService (Public API)
        ├── ConfigurationStore (pluggable backend: redis / table / memory)
        ├── ConfigurationSource (slow authoritative lookup)
        └── ConfigurationObserver (hit/miss counters & logging)

Read path (get_configuration / exists):
    store → [miss] → source → best-effort store populate → return
    Availability errors never reach the caller; they degrade to "not found".

Write path (set_configuration / set_configurations_batch):
    validate → stamp id + timestamp → store
    Backend errors propagate to the caller.

The service holds no records in memory between calls and takes no locks.
Two concurrent misses for the same id may both query the source and both
write; the last write wins.
"""

from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

from prdv_cache.core.config.constants import Stage
from prdv_cache.core.config.settings import get_settings
from prdv_cache.core.exceptions import (
    InvalidIdentifierError,
    PRDVCacheError,
    SourceUnavailableError,
)
from prdv_cache.core.interfaces.source import ConfigurationSource
from prdv_cache.core.interfaces.store import ConfigurationStore
from prdv_cache.core.logging.logger import get_logger, log_stage
from prdv_cache.models.configuration import ConfigurationRecord, utc_now

logger = get_logger(__name__)


# =============================================================================
# OBSERVABILITY
# =============================================================================


class ConfigurationObserver:
    """
    Tracks lookup outcomes. Counters are for reporting only; nothing in the
    read or write path depends on them.
    """

    def __init__(self, logger_instance=None, detailed_logging: bool = False):
        self._logger = logger_instance or logger
        self._detailed = detailed_logging

        self.hits = 0
        self.misses = 0
        self.source_lookups = 0
        self.source_not_found = 0
        self.store_errors = 0
        self.source_errors = 0
        self.writes = 0

    def _log(self, stage: Stage, message: str, **kwargs) -> None:
        log_stage(self._logger, stage, message, level="info" if self._detailed else "debug", **kwargs)

    def record_hit(self, device_id: str) -> None:
        self.hits += 1
        self._log(Stage.CACHE_HIT, "Configuration cache hit", device_id=device_id)

    def record_miss(self, device_id: str) -> None:
        self.misses += 1
        self._log(Stage.CACHE_MISS, "Configuration cache miss", device_id=device_id)

    def record_source_result(self, device_id: str, found: bool) -> None:
        self.source_lookups += 1
        if not found:
            self.source_not_found += 1
        self._log(Stage.SOURCE_LOOKUP, "Authoritative lookup complete", device_id=device_id, found=found)

    def record_write(self, device_id: str) -> None:
        self.writes += 1
        self._log(Stage.EXPLICIT_WRITE, "Configuration stored", device_id=device_id)

    def record_store_error(self, stage: Stage, device_id: str, error: Exception) -> None:
        self.store_errors += 1
        log_stage(
            self._logger, stage, "Storage backend error", level="warning",
            device_id=device_id, error=str(error), error_type=type(error).__name__,
        )

    def record_source_error(self, device_id: str, error: SourceUnavailableError) -> None:
        self.source_errors += 1
        log_stage(
            self._logger, Stage.SOURCE_LOOKUP, "Authoritative lookup failed", level="error",
            device_id=device_id, **error.details,
        )

    def get_stats(self) -> dict[str, Any]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "total_lookups": total,
            "hit_rate": round(self.hits / total, 3) if total > 0 else 0.0,
            "source_lookups": self.source_lookups,
            "source_not_found": self.source_not_found,
            "store_errors": self.store_errors,
            "source_errors": self.source_errors,
            "writes": self.writes,
        }


# =============================================================================
# PUBLIC API
# =============================================================================


class ConfigurationService:
    """
    Cache-aside engine for device configurations.

    Usage:
        service = ConfigurationService(store, source)
        await service.initialize()

        record = await service.get_configuration("HM0011000000")
        await service.set_configuration("HM0011000000", record)
        written = await service.set_configurations_batch({"HM...": r1, "WM...": r2})
    """

    def __init__(
        self,
        store: ConfigurationStore,
        source: ConfigurationSource,
        ttl: timedelta | None = None,
        clock: Callable[[], datetime] = utc_now,
        detailed_logging: bool | None = None,
    ):
        """
        Args:
            store: Storage backend
            source: Authoritative source consulted on a miss
            ttl: Entry lifetime (defaults to CACHE_TTL_SECONDS)
            clock: Source of "now" for write stamps
            detailed_logging: Log per-call outcomes at INFO instead of DEBUG
        """
        settings = get_settings()

        self._store = store
        self._source = source
        self._ttl = ttl if ttl is not None else timedelta(seconds=settings.store.CACHE_TTL_SECONDS)
        self._clock = clock
        if detailed_logging is None:
            detailed_logging = settings.load_test.LOAD_TEST_DETAILED_LOGGING
        self._observer = ConfigurationObserver(detailed_logging=detailed_logging)

    @property
    def store(self) -> ConfigurationStore:
        return self._store

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    async def initialize(self) -> None:
        await self._store.initialize()
        log_stage(
            logger, Stage.INITIALIZATION, "Configuration service initialized",
            backend=self._store.backend_type, ttl_seconds=int(self._ttl.total_seconds()),
        )

    async def shutdown(self) -> None:
        await self._store.close()
        log_stage(logger, Stage.CLEANUP, "Configuration service shut down")

    # -------------------------------------------------------------------------
    # Read path
    # -------------------------------------------------------------------------

    async def _lookup_source(self, device_id: str) -> ConfigurationRecord | None:
        try:
            record = await self._source.lookup(device_id)
        except Exception as e:
            # Any source failure is treated as "not found"
            error = SourceUnavailableError.from_exception(
                e, message="Authoritative lookup failed", device_id=device_id
            )
            self._observer.record_source_error(device_id, error)
            return None

        self._observer.record_source_result(device_id, found=record is not None)
        return record

    async def _populate(self, device_id: str, record: ConfigurationRecord) -> None:
        try:
            await self._store.set(device_id, record, self._ttl)
        except Exception as e:
            self._observer.record_store_error(Stage.CACHE_POPULATE, device_id, e)

    async def _load_from_source(self, device_id: str) -> ConfigurationRecord | None:
        record = await self._lookup_source(device_id)
        if record is None:
            return None

        if record.device_id != device_id:
            record = record.model_copy(update={"device_id": device_id})
        await self._populate(device_id, record)
        return record

    async def get_configuration(self, device_id: str) -> ConfigurationRecord | None:
        """
        Get a device configuration, consulting the source on a cache miss.

        Never raises for availability problems: store failures are treated
        as a miss and source failures as "not found".

        Returns:
            The configuration (with ``device_id`` equal to the argument), or None
        """
        if not device_id:
            log_stage(logger, Stage.REQUEST_VALIDATION, "Empty device id", level="warning")
            return None

        try:
            entry = await self._store.get(device_id)
        except Exception as e:
            self._observer.record_store_error(Stage.CACHE_LOOKUP, device_id, e)
            entry = None

        if entry is not None:
            self._observer.record_hit(device_id)
            return entry.record

        self._observer.record_miss(device_id)
        return await self._load_from_source(device_id)

    async def exists(self, device_id: str) -> bool:
        """
        Check whether a configuration exists in the cache or the source.

        A source hit populates the cache as a side effect. Errors yield False.
        """
        if not device_id:
            return False

        try:
            if await self._store.exists(device_id):
                self._observer.record_hit(device_id)
                return True
        except Exception as e:
            self._observer.record_store_error(Stage.CACHE_LOOKUP, device_id, e)

        self._observer.record_miss(device_id)
        return await self._load_from_source(device_id) is not None

    # -------------------------------------------------------------------------
    # Write path
    # -------------------------------------------------------------------------

    async def set_configuration(self, device_id: str, record: ConfigurationRecord | None) -> None:
        """
        Store a configuration under ``device_id``.

        The stored copy carries ``device_id`` and ``last_updated=now``; the
        caller's object is left unchanged.

        Raises:
            InvalidIdentifierError: If the id is empty or the record is missing
            BackendUnavailableError: If the backend write fails
        """
        if not device_id:
            raise InvalidIdentifierError("Device id is required")
        if record is None:
            raise InvalidIdentifierError("Configuration record is required", device_id=device_id)

        stamped = record.stamped(device_id, self._clock())
        try:
            await self._store.set(device_id, stamped, self._ttl)
        except PRDVCacheError as e:
            log_stage(
                logger, Stage.EXPLICIT_WRITE, "Configuration write failed", level="error",
                device_id=device_id, error=e.message,
            )
            raise

        self._observer.record_write(device_id)

    async def set_configurations_batch(self, records: Mapping[str, ConfigurationRecord]) -> int:
        """
        Store many configurations.

        All records are stamped with one shared timestamp. Partial failures
        are absorbed by the backend and reflected in the returned count.

        Returns:
            Number of records the backend persisted

        Raises:
            InvalidIdentifierError: If any key is empty or any record is missing
            BackendUnavailableError: If the backend cannot be reached at all
        """
        if not records:
            return 0

        now = self._clock()
        stamped: dict[str, ConfigurationRecord] = {}
        for device_id, record in records.items():
            if not device_id:
                raise InvalidIdentifierError("Device id is required for every batch entry")
            if record is None:
                raise InvalidIdentifierError("Configuration record is required", device_id=device_id)
            stamped[device_id] = record.stamped(device_id, now)

        try:
            written = await self._store.set_batch(stamped, self._ttl)
        except PRDVCacheError as e:
            log_stage(
                logger, Stage.BATCH_WRITE, "Batch write failed", level="error",
                batch_size=len(stamped), error=e.message,
            )
            raise

        self._observer.writes += written
        log_stage(
            logger, Stage.BATCH_WRITE, "Batch stored",
            level="info" if written == len(stamped) else "warning",
            requested=len(stamped), written=written,
        )
        return written

    # -------------------------------------------------------------------------
    # Monitoring
    # -------------------------------------------------------------------------

    def stats(self) -> dict[str, Any]:
        """Lookup counters plus backend identity."""
        return {"backend": self._store.backend_type, **self._observer.get_stats()}

    async def health_check(self) -> dict[str, Any]:
        backend = await self._store.health_check()
        return {
            "status": backend.get("status", "unknown"),
            "backend": backend,
            "stats": self.stats(),
        }
