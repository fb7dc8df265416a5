"""
Configuration Store Protocol

This module defines the abstract protocol for storage backend implementations,
enabling dependency injection and testability.

Architectural Decision: Protocol-based abstraction
- Enables multiple backend implementations (Redis, structured table store, in-memory)
- Facilitates testing with scripted implementations
- Type-safe interface with runtime checking

Error policy shared by every implementation:
- Transport-level failures raise BackendUnavailableError.
- "Not found" and "expired" are both reported as None / False.
- A payload the codec cannot decode is logged and reported as a miss;
  RecordDecodeError never leaves a backend.
"""

from collections.abc import Mapping
from datetime import timedelta
from typing import Any, Protocol, runtime_checkable

from prdv_cache.models.configuration import CacheEntry, ConfigurationRecord


@runtime_checkable
class ConfigurationStore(Protocol):
    """
    Protocol defining the interface for configuration storage backends.

    Implementations:
    - RedisConfigurationStore: flat string-keyed distributed cache
    - TableConfigurationStore: structured record store with transactional batches
    - InMemoryConfigurationStore: process-local store for tests and load runs
    """

    backend_type: str

    async def initialize(self) -> None:
        """
        Perform one-time setup (connect, create tables).

        Raises:
            BackendInitializationError: If setup fails after all retries
        """
        ...

    async def close(self) -> None:
        """Release connections held by the backend."""
        ...

    async def get(self, device_id: str) -> CacheEntry | None:
        """
        Get the live entry for a device.

        Returns:
            The entry, or None if absent, expired or undecodable

        Raises:
            BackendUnavailableError: On transport-level failure
        """
        ...

    async def set(self, device_id: str, record: ConfigurationRecord, ttl: timedelta) -> None:
        """
        Upsert a record with the given time-to-live.

        Raises:
            BackendUnavailableError: On transport-level failure
        """
        ...

    async def exists(self, device_id: str) -> bool:
        """
        Check whether a live (non-expired) entry exists.

        Raises:
            BackendUnavailableError: On transport-level failure
        """
        ...

    async def set_batch(
        self, records: Mapping[str, ConfigurationRecord], ttl: timedelta
    ) -> int:
        """
        Upsert many records, tolerating partial failure.

        Returns:
            Number of records successfully persisted

        Raises:
            BackendUnavailableError: Only when the backend cannot be reached at all
        """
        ...

    async def health_check(self) -> dict[str, Any]:
        """
        Report backend health.

        Returns:
            Dict with at least a "status" key
        """
        ...
