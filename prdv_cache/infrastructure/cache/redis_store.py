"""
Redis Configuration Store

Flat string-keyed backend. Each device configuration lives under
``config:{device_id}`` as a JSON envelope:

    {"expiresAt": "<ISO-8601 UTC>", "record": {<document>}}

The key is written with ``SET ... EX ttl`` so Redis evicts it natively, but
reads also compare ``expiresAt`` against the store clock: an entry that is
past its expiry is a miss even if Redis still holds it.
"""

import math
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta
from typing import Any

import orjson
from redis.exceptions import RedisError

from prdv_cache.core.config.constants import REDIS_KEY_CONFIG, Stage
from prdv_cache.core.exceptions import BackendUnavailableError, RecordDecodeError
from prdv_cache.core.logging.logger import get_logger, log_stage
from prdv_cache.infrastructure.cache.redis_client import RedisClient
from prdv_cache.infrastructure.codec.record_codec import RecordCodec
from prdv_cache.models.configuration import CacheEntry, ConfigurationRecord, utc_now

logger = get_logger(__name__)


def _ttl_seconds(ttl: timedelta) -> int:
    # Redis EX takes whole seconds and rejects 0
    return max(1, math.ceil(ttl.total_seconds()))


class RedisConfigurationStore:
    """
    ConfigurationStore backed by Redis.

    Usage:
        store = RedisConfigurationStore(RedisClient())
        await store.initialize()
        await store.set("HM0011000000", record, timedelta(hours=1))
        entry = await store.get("HM0011000000")
    """

    backend_type = "redis"

    def __init__(
        self,
        redis_client: RedisClient | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._redis = redis_client or RedisClient()
        self._clock = clock

    @staticmethod
    def key_for(device_id: str) -> str:
        return f"{REDIS_KEY_CONFIG}:{device_id}"

    async def initialize(self) -> None:
        await self._redis.connect()
        log_stage(logger, Stage.REDIS, "Redis configuration store ready")

    async def close(self) -> None:
        await self._redis.disconnect()

    # -------------------------------------------------------------------------
    # Envelope encoding
    # -------------------------------------------------------------------------

    @staticmethod
    def _encode(record: ConfigurationRecord, expires_at: datetime) -> str:
        envelope = {
            "expiresAt": expires_at.isoformat(),
            "record": RecordCodec.to_document(record),
        }
        return orjson.dumps(envelope).decode("utf-8")

    @staticmethod
    def _decode(raw: str | bytes) -> CacheEntry:
        try:
            envelope = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise RecordDecodeError.from_exception(e, message="Redis value is not valid JSON")

        if not isinstance(envelope, dict):
            raise RecordDecodeError("Redis value is not an envelope object")

        expires_at = RedisConfigurationStore._parse_expiry(envelope.get("expiresAt"))
        record = RecordCodec.from_document(envelope.get("record"))
        return CacheEntry(record=record, expires_at=expires_at)

    @staticmethod
    def _parse_expiry(value: Any) -> datetime:
        if not isinstance(value, str):
            raise RecordDecodeError("Redis envelope is missing expiresAt")
        try:
            expires_at = datetime.fromisoformat(value)
        except ValueError as e:
            raise RecordDecodeError.from_exception(e, message="Redis envelope has an invalid expiresAt")
        if expires_at.tzinfo is None:
            raise RecordDecodeError("Redis envelope expiresAt has no timezone")
        return expires_at

    # -------------------------------------------------------------------------
    # Store operations
    # -------------------------------------------------------------------------

    async def get(self, device_id: str) -> CacheEntry | None:
        raw = await self._redis.get(self.key_for(device_id))
        if raw is None:
            return None

        try:
            entry = self._decode(raw)
        except RecordDecodeError as e:
            log_stage(
                logger,
                Stage.REDIS,
                "Undecodable Redis value treated as miss",
                level="warning",
                device_id=device_id,
                error=e.message,
            )
            return None

        if entry.is_expired(self._clock()):
            return None
        return entry

    async def set(self, device_id: str, record: ConfigurationRecord, ttl: timedelta) -> None:
        expires_at = self._clock() + ttl
        await self._redis.set(
            self.key_for(device_id), self._encode(record, expires_at), ttl=_ttl_seconds(ttl)
        )

    async def exists(self, device_id: str) -> bool:
        # Same decode and expiry rules as get
        return await self.get(device_id) is not None

    async def set_batch(
        self, records: Mapping[str, ConfigurationRecord], ttl: timedelta
    ) -> int:
        """
        Write all records in one non-transactional pipeline.

        Each command's outcome is captured individually, so a failing key
        does not void the others. Connection-level failure of the whole
        pipeline raises BackendUnavailableError.
        """
        if not records:
            return 0

        expires_at = self._clock() + ttl
        ex = _ttl_seconds(ttl)
        device_ids = list(records.keys())

        try:
            async with self._redis.pipeline(transaction=False) as pipe:
                for device_id in device_ids:
                    pipe.set(self.key_for(device_id), self._encode(records[device_id], expires_at), ex=ex)
                results = await pipe.execute(raise_on_error=False)
        except RedisError as e:
            logger.error(
                "Redis pipeline failed", stage=Stage.REDIS.value, batch_size=len(device_ids), error=str(e)
            )
            raise BackendUnavailableError(
                message=f"Redis pipeline failed: {e}", details={"batch_size": len(device_ids)}
            ) from e

        succeeded = 0
        for device_id, result in zip(device_ids, results):
            if isinstance(result, Exception):
                logger.warning(
                    "Redis SET in batch failed",
                    stage=Stage.REDIS.value,
                    device_id=device_id,
                    error=str(result),
                )
            else:
                succeeded += 1

        return succeeded

    async def health_check(self) -> dict[str, Any]:
        health = await self._redis.health_check()
        health["backend"] = self.backend_type
        return health
