"""
Unit Tests for RedisConfigurationStore

Runs the store against an in-memory Redis client stand-in.
"""

from datetime import timedelta

import orjson
import pytest

from prdv_cache.application.services.configuration_service import ConfigurationService
from prdv_cache.core.exceptions import BackendUnavailableError
from prdv_cache.infrastructure.cache.redis_store import RedisConfigurationStore
from tests.test_fixtures.cache_factory import CacheTestFactory
from tests.test_fixtures.record_factory import RecordTestFactory

MALFORMED_VALUES = [
    "not json at all",
    "[1, 2, 3]",
    '{"record": {"deviceId": "X"}}',
    '{"expiresAt": "2999-01-01T00:00:00+00:00", "record": "nope"}',
]


@pytest.mark.unit
class TestRedisStoreReadWrite:
    """Test key layout, envelope and expiry."""

    @pytest.mark.asyncio
    async def test_set_writes_envelope_with_native_ttl(self, redis_store, fake_redis_client, sample_record, ttl):
        await redis_store.set("HM0011000000", sample_record, ttl)

        raw = fake_redis_client.data["config:HM0011000000"]
        envelope = orjson.loads(raw)

        assert envelope["record"]["deviceId"] == "HM0011000000"
        assert envelope["expiresAt"].startswith("2025-06-01T13:00:00")
        assert fake_redis_client.ttls["config:HM0011000000"] == 3600

    @pytest.mark.asyncio
    async def test_set_then_get(self, redis_store, sample_record, ttl):
        await redis_store.set("HM0011000000", sample_record, ttl)

        entry = await redis_store.get("HM0011000000")

        assert entry.record == sample_record

    @pytest.mark.asyncio
    async def test_sub_second_ttl_rounds_up(self, redis_store, fake_redis_client, sample_record):
        await redis_store.set("HM0011000000", sample_record, timedelta(milliseconds=200))

        assert fake_redis_client.ttls["config:HM0011000000"] == 1

    @pytest.mark.asyncio
    async def test_expired_envelope_is_a_miss(self, redis_store, sample_record, ttl, mock_clock):
        await redis_store.set("HM0011000000", sample_record, ttl)

        mock_clock.advance(hours=2)

        assert await redis_store.get("HM0011000000") is None
        assert await redis_store.exists("HM0011000000") is False

    @pytest.mark.asyncio
    async def test_exists_for_live_entry(self, redis_store, sample_record, ttl):
        await redis_store.set("HM0011000000", sample_record, ttl)

        assert await redis_store.exists("HM0011000000") is True
        assert await redis_store.exists("WM0021000001") is False


@pytest.mark.unit
class TestRedisStoreDecodePolicy:
    """Undecodable values are treated as misses."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", MALFORMED_VALUES)
    async def test_malformed_value_is_a_miss(self, redis_store, fake_redis_client, raw):
        fake_redis_client.data["config:HM0011000000"] = raw

        assert await redis_store.get("HM0011000000") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", MALFORMED_VALUES)
    async def test_malformed_value_does_not_exist(self, redis_store, fake_redis_client, raw):
        fake_redis_client.data["config:HM0011000000"] = raw

        assert await redis_store.exists("HM0011000000") is False

    @pytest.mark.asyncio
    async def test_engine_exists_agrees_with_get_for_malformed_value(
        self, redis_store, fake_redis_client, scripted_source, mock_clock
    ):
        fake_redis_client.data["config:HM0011000000"] = "not json at all"
        scripted_source.lookup.return_value = None
        service = ConfigurationService(
            redis_store, scripted_source, ttl=timedelta(hours=1), clock=mock_clock, detailed_logging=False
        )

        assert await service.get_configuration("HM0011000000") is None
        assert await service.exists("HM0011000000") is False


@pytest.mark.unit
class TestRedisStoreBatch:
    """Test pipelined batch writes."""

    @pytest.mark.asyncio
    async def test_batch_writes_all_in_one_pipeline(self, redis_store, fake_redis_client, ttl):
        records = RecordTestFactory.batch(5)

        written = await redis_store.set_batch(records, ttl)

        assert written == 5
        assert fake_redis_client.pipeline_executions == 1
        assert len(fake_redis_client.data) == 5

    @pytest.mark.asyncio
    async def test_every_third_failing_key_counts_as_failure(self, redis_store, fake_redis_client, ttl):
        records = RecordTestFactory.batch(9)
        for position, device_id in enumerate(records, start=1):
            if position % 3 == 0:
                fake_redis_client.failing_keys.add(RedisConfigurationStore.key_for(device_id))

        written = await redis_store.set_batch(records, ttl)

        assert written == 6
        assert len(fake_redis_client.data) == 6

    @pytest.mark.asyncio
    async def test_empty_batch_touches_nothing(self, redis_store, fake_redis_client, ttl):
        assert await redis_store.set_batch({}, ttl) == 0
        assert fake_redis_client.pipeline_executions == 0

    @pytest.mark.asyncio
    async def test_unreachable_redis_raises(self, mock_clock, ttl):
        store = RedisConfigurationStore(CacheTestFactory.failing_redis_client(), clock=mock_clock)

        with pytest.raises(BackendUnavailableError):
            await store.set_batch(RecordTestFactory.batch(3), ttl)


@pytest.mark.unit
class TestRedisStoreErrors:
    """Transport errors surface as BackendUnavailableError."""

    @pytest.mark.asyncio
    async def test_get_propagates_unavailable(self, mock_clock):
        store = RedisConfigurationStore(CacheTestFactory.failing_redis_client(), clock=mock_clock)

        with pytest.raises(BackendUnavailableError):
            await store.get("HM0011000000")

    @pytest.mark.asyncio
    async def test_health_check_reports_backend(self, redis_store):
        health = await redis_store.health_check()

        assert health["backend"] == "redis"
        assert health["status"] == "healthy"
