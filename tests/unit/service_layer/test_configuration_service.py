"""
Unit Tests for ConfigurationService

Tests the cache-aside read path, the write paths and the asymmetry between
them: reads never raise for availability, writes always do.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from prdv_cache.application.services.configuration_service import ConfigurationService
from prdv_cache.core.exceptions import BackendUnavailableError, InvalidIdentifierError
from prdv_cache.infrastructure.cache.memory_store import InMemoryConfigurationStore
from prdv_cache.infrastructure.cache.redis_store import RedisConfigurationStore
from prdv_cache.models.configuration import StorageInterval
from tests.test_fixtures.cache_factory import CacheTestFactory
from tests.test_fixtures.record_factory import FIXED_NOW, RecordTestFactory


def _service(store, source, clock):
    return ConfigurationService(store, source, ttl=timedelta(hours=1), clock=clock, detailed_logging=False)


@pytest.mark.unit
class TestGetConfiguration:
    """Test the cache-aside read path."""

    @pytest.mark.asyncio
    async def test_second_lookup_is_served_from_cache(self, configuration_service, scripted_source):
        first = await configuration_service.get_configuration("HM0011000000")
        second = await configuration_service.get_configuration("HM0011000000")

        assert first == second
        assert scripted_source.lookup.await_count == 1
        stats = configuration_service.stats()
        assert stats["hits"] == 1
        assert stats["misses"] == 1

    @pytest.mark.asyncio
    async def test_empty_id_touches_nothing(self, scripted_source, mock_clock):
        store = AsyncMock()
        service = _service(store, scripted_source, mock_clock)

        assert await service.get_configuration("") is None

        store.get.assert_not_called()
        store.set.assert_not_called()
        scripted_source.lookup.assert_not_called()

    @pytest.mark.asyncio
    async def test_result_carries_queried_id(self, configuration_service, scripted_source):
        scripted_source.lookup.return_value = RecordTestFactory.record(device_id="SOMETHING_ELSE")

        record = await configuration_service.get_configuration("PS0091000042")

        assert record.device_id == "PS0091000042"
        cached = await configuration_service.store.get("PS0091000042")
        assert cached.record.device_id == "PS0091000042"

    @pytest.mark.asyncio
    async def test_not_found_is_not_cached(self, configuration_service, scripted_source, memory_store):
        scripted_source.lookup.return_value = None

        assert await configuration_service.get_configuration("UNKNOWN001") is None
        assert await configuration_service.get_configuration("UNKNOWN001") is None

        assert scripted_source.lookup.await_count == 2
        assert memory_store.get_size() == 0

    @pytest.mark.asyncio
    async def test_mutating_returned_record_leaves_cache_intact(self, configuration_service, scripted_source):
        first = await configuration_service.get_configuration("HM0011000000")
        first.additional_properties["Vendor"] = "Tampered"

        second = await configuration_service.get_configuration("HM0011000000")

        assert second.additional_properties["Vendor"] == "Techem"
        assert scripted_source.lookup.await_count == 1

    @pytest.mark.asyncio
    async def test_source_error_degrades_to_none(self, configuration_service, scripted_source):
        scripted_source.lookup.side_effect = TimeoutError("database timed out")

        assert await configuration_service.get_configuration("HM0011000000") is None
        assert configuration_service.stats()["source_errors"] == 1

    @pytest.mark.asyncio
    async def test_store_read_error_falls_back_to_source(self, scripted_source, sample_record, mock_clock):
        service = _service(
            RedisConfigurationStore(CacheTestFactory.failing_redis_client(), clock=mock_clock),
            scripted_source,
            mock_clock,
        )

        record = await service.get_configuration("HM0011000000")

        assert record.storage_interval == sample_record.storage_interval
        scripted_source.lookup.assert_awaited_once_with("HM0011000000")

    @pytest.mark.asyncio
    async def test_populate_failure_still_returns_record(self, scripted_source, mock_clock):
        service = _service(CacheTestFactory.unavailable_store(), scripted_source, mock_clock)

        record = await service.get_configuration("HM0011000000")

        assert record is not None
        assert service.stats()["store_errors"] == 1

    @pytest.mark.asyncio
    async def test_expired_entry_triggers_new_source_lookup(self, configuration_service, scripted_source, mock_clock):
        await configuration_service.get_configuration("HM0011000000")

        mock_clock.advance(hours=1)
        await configuration_service.get_configuration("HM0011000000")

        assert scripted_source.lookup.await_count == 2


@pytest.mark.unit
class TestExists:
    """Test existence checks."""

    @pytest.mark.asyncio
    async def test_empty_id_is_false(self, configuration_service, scripted_source):
        assert await configuration_service.exists("") is False
        scripted_source.lookup.assert_not_called()

    @pytest.mark.asyncio
    async def test_cached_entry_skips_source(self, configuration_service, scripted_source, sample_record):
        await configuration_service.set_configuration("HM0011000000", sample_record)

        assert await configuration_service.exists("HM0011000000") is True
        scripted_source.lookup.assert_not_called()

    @pytest.mark.asyncio
    async def test_miss_falls_through_to_source_and_populates(self, configuration_service, scripted_source, memory_store):
        assert await configuration_service.exists("HM0011000000") is True

        scripted_source.lookup.assert_awaited_once()
        assert await memory_store.exists("HM0011000000") is True

    @pytest.mark.asyncio
    async def test_unknown_device(self, configuration_service, scripted_source):
        scripted_source.lookup.return_value = None

        assert await configuration_service.exists("UNKNOWN001") is False


@pytest.mark.unit
class TestSetConfiguration:
    """Test explicit writes."""

    @pytest.mark.asyncio
    async def test_set_then_get_round_trip(self, configuration_service, scripted_source):
        record = RecordTestFactory.record(
            device_id="",
            storage_interval=StorageInterval.WEEKLY,
            device_type="FLOW_SENSOR",
            additional_properties={"Vendor": "Techem", "Site": "Essen"},
        )

        await configuration_service.set_configuration("FS0061000007", record)
        stored = await configuration_service.get_configuration("FS0061000007")

        assert stored.device_id == "FS0061000007"
        assert stored.storage_interval is StorageInterval.WEEKLY
        assert stored.device_type == "FLOW_SENSOR"
        assert stored.additional_properties == {"Vendor": "Techem", "Site": "Essen"}
        assert stored.last_updated == FIXED_NOW
        scripted_source.lookup.assert_not_called()

    @pytest.mark.asyncio
    async def test_caller_record_is_not_mutated(self, configuration_service, sample_record):
        original_updated = sample_record.last_updated

        await configuration_service.set_configuration("EM0041000003", sample_record)

        assert sample_record.device_id == "HM0011000000"
        assert sample_record.last_updated == original_updated

    @pytest.mark.asyncio
    async def test_empty_id_rejected_before_store(self, scripted_source, sample_record, mock_clock):
        store = AsyncMock()
        service = _service(store, scripted_source, mock_clock)

        with pytest.raises(InvalidIdentifierError):
            await service.set_configuration("", sample_record)

        store.set.assert_not_called()

    @pytest.mark.asyncio
    async def test_missing_record_rejected(self, configuration_service):
        with pytest.raises(InvalidIdentifierError):
            await configuration_service.set_configuration("HM0011000000", None)

    @pytest.mark.asyncio
    async def test_backend_failure_propagates(self, scripted_source, sample_record, mock_clock):
        service = _service(CacheTestFactory.unavailable_store(), scripted_source, mock_clock)

        with pytest.raises(BackendUnavailableError):
            await service.set_configuration("HM0011000000", sample_record)


@pytest.mark.unit
class TestSetConfigurationsBatch:
    """Test batch writes."""

    @pytest.mark.asyncio
    async def test_empty_mapping_returns_zero(self, configuration_service):
        assert await configuration_service.set_configurations_batch({}) == 0

    @pytest.mark.asyncio
    async def test_every_third_failure_returns_two_thirds(self, scripted_source, mock_clock):
        store = CacheTestFactory.every_nth_failing_store(3, clock=mock_clock)
        service = _service(store, scripted_source, mock_clock)

        written = await service.set_configurations_batch(RecordTestFactory.batch(30))

        assert written == 20
        assert store.get_size() == 20

    @pytest.mark.asyncio
    async def test_records_share_one_timestamp_and_own_ids(self, configuration_service, memory_store, mock_clock):
        records = RecordTestFactory.batch(4)

        await configuration_service.set_configurations_batch(records)

        for device_id in records:
            entry = await memory_store.get(device_id)
            assert entry.record.device_id == device_id
            assert entry.record.last_updated == mock_clock()

    @pytest.mark.asyncio
    async def test_empty_key_rejected(self, configuration_service, sample_record):
        with pytest.raises(InvalidIdentifierError):
            await configuration_service.set_configurations_batch({"": sample_record})

    @pytest.mark.asyncio
    async def test_total_failure_propagates(self, scripted_source, mock_clock):
        store = InMemoryConfigurationStore(clock=mock_clock)
        store.set_batch = AsyncMock(side_effect=BackendUnavailableError("unreachable"))
        service = _service(store, scripted_source, mock_clock)

        with pytest.raises(BackendUnavailableError):
            await service.set_configurations_batch(RecordTestFactory.batch(3))


@pytest.mark.unit
class TestMonitoring:
    """Test stats and health."""

    @pytest.mark.asyncio
    async def test_health_check_includes_backend_and_stats(self, configuration_service):
        health = await configuration_service.health_check()

        assert health["status"] == "healthy"
        assert health["backend"]["backend"] == "memory"
        assert health["stats"]["backend"] == "memory"
