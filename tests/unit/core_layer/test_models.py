"""
Unit Tests for Domain Models

Tests StorageInterval parsing, record stamping and entry expiry.
"""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from prdv_cache.models.configuration import CacheEntry, ConfigurationRecord, StorageInterval
from prdv_cache.models.load_test import LoadTestReport
from tests.test_fixtures.record_factory import FIXED_NOW


@pytest.mark.unit
class TestStorageInterval:
    """Test lenient interval parsing."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("DAILY", StorageInterval.DAILY),
            ("every_15_minutes", StorageInterval.EVERY_15_MINUTES),
            (99, StorageInterval.NO_STORAGE),
            (3, StorageInterval.WEEKLY),
            ("Fortnightly", StorageInterval.UNKNOWN),
            (42, StorageInterval.UNKNOWN),
            (None, StorageInterval.UNKNOWN),
            (True, StorageInterval.UNKNOWN),
        ],
    )
    def test_parse(self, value, expected):
        assert StorageInterval.parse(value) is expected

    def test_record_accepts_unknown_interval_name(self):
        record = ConfigurationRecord(device_id="X", storage_interval="SOMETIMES")
        assert record.storage_interval is StorageInterval.UNKNOWN


@pytest.mark.unit
class TestConfigurationRecord:
    """Test record defaults and stamping."""

    def test_defaults(self):
        record = ConfigurationRecord()

        assert record.storage_interval is StorageInterval.DAILY
        assert record.storage_enabled is True
        assert record.max_data_age_days == 30
        assert record.additional_properties == {}
        assert record.last_updated.tzinfo is not None

    def test_negative_retention_rejected(self):
        with pytest.raises(PydanticValidationError):
            ConfigurationRecord(max_data_age_days=-1)

    def test_naive_timestamp_is_taken_as_utc(self):
        record = ConfigurationRecord(last_updated=datetime(2025, 1, 1, 8, 0))
        assert record.last_updated == datetime(2025, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_stamped_returns_copy(self, sample_record):
        stamped = sample_record.stamped("EM0031000009", FIXED_NOW)

        assert stamped.device_id == "EM0031000009"
        assert stamped.last_updated == FIXED_NOW
        assert sample_record.device_id == "HM0011000000"

        stamped.additional_properties["Vendor"] = "Other"
        assert sample_record.additional_properties["Vendor"] == "Techem"


@pytest.mark.unit
class TestCacheEntry:
    """Test expiry boundaries."""

    def test_expired_at_exact_expiry(self, sample_record):
        entry = CacheEntry(record=sample_record, expires_at=FIXED_NOW)

        assert entry.is_expired(FIXED_NOW)
        assert not entry.is_expired(FIXED_NOW - timedelta(microseconds=1))


@pytest.mark.unit
class TestLoadTestReport:
    """Test report serialization."""

    def test_camel_case_aliases(self):
        report = LoadTestReport(
            records_processed=10,
            successful_operations=10,
            batch_size=10,
            concurrent_tasks=1,
            start_time=FIXED_NOW,
        )

        dumped = report.model_dump(by_alias=True)

        assert dumped["recordsProcessed"] == 10
        assert dumped["successfulOperations"] == 10
        assert dumped["concurrentTasks"] == 1
        assert "startTime" in dumped
