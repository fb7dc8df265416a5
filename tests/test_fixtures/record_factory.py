"""
Record Test Factory

Builds ConfigurationRecord instances and a controllable clock.
"""

from datetime import datetime, timedelta, timezone

from prdv_cache.models.configuration import ConfigurationRecord, StorageInterval

FIXED_NOW = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class MockClock:
    """Callable clock whose time only moves when told to."""

    def __init__(self, start: datetime = FIXED_NOW):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordTestFactory:
    """Factory for creating configuration records."""

    @staticmethod
    def record(device_id: str = "HM0011000000", **overrides) -> ConfigurationRecord:
        fields = {
            "device_id": device_id,
            "storage_interval": StorageInterval.HOURLY,
            "storage_enabled": True,
            "max_data_age_days": 180,
            "device_type": "ELECTRICITY_METER",
            "last_updated": FIXED_NOW - timedelta(days=3),
            "additional_properties": {"Vendor": "Techem", "DeviceCategory": "METERING"},
        }
        fields.update(overrides)
        return ConfigurationRecord(**fields)

    @staticmethod
    def batch(count: int, prefix: str = "WM001") -> dict[str, ConfigurationRecord]:
        return {
            f"{prefix}{1_000_000 + i}": RecordTestFactory.record(
                device_id="", device_type="WATER_METER", storage_interval=StorageInterval.DAILY
            )
            for i in range(count)
        }
