"""
Device configuration domain models.

ConfigurationRecord is the value the engine returns to callers; CacheEntry is
what a storage backend holds for it (the record plus an absolute expiry).
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import IntEnum

from pydantic import BaseModel, Field, field_validator


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class StorageInterval(IntEnum):
    """
    How often a device's data may be stored.

    The integer values are the stable codes used by the compact binary
    representation. UNKNOWN is never written deliberately; it is what any
    unrecognized stored value decodes to.
    """

    UNKNOWN = -1
    EVERY_15_MINUTES = 0
    HOURLY = 1
    DAILY = 2
    WEEKLY = 3
    EVERY_15_DAYS = 4
    MONTHLY = 5
    NO_STORAGE = 99

    @classmethod
    def parse(cls, value: object) -> "StorageInterval":
        """
        Lenient conversion from a stored name or code.

        Accepts enum members, integer codes and member names (case-insensitive).
        Anything else maps to UNKNOWN.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            return cls.UNKNOWN
        if isinstance(value, int):
            try:
                return cls(value)
            except ValueError:
                return cls.UNKNOWN
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper(), cls.UNKNOWN)
        return cls.UNKNOWN


class ConfigurationRecord(BaseModel):
    """
    Per-device configuration: storage interval, retention and enablement.

    Identity is ``device_id`` (the PRDV). The engine stamps ``device_id`` and
    ``last_updated`` on every explicit write, so a record read back from a
    backend always carries the id it was stored under.
    """

    device_id: str = Field(default="", description="PRDV identifier of the device")
    storage_interval: StorageInterval = Field(
        default=StorageInterval.DAILY, description="How often data may be stored"
    )
    storage_enabled: bool = Field(default=True, description="Whether data storage is enabled")
    max_data_age_days: int = Field(default=30, ge=0, description="Maximum age of stored data in days")
    device_type: str = Field(default="", description="Device type for categorization")
    last_updated: datetime = Field(default_factory=utc_now, description="Last update (UTC)")
    additional_properties: dict[str, str] = Field(
        default_factory=dict, description="Open-ended string properties"
    )

    @field_validator("storage_interval", mode="before")
    @classmethod
    def parse_storage_interval(cls, v):
        """Unrecognized names or codes become UNKNOWN instead of failing validation."""
        return StorageInterval.parse(v)

    @field_validator("last_updated")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def stamped(self, device_id: str, now: datetime) -> "ConfigurationRecord":
        """Return a copy carrying ``device_id`` and ``last_updated=now``."""
        return self.model_copy(
            update={"device_id": device_id, "last_updated": now},
            deep=True,
        )


@dataclass(frozen=True)
class CacheEntry:
    """
    A record as held by a storage backend, with its absolute expiry.

    An entry whose expiry has elapsed is treated as absent by every read
    path, whether or not the backend has physically evicted it.
    """

    record: ConfigurationRecord
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now
