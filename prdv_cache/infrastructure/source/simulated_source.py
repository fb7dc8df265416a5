"""
Simulated authoritative configuration source.

Stands in for the real configuration database until one is wired in. Each
lookup sleeps for a configurable delay to mimic a slow query, then
synthesizes a plausible record:

- ids starting with ``UNKNOWN`` are not found
- ids containing ``NOSTORAGE`` have storage disabled
- the device type is picked from a stable hash of the id, so the same id
  always maps to the same type (and the same interval/retention defaults)
"""

import asyncio
import hashlib
import random
from collections.abc import Callable
from datetime import datetime, timedelta

from prdv_cache.core.config.constants import Stage
from prdv_cache.core.config.settings import get_settings
from prdv_cache.core.logging.logger import get_logger, log_stage
from prdv_cache.models.configuration import ConfigurationRecord, StorageInterval, utc_now

logger = get_logger(__name__)

DEVICE_TYPES = (
    "HEAT_METER",
    "WATER_METER",
    "GAS_METER",
    "ELECTRICITY_METER",
    "TEMPERATURE_SENSOR",
    "HUMIDITY_SENSOR",
    "PRESSURE_SENSOR",
    "FLOW_SENSOR",
)

STORAGE_INTERVAL_BY_TYPE = {
    "HEAT_METER": StorageInterval.DAILY,
    "WATER_METER": StorageInterval.DAILY,
    "GAS_METER": StorageInterval.DAILY,
    "ELECTRICITY_METER": StorageInterval.HOURLY,
    "TEMPERATURE_SENSOR": StorageInterval.EVERY_15_MINUTES,
    "HUMIDITY_SENSOR": StorageInterval.HOURLY,
    "PRESSURE_SENSOR": StorageInterval.DAILY,
    "FLOW_SENSOR": StorageInterval.HOURLY,
}

MAX_DATA_AGE_BY_TYPE = {
    "HEAT_METER": 365,
    "WATER_METER": 365,
    "GAS_METER": 365,
    "ELECTRICITY_METER": 180,
    "TEMPERATURE_SENSOR": 90,
    "HUMIDITY_SENSOR": 90,
    "PRESSURE_SENSOR": 180,
    "FLOW_SENSOR": 180,
}

UNKNOWN_PREFIX = "UNKNOWN"
NO_STORAGE_MARKER = "NOSTORAGE"
DEFAULT_VENDOR = "Techem"


def device_type_for(device_id: str) -> str:
    """Stable device type for an id (independent of PYTHONHASHSEED)."""
    digest = hashlib.sha256(device_id.encode("utf-8")).digest()
    return DEVICE_TYPES[int.from_bytes(digest[:4], "big") % len(DEVICE_TYPES)]


class SimulatedConfigurationSource:
    """
    ConfigurationSource that fabricates records after an artificial delay.

    Also used by the load generator as its record synthesizer, via
    ``generate`` which skips the delay.
    """

    def __init__(
        self,
        delay_ms: int | None = None,
        seed: int | None = None,
        clock: Callable[[], datetime] = utc_now,
        vendor: str = DEFAULT_VENDOR,
    ):
        """
        Args:
            delay_ms: Artificial lookup latency (defaults to SOURCE_DELAY_MS)
            seed: Seed for the generated property values
            clock: Source of "now" for generated timestamps
            vendor: Value of the Vendor property
        """
        self._delay = (get_settings().SOURCE_DELAY_MS if delay_ms is None else delay_ms) / 1000
        self._rng = random.Random(seed)
        self._clock = clock
        self._vendor = vendor

    async def lookup(self, device_id: str) -> ConfigurationRecord | None:
        log_stage(logger, Stage.SOURCE_LOOKUP, "Simulating configuration query", device_id=device_id)

        if self._delay > 0:
            await asyncio.sleep(self._delay)

        if not device_id or device_id.startswith(UNKNOWN_PREFIX):
            logger.debug("Configuration not found", stage=Stage.SOURCE_LOOKUP.value, device_id=device_id)
            return None

        record = self.generate(device_id)
        log_stage(
            logger,
            Stage.SOURCE_LOOKUP,
            "Generated configuration",
            device_id=device_id,
            device_type=record.device_type,
            storage_interval=record.storage_interval.name,
            storage_enabled=record.storage_enabled,
        )
        return record

    def generate(self, device_id: str) -> ConfigurationRecord:
        """Synthesize a record for ``device_id`` without any delay."""
        device_type = device_type_for(device_id)
        now = self._clock()

        return ConfigurationRecord(
            device_id=device_id,
            storage_interval=STORAGE_INTERVAL_BY_TYPE.get(device_type, StorageInterval.DAILY),
            storage_enabled=NO_STORAGE_MARKER not in device_id,
            max_data_age_days=MAX_DATA_AGE_BY_TYPE.get(device_type, 30),
            device_type=device_type,
            last_updated=now - timedelta(days=self._rng.randint(1, 29)),
            additional_properties=self._properties(device_type, now),
        )

    def _properties(self, device_type: str, now: datetime) -> dict[str, str]:
        rng = self._rng
        last_maintenance = now - timedelta(days=rng.randint(30, 364))
        return {
            "DeviceCategory": "METERING" if "METER" in device_type else "SENSOR",
            "Vendor": self._vendor,
            "FirmwareVersion": f"v{rng.randint(1, 4)}.{rng.randint(0, 9)}.{rng.randint(0, 98)}",
            "LastMaintenance": last_maintenance.strftime("%Y-%m-%d"),
            "CriticalDevice": "true" if rng.randint(0, 9) > 7 else "false",
        }
