"""
Authoritative Source Protocol

The authoritative source is the slow, ground-truth provider the cache stands
in front of. The engine treats it as an opaque async lookup; production wiring
substitutes a real implementation, tests substitute a scripted one.
"""

from typing import Protocol, runtime_checkable

from prdv_cache.models.configuration import ConfigurationRecord


@runtime_checkable
class ConfigurationSource(Protocol):
    """Opaque lookup of a device's authoritative configuration."""

    async def lookup(self, device_id: str) -> ConfigurationRecord | None:
        """
        Look up a device configuration.

        May take hundreds of milliseconds to seconds. Any exception raised
        here is caught by the engine and treated as "not found".

        Returns:
            The configuration, or None if the device is unknown
        """
        ...
