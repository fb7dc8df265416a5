from .configuration import CacheEntry, ConfigurationRecord, StorageInterval, utc_now
from .load_test import LoadTestReport

__all__ = [
    "CacheEntry",
    "ConfigurationRecord",
    "LoadTestReport",
    "StorageInterval",
    "utc_now",
]
