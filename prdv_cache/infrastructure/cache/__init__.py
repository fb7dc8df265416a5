"""
Storage backends for device configurations.

- **redis_store.py**: flat string-keyed cache on Redis
- **table_store.py**: structured (partition, row) table with transactional batches
- **memory_store.py**: process-local store for tests and load runs
- **factory.py**: STORE_BACKEND -> backend instance
"""

from prdv_cache.infrastructure.cache.factory import create_store
from prdv_cache.infrastructure.cache.memory_store import InMemoryConfigurationStore
from prdv_cache.infrastructure.cache.redis_client import RedisClient
from prdv_cache.infrastructure.cache.redis_store import RedisConfigurationStore
from prdv_cache.infrastructure.cache.table_store import TableConfigurationStore

__all__ = [
    "create_store",
    "InMemoryConfigurationStore",
    "RedisClient",
    "RedisConfigurationStore",
    "TableConfigurationStore",
]
