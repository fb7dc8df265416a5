"""
Storage backend selection.

Maps STORE_BACKEND to a concrete ConfigurationStore. The returned store is
not yet initialized; callers await ``initialize()`` before first use.
"""

from prdv_cache.core.config.constants import Stage
from prdv_cache.core.config.settings import Settings, get_settings
from prdv_cache.core.exceptions import ConfigurationError
from prdv_cache.core.interfaces.store import ConfigurationStore
from prdv_cache.core.logging.logger import get_logger, log_stage
from prdv_cache.infrastructure.cache.memory_store import InMemoryConfigurationStore
from prdv_cache.infrastructure.cache.redis_client import RedisClient
from prdv_cache.infrastructure.cache.redis_store import RedisConfigurationStore
from prdv_cache.infrastructure.cache.table_store import TableConfigurationStore

logger = get_logger(__name__)


def create_store(settings: Settings | None = None, backend: str | None = None) -> ConfigurationStore:
    """
    Build the configured storage backend.

    Args:
        settings: Settings to read from (defaults to the global instance)
        backend: Override for STORE_BACKEND ("memory", "redis" or "table")

    Raises:
        ConfigurationError: If the backend name is not recognized
    """
    settings = settings or get_settings()
    backend = backend or settings.store.STORE_BACKEND

    if backend == "memory":
        store: ConfigurationStore = InMemoryConfigurationStore(
            max_size=settings.store.MEMORY_STORE_MAX_SIZE
        )
    elif backend == "redis":
        store = RedisConfigurationStore(RedisClient(settings))
    elif backend == "table":
        store = TableConfigurationStore(settings)
    else:
        raise ConfigurationError(
            f"Unknown storage backend '{backend}'",
            details={"supported": ["memory", "redis", "table"]},
        )

    log_stage(logger, Stage.INITIALIZATION, "Storage backend selected", backend=backend)
    return store
