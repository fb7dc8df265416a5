"""
Pooled async Redis client used by the flat configuration store.

Architecture:
    RedisClient (Public API)
        ├── ConnectionManager (pool + client lifecycle)
        ├── OperationExecutor (single commands, RedisError wrapping)
        └── HealthMonitor (ping latency, pool capacity)

One RedisClient is shared by every concurrent engine call; redis-py's
connection pool handles the concurrency.
"""

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from prdv_cache.core.config.constants import Stage
from prdv_cache.core.config.settings import Settings, get_settings
from prdv_cache.core.exceptions import BackendInitializationError, BackendUnavailableError
from prdv_cache.core.logging.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# CONNECTION MANAGEMENT
# =============================================================================


class ConnectionManager:
    """
    Owns the connection pool and the client bound to it.

    ``connect`` is idempotent and pings once so an unreachable server is
    reported at startup rather than on the first configuration lookup.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._pool: ConnectionPool | None = None
        self._client: redis.Redis | None = None

    @property
    def client(self) -> redis.Redis | None:
        return self._client

    def is_connected(self) -> bool:
        return self._client is not None

    async def connect(self) -> redis.Redis:
        """
        STAGE-REDIS.2: Connection establishment

        Raises:
            BackendInitializationError: If the server cannot be reached
        """
        if self._client is not None:
            return self._client

        cfg = self._settings.redis
        pool = ConnectionPool(
            host=cfg.REDIS_HOST,
            port=cfg.REDIS_PORT,
            db=cfg.REDIS_DB,
            password=cfg.REDIS_PASSWORD,
            max_connections=cfg.REDIS_MAX_CONNECTIONS,
            socket_connect_timeout=cfg.REDIS_SOCKET_CONNECT_TIMEOUT,
            socket_timeout=cfg.REDIS_SOCKET_TIMEOUT,
            retry_on_timeout=True,
            health_check_interval=cfg.REDIS_HEALTH_CHECK_INTERVAL,
            decode_responses=True,
        )
        client = redis.Redis(connection_pool=pool)

        try:
            await client.ping()
        except (ConnectionError, TimeoutError) as e:
            await pool.disconnect()
            logger.error(
                "Redis unreachable", stage=Stage.REDIS.value,
                host=cfg.REDIS_HOST, port=cfg.REDIS_PORT, error=str(e),
            )
            raise BackendInitializationError(
                message=f"Cannot reach Redis at {cfg.REDIS_HOST}:{cfg.REDIS_PORT}: {e}",
                details={"host": cfg.REDIS_HOST, "port": cfg.REDIS_PORT, "db": cfg.REDIS_DB},
            ) from e

        self._pool = pool
        self._client = client
        logger.info(
            "Redis pool ready", stage=Stage.REDIS.value,
            host=cfg.REDIS_HOST, port=cfg.REDIS_PORT, db=cfg.REDIS_DB,
            max_connections=cfg.REDIS_MAX_CONNECTIONS,
        )
        return client

    async def disconnect(self) -> None:
        """STAGE-REDIS.3: Connection cleanup"""
        if self._client is not None:
            await self._client.aclose()
        if self._pool is not None:
            await self._pool.disconnect()

        self._client = None
        self._pool = None
        logger.info("Redis pool closed", stage=Stage.REDIS.value)


# =============================================================================
# COMMAND EXECUTION
# =============================================================================


class OperationExecutor:
    """
    Runs single Redis commands. Any RedisError is logged with the command
    and key, then re-raised as BackendUnavailableError.
    """

    def __init__(self, redis_client: redis.Redis):
        self._redis = redis_client

    @staticmethod
    def _unavailable(command: str, keys: tuple[str, ...], error: RedisError) -> BackendUnavailableError:
        logger.error(
            "Redis command failed", stage=Stage.REDIS.value,
            command=command, keys=list(keys), error=str(error),
        )
        return BackendUnavailableError(
            message=f"Redis {command} failed: {error}", details={"command": command, "keys": list(keys)}
        )

    async def get(self, key: str) -> str | None:
        try:
            return await self._redis.get(key)
        except RedisError as e:
            raise self._unavailable("GET", (key,), e) from e

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        """SET with an optional EX in whole seconds."""
        try:
            return await self._redis.set(key, value, ex=ttl) is not None
        except RedisError as e:
            raise self._unavailable("SET", (key,), e) from e

    async def delete(self, *keys: str) -> int:
        try:
            return await self._redis.delete(*keys)
        except RedisError as e:
            raise self._unavailable("DEL", keys, e) from e

    def pipeline(self, transaction: bool = False):
        """
        Pipeline for batch writes. Errors from ``execute`` are redis-py
        exceptions; callers decide how to wrap them.

        Usage:
            async with executor.pipeline() as pipe:
                pipe.set("config:A", payload_a, ex=3600)
                pipe.set("config:B", payload_b, ex=3600)
                results = await pipe.execute(raise_on_error=False)
        """
        return self._redis.pipeline(transaction=transaction)


# =============================================================================
# HEALTH
# =============================================================================


class HealthMonitor:
    def __init__(self, connection_manager: ConnectionManager, settings: Settings):
        self._conn_mgr = connection_manager
        self._settings = settings

    async def health_check(self) -> dict[str, Any]:
        cfg = self._settings.redis
        health: dict[str, Any] = {
            "status": "healthy",
            "connected": self._conn_mgr.is_connected(),
            "host": cfg.REDIS_HOST,
            "port": cfg.REDIS_PORT,
            "db": cfg.REDIS_DB,
            "max_connections": cfg.REDIS_MAX_CONNECTIONS,
            "ping_latency_ms": None,
        }

        client = self._conn_mgr.client
        if client is None:
            health["status"] = "unhealthy"
            health["error"] = "Redis client is not connected"
            return health

        try:
            started = time.perf_counter()
            await client.ping()
            health["ping_latency_ms"] = round((time.perf_counter() - started) * 1000, 2)
            health["keys"] = await client.dbsize()
        except RedisError as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)

        return health


# =============================================================================
# PUBLIC API
# =============================================================================


class RedisClient:
    """
    Async Redis client facade.

    Usage:
        client = RedisClient()
        await client.connect()
        await client.set("config:HM0011000000", payload, ttl=3600)
        payload = await client.get("config:HM0011000000")
        await client.disconnect()
    """

    def __init__(self, settings: Settings | None = None):
        """STAGE-REDIS.1: Client initialization"""
        self._settings = settings or get_settings()
        self._conn_mgr = ConnectionManager(self._settings)
        self._health_monitor = HealthMonitor(self._conn_mgr, self._settings)
        self._executor: OperationExecutor | None = None

    async def connect(self) -> None:
        """
        Raises:
            BackendInitializationError: If the server cannot be reached
        """
        self._executor = OperationExecutor(await self._conn_mgr.connect())

    async def disconnect(self) -> None:
        await self._conn_mgr.disconnect()
        self._executor = None

    def is_connected(self) -> bool:
        return self._conn_mgr.is_connected()

    def _require_executor(self) -> OperationExecutor:
        if self._executor is None:
            raise BackendUnavailableError("Redis client is not connected")
        return self._executor

    async def get(self, key: str) -> str | None:
        return await self._require_executor().get(key)

    async def set(self, key: str, value: str, ttl: int | None = None) -> bool:
        return await self._require_executor().set(key, value, ttl)

    async def delete(self, *keys: str) -> int:
        return await self._require_executor().delete(*keys)

    def pipeline(self, transaction: bool = False):
        return self._require_executor().pipeline(transaction=transaction)

    async def health_check(self) -> dict[str, Any]:
        return await self._health_monitor.health_check()
