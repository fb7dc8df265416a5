"""
Structured Table Configuration Store

Backend addressed by a (partition key, row key) pair, using SQLAlchemy 2.0
async. Every configuration lives in a fixed partition ("config") with the
device id as row key. The record itself is stored as an opaque msgpack
payload; a few fields are duplicated into plain columns so the table can be
inspected with an ordinary SQL client.

Batch writes are split into transactions of at most TABLE_MAX_BATCH_SIZE
rows. A failing transaction is rolled back and its rows are counted as
failures; the remaining chunks still run. If no chunk commits at all the
batch raises BackendUnavailableError.

Table creation happens once, in a shared initialization task that retries
with exponential backoff. Every operation awaits that task first, so calls
issued during startup wait for the table instead of failing.
"""

import asyncio
from collections.abc import Callable, Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    LargeBinary,
    MetaData,
    String,
    Table,
    delete,
    func,
    insert,
    select,
    text,
)
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from prdv_cache.core.config.constants import Stage
from prdv_cache.core.config.settings import Settings, get_settings
from prdv_cache.core.exceptions import (
    BackendInitializationError,
    BackendUnavailableError,
    RecordDecodeError,
)
from prdv_cache.core.logging.logger import get_logger, log_stage
from prdv_cache.infrastructure.codec.record_codec import RecordCodec
from prdv_cache.models.configuration import CacheEntry, ConfigurationRecord, utc_now

logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MICROSECOND = timedelta(microseconds=1)


def _to_micros(value: datetime) -> int:
    return (value - _EPOCH) // _MICROSECOND


def _from_micros(value: int) -> datetime:
    return _EPOCH + timedelta(microseconds=value)


def build_table(name: str, metadata: MetaData) -> Table:
    """Define the configuration table on the given metadata."""
    return Table(
        name,
        metadata,
        Column("partition_key", String(64), primary_key=True),
        Column("row_key", String(256), primary_key=True),
        Column("payload", LargeBinary, nullable=False),
        Column("device_type", String(128), nullable=False, default=""),
        Column("storage_interval", String(32), nullable=False),
        Column("last_updated", DateTime(timezone=True), nullable=False),
        # Epoch microseconds, compared exactly against the store clock
        Column("expires_at", BigInteger, nullable=False, index=True),
    )


class TableConfigurationStore:
    """
    ConfigurationStore backed by a relational table.

    Usage:
        store = TableConfigurationStore()
        await store.initialize()
        written = await store.set_batch(records, timedelta(hours=1))
        removed = await store.purge_expired()
    """

    backend_type = "table"

    def __init__(
        self,
        settings: Settings | None = None,
        engine: AsyncEngine | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._settings = settings or get_settings()
        table_settings = self._settings.table

        self._engine = engine or create_async_engine(table_settings.TABLE_DATABASE_URL, future=True)
        self._metadata = MetaData()
        self._table = build_table(table_settings.TABLE_NAME, self._metadata)
        self._partition_key = table_settings.TABLE_PARTITION_KEY
        self._max_batch_size = table_settings.TABLE_MAX_BATCH_SIZE
        self._max_attempts = table_settings.TABLE_INIT_MAX_ATTEMPTS
        self._base_delay = table_settings.TABLE_INIT_BASE_DELAY
        self._clock = clock

        self._init_task: asyncio.Task | None = None

    @property
    def table(self) -> Table:
        return self._table

    # -------------------------------------------------------------------------
    # Initialization
    # -------------------------------------------------------------------------

    async def _create_schema(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(self._metadata.create_all)

    async def _create_table(self) -> None:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._base_delay),
            retry=retry_if_exception_type(SQLAlchemyError),
            before_sleep=lambda retry_state: logger.warning(
                "Table initialization retry",
                stage=Stage.RETRY.value,
                table=self._table.name,
                attempt=retry_state.attempt_number,
                error=str(retry_state.outcome.exception()),
            ),
        ):
            with attempt:
                await self._create_schema()

    async def _initialize_once(self) -> None:
        try:
            await self._create_table()
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.error(
                "Table initialization failed",
                stage=Stage.TABLE.value,
                table=self._table.name,
                attempts=self._max_attempts,
                error=str(cause),
            )
            raise BackendInitializationError(
                message=f"Failed to initialize table '{self._table.name}': {cause}",
                details={"table": self._table.name, "attempts": self._max_attempts},
            ) from cause

        log_stage(logger, Stage.TABLE, "Configuration table ready", table=self._table.name)

    async def _ensure_initialized(self) -> None:
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._initialize_once())
        await asyncio.shield(self._init_task)

    async def initialize(self) -> None:
        await self._ensure_initialized()

    async def close(self) -> None:
        if self._init_task is not None and not self._init_task.done():
            self._init_task.cancel()
        await self._engine.dispose()
        log_stage(logger, Stage.CLEANUP, "Table store connections closed")

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    def _row_for(self, device_id: str, record: ConfigurationRecord, expires_at: datetime) -> dict[str, Any]:
        return {
            "partition_key": self._partition_key,
            "row_key": device_id,
            "payload": RecordCodec.to_msgpack(record),
            "device_type": record.device_type,
            "storage_interval": record.storage_interval.name,
            "last_updated": record.last_updated,
            "expires_at": _to_micros(expires_at),
        }

    def _key_filter(self, device_ids: list[str]):
        return (self._table.c.partition_key == self._partition_key) & (
            self._table.c.row_key.in_(device_ids)
        )

    async def _upsert(self, rows: list[dict[str, Any]]) -> None:
        # Delete + insert in one transaction is a portable upsert
        async with self._engine.begin() as conn:
            await conn.execute(delete(self._table).where(self._key_filter([r["row_key"] for r in rows])))
            await conn.execute(insert(self._table), rows)

    # -------------------------------------------------------------------------
    # Store operations
    # -------------------------------------------------------------------------

    async def get(self, device_id: str) -> CacheEntry | None:
        await self._ensure_initialized()

        stmt = select(self._table.c.payload, self._table.c.expires_at).where(
            self._key_filter([device_id])
        )
        try:
            async with self._engine.connect() as conn:
                row = (await conn.execute(stmt)).first()
        except SQLAlchemyError as e:
            logger.error("Table GET failed", stage=Stage.TABLE.value, device_id=device_id, error=str(e))
            raise BackendUnavailableError(
                message=f"Table GET failed: {e}", device_id=device_id
            ) from e

        if row is None:
            return None

        now = self._clock()
        expires_at = _from_micros(row.expires_at)
        if expires_at <= now:
            await self._delete_expired(device_id, row.expires_at)
            return None

        try:
            record = RecordCodec.from_msgpack(row.payload)
        except RecordDecodeError as e:
            log_stage(
                logger,
                Stage.TABLE,
                "Undecodable table payload treated as miss",
                level="warning",
                device_id=device_id,
                error=e.message,
            )
            return None

        return CacheEntry(record=record, expires_at=expires_at)

    async def _delete_expired(self, device_id: str, expires_at_micros: int) -> None:
        """Best-effort removal of an expired row; a concurrent rewrite is left alone."""
        stmt = delete(self._table).where(
            self._key_filter([device_id]) & (self._table.c.expires_at == expires_at_micros)
        )
        try:
            async with self._engine.begin() as conn:
                await conn.execute(stmt)
        except SQLAlchemyError as e:
            logger.debug(
                "Expired row cleanup failed", stage=Stage.TABLE.value, device_id=device_id, error=str(e)
            )

    async def set(self, device_id: str, record: ConfigurationRecord, ttl: timedelta) -> None:
        await self._ensure_initialized()

        try:
            await self._upsert([self._row_for(device_id, record, self._clock() + ttl)])
        except SQLAlchemyError as e:
            logger.error("Table SET failed", stage=Stage.TABLE.value, device_id=device_id, error=str(e))
            raise BackendUnavailableError(
                message=f"Table SET failed: {e}", device_id=device_id
            ) from e

    async def exists(self, device_id: str) -> bool:
        # Same decode and expiry rules as get
        return await self.get(device_id) is not None

    async def set_batch(
        self, records: Mapping[str, ConfigurationRecord], ttl: timedelta
    ) -> int:
        """
        Upsert records in transactions of at most TABLE_MAX_BATCH_SIZE rows.

        Returns:
            Number of rows in chunks that committed

        Raises:
            BackendUnavailableError: If every chunk failed
        """
        await self._ensure_initialized()

        if not records:
            return 0

        expires_at = self._clock() + ttl
        rows = [self._row_for(device_id, record, expires_at) for device_id, record in records.items()]

        succeeded = 0
        last_error: SQLAlchemyError | None = None
        for start in range(0, len(rows), self._max_batch_size):
            chunk = rows[start:start + self._max_batch_size]
            try:
                await self._upsert(chunk)
            except SQLAlchemyError as e:
                last_error = e
                logger.error(
                    "Table batch transaction failed",
                    stage=Stage.TABLE.value,
                    chunk_start=start,
                    chunk_size=len(chunk),
                    error=str(e),
                )
                continue
            succeeded += len(chunk)

        # No chunk committed: the table is unreachable, not partially failing
        if succeeded == 0 and last_error is not None:
            raise BackendUnavailableError(
                message=f"Table batch failed: {last_error}",
                details={"batch_size": len(rows)},
            ) from last_error

        return succeeded

    async def purge_expired(self) -> int:
        """
        Delete every expired row in the partition.

        Returns:
            Number of rows removed
        """
        await self._ensure_initialized()

        stmt = delete(self._table).where(
            (self._table.c.partition_key == self._partition_key)
            & (self._table.c.expires_at <= _to_micros(self._clock()))
        )
        try:
            async with self._engine.begin() as conn:
                result = await conn.execute(stmt)
        except SQLAlchemyError as e:
            raise BackendUnavailableError(message=f"Table purge failed: {e}") from e

        removed = result.rowcount or 0
        log_stage(logger, Stage.CLEANUP, "Expired configurations purged", removed=removed)
        return removed

    async def health_check(self) -> dict[str, Any]:
        health: dict[str, Any] = {
            "status": "healthy",
            "backend": self.backend_type,
            "table": self._table.name,
            "partition_key": self._partition_key,
        }
        try:
            await self._ensure_initialized()
            async with self._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
                count = await conn.scalar(
                    select(func.count()).select_from(self._table).where(
                        self._table.c.partition_key == self._partition_key
                    )
                )
            health["rows"] = int(count or 0)
        except (SQLAlchemyError, BackendUnavailableError) as e:
            health["status"] = "unhealthy"
            health["error"] = str(e)
        return health
