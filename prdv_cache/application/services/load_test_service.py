"""
Load Generator

Drives the configuration service's write path with synthetic devices to
measure throughput under bounded concurrency.

Algorithm:
    1. Validate parameters
    2. Synthesize ``record_count`` distinct ids: {category}{location}{serial}
    3. Split ids into chunks of ``batch_size``
    4. Run chunks concurrently, at most ``max_concurrency`` in flight
       (semaphore acquired before each chunk, released in ``finally``)
    5. Within a chunk, generate a record per id and write it through the
       service, either item by item or as one batch
    6. Aggregate successes/failures under a lock and build the report

Individual item or chunk failures are counted, never raised. Only an
exception escaping the dispatch loop aborts the run (as LoadTestError).
"""

import asyncio
import inspect
import random
import time
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Literal

from prdv_cache.application.services.configuration_service import ConfigurationService
from prdv_cache.application.services.report_writer import LoadTestReportWriter
from prdv_cache.core.config.constants import (
    DEVICE_CATEGORY_CODES,
    DEVICE_LOCATION_CODES,
    DEVICE_SERIAL_BASE,
    LOAD_TEST_DEFAULT_BATCH_SIZE,
    LOAD_TEST_DEFAULT_CONCURRENCY,
    LOAD_TEST_DEFAULT_RECORDS,
    LOAD_TEST_PROGRESS_INTERVAL,
    Stage,
)
from prdv_cache.core.config.settings import Settings, get_settings
from prdv_cache.core.exceptions import InvalidLoadTestParametersError, LoadTestError
from prdv_cache.core.logging.logger import clear_run_id, get_logger, log_stage, set_run_id
from prdv_cache.infrastructure.source.simulated_source import SimulatedConfigurationSource
from prdv_cache.models.configuration import ConfigurationRecord, utc_now
from prdv_cache.models.load_test import LoadTestReport

logger = get_logger(__name__)

WriteMode = Literal["item", "batch"]
RecordGenerator = Callable[[str], ConfigurationRecord | None | Awaitable[ConfigurationRecord | None]]


def generate_device_ids(count: int, rng: random.Random) -> list[str]:
    """
    Synthesize ``count`` distinct device ids.

    The category cycles through DEVICE_CATEGORY_CODES, the location is drawn
    from ``rng`` and the serial increases strictly, so ids never collide.
    """
    return [
        f"{DEVICE_CATEGORY_CODES[i % len(DEVICE_CATEGORY_CODES)]}"
        f"{rng.choice(DEVICE_LOCATION_CODES)}"
        f"{DEVICE_SERIAL_BASE + i}"
        for i in range(count)
    ]


@dataclass
class LoadTestCounters:
    """Success/failure tallies shared by concurrently running chunks."""

    successful: int = 0
    failed: int = 0
    active_chunks: int = 0
    peak_active_chunks: int = 0
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def processed(self) -> int:
        return self.successful + self.failed

    async def add(self, successful: int, failed: int) -> tuple[int, int]:
        """
        Add a chunk's results.

        Returns:
            (processed before, processed after)
        """
        async with self._lock:
            before = self.processed
            self.successful += successful
            self.failed += failed
            return before, self.processed

    async def chunk_started(self) -> None:
        async with self._lock:
            self.active_chunks += 1
            self.peak_active_chunks = max(self.peak_active_chunks, self.active_chunks)

    async def chunk_finished(self) -> None:
        async with self._lock:
            self.active_chunks -= 1


class LoadTestService:
    """
    Bounded-concurrency load generator.

    Usage:
        load_test = LoadTestService(service)
        report = await load_test.run_load_test(record_count=1000, batch_size=100, max_concurrency=10)
    """

    def __init__(
        self,
        service: ConfigurationService,
        generator: RecordGenerator | None = None,
        settings: Settings | None = None,
        report_writer: LoadTestReportWriter | None = None,
        seed: int | None = 0,
    ):
        """
        Args:
            service: Configuration service whose write path is exercised
            generator: Produces a record per id (default: simulated source, no delay)
            settings: Limits and report settings (defaults to global settings)
            report_writer: Report artifact writer (default: built from settings)
            seed: Seed for id synthesis; fixed by default so runs are reproducible
        """
        self._settings = settings or get_settings()
        self._service = service
        self._generator = generator or SimulatedConfigurationSource(delay_ms=0, seed=seed).generate
        self._report_writer = report_writer or LoadTestReportWriter(self._settings)
        self._seed = seed
        self.last_counters: LoadTestCounters | None = None

    @staticmethod
    def default_parameters() -> dict[str, int]:
        return {
            "record_count": LOAD_TEST_DEFAULT_RECORDS,
            "batch_size": LOAD_TEST_DEFAULT_BATCH_SIZE,
            "max_concurrency": LOAD_TEST_DEFAULT_CONCURRENCY,
        }

    def validate(self, record_count: int, batch_size: int, max_concurrency: int) -> None:
        """
        Raises:
            InvalidLoadTestParametersError: If any parameter is out of range
        """
        limits = self._settings.load_test
        details = {
            "record_count": record_count,
            "batch_size": batch_size,
            "max_concurrency": max_concurrency,
        }

        if record_count <= 0:
            raise InvalidLoadTestParametersError("Number of records must be greater than 0", details=details)
        if record_count > limits.LOAD_TEST_MAX_RECORDS:
            raise InvalidLoadTestParametersError(
                f"Number of records cannot exceed {limits.LOAD_TEST_MAX_RECORDS:,} for safety reasons",
                details={**details, "max_records": limits.LOAD_TEST_MAX_RECORDS},
            )
        if batch_size <= 0:
            raise InvalidLoadTestParametersError("Batch size must be greater than 0", details=details)
        if not 1 <= max_concurrency <= limits.LOAD_TEST_MAX_CONCURRENCY:
            raise InvalidLoadTestParametersError(
                f"Concurrent tasks must be between 1 and {limits.LOAD_TEST_MAX_CONCURRENCY}",
                details={**details, "max_concurrency_limit": limits.LOAD_TEST_MAX_CONCURRENCY},
            )

    async def _generate(self, device_id: str) -> ConfigurationRecord | None:
        result = self._generator(device_id)
        if inspect.isawaitable(result):
            result = await result
        return result

    # -------------------------------------------------------------------------
    # Chunk processing
    # -------------------------------------------------------------------------

    async def _process_items(self, chunk: list[str]) -> tuple[int, int]:
        successful = failed = 0
        for device_id in chunk:
            try:
                record = await self._generate(device_id)
                if record is None:
                    failed += 1
                    logger.warning(
                        "No configuration generated", stage=Stage.LOAD_TEST.value, device_id=device_id
                    )
                    continue
                await self._service.set_configuration(device_id, record)
                successful += 1
            except Exception as e:
                failed += 1
                logger.error(
                    "Load test item failed",
                    stage=Stage.LOAD_TEST.value,
                    device_id=device_id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
        return successful, failed

    async def _process_batch(self, chunk: list[str]) -> tuple[int, int]:
        records: dict[str, ConfigurationRecord] = {}
        failed = 0
        for device_id in chunk:
            try:
                record = await self._generate(device_id)
            except Exception as e:
                record = None
                logger.error(
                    "Record generation failed", stage=Stage.LOAD_TEST.value, device_id=device_id, error=str(e)
                )
            if record is None:
                failed += 1
            else:
                records[device_id] = record

        if not records:
            return 0, failed

        try:
            written = await self._service.set_configurations_batch(records)
        except Exception as e:
            logger.error(
                "Load test batch failed",
                stage=Stage.LOAD_TEST.value,
                chunk_size=len(records),
                error=str(e),
                error_type=type(e).__name__,
            )
            return 0, failed + len(records)

        return written, failed + len(records) - written

    async def _run_chunk(
        self,
        chunk: list[str],
        semaphore: asyncio.Semaphore,
        counters: LoadTestCounters,
        write_mode: WriteMode,
    ) -> None:
        await semaphore.acquire()
        try:
            await counters.chunk_started()
            try:
                if write_mode == "batch":
                    successful, failed = await self._process_batch(chunk)
                else:
                    successful, failed = await self._process_items(chunk)
            finally:
                await counters.chunk_finished()
        finally:
            semaphore.release()

        before, after = await counters.add(successful, failed)
        if after // LOAD_TEST_PROGRESS_INTERVAL > before // LOAD_TEST_PROGRESS_INTERVAL:
            log_stage(logger, Stage.LOAD_TEST, "Load test progress", processed=after)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def run_load_test(
        self,
        record_count: int,
        batch_size: int,
        max_concurrency: int,
        write_mode: WriteMode = "item",
    ) -> LoadTestReport:
        """
        Run a load test against the service's write path.

        Raises:
            InvalidLoadTestParametersError: If parameters are out of range
            LoadTestError: If the dispatch loop itself fails
        """
        self.validate(record_count, batch_size, max_concurrency)
        if write_mode not in ("item", "batch"):
            raise InvalidLoadTestParametersError(
                "Write mode must be 'item' or 'batch'", details={"write_mode": write_mode}
            )

        set_run_id(f"loadtest-{uuid.uuid4().hex[:12]}")
        backend_type = self._service.store.backend_type
        log_stage(
            logger, Stage.LOAD_TEST, "Starting load test",
            record_count=record_count, batch_size=batch_size,
            max_concurrency=max_concurrency, write_mode=write_mode, backend=backend_type,
        )

        start_time = utc_now()
        started = time.perf_counter()
        counters = LoadTestCounters()
        self.last_counters = counters

        device_ids = generate_device_ids(record_count, random.Random(self._seed))
        chunks = [device_ids[i:i + batch_size] for i in range(0, len(device_ids), batch_size)]
        semaphore = asyncio.Semaphore(max_concurrency)

        tasks = [
            asyncio.ensure_future(self._run_chunk(chunk, semaphore, counters, write_mode))
            for chunk in chunks
        ]
        try:
            await asyncio.gather(*tasks)
        except Exception as e:
            logger.error("Error during load test execution", stage=Stage.LOAD_TEST.value, error=str(e))
            # Stop the remaining chunks before reporting the failure
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            clear_run_id()
            raise LoadTestError.from_exception(e, message="Load test dispatch failed") from e

        elapsed = time.perf_counter() - started
        report = LoadTestReport(
            records_processed=record_count,
            total_duration=elapsed,
            average_time_per_record=elapsed / record_count,
            records_per_second=counters.successful / elapsed if elapsed > 0 else 0.0,
            successful_operations=counters.successful,
            failed_operations=counters.failed,
            batch_size=batch_size,
            concurrent_tasks=max_concurrency,
            start_time=start_time,
            end_time=utc_now(),
            backend_type=backend_type,
            distinct_device_ids=len(set(device_ids)),
        )

        log_stage(
            logger, Stage.LOAD_TEST, "Load test completed",
            successful=report.successful_operations, failed=report.failed_operations,
            duration_s=round(elapsed, 2), records_per_second=round(report.records_per_second, 2),
            peak_active_chunks=counters.peak_active_chunks,
        )

        self._report_writer.write(report)
        clear_run_id()
        return report

    async def verify(self) -> LoadTestReport:
        """Small smoke run: 10 records, one batch, no concurrency."""
        return await self.run_load_test(record_count=10, batch_size=10, max_concurrency=1)
