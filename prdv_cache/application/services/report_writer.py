"""
Load test report artifact.

When LOAD_TEST_REPORTS_ENABLED is set, each finished run is written to
``{LOAD_TEST_REPORTS_DIR}/LoadTestReport_{version}_{YYYYmmdd-HHMMSS}.json``:

    {
      "version": "...",
      "generatedAt": "...",
      "testResult": { ...camelCase LoadTestReport... }
    }

Failing to write the file is logged and otherwise ignored; it never fails
the run that produced the report.
"""

from collections.abc import Callable
from datetime import datetime
from pathlib import Path

import orjson

from prdv_cache.core.config.constants import Stage
from prdv_cache.core.config.settings import Settings, get_settings
from prdv_cache.core.logging.logger import get_logger, log_stage
from prdv_cache.models.configuration import utc_now
from prdv_cache.models.load_test import LoadTestReport

logger = get_logger(__name__)


class LoadTestReportWriter:
    """Persists LoadTestReport documents to disk."""

    def __init__(self, settings: Settings | None = None, clock: Callable[[], datetime] = utc_now):
        load_test = (settings or get_settings()).load_test
        self.enabled = load_test.LOAD_TEST_REPORTS_ENABLED
        self.directory = Path(load_test.LOAD_TEST_REPORTS_DIR)
        self.version = load_test.LOAD_TEST_VERSION_NAME
        self._clock = clock

    def build_document(self, report: LoadTestReport, generated_at: datetime) -> dict:
        return {
            "version": self.version,
            "generatedAt": generated_at.isoformat(),
            "testResult": report.model_dump(mode="json", by_alias=True),
        }

    def write(self, report: LoadTestReport) -> Path | None:
        """
        Write the report if enabled.

        Returns:
            Path of the written file, or None if disabled or the write failed
        """
        if not self.enabled:
            return None

        generated_at = self._clock()
        path = self.directory / f"LoadTestReport_{self.version}_{generated_at:%Y%m%d-%H%M%S}.json"

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(
                orjson.dumps(self.build_document(report, generated_at), option=orjson.OPT_INDENT_2)
            )
        except OSError as e:
            log_stage(
                logger, Stage.LOAD_TEST, "Failed to save load test report", level="error",
                path=str(path), error=str(e),
            )
            return None

        log_stage(logger, Stage.LOAD_TEST, "Load test report saved", path=str(path))
        return path
