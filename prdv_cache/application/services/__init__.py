"""
Application services.

- **configuration_service.py**: cache-aside engine (read and write paths)
- **load_test_service.py**: bounded-concurrency load generator
- **report_writer.py**: optional load test report artifact
"""

from prdv_cache.application.services.configuration_service import ConfigurationService
from prdv_cache.application.services.load_test_service import LoadTestService
from prdv_cache.application.services.report_writer import LoadTestReportWriter

__all__ = [
    "ConfigurationService",
    "LoadTestService",
    "LoadTestReportWriter",
]
