"""
Pytest Configuration and Shared Test Fixtures

This module provides pytest configuration and reusable fixtures for all tests.
All fixtures defined here are automatically available to all test files.
"""

import os
import sys
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

# Add project root to sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tests.test_fixtures.cache_factory import CacheTestFactory  # noqa: E402
from tests.test_fixtures.record_factory import MockClock, RecordTestFactory  # noqa: E402


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def test_settings(tmp_path):
    """
    Real Settings pointed at temporary locations.

    The table store uses a throwaway SQLite file and retries quickly;
    reports land under tmp_path.
    """
    from prdv_cache.core.config.settings import Settings

    return Settings(
        STORE_BACKEND="memory",
        CACHE_TTL_SECONDS=3600,
        TABLE_DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'configs.db'}",
        TABLE_INIT_BASE_DELAY=0.01,
        SOURCE_DELAY_MS=0,
        LOAD_TEST_REPORTS_ENABLED=False,
        LOAD_TEST_REPORTS_DIR=str(tmp_path / "reports"),
        LOAD_TEST_VERSION_NAME="test-build",
    )


@pytest.fixture(scope="session")
def use_real_redis():
    """Check if real Redis should be used for integration tests."""
    return os.getenv("USE_REAL_REDIS", "0").lower() in ("1", "true", "yes")


# ============================================================================
# Time & Data Fixtures
# ============================================================================


@pytest.fixture
def mock_clock():
    """Clock frozen at a fixed instant; call advance() to move it."""
    return MockClock()


@pytest.fixture
def sample_record():
    """A fully populated configuration record."""
    return RecordTestFactory.record()


@pytest.fixture
def ttl():
    return timedelta(hours=1)


# ============================================================================
# Storage Fixtures
# ============================================================================


@pytest.fixture
def memory_store(mock_clock):
    """In-memory store driven by the mock clock."""
    from prdv_cache.infrastructure.cache.memory_store import InMemoryConfigurationStore

    return InMemoryConfigurationStore(clock=mock_clock)


@pytest.fixture
def fake_redis_client():
    """In-memory Redis client stand-in."""
    return CacheTestFactory.fake_redis_client()


@pytest.fixture
def redis_store(fake_redis_client, mock_clock):
    """Redis configuration store over the fake client."""
    from prdv_cache.infrastructure.cache.redis_store import RedisConfigurationStore

    return RedisConfigurationStore(fake_redis_client, clock=mock_clock)


@pytest.fixture
async def table_store(test_settings, mock_clock):
    """Table configuration store on a temporary SQLite database."""
    from prdv_cache.infrastructure.cache.table_store import TableConfigurationStore

    store = TableConfigurationStore(test_settings, clock=mock_clock)
    await store.initialize()
    yield store
    await store.close()


# ============================================================================
# Source & Service Fixtures
# ============================================================================


@pytest.fixture
def scripted_source(sample_record):
    """
    Authoritative source mock returning ``sample_record`` for every id.

    Inspect ``scripted_source.lookup`` call counts to verify short-circuits.
    """
    source = AsyncMock()
    source.lookup = AsyncMock(return_value=sample_record)
    return source


@pytest.fixture
def configuration_service(memory_store, scripted_source, mock_clock):
    """Cache-aside engine over the in-memory store and scripted source."""
    from prdv_cache.application.services.configuration_service import ConfigurationService

    return ConfigurationService(
        memory_store,
        scripted_source,
        ttl=timedelta(hours=1),
        clock=mock_clock,
        detailed_logging=False,
    )
