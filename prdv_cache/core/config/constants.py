"""
System Constants and Enumerations

This module defines system-wide constants and enumerations used across
the device configuration cache.

Architectural Decision: Centralized constants for maintainability
- Single source of truth for magic numbers
- Type-safe enums for stage identifiers
"""

from enum import Enum

# ============================================================================
# Stage Identifiers (for structured logging)
# ============================================================================


class Stage(str, Enum):
    """
    Processing stages used as the ``stage`` field of log events.

    Format: {SEQUENCE}_{DESCRIPTIVE_NAME}
    """

    INITIALIZATION = "0.0_INITIALIZATION"
    REQUEST_VALIDATION = "1.0_REQUEST_VALIDATION"
    CACHE_LOOKUP = "2.0_CACHE_LOOKUP"
    CACHE_HIT = "2.1_CACHE_HIT"
    CACHE_MISS = "2.2_CACHE_MISS"
    CACHE_POPULATE = "2.3_CACHE_POPULATE"
    SOURCE_LOOKUP = "3.0_SOURCE_LOOKUP"
    EXPLICIT_WRITE = "4.0_EXPLICIT_WRITE"
    BATCH_WRITE = "4.1_BATCH_WRITE"
    CLEANUP = "6.0_CLEANUP"

    # Cross-cutting concerns
    REDIS = "REDIS_OPERATIONS"
    TABLE = "TABLE_OPERATIONS"
    MEMORY = "MEMORY_OPERATIONS"
    RETRY = "R_RETRY_LOGIC"
    LOAD_TEST = "LT_LOAD_TEST"


# ============================================================================
# Storage Keys
# ============================================================================

REDIS_KEY_CONFIG = "config"
TABLE_DEFAULT_PARTITION_KEY = "config"
TABLE_TRANSACTION_LIMIT = 100

# ============================================================================
# Cache Policy
# ============================================================================

DEFAULT_CACHE_TTL_SECONDS = 3600

# ============================================================================
# Load Generator
# ============================================================================

LOAD_TEST_DEFAULT_RECORDS = 10_000
LOAD_TEST_DEFAULT_BATCH_SIZE = 100
LOAD_TEST_DEFAULT_CONCURRENCY = 10
LOAD_TEST_PROGRESS_INTERVAL = 1000

# Identifier templates: [category][location][serial]
DEVICE_CATEGORY_CODES = ("HM", "WM", "GM", "EM", "TS", "HS", "PS", "FS")
DEVICE_LOCATION_CODES = ("001", "002", "003", "004", "005", "006", "007", "008", "009", "010")
DEVICE_SERIAL_BASE = 1_000_000
