"""
Core Module

Foundational components: configuration, logging, exceptions and interfaces.
"""

from .exceptions import (
    BackendUnavailableError,
    ConfigurationError,
    InvalidIdentifierError,
    PRDVCacheError,
    RecordDecodeError,
    SourceUnavailableError,
    ValidationError,
)
from .logging import (
    clear_run_id,
    get_logger,
    get_run_id,
    log_stage,
    set_run_id,
    setup_logging,
)

__all__ = [
    # Exceptions
    "PRDVCacheError",
    "ConfigurationError",
    "BackendUnavailableError",
    "RecordDecodeError",
    "SourceUnavailableError",
    "ValidationError",
    "InvalidIdentifierError",
    # Logging
    "clear_run_id",
    "get_logger",
    "get_run_id",
    "log_stage",
    "set_run_id",
    "setup_logging",
]
