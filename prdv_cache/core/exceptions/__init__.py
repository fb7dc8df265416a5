"""
Exception Module

Structured exception hierarchy for the device configuration cache.

Module Structure:
-----------------
- **base.py**: PRDVCacheError base class + ConfigurationError
- **store.py**: Storage backend and codec exceptions
- **source.py**: Authoritative source exceptions
- **validation.py**: Input validation exceptions
- **load_test.py**: Load generator exceptions

Usage:
------
```python
from prdv_cache.core.exceptions import BackendUnavailableError, InvalidIdentifierError
```
"""

# Base exception
from prdv_cache.core.exceptions.base import ConfigurationError, PRDVCacheError

# Load test exceptions
from prdv_cache.core.exceptions.load_test import LoadTestError

# Source exceptions
from prdv_cache.core.exceptions.source import SourceUnavailableError

# Store exceptions
from prdv_cache.core.exceptions.store import (
    BackendInitializationError,
    BackendUnavailableError,
    RecordDecodeError,
    StoreError,
)

# Validation exceptions
from prdv_cache.core.exceptions.validation import (
    InvalidIdentifierError,
    InvalidLoadTestParametersError,
    ValidationError,
)

__all__ = [
    # Base
    "PRDVCacheError",
    "ConfigurationError",
    # Store
    "StoreError",
    "BackendUnavailableError",
    "BackendInitializationError",
    "RecordDecodeError",
    # Source
    "SourceUnavailableError",
    # Validation
    "ValidationError",
    "InvalidIdentifierError",
    "InvalidLoadTestParametersError",
    # Load test
    "LoadTestError",
]
