"""
Storage Backend Exceptions

All exceptions related to the storage backends (Redis, structured table store,
in-memory) and to the record codec.
"""

from prdv_cache.core.exceptions.base import PRDVCacheError


class StoreError(PRDVCacheError):
    """Base exception for storage backend errors."""
    pass


class BackendUnavailableError(StoreError):
    """
    Raised for transport-level failures talking to a backend.

    Swallowed on the engine's read and best-effort population paths,
    propagated on explicit write paths.

    Common causes:
    - Redis or database server is down
    - Network connectivity issues
    - Connection pool exhausted
    """
    pass


class BackendInitializationError(BackendUnavailableError):
    """
    Raised when one-time backend setup (e.g. creating the backing table)
    still fails after all retry attempts.
    """
    pass


class RecordDecodeError(StoreError):
    """
    Raised by the record codec when a stored payload cannot be interpreted.

    Backends contain this error: they log it and report the entry as a miss.
    """
    pass
