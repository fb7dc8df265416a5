"""
Authoritative Source Exceptions
"""

from prdv_cache.core.exceptions.base import PRDVCacheError


class SourceUnavailableError(PRDVCacheError):
    """
    Raised when the authoritative configuration lookup fails.

    The engine never propagates this error; a broken source degrades to
    "not found".
    """
    pass
