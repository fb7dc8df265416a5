"""
Validation Exceptions

All exceptions related to input validation. Validation happens before any
backend or source is touched.
"""

from prdv_cache.core.exceptions.base import PRDVCacheError


class ValidationError(PRDVCacheError):
    """
    Raised when input validation fails.

    This is the base class for all validation-related errors.
    """
    pass


class InvalidIdentifierError(ValidationError):
    """
    Raised when a device identifier is empty or malformed, or when a write
    is attempted without a record.
    """
    pass


class InvalidLoadTestParametersError(ValidationError):
    """
    Raised when load test parameters are out of range.

    Example:
        raise InvalidLoadTestParametersError(
            "Record count cannot exceed 100,000 for safety reasons",
            details={"record_count": 250000, "max_records": 100000}
        )
    """
    pass
