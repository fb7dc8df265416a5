"""
PRDVCacheError, the root of every error this package raises.

Themed subclasses live in store.py, source.py, validation.py and
load_test.py.
"""

from typing import Any


class PRDVCacheError(Exception):
    """
    Base exception for all device configuration cache errors.

    All custom exceptions inherit from this class to enable:
    - Consistent error handling
    - Device id correlation
    - Structured error logging

    Attributes:
        message: Error message
        device_id: Device identifier the error relates to (if available)
        details: Additional error details (dict)

    Example:
        raise BackendUnavailableError(
            "Redis SET failed",
            device_id="HM0011000000",
            details={"backend": "redis", "operation": "set"}
        )
    """

    def __init__(
        self, message: str, device_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.device_id = device_id
        self.details = (details or {}).copy()  # Create a copy to prevent external modification
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging/API responses.

        Returns:
            Dict with error_type, message, device_id, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "device_id": self.device_id,
            "details": self.details,
        }

    def with_context(self, **context) -> "PRDVCacheError":
        """
        Add additional context to the error details.

        Returns:
            Self (for method chaining)
        """
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        device_str = f", device_id='{self.device_id}'" if self.device_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{device_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        device_id: str | None = None,
        **details
    ) -> "PRDVCacheError":
        """
        Create an error from another exception.

        Useful for wrapping third-party exceptions with additional context.

        Example:
            >>> try:
            ...     await redis.set(key, value)
            ... except RedisError as e:
            ...     raise BackendUnavailableError.from_exception(
            ...         e, device_id="HM0011000000", backend="redis"
            ...     )
        """
        error_message = message or str(exc)
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, device_id=device_id, details=error_details)


# Configuration exception (kept here as it's fundamental)
class ConfigurationError(PRDVCacheError):
    """Raised when configuration is invalid or missing."""
    pass
