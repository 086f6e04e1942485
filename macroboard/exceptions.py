"""Custom exception hierarchy for macroboard.

Exception Hierarchy:
    MacroboardError (base)
    ├── ConfigurationError
    └── DataProviderError
        ├── ProviderRateLimitError
        ├── ProviderTimeoutError
        └── DataNotAvailableError

Decoders never raise these: a payload that cannot be decoded yields ``None``
(no data). Exceptions are reserved for transport-level failures, and the
dashboard service converts them into per-source error strings.
"""
from __future__ import annotations

from typing import Optional, Dict, Any


class MacroboardError(Exception):
    """Base exception for all macroboard errors.

    Attributes:
        message: Human-readable error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(MacroboardError):
    """Raised when there's a configuration problem.

    Examples:
        - Invalid base URL or batch size
        - Population table with non-numeric entries
    """
    pass


# Data Provider Errors
class DataProviderError(MacroboardError):
    """Base class for data provider errors.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.provider = provider
        details = details or {}
        if provider:
            details["provider"] = provider
        super().__init__(message, code, details)


class ProviderRateLimitError(DataProviderError):
    """Raised when provider rate limit is exceeded.

    Attributes:
        retry_after: Seconds to wait before retrying
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        retry_after: Optional[int] = None,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.retry_after = retry_after
        details = details or {}
        if retry_after:
            details["retry_after"] = retry_after
        super().__init__(message, provider, code, details)


class ProviderTimeoutError(DataProviderError):
    """Raised when provider request times out."""
    pass


class DataNotAvailableError(DataProviderError):
    """Raised when a provider could not deliver a response body.

    This can mean:
        - Network failure after all retries
        - Non-2xx status passed through from the upstream or proxy
        - Body that is not JSON at all
    """
    pass


def is_retryable_error(error: Exception) -> bool:
    """Check if an error is temporary and the request can be retried."""
    retryable_types = (
        ProviderRateLimitError,
        ProviderTimeoutError,
    )
    return isinstance(error, retryable_types)


def get_error_response(error: Exception) -> Dict[str, Any]:
    """Convert any exception to an API error response."""
    if isinstance(error, MacroboardError):
        return error.to_dict()

    return {
        "error": "InternalError",
        "message": str(error),
        "details": {},
    }
