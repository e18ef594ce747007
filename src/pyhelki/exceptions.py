"""Custom exceptions for pyhelki library."""

from __future__ import annotations

from typing import Any


class HelkiError(Exception):
    """Base exception for all Helki errors."""


class AuthenticationError(HelkiError):
    """Exception raised when the token endpoint fails or returns an incomplete payload."""


class TransportError(HelkiError):
    """Exception raised when an HTTP exchange does not produce a usable response.

    Attributes:
        status: HTTP status code of the failed response, or None when no
            response was received.
    """

    def __init__(self, message: str = "", status: int | None = None) -> None:
        """Initialize TransportError.

        Args:
            message: Error message.
            status: Optional HTTP status code of the failed response.
        """
        super().__init__(message)
        self.status = status


class TransientTransportError(TransportError):
    """Exception raised for network failures and rate limiting (429)."""


class TransportTimeoutError(TransportError):
    """Exception raised when an attempt exceeds the per-attempt timeout.

    The request may already have been applied by the server; it is retried
    for idempotent methods only.
    """


class ApiRequestError(HelkiError):
    """Exception raised when an authenticated API request fails.

    Attributes:
        path: API path (relative to the versioned prefix) that failed.
        cause: Human-readable description of the underlying failure.
    """

    def __init__(self, path: str, cause: str) -> None:
        """Initialize ApiRequestError.

        Args:
            path: API path that failed.
            cause: Description of the underlying failure.
        """
        super().__init__(f"API request to {path} failed: {cause}")
        self.path = path
        self.cause = cause


class InvalidParameterError(HelkiError):
    """Exception raised for invalid parameter values.

    Attributes:
        parameter_name: Optional name of the invalid parameter.
        value: Optional value that was invalid.
    """

    def __init__(
        self,
        message: str = "",
        parameter_name: str | None = None,
        value: Any = None,
    ) -> None:
        """Initialize InvalidParameterError.

        Args:
            message: Error message.
            parameter_name: Optional name of the invalid parameter.
            value: Optional value that was invalid.
        """
        super().__init__(message)
        self.parameter_name = parameter_name
        self.value = value


class TokenLifetimeWarning(UserWarning):
    """Warning emitted when the server grants a token shorter than the refresh margin."""
