"""Exceptions raised by the Polycom REST client."""

from __future__ import annotations

from typing import Any


class PolycomAPIError(Exception):
    """Exception for API errors."""

    def __init__(self, message: str, error_code: str | None = None) -> None:
        """Initialize API error."""
        super().__init__(message)
        self.error_code = error_code


class InvalidInputError(PolycomAPIError, ValueError):
    """Caller-supplied input violates an operation contract."""


class PolycomConnectionError(PolycomAPIError):
    """The device could not be reached after all retry attempts."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        *,
        endpoint: str | None = None,
        attempts: int | None = None,
    ) -> None:
        """Initialize connection error with request context."""
        super().__init__(message, error_code)
        self.endpoint = endpoint
        self.attempts = attempts

    def __str__(self) -> str:
        context_parts = []
        if self.endpoint:
            context_parts.append(f"endpoint={self.endpoint}")
        if self.attempts:
            context_parts.append(f"attempts={self.attempts}")
        if context_parts:
            return f"{super().__str__()} ({', '.join(context_parts)})"
        return super().__str__()


class PolycomAuthError(PolycomAPIError):
    """The device rejected the supplied credentials."""


class PolycomDeviceError(PolycomAPIError):
    """The device answered but reported a failure status."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Initialize device error, keeping the raw envelope for partial results."""
        super().__init__(message, error_code)
        self.payload = payload or {}
