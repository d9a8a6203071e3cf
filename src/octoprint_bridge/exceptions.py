"""Exceptions for the OctoPrint bridge.

How to use the most important parts:
- `BridgeError`: Catch this base exception to handle all bridge-related errors.
- `PrinterApiError`: The server answered, but with a status the call does not accept (e.g. 409 on a
  command). Carries the status code and the response body.
- `PrinterNetworkError`: No response was received (DNS, refused connection, timeout).
- `CommandNotAllowed`: A user wrote a value outside the allow-list of a control state.
"""

import typing


class BridgeError(Exception):
    """Base exception for all OctoPrint bridge errors."""


class PrinterApiError(BridgeError):
    """Raised when OctoPrint answers with a status the call does not accept."""

    def __init__(self, message: str, status_code: int, response_body: typing.Any) -> None:
        """Initialize the error.

        Args:
            message: Error description.
            status_code: HTTP status code.
            response_body: Decoded (or raw) response body from the server.
        """
        super().__init__(f"[{status_code}] {message}")
        self.status_code = status_code
        self.response_body = response_body


class PrinterNetworkError(BridgeError):
    """Raised when OctoPrint is unreachable (timeouts, DNS issues, refused connections)."""

    def __init__(self, message: str, error_code: str) -> None:
        """Initialize the error.

        Args:
            message: Error description.
            error_code: Short transport error code (e.g. ``ECONNREFUSED``) used for log de-duplication.
        """
        super().__init__(message)
        self.error_code = error_code


class RequestSetupError(BridgeError):
    """Raised when a request could not be built or sent at all (bad URL, invalid header)."""


class CommandNotAllowed(BridgeError):
    """Raised when a user-issued command is not part of the permitted values."""

    def __init__(self, path: str, value: typing.Any, allowed: typing.Iterable[str]) -> None:
        """Initialize exception with the rejected value and the allow-list."""
        self.path = path
        self.value = value
        self.allowed = list(allowed)
        super().__init__(f"{path}: command not allowed: {value}. Choose one of: {', '.join(self.allowed)}")
