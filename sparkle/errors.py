"""
Sparkle Client — Error taxonomy

Every failure a controller can surface to the user is one of:

* ``ValidationError`` — caught locally, never sent to the network.
* ``AuthError`` — invalid credentials, duplicate email, or an expired token
  (``expired=True``, which also clears the session).
* ``NetworkError`` — no response, timeout, or a non-auth 4xx/5xx.
* ``RealtimeError`` — the Socket.IO channel could not be opened.
"""

from __future__ import annotations


class SparkleError(Exception):
    """Base class for all errors raised by the Sparkle client."""

    default_message = "Something went wrong"

    def __init__(self, message: str | None = None) -> None:
        # caller-supplied (usually server) message, or None
        self.detail = message
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SparkleError):
    default_message = "Invalid input"

    def __init__(self, message: str | None = None, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class AuthError(SparkleError):
    default_message = "Authentication failed"

    def __init__(self, message: str | None = None, expired: bool = False) -> None:
        super().__init__(message)
        self.expired = expired


class NetworkError(SparkleError):
    default_message = "Network request failed"

    def __init__(self, message: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RealtimeError(SparkleError):
    default_message = "Realtime connection failed"
