"""Error taxonomy shared by the gateway host and its clients."""

from __future__ import annotations

from typing import Optional


class TenderTrackError(RuntimeError):
    """Base class. ``status_code`` is the HTTP status the gateway answers with."""

    status_code = 500
    retryable = True

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class DatabaseConnectionError(TenderTrackError):
    """Raised when a database session cannot be established."""

    status_code = 503


class ServiceUnavailable(TenderTrackError):
    """Raised when the gateway is called while no session is connected."""

    status_code = 503


class BadRequest(TenderTrackError):
    status_code = 400
    retryable = False


class ValidationError(TenderTrackError):
    """Raised when user input fails a creation rule."""

    status_code = 400
    retryable = False


class QueryFailed(TenderTrackError):
    """Raised when the database rejects or loses a statement."""

    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, reset: bool = False) -> None:
        super().__init__(message)
        self.code = code
        self.reset = reset

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return self.reset


class GatewayError(TenderTrackError):
    """Raised by the client for an unexpected gateway response."""

    def __init__(self, message: str, *, status_code: int = 500) -> None:
        super().__init__(message)
        self.status_code = status_code


class TimelineUpdateError(TenderTrackError):
    """Raised when a timeline write does not reach the database."""


__all__ = [
    "BadRequest",
    "DatabaseConnectionError",
    "GatewayError",
    "QueryFailed",
    "ServiceUnavailable",
    "TenderTrackError",
    "TimelineUpdateError",
    "ValidationError",
]
