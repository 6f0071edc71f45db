"""Errors raised by the draw pool services.

Every error carries the HTTP status the routes answer with, so the Flask
error handler can map them without a lookup table.
"""
from __future__ import annotations


class DrawPoolError(Exception):
    """Base class for all draw pool errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class InvalidRequest(DrawPoolError):
    """Malformed request or a number outside the configured pool."""

    status_code = 400


class Forbidden(DrawPoolError):
    """Reset attempted without admin rights."""

    status_code = 403


class PersistenceError(DrawPoolError):
    """The durable store could not be read or written."""

    status_code = 500


class ConcurrentUpdate(PersistenceError):
    """Another process committed a newer state between our read and our write."""

    status_code = 409


class CoordinatorBusy(DrawPoolError):
    """The critical section could not be entered within the configured wait."""

    status_code = 503

    def __init__(self, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(f"draw pool busy; retry later (waited {timeout_seconds:g}s)")
