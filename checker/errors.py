"""
Exception types raised while checking for new client revisions.

Each stage of a check raises its own subclass so the scheduler can decide
whether the run aborts or carries on.
"""

from typing import Optional


class RevisionCheckError(Exception):
    """Base exception; catch this for any error raised by a check stage."""

    pass


class FetchError(RevisionCheckError):
    """Metadata endpoint unreachable, timed out or answered non-2xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DecodeError(RevisionCheckError):
    """Token is malformed, its signature is rejected, or its payload is not base64 or not UTF-8."""


class SchemaError(RevisionCheckError):
    """Decoded metadata is not JSON or lacks a required field."""


class NotifyError(RevisionCheckError):
    """Webhook call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class PersistError(RevisionCheckError):
    """Version state could not be read from or written to the store."""
