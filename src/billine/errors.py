"""Typed errors raised by the Billine client."""

from __future__ import annotations

__all__ = [
    "BillineError",
    "FormatError",
    "SerializationError",
    "SignatureMismatch",
    "TransportError",
]


class BillineError(Exception):
    """Base class for every error raised by this package."""


class SerializationError(BillineError):
    """Raised when a payload value has no canonical string rendering."""


class FormatError(BillineError, ValueError):
    """Raised when an inbound field (date, enum, decimal) fails to parse."""


class TransportError(BillineError):
    """Raised when the gateway is unreachable or answers with a non-2xx status."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SignatureMismatch(BillineError):
    """Raised when a callback's signature does not match the recomputed one."""
