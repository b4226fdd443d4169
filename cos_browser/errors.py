from __future__ import annotations
"""Exception types raised by the listing and resource layers."""


class CosError(Exception):
    """Base class for errors raised by :mod:`cos_browser`."""


class TransportError(CosError):
    """Raised when a call to the remote service fails.

    The botocore exception that caused it is chained as ``__cause__``.
    """

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.code = code


class NotFoundError(TransportError):
    """Raised when the remote object, directory or bucket does not exist."""


class ValidationError(CosError, ValueError):
    """Raised for malformed listing entries or invalid arguments."""
