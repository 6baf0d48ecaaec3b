"""Error taxonomy for vault resource operations."""

from __future__ import annotations


class VaultError(RuntimeError):
    """Base class for errors raised by vault services."""


class ValidationError(VaultError):
    """Raised when a resource payload violates a field rule."""


class NotFoundError(VaultError):
    """Raised when operating on a resource that does not exist for the caller."""


class StorageError(VaultError):
    """Raised when the document store or file storage cannot complete a request."""


class FetchDegraded(VaultError):
    """A fetch channel could not produce usable HTML.

    Only raised inside the preview fetch chain; the fetcher records it and
    falls back to the next channel or to the generic link preview.
    """

    def __init__(self, channel: str, reason: str):
        super().__init__(f"{channel}: {reason}")
        self.channel = channel
        self.reason = reason
