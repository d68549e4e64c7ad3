"""
Exception hierarchy for pglogsink.

Per-entry failures (metadata encoding, storage writes) are contained by the
processor and only surface through its diagnostic logger; these types exist
so that the containment points can catch precisely what they expect.
"""

from __future__ import annotations


class PgLogSinkError(Exception):
    """Base class for all pglogsink errors."""

    def __init__(self, message: str, *, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {type(self.cause).__name__}: {self.cause}"


class ConfigurationError(PgLogSinkError):
    """Invalid or conflicting component configuration."""


class MetadataEncodeError(PgLogSinkError):
    """Metadata could not be converted to its stored JSON document."""


class MetadataDecodeError(PgLogSinkError):
    """A stored JSON document does not match any metadata variant."""


class StorageNotReadyError(PgLogSinkError):
    """The storage client was used before its run() created a pool."""


__all__ = [
    "ConfigurationError",
    "MetadataDecodeError",
    "MetadataEncodeError",
    "PgLogSinkError",
    "StorageNotReadyError",
]
