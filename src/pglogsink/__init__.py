"""
pglogsink - buffer ``logging`` records and persist them to PostgreSQL.

A :class:`PostgresLogProcessor` collects entries from any thread without
blocking and writes them in periodic batches through a
:class:`PostgresClient`. Both are lifecycle services: run them in a
:class:`ServiceGroup` so that shutdown drains the buffer before the
connection pool closes.
"""

from __future__ import annotations

from ._version import __version__
from .core.entry import LogEntry
from .core.errors import (
    ConfigurationError,
    MetadataDecodeError,
    MetadataEncodeError,
    PgLogSinkError,
    StorageNotReadyError,
)
from .core.levels import TRACE, LogLevel
from .core.lifecycle import GracefulShutdown, Service, ServiceGroup
from .core.metadata import decode_metadata, encode_metadata
from .core.processor import PostgresLogProcessor, ProcessorConfig
from .core.settings import Settings, build_from_settings
from .handler import PostgresLogHandler
from .storage.postgres import PostgresClient, PostgresClientConfig

__all__ = [
    "ConfigurationError",
    "GracefulShutdown",
    "LogEntry",
    "LogLevel",
    "MetadataDecodeError",
    "MetadataEncodeError",
    "PgLogSinkError",
    "PostgresClient",
    "PostgresClientConfig",
    "PostgresLogHandler",
    "PostgresLogProcessor",
    "ProcessorConfig",
    "Service",
    "ServiceGroup",
    "Settings",
    "StorageNotReadyError",
    "TRACE",
    "__version__",
    "build_from_settings",
    "decode_metadata",
    "encode_metadata",
]

# Version info for compatibility
VERSION = __version__
