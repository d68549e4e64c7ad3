"""
SQL generation for the log table.

The table name is interpolated into the statement verbatim. It is a trusted,
caller-configured value and must never come from untrusted input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from ..core.entry import LogEntry
from ..core.errors import MetadataEncodeError
from ..core.metadata import encode_metadata

FIXED_COLUMNS: tuple[str, ...] = (
    "label",
    "server_timestamp",
    "level",
    "message",
    "source",
    "file",
    "function",
    "line",
)
METADATA_COLUMN = "metadata"


@dataclass(frozen=True)
class InsertStatement:
    sql: str
    args: tuple[Any, ...]
    columns: tuple[str, ...]

    @property
    def has_metadata(self) -> bool:
        return METADATA_COLUMN in self.columns


def build_insert(
    table_name: str, entry: LogEntry, *, logger: logging.Logger | None = None
) -> InsertStatement:
    """Build the parameterized INSERT for one entry.

    The metadata column is bound only when the entry carries metadata that
    encodes. An encoding failure degrades to a row without metadata and is
    reported on ``logger``.
    """
    columns = list(FIXED_COLUMNS)
    args: list[Any] = [
        entry.label,
        entry.timestamp,
        entry.level.value,
        entry.message,
        entry.source,
        entry.file,
        entry.function,
        entry.line,
    ]

    if entry.metadata is not None:
        try:
            args.append(encode_metadata(entry.metadata))
            columns.append(METADATA_COLUMN)
        except MetadataEncodeError as exc:
            if logger is not None:
                logger.error(
                    "Failed encoding metadata for logging to postgres: %s. Entry: %r",
                    exc,
                    entry,
                )

    placeholders = ", ".join(f"${i + 1}" for i in range(len(columns)))
    sql = f"INSERT INTO {table_name} ({', '.join(columns)}) VALUES ({placeholders})"
    return InsertStatement(sql=sql, args=tuple(args), columns=tuple(columns))


def create_table_sql(table_name: str) -> str:
    """DDL for the log table; safe to run repeatedly."""
    column_defs = [
        "id BIGSERIAL PRIMARY KEY",
        "label TEXT",
        "server_timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW()",
        "level TEXT NOT NULL",
        "message TEXT NOT NULL",
        "metadata JSONB",
        "source TEXT",
        "file TEXT",
        "function TEXT",
        "line INTEGER",
        "created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()",
    ]
    return (
        f"CREATE TABLE IF NOT EXISTS {table_name} (\n    "
        + ",\n    ".join(column_defs)
        + "\n)"
    )


__all__ = [
    "FIXED_COLUMNS",
    "METADATA_COLUMN",
    "InsertStatement",
    "build_insert",
    "create_table_sql",
]
