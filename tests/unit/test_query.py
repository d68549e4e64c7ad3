from __future__ import annotations

import logging

import pytest

from pglogsink import LogEntry, LogLevel
from pglogsink.storage.query import FIXED_COLUMNS, build_insert, create_table_sql


def make_entry(**kwargs: object) -> LogEntry:
    fields: dict[str, object] = {
        "label": "svc",
        "level": LogLevel.ERROR,
        "message": "boom",
        "source": "svc.module",
        "file": "/app/svc/module.py",
        "function": "handle",
        "line": 42,
    }
    fields.update(kwargs)
    return LogEntry.create(**fields)  # type: ignore[arg-type]


def test_fixed_columns_bind_in_order() -> None:
    entry = make_entry()
    stmt = build_insert("logs", entry)

    assert stmt.columns == FIXED_COLUMNS
    assert not stmt.has_metadata
    assert stmt.args == (
        "svc",
        entry.timestamp,
        "error",
        "boom",
        "svc.module",
        "/app/svc/module.py",
        "handle",
        42,
    )


def test_metadata_column_is_appended_last() -> None:
    stmt = build_insert("logs", make_entry(metadata={"user_id": "123"}))

    assert stmt.has_metadata
    assert stmt.columns[-1] == "metadata"
    assert stmt.sql.endswith("VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)")
    assert stmt.args[-1] == b'\x01{"user_id":"123"}'


def test_table_name_is_interpolated_verbatim() -> None:
    stmt = build_insert("audit.app_logs", make_entry())
    assert stmt.sql.startswith("INSERT INTO audit.app_logs (label, ")


def test_metadata_encode_failure_degrades_and_logs(
    caplog: pytest.LogCaptureFixture,
) -> None:
    logger = logging.getLogger("pglogsink.tests.query")
    caplog.set_level(logging.ERROR, logger=logger.name)

    stmt = build_insert("logs", make_entry(metadata={"bad": "\ud800"}), logger=logger)

    assert not stmt.has_metadata
    assert len(stmt.args) == len(FIXED_COLUMNS)
    assert "Failed encoding metadata" in caplog.text


def test_metadata_encode_failure_without_logger_is_silent() -> None:
    stmt = build_insert("logs", make_entry(metadata={1: "x"}))  # type: ignore[dict-item]
    assert not stmt.has_metadata


def test_create_table_sql_matches_schema() -> None:
    ddl = create_table_sql("logs")

    assert ddl.startswith("CREATE TABLE IF NOT EXISTS logs (")
    for fragment in (
        "id BIGSERIAL PRIMARY KEY",
        "server_timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW()",
        "level TEXT NOT NULL",
        "message TEXT NOT NULL",
        "metadata JSONB",
        "line INTEGER",
        "created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()",
    ):
        assert fragment in ddl
