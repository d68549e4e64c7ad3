from __future__ import annotations

from datetime import datetime, timezone

import pytest

from pglogsink import LogEntry, LogLevel


def test_create_stamps_utc_time() -> None:
    before = datetime.now(timezone.utc)
    entry = LogEntry.create(label="x", level=LogLevel.INFO, message="hello")
    after = datetime.now(timezone.utc)

    assert before <= entry.timestamp <= after
    assert entry.metadata is None
    assert entry.line == 0


def test_entry_is_immutable_and_copies_metadata() -> None:
    metadata = {"k": "v"}
    entry = LogEntry.create(
        label="x", level=LogLevel.INFO, message="hello", metadata=metadata
    )
    metadata["k"] = "changed"

    assert entry.metadata == {"k": "v"}
    with pytest.raises(TypeError):
        entry.metadata["k"] = "again"  # type: ignore[index]
    with pytest.raises(AttributeError):
        entry.message = "other"  # type: ignore[misc]


def test_nested_metadata_is_copied() -> None:
    inner = {"user": "alice"}
    tags = ["a", "b"]
    entry = LogEntry.create(
        label="x",
        level=LogLevel.INFO,
        message="hello",
        metadata={"ctx": inner, "tags": tags},
    )
    inner["user"] = "mallory"
    tags.append("c")

    assert entry.metadata == {"ctx": {"user": "alice"}, "tags": ["a", "b"]}


def test_level_strings_are_coerced() -> None:
    entry = LogEntry.create(label="x", level="warning", message="m")  # type: ignore[arg-type]
    assert entry.level is LogLevel.WARNING


def test_naive_timestamp_is_assumed_utc() -> None:
    entry = LogEntry(
        label="x",
        level=LogLevel.INFO,
        message="m",
        metadata=None,
        source="",
        file="",
        function="",
        line=0,
        timestamp=datetime(2024, 1, 1, 12, 0),
    )
    assert entry.timestamp.tzinfo is timezone.utc


def test_negative_line_is_rejected() -> None:
    with pytest.raises(ValueError):
        LogEntry.create(label="x", level=LogLevel.INFO, message="m", line=-1)
