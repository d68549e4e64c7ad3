"""Immutable snapshot of one log call, handed from the handler to the processor."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping

from .levels import LogLevel
from .metadata import MetadataValue, copy_metadata_value


@dataclass(frozen=True)
class LogEntry:
    label: str
    level: LogLevel
    message: str
    metadata: Mapping[str, MetadataValue] | None
    source: str
    file: str
    function: str
    line: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        if self.line < 0:
            raise ValueError("line must be a non-negative integer")
        if not isinstance(self.level, LogLevel):
            object.__setattr__(self, "level", LogLevel(self.level))
        # Copy nested containers too, so later mutation by the caller cannot
        # leak into a buffered entry.
        if self.metadata is not None:
            try:
                copied = copy_metadata_value(self.metadata)
            except RecursionError:
                # Too deep to copy; encoding will fail and drop it anyway.
                copied = dict(self.metadata)
            object.__setattr__(self, "metadata", MappingProxyType(copied))
        if self.timestamp.tzinfo is None:
            object.__setattr__(
                self, "timestamp", self.timestamp.replace(tzinfo=timezone.utc)
            )

    @classmethod
    def create(
        cls,
        *,
        label: str,
        level: LogLevel,
        message: str,
        metadata: Mapping[str, MetadataValue] | None = None,
        source: str = "",
        file: str = "",
        function: str = "",
        line: int = 0,
    ) -> LogEntry:
        """Build an entry stamped with the current UTC wall-clock time."""
        return cls(
            label=label,
            level=level,
            message=message,
            metadata=metadata,
            source=source,
            file=file,
            function=function,
            line=line,
            timestamp=datetime.now(timezone.utc),
        )


__all__ = ["LogEntry"]
