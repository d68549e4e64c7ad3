"""
``logging`` handler that forwards records to a :class:`PostgresLogProcessor`.

The handler keeps a mutable metadata dict shared by everything it logs;
per-call metadata is passed with ``extra={"metadata": {...}}`` and wins on
key conflicts.

Example:
    handler = PostgresLogHandler(processor, metadata={"app_version": "1.0.0"})
    logger = logging.getLogger("app")
    logger.addHandler(handler)
    logger.info("user signed in", extra={"metadata": {"user_id": "123"}})
"""

from __future__ import annotations

import logging
from typing import Mapping

from .core.entry import LogEntry
from .core.levels import LogLevel
from .core.metadata import MetadataValue, merge_metadata
from .core.processor import PostgresLogProcessor

_exception_formatter = logging.Formatter()


class PostgresLogHandler(logging.Handler):
    def __init__(
        self,
        processor: PostgresLogProcessor,
        *,
        label: str | None = None,
        level: int | LogLevel = LogLevel.DEBUG,
        metadata: Mapping[str, MetadataValue] | None = None,
    ) -> None:
        if isinstance(level, LogLevel):
            level = level.to_stdlib()
        super().__init__(level)
        self.processor = processor
        self.label = label
        self.metadata: dict[str, MetadataValue] = dict(metadata or {})

    def __getitem__(self, key: str) -> MetadataValue:
        return self.metadata[key]

    def __setitem__(self, key: str, value: MetadataValue) -> None:
        self.metadata[key] = value

    def __delitem__(self, key: str) -> None:
        del self.metadata[key]

    @property
    def log_level(self) -> LogLevel:
        return LogLevel.from_stdlib(self.level)

    def log(
        self,
        level: LogLevel | str,
        message: str,
        metadata: Mapping[str, MetadataValue] | None = None,
        *,
        source: str = "",
        file: str = "",
        function: str = "",
        line: int = 0,
        label: str | None = None,
    ) -> None:
        """Build an entry from one log call and hand it to the processor."""
        if not isinstance(level, LogLevel):
            level = LogLevel.parse(level)
        if level.to_stdlib() < self.level:
            return

        entry = LogEntry.create(
            label=label or self.label or "",
            level=level,
            message=message,
            metadata=merge_metadata(self.metadata, metadata),
            source=source,
            file=file,
            function=function,
            line=line,
        )
        self.processor.enqueue_log(entry)

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
            if record.exc_info:
                if not record.exc_text:
                    formatter = self.formatter or _exception_formatter
                    record.exc_text = formatter.formatException(record.exc_info)
            if record.exc_text:
                message = f"{message}\n{record.exc_text}"

            call_site = getattr(record, "metadata", None)
            if not isinstance(call_site, Mapping):
                call_site = None

            self.log(
                LogLevel.from_stdlib(record.levelno),
                message,
                call_site,
                source=record.module,
                file=record.pathname,
                function=record.funcName or "",
                line=record.lineno,
                label=self.label or record.name,
            )
        except RecursionError:  # See issue 36272
            raise
        except Exception:
            self.handleError(record)


__all__ = ["PostgresLogHandler"]
