"""Log level model shared by the handler, entries and the stored rows.

Levels are ordered ``trace < debug < info < warning < error < critical``.
The enum value is the lowercase name written to the ``level`` column; the
numeric priority matches the standard library so records coming through
``logging`` can be mapped without a lookup table at the call site.

Importing this module registers ``TRACE`` (priority 5) with ``logging`` so
that ``logger.log(TRACE, ...)`` renders a proper level name.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Final

TRACE: Final[int] = 5

_PRIORITIES: Final[dict[str, int]] = {
    "trace": TRACE,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}

_ALIASES: Final[dict[str, str]] = {
    "warn": "warning",  # alias
    "fatal": "critical",  # alias
}

logging.addLevelName(TRACE, "TRACE")


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    @property
    def priority(self) -> int:
        return _PRIORITIES[self.value]

    def to_stdlib(self) -> int:
        """Return the numeric level understood by the ``logging`` package."""
        return self.priority

    @classmethod
    def from_stdlib(cls, levelno: int) -> LogLevel:
        """Map a stdlib numeric level onto the closest level at or below it.

        Values below TRACE map to TRACE; custom levels between two known
        levels round down (e.g. 25 -> info).
        """
        result = cls.TRACE
        for level in cls:
            if level.priority <= levelno:
                result = level
        return result

    @classmethod
    def parse(cls, name: str) -> LogLevel:
        """Parse a case-insensitive level name, accepting ``warn``/``fatal``.

        Raises:
            ValueError: If the name is not a known level.
        """
        key = name.strip().lower()
        key = _ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown log level {name!r}") from None

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.priority < other.priority

    def __le__(self, other: object) -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.priority <= other.priority

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.priority > other.priority

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.priority >= other.priority


__all__ = ["LogLevel", "TRACE"]
