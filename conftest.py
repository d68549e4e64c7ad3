"""
Root pytest configuration.
"""

from __future__ import annotations

import logging
from typing import Any

import pytest

from pglogsink import TRACE


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "critical: Tests that must never fail - core functionality",
    )
    config.addinivalue_line(
        "markers",
        "integration: Tests requiring external dependencies",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )
    config.addinivalue_line(
        "markers",
        "asyncio: Async tests",
    )
    config.addinivalue_line(
        "markers",
        "postgres: Tests requiring PostgreSQL",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )


class RecordingClient:
    """Storage double that records every execute() call.

    Messages listed in ``fail_messages`` raise after being recorded, so a
    write attempt is observable even when it fails.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.fail_messages: set[str] = set()

    async def execute(self, sql: str, *args: Any) -> str:
        self.calls.append((sql, args))
        if args and args[3] in self.fail_messages:
            raise RuntimeError(f"write failed for {args[3]!r}")
        return "INSERT 0 1"

    @property
    def messages(self) -> list[str]:
        return [args[3] for _, args in self.calls]


@pytest.fixture
def recording_client() -> RecordingClient:
    return RecordingClient()


@pytest.fixture
def diag_logger(caplog: pytest.LogCaptureFixture) -> logging.Logger:
    """Diagnostic logger whose records (down to TRACE) land in caplog."""
    name = "pglogsink.tests.diagnostics"
    caplog.set_level(TRACE, logger=name)
    return logging.getLogger(name)
