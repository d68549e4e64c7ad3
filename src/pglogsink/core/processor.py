"""
Buffering processor that persists log entries to PostgreSQL in batches.

The processor owns a buffer that is only ever touched from the event loop
running :meth:`PostgresLogProcessor.run`. Callers on any thread submit
entries with :meth:`PostgresLogProcessor.enqueue_log`, which never blocks:
it checks the running flag and hops onto the loop with
``call_soon_threadsafe``. The hop checks the flag again, so an entry racing
with shutdown is either in the buffer before the final drain or dropped.

Lifecycle of ``run()``::

    Active --(tick)--> flush, stay Active
    Active --(shutdown signal | cancellation)--> Draining
    Draining --(yield once, final flush)--> Stopped

Batch flushes happen only inside ``run()`` and are therefore never
concurrent with each other. Writes inside a batch are sequential and each
failure is contained and logged; nothing per-entry escapes a flush.

``max_batch_size`` is an early-flush trigger: when an insertion brings the
buffer to the ceiling the loop is woken and flushes immediately. Batches are
never split.
"""

from __future__ import annotations

import asyncio
import collections
import logging
import threading
from typing import Any, Awaitable, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..storage.query import build_insert
from .config import parse_config
from .entry import LogEntry
from .levels import TRACE
from .lifecycle import call_in_loop


class StorageClient(Protocol):
    def execute(self, sql: str, *args: Any) -> Awaitable[Any]:  # pragma: no cover
        ...


class ProcessorConfig(BaseModel):
    """Configuration for :class:`PostgresLogProcessor`."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    table_name: str = Field(
        default="logs",
        description=(
            "Target table. Interpolated into SQL verbatim; must come from "
            "trusted configuration, never from user input."
        ),
    )
    max_batch_size: int = Field(
        default=100,
        ge=1,
        description="Buffer size that wakes the loop for an early flush",
    )
    flush_interval_seconds: float = Field(
        default=5.0,
        gt=0.0,
        description="Time between periodic flushes",
    )

    @field_validator("table_name")
    @classmethod
    def _ensure_table_name_non_empty(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("table_name must not be empty")
        return value


class PostgresLogProcessor:
    """Buffers log entries and flushes them to storage on a timer."""

    def __init__(
        self,
        client: StorageClient,
        config: ProcessorConfig | None = None,
        *,
        logger: logging.Logger | None = None,
        **kwargs: Any,
    ) -> None:
        self._config = parse_config(ProcessorConfig, config, **kwargs)
        self._client = client
        self._logger = logger

        self._buffer: list[LogEntry] = []
        # Entries accepted before run() bound a loop; adopted by the loop.
        self._pending: collections.deque[LogEntry] = collections.deque()

        self._running = True
        self._running_lock = threading.Lock()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._wakeup: asyncio.Event | None = None
        self._started = False
        self._trace("PostgresLogProcessor initialized.")

    @property
    def config(self) -> ProcessorConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def buffered_count(self) -> int:
        return len(self._buffer)

    # Submission path -------------------------------------------------

    def enqueue_log(self, entry: LogEntry) -> None:
        """Accept an entry without blocking. Safe from any thread; never raises."""
        if not self._running:
            self._trace("Discarding log message during shutdown: %s", entry.message)
            return

        loop = self._loop
        if loop is None:
            self._pending.append(entry)
            return
        try:
            loop.call_soon_threadsafe(self._add_entry, entry)
        except RuntimeError:
            self._trace("Discarding log message, event loop closed: %s", entry.message)

    def _add_entry(self, entry: LogEntry) -> None:
        # Runs on the loop. Shutdown may have begun since enqueue_log checked.
        if not self._running:
            self._trace(
                "Discarding log message, shutdown began before insertion: %s",
                entry.message,
            )
            return
        self._buffer.append(entry)
        if len(self._buffer) >= self._config.max_batch_size and self._wakeup is not None:
            self._wakeup.set()

    def _adopt_pending(self) -> None:
        while self._pending:
            self._add_entry(self._pending.popleft())

    # Shutdown signal -------------------------------------------------

    def _stop_accepting(self) -> bool:
        """Flip the running flag true->false. Returns True only for the flipper."""
        with self._running_lock:
            if not self._running:
                return False
            self._running = False
            return True

    def trigger_graceful_shutdown(self) -> None:
        """Stop accepting entries and wake the loop. Synchronous and idempotent."""
        if not self._stop_accepting():
            self._trace("Graceful shutdown signal received again (already shutting down).")
            return
        self._trace(
            "Graceful shutdown signal received. Signalling run loop to stop "
            "and stopping acceptance of new logs."
        )
        loop, wakeup = self._loop, self._wakeup
        if loop is not None and wakeup is not None:
            call_in_loop(loop, wakeup.set)

    # Run loop --------------------------------------------------------

    async def run(self) -> None:
        """Flush periodically until shut down, then drain once and return.

        Raises:
            RuntimeError: If called more than once.
            Exception: Any unexpected error from the wait, after the running
                flag has been forced false. No final drain happens then.
        """
        if self._started:
            raise RuntimeError("PostgresLogProcessor.run() may only be called once")
        self._started = True
        self._trace("run() started.")

        self._wakeup = asyncio.Event()
        self._loop = asyncio.get_running_loop()
        self._adopt_pending()

        self._trace("Entering main processing loop.")
        while self._running:
            try:
                await self._wait_for_tick()
            except asyncio.CancelledError:
                self._trace("Wait cancelled (external cancellation). Loop will exit.")
                self._stop_accepting()
                break
            except Exception as exc:
                if self._logger is not None:
                    self._logger.error(
                        "Unexpected error while waiting for next flush: %r. Stopping.",
                        exc,
                    )
                self._stop_accepting()
                raise

            if not self._running:
                self._trace("Shutdown detected after wake-up, skipping flush.")
                break

            await self._process_buffer()
            self._trace("Processed buffer. Buffer size: %d", len(self._buffer))

        self._trace("Performing final drain...")
        # Let insertions scheduled before the flag flipped reach the buffer.
        await asyncio.sleep(0)
        await self._process_buffer()
        self._trace("Final drain complete. Buffer size: %d", len(self._buffer))
        self._trace("run() finished.")

    async def _wait_for_tick(self) -> None:
        """Wait for the flush interval or an early wake-up, whichever is first."""
        assert self._wakeup is not None
        try:
            await asyncio.wait_for(
                self._wakeup.wait(), timeout=self._config.flush_interval_seconds
            )
        except asyncio.TimeoutError:
            pass
        self._wakeup.clear()

    # Batch flush -----------------------------------------------------

    async def _process_buffer(self) -> None:
        self._adopt_pending()
        if not self._buffer:
            return
        # Snapshot and reset with no await in between; later insertions land
        # in the next batch.
        batch, self._buffer = self._buffer, []

        self._trace("Processing batch of %d logs.", len(batch))
        for entry in batch:
            await self._submit_log_entry(entry)

    async def _submit_log_entry(self, entry: LogEntry) -> None:
        sql = None
        try:
            statement = build_insert(
                self._config.table_name, entry, logger=self._logger
            )
            sql = statement.sql
            await self._client.execute(sql, *statement.args)
        except Exception as exc:
            if self._logger is not None:
                self._logger.error(
                    "Failed logging to postgres: %r. Query: %s, Entry: %r",
                    exc,
                    sql,
                    entry,
                )

    def _trace(self, msg: str, *args: Any) -> None:
        if self._logger is not None:
            self._logger.log(TRACE, "PostgresLogProcessor: " + msg, *args)


__all__ = ["PostgresLogProcessor", "ProcessorConfig", "StorageClient"]
