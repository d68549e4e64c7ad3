"""Cooperative start/stop lifecycle for long-lived services.

A service is anything with an ``async run()`` that keeps going until it is
told to stop, plus a synchronous ``trigger_graceful_shutdown()``. The
``ServiceGroup`` runs several of them side by side and shuts them down in
reverse registration order, waiting for each to finish before signalling the
next. Registering ``[client, processor, app]`` therefore stops the app
first, lets the processor drain while the client is still connected, and
closes the client last.

Example:
    group = ServiceGroup([client, processor, app])
    await group.run()  # returns after SIGINT/SIGTERM and a clean drain
"""

from __future__ import annotations

import asyncio
import logging
import signal
import threading
from typing import Callable, Iterable, Protocol, Sequence, runtime_checkable

_logger = logging.getLogger("pglogsink.lifecycle")


@runtime_checkable
class Service(Protocol):
    async def run(self) -> None:  # pragma: no cover - structural protocol
        ...

    def trigger_graceful_shutdown(self) -> None:  # pragma: no cover
        ...


def call_in_loop(loop: asyncio.AbstractEventLoop, callback: Callable[[], None]) -> None:
    """Run ``callback`` on ``loop``: inline when already on it, else threadsafe."""
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        callback()
        return
    try:
        loop.call_soon_threadsafe(callback)
    except RuntimeError:
        # Loop already closed; nobody is left to wake.
        pass


class GracefulShutdown:
    """One-shot, thread-safe shutdown signal that coroutines can await."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._triggered = False
        self._loop: asyncio.AbstractEventLoop | None = None
        self._event: asyncio.Event | None = None

    @property
    def triggered(self) -> bool:
        return self._triggered

    def trigger(self) -> bool:
        """Fire the signal. Returns False when it had already fired."""
        with self._lock:
            if self._triggered:
                return False
            self._triggered = True
            loop, event = self._loop, self._event
        if loop is not None and event is not None:
            call_in_loop(loop, event.set)
        return True

    async def wait(self) -> None:
        with self._lock:
            if self._triggered:
                return
            if self._event is None:
                self._loop = asyncio.get_running_loop()
                self._event = asyncio.Event()
            event = self._event
        await event.wait()


class ServiceGroup:
    """Run services concurrently and stop them gracefully, last to first."""

    def __init__(
        self,
        services: Sequence[Service],
        *,
        graceful_shutdown_signals: Iterable[signal.Signals] = (
            signal.SIGINT,
            signal.SIGTERM,
        ),
        logger: logging.Logger | None = None,
    ) -> None:
        self._services = list(services)
        self._signals = tuple(graceful_shutdown_signals)
        self._logger = logger or _logger
        self._shutdown = GracefulShutdown()
        self._started = False

    def trigger_graceful_shutdown(self) -> None:
        if self._shutdown.trigger():
            self._logger.info("Graceful shutdown requested")
        else:
            self._logger.debug("Graceful shutdown already in progress")

    async def run(self) -> None:
        """Run all services until shutdown; re-raise the first service failure."""
        if self._started:
            raise RuntimeError("ServiceGroup.run() may only be called once")
        self._started = True

        loop = asyncio.get_running_loop()
        tasks = [
            loop.create_task(service.run(), name=f"service:{type(service).__name__}")
            for service in self._services
        ]
        installed = self._install_signal_handlers(loop)
        shutdown_waiter = loop.create_task(self._shutdown.wait())
        first_error: BaseException | None = None

        try:
            pending: set[asyncio.Future[None]] = set(tasks)
            while pending and not self._shutdown.triggered:
                done, pending = await asyncio.wait(
                    pending | {shutdown_waiter}, return_when=asyncio.FIRST_COMPLETED
                )
                pending.discard(shutdown_waiter)
                for task in done:
                    if task is shutdown_waiter:
                        continue
                    error = self._task_error(task)
                    if error is not None:
                        first_error = first_error or error
                        self.trigger_graceful_shutdown()

            for service, task in reversed(list(zip(self._services, tasks))):
                if not task.done():
                    service.trigger_graceful_shutdown()
                try:
                    await task
                except asyncio.CancelledError:
                    if not task.cancelled():
                        raise
                except Exception as exc:
                    if first_error is None:
                        first_error = exc
                        self._log_service_error(task, exc)
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)
            shutdown_waiter.cancel()
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            await asyncio.gather(shutdown_waiter, *unfinished, return_exceptions=True)

        if first_error is not None:
            raise first_error
        self._logger.info("All services stopped")

    def _task_error(self, task: asyncio.Future[None]) -> BaseException | None:
        if task.cancelled():
            return None
        error = task.exception()
        if error is None:
            self._logger.info("Service %s finished", _task_name(task))
        else:
            self._log_service_error(task, error)
        return error

    def _log_service_error(self, task: asyncio.Future[None], error: BaseException) -> None:
        self._logger.error(
            "Service %s failed: %r", _task_name(task), error, exc_info=error
        )

    def _install_signal_handlers(
        self, loop: asyncio.AbstractEventLoop
    ) -> list[signal.Signals]:
        installed: list[signal.Signals] = []
        for sig in self._signals:
            try:
                loop.add_signal_handler(sig, self.trigger_graceful_shutdown)
            except (NotImplementedError, RuntimeError, ValueError):
                # Windows loops and non-main threads cannot install handlers.
                self._logger.debug("Cannot install handler for %s", sig)
                continue
            installed.append(sig)
        return installed


def _task_name(task: asyncio.Future[None]) -> str:
    get_name = getattr(task, "get_name", None)
    return get_name() if get_name is not None else repr(task)


__all__ = ["GracefulShutdown", "Service", "ServiceGroup", "call_in_loop"]
