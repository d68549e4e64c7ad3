"""Example: log to PostgreSQL from an app running in a ServiceGroup.

Create the table first (or set PGLOGSINK_CREATE_TABLE=true), point
PGLOGSINK_POSTGRES__DSN at your database, run, then press Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from pglogsink import (
    GracefulShutdown,
    PostgresLogHandler,
    ServiceGroup,
    Settings,
    build_from_settings,
)


class AppLogicService:
    def __init__(self, logger: logging.Logger, bootstrap_logger: logging.Logger) -> None:
        self.logger = logger  # records to Postgres
        self.bootstrap_logger = bootstrap_logger  # records to the console
        self._shutdown = GracefulShutdown()

    async def run(self) -> None:
        self.bootstrap_logger.info("AppLogicService running...")
        # Give the connection pool a moment to come up.
        await asyncio.sleep(0.1)

        self.logger.info(
            "Application started successfully.", extra={"metadata": {"user_id": "123"}}
        )
        self.logger.warning("A non-critical issue occurred.")
        self.logger.error("Something went wrong!", extra={"metadata": {"error_code": "DB500"}})

        self.bootstrap_logger.info("Waiting for shutdown signal...")
        await self._shutdown.wait()
        self.bootstrap_logger.info("AppLogicService run method finished.")

    def trigger_graceful_shutdown(self) -> None:
        self._shutdown.trigger()


async def main() -> None:
    logging.basicConfig(level=logging.DEBUG)
    bootstrap_logger = logging.getLogger("bootstrap")

    settings = Settings()
    client, processor = build_from_settings(settings, logger=bootstrap_logger)

    app_logger = logging.getLogger("YourApp")
    app_logger.propagate = False
    app_logger.setLevel(logging.INFO)
    app_logger.addHandler(
        PostgresLogHandler(processor, metadata={"app_version": "1.0.0"})
    )

    group = ServiceGroup(
        [client, processor, AppLogicService(app_logger, bootstrap_logger)],
        logger=bootstrap_logger,
    )
    bootstrap_logger.info("App starting...")
    await group.run()
    bootstrap_logger.info("App finished cleanly.")


if __name__ == "__main__":
    asyncio.run(main())
