from __future__ import annotations

import asyncio
import logging
import os
import uuid

import pytest

from pglogsink import (
    PostgresClient,
    PostgresLogHandler,
    PostgresLogProcessor,
    ServiceGroup,
)

pytestmark = [pytest.mark.integration, pytest.mark.postgres]

DSN = os.getenv("PGLOGSINK_TEST_DSN")


@pytest.mark.skipif(not DSN, reason="PGLOGSINK_TEST_DSN not set")
@pytest.mark.asyncio
async def test_rows_and_metadata_reach_postgres() -> None:
    table = f"pglogsink_test_{uuid.uuid4().hex[:8]}"
    client = PostgresClient(dsn=DSN, create_tables=[table])
    processor = PostgresLogProcessor(client, table_name=table, flush_interval_seconds=0.1)

    logger = logging.getLogger(f"pglogsink.integration.{table}")
    logger.propagate = False
    logger.setLevel(logging.DEBUG)
    logger.addHandler(PostgresLogHandler(processor, metadata={"app_version": "1.0.0"}))

    group = ServiceGroup([client, processor], graceful_shutdown_signals=())
    task = asyncio.create_task(group.run())
    try:
        for _ in range(50):
            if client.is_ready:
                break
            await asyncio.sleep(0.05)
        assert await client.health_check()

        logger.info("Hello, Postgres!", extra={"metadata": {"Example": "metadata"}})
        logger.warning("no call-site metadata")
        await asyncio.sleep(0.3)

        rows = await client.fetch(
            f"SELECT label, level, message, metadata, line FROM {table} ORDER BY id"
        )
        assert [(r["level"], r["message"]) for r in rows] == [
            ("info", "Hello, Postgres!"),
            ("warning", "no call-site metadata"),
        ]
        assert rows[0]["metadata"] == {"app_version": "1.0.0", "Example": "metadata"}
        assert rows[0]["label"] == logger.name
        assert rows[0]["line"] > 0
    finally:
        if client.is_ready:
            await client.execute(f"DROP TABLE IF EXISTS {table}")
        group.trigger_graceful_shutdown()
        await asyncio.wait_for(task, timeout=5.0)
