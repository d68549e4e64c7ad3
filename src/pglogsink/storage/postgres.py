from __future__ import annotations

import logging
import os
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from ..core.config import parse_config
from ..core.errors import StorageNotReadyError
from ..core.lifecycle import GracefulShutdown
from ..core.metadata import decode_metadata, encode_metadata
from .query import create_table_sql

asyncpg: Any = None  # Lazy import; populated in _ensure_asyncpg


def _ensure_asyncpg() -> None:
    global asyncpg
    if asyncpg is None:
        import asyncpg as _asyncpg

        asyncpg = _asyncpg


def _encode_jsonb(value: Any) -> bytes:
    # Metadata arrives pre-encoded (version byte + JSON) from build_insert.
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    return encode_metadata(value)


class PostgresClientConfig(BaseModel):
    """Configuration for the PostgreSQL storage client."""

    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    # Connection settings
    dsn: str | None = Field(default_factory=lambda: os.getenv("PGLOGSINK_POSTGRES__DSN"))
    host: str = Field(
        default_factory=lambda: os.getenv("PGLOGSINK_POSTGRES__HOST", "localhost")
    )
    port: int = Field(
        default_factory=lambda: int(os.getenv("PGLOGSINK_POSTGRES__PORT", "5432"))
    )
    database: str = Field(
        default_factory=lambda: os.getenv("PGLOGSINK_POSTGRES__DATABASE", "postgres")
    )
    user: str = Field(
        default_factory=lambda: os.getenv("PGLOGSINK_POSTGRES__USER", "postgres")
    )
    password: str | None = Field(
        default_factory=lambda: os.getenv("PGLOGSINK_POSTGRES__PASSWORD")
    )

    # Connection pool settings
    min_pool_size: int = Field(default=1, ge=1)
    max_pool_size: int = Field(default=10, ge=1)
    pool_acquire_timeout: float = Field(default=10.0, gt=0.0)

    # Tables to create (CREATE TABLE IF NOT EXISTS) once the pool is up.
    # Leave empty where tables are provisioned by migrations.
    create_tables: list[str] = Field(default_factory=list)


class PostgresClient:
    """asyncpg pool owner that runs as a lifecycle service.

    ``execute`` fails with :class:`StorageNotReadyError` until ``run()`` has
    created the pool; the log processor tolerates that and simply drops the
    affected entries.
    """

    name = "postgres"

    _logger = logging.getLogger("pglogsink.storage.postgres")

    def __init__(
        self, config: PostgresClientConfig | None = None, **kwargs: Any
    ) -> None:
        self._config = parse_config(PostgresClientConfig, config, **kwargs)
        # Pool type is Any due to lazy asyncpg import; at runtime it's asyncpg.Pool
        self._pool: Any = None
        self._shutdown = GracefulShutdown()

    @property
    def config(self) -> PostgresClientConfig:
        return self._config

    @property
    def is_ready(self) -> bool:
        return self._pool is not None

    async def run(self) -> None:
        try:
            await self._start()
            await self._shutdown.wait()
        finally:
            await self._stop()

    def trigger_graceful_shutdown(self) -> None:
        if self._shutdown.trigger():
            self._logger.debug("Graceful shutdown requested")

    async def _start(self) -> None:
        _ensure_asyncpg()
        pool_kwargs = {
            "min_size": self._config.min_pool_size,
            "max_size": self._config.max_pool_size,
            "init": self._init_connection,
        }

        if self._config.dsn:
            pool = await asyncpg.create_pool(dsn=self._config.dsn, **pool_kwargs)
        else:
            pool = await asyncpg.create_pool(
                host=self._config.host,
                port=self._config.port,
                database=self._config.database,
                user=self._config.user,
                password=self._config.password,
                **pool_kwargs,
            )
        self._pool = pool

        for table_name in self._config.create_tables:
            async with pool.acquire(timeout=self._config.pool_acquire_timeout) as conn:
                await conn.execute(create_table_sql(table_name))
        self._logger.debug("Connection pool ready")

    async def _stop(self) -> None:
        pool, self._pool = self._pool, None
        if pool is not None:
            await pool.close()
            self._logger.debug("Connection pool closed")

    async def _init_connection(self, conn: Any) -> None:
        await conn.set_type_codec(
            "jsonb",
            encoder=_encode_jsonb,
            decoder=decode_metadata,
            schema="pg_catalog",
            format="binary",
        )

    def _require_pool(self) -> Any:
        if self._pool is None:
            raise StorageNotReadyError(
                "Trying to use PostgresClient before run() created its pool"
            )
        return self._pool

    async def execute(self, sql: str, *args: Any) -> str:
        """Execute one statement; returns asyncpg's status string."""
        pool = self._require_pool()
        async with pool.acquire(timeout=self._config.pool_acquire_timeout) as conn:
            status: str = await conn.execute(sql, *args)
            return status

    async def fetch(self, sql: str, *args: Any) -> list[Any]:
        pool = self._require_pool()
        async with pool.acquire(timeout=self._config.pool_acquire_timeout) as conn:
            rows: list[Any] = await conn.fetch(sql, *args)
            return rows

    async def health_check(self) -> bool:
        if not self._pool:
            return False

        try:
            async with self._pool.acquire(
                timeout=min(5.0, self._config.pool_acquire_timeout)
            ) as conn:
                await conn.execute("SELECT 1")
            return True
        except Exception:
            return False


__all__ = ["PostgresClient", "PostgresClientConfig"]
