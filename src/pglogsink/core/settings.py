"""
Process-level configuration for pglogsink using Pydantic v2 Settings.

Values are read from the environment with the ``PGLOGSINK_`` prefix and
``__`` as the nesting delimiter, e.g.::

    PGLOGSINK_PROCESSOR__TABLE_NAME=app_logs
    PGLOGSINK_PROCESSOR__FLUSH_INTERVAL_SECONDS=0.5
    PGLOGSINK_POSTGRES__DSN=postgresql://postgres@localhost/postgres
    PGLOGSINK_CREATE_TABLE=true
"""

from __future__ import annotations

import logging

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..storage.postgres import PostgresClient, PostgresClientConfig
from .processor import PostgresLogProcessor, ProcessorConfig


class Settings(BaseSettings):
    """Top-level configuration for a client/processor pair."""

    processor: ProcessorConfig = Field(default_factory=ProcessorConfig)
    postgres: PostgresClientConfig = Field(default_factory=PostgresClientConfig)
    create_table: bool = Field(
        default=False,
        description=(
            "Create the processor's table at client startup. Leave off where "
            "tables are provisioned by migrations."
        ),
    )

    model_config = SettingsConfigDict(
        env_prefix="PGLOGSINK_",
        env_nested_delimiter="__",
        extra="ignore",
        case_sensitive=False,
    )


def build_from_settings(
    settings: Settings | None = None, *, logger: logging.Logger | None = None
) -> tuple[PostgresClient, PostgresLogProcessor]:
    """Wire a storage client and a processor from settings."""
    settings = settings or Settings()
    client_config = settings.postgres
    table_name = settings.processor.table_name
    if settings.create_table and table_name not in client_config.create_tables:
        client_config = client_config.model_copy(
            update={"create_tables": [*client_config.create_tables, table_name]}
        )
    client = PostgresClient(client_config)
    processor = PostgresLogProcessor(client, settings.processor, logger=logger)
    return client, processor


__all__ = ["Settings", "build_from_settings"]
