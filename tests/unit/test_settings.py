from __future__ import annotations

import pytest

from pglogsink import PostgresClient, PostgresLogProcessor, Settings, build_from_settings


def test_settings_read_nested_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PGLOGSINK_PROCESSOR__TABLE_NAME", "app_logs")
    monkeypatch.setenv("PGLOGSINK_PROCESSOR__FLUSH_INTERVAL_SECONDS", "0.5")
    monkeypatch.setenv("PGLOGSINK_PROCESSOR__MAX_BATCH_SIZE", "7")
    monkeypatch.setenv("PGLOGSINK_POSTGRES__DSN", "postgresql://u@db/logs")
    monkeypatch.setenv("PGLOGSINK_CREATE_TABLE", "true")

    settings = Settings()

    assert settings.processor.table_name == "app_logs"
    assert settings.processor.flush_interval_seconds == 0.5
    assert settings.processor.max_batch_size == 7
    assert settings.postgres.dsn == "postgresql://u@db/logs"
    assert settings.create_table is True


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DSN", "HOST", "PORT", "DATABASE", "USER", "PASSWORD"):
        monkeypatch.delenv(f"PGLOGSINK_POSTGRES__{name}", raising=False)
    settings = Settings()

    assert settings.processor.table_name == "logs"
    assert settings.processor.flush_interval_seconds == 5.0
    assert settings.processor.max_batch_size == 100
    assert settings.postgres.host == "localhost"
    assert settings.postgres.port == 5432
    assert settings.create_table is False


def test_build_from_settings_wires_client_and_table(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PGLOGSINK_PROCESSOR__TABLE_NAME", "app_logs")
    monkeypatch.setenv("PGLOGSINK_CREATE_TABLE", "1")

    client, processor = build_from_settings()

    assert isinstance(client, PostgresClient)
    assert isinstance(processor, PostgresLogProcessor)
    assert processor.config.table_name == "app_logs"
    assert client.config.create_tables == ["app_logs"]


def test_build_from_settings_without_table_creation() -> None:
    client, _ = build_from_settings(Settings(create_table=False))
    assert client.config.create_tables == []
