from __future__ import annotations

from .postgres import PostgresClient, PostgresClientConfig
from .query import InsertStatement, build_insert, create_table_sql

__all__ = [
    "InsertStatement",
    "PostgresClient",
    "PostgresClientConfig",
    "build_insert",
    "create_table_sql",
]
