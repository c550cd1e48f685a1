"""
DuckDB ledger, one database per routed connection.

Each tenant's rows live in ``<schema>.processed_files`` of the database its
ConnectionDescriptor points at, so dedicated tenants get their own file and
shared tenants share a file but not a schema.
"""

from __future__ import annotations

import asyncio
import threading
from datetime import datetime
from pathlib import Path
from typing import Any

import ibis

from filemover.core.types import ProcessedFileRecord, utc
from filemover.exceptions import LedgerConflict, LedgerError
from filemover.ledger.base import ProcessedFileLedger
from filemover.tenancy.connections import ConnectionDescriptor, ConnectionRouter
from filemover.utils.logging import get_logger

logger = get_logger("filemover.ledger.duckdb")

TABLE_NAME = "processed_files"


def _escape_sql_string(value: str) -> str:
    """Escape single quotes for SQL strings."""
    return value.replace("'", "''")


def _sql_value(value: Any) -> str:
    """Convert Python value to SQL string representation."""
    if value is None:
        return "NULL"
    elif isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, datetime):
        # Stored as naive UTC
        return f"TIMESTAMP '{utc(value).replace(tzinfo=None).isoformat(sep=' ')}'"
    else:
        return f"'{_escape_sql_string(str(value))}'"


def _quote_ident(name: str) -> str:
    return '"' + name.replace('"', '""') + '"'


class DuckDBLedger(ProcessedFileLedger):
    """
    Ledger stored in DuckDB through ibis.

    Blocking DuckDB calls run in a worker thread; calls against the same
    database are serialized by a per-database lock.
    """

    def __init__(self, router: ConnectionRouter):
        self.router = router
        self._connections: dict[str, ibis.BaseBackend] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._initialized: set[tuple[str, str]] = set()
        self._guard = threading.Lock()

    def _connection(self, dsn: str) -> tuple[ibis.BaseBackend, threading.Lock]:
        with self._guard:
            conn = self._connections.get(dsn)
            if conn is None:
                if dsn == ":memory:":
                    conn = ibis.duckdb.connect()
                else:
                    Path(dsn).parent.mkdir(parents=True, exist_ok=True)
                    try:
                        conn = ibis.duckdb.connect(dsn)
                    except Exception as e:
                        raise LedgerError(f"Cannot connect to ledger database '{dsn}': {e}") from e
                self._connections[dsn] = conn
                self._locks[dsn] = threading.Lock()
                logger.debug(f"Opened ledger database {dsn}")
            return conn, self._locks[dsn]

    def _initialize_schema(self, conn: ibis.BaseBackend, descriptor: ConnectionDescriptor) -> None:
        key = (descriptor.dsn, descriptor.schema)
        if key in self._initialized:
            return
        schema = _quote_ident(descriptor.schema)
        conn.raw_sql(f"CREATE SCHEMA IF NOT EXISTS {schema}")
        conn.raw_sql(
            f"""
            CREATE TABLE IF NOT EXISTS {schema}.{TABLE_NAME} (
                config_id INTEGER NOT NULL,
                fingerprint VARCHAR NOT NULL,
                tenant_id VARCHAR,
                file_name VARCHAR,
                file_mtime TIMESTAMP,
                size_bytes BIGINT,
                processed_at TIMESTAMP,
                UNIQUE (config_id, fingerprint)
            )
            """
        )
        self._initialized.add(key)

    def _count(self, conn: ibis.BaseBackend, schema: str, config_id: int, fingerprint: str) -> int:
        table = conn.table(TABLE_NAME, database=schema)
        expr = table.filter((table.config_id == config_id) & (table.fingerprint == fingerprint)).count()
        return int(expr.execute())

    def _is_processed_sync(self, descriptor: ConnectionDescriptor, config_id: int, fingerprint: str) -> bool:
        conn, lock = self._connection(descriptor.dsn)
        with lock:
            self._initialize_schema(conn, descriptor)
            return self._count(conn, descriptor.schema, config_id, fingerprint) > 0

    def _mark_processed_sync(self, descriptor: ConnectionDescriptor, record: ProcessedFileRecord) -> None:
        conn, lock = self._connection(descriptor.dsn)
        with lock:
            self._initialize_schema(conn, descriptor)
            if self._count(conn, descriptor.schema, record.config_id, record.fingerprint) > 0:
                raise LedgerConflict(record.config_id, record.fingerprint)

            values = ", ".join(
                _sql_value(v)
                for v in (
                    record.config_id,
                    record.fingerprint,
                    descriptor.tenant_id,
                    record.file_name,
                    record.mtime,
                    record.size,
                    record.processed_at,
                )
            )
            try:
                conn.raw_sql(f"INSERT INTO {_quote_ident(descriptor.schema)}.{TABLE_NAME} VALUES ({values})")
            except Exception as e:
                # Another process won the race on the unique key
                if "constraint" in str(e).lower():
                    raise LedgerConflict(record.config_id, record.fingerprint) from e
                raise

    async def is_processed(self, tenant_id: str, config_id: int, fingerprint: str) -> bool:
        descriptor = await self.router.resolve(tenant_id)
        try:
            return await asyncio.to_thread(self._is_processed_sync, descriptor, config_id, fingerprint)
        except LedgerError:
            raise
        except Exception as e:
            raise LedgerError(f"Ledger lookup failed for tenant '{tenant_id}': {e}") from e

    async def mark_processed(self, tenant_id: str, record: ProcessedFileRecord) -> None:
        descriptor = await self.router.resolve(tenant_id)
        try:
            await asyncio.to_thread(self._mark_processed_sync, descriptor, record)
        except LedgerError:
            raise
        except Exception as e:
            raise LedgerError(f"Ledger write failed for tenant '{tenant_id}': {e}") from e

    async def close(self) -> None:
        with self._guard:
            for conn in self._connections.values():
                conn.disconnect()
            self._connections.clear()
            self._locks.clear()
            self._initialized.clear()
