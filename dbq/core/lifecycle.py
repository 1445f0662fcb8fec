"""Queue lifecycle: one table per queue, created and destroyed at runtime."""

from __future__ import annotations

import logging
import re
from typing import Optional

from sqlalchemy import BigInteger, Column, DateTime, Index, Integer, LargeBinary, MetaData, Table, inspect
from sqlalchemy.dialects import mysql
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.schema import CreateIndex, CreateTable, DropTable

from dbq.core.errors import ConflictError, InvalidArgumentError, StorageError
from dbq.core.messages import utcnow
from dbq.core.storage import has_table, translate_errors

logger = logging.getLogger(__name__)

TABLE_PREFIX = "dbq_"
QUEUE_NAME_RE = re.compile(r"^[A-Za-z0-9_-]{1,40}$")

Blob = LargeBinary().with_variant(mysql.LONGBLOB(), "mysql")
Timestamp = DateTime().with_variant(mysql.DATETIME(fsp=6), "mysql")


def validate_queue_name(name: str) -> str:
    if not isinstance(name, str) or not QUEUE_NAME_RE.match(name):
        raise InvalidArgumentError(f"invalid queue name: {name!r}")
    return name


def table_name_for(name: str) -> str:
    return TABLE_PREFIX + validate_queue_name(name)


def queue_table(name: str, metadata: Optional[MetaData] = None) -> Table:
    """Build the table definition backing queue ``name``."""
    table_name = table_name_for(name)
    return Table(
        table_name,
        metadata if metadata is not None else MetaData(),
        Column("id", BigInteger, primary_key=True, autoincrement=False),
        Column("data", Blob),
        Column("status", Integer, nullable=False),
        Column("ret_code", Integer),
        Column("progress", Blob),
        Column("ret_data", Blob),
        Column("error_msg", Blob),
        Column("created_at", Timestamp, default=utcnow),
        Column("schedule_at", Timestamp, default=utcnow),
        Column("updated_at", Timestamp, default=utcnow, onupdate=utcnow),
        Index(f"ix_{table_name}_schedule_at", "schedule_at"),
        Index(f"ix_{table_name}_status", "status"),
    )


def _create_schema(conn: Connection, table: Table) -> None:
    """CREATE TABLE / CREATE INDEX guarded in the statement itself, not by a prior lookup."""
    conn.execute(CreateTable(table, if_not_exists=True))
    indexes = sorted(table.indexes, key=lambda ix: ix.name)
    if conn.dialect.name == "mysql":
        # MySQL has no CREATE INDEX IF NOT EXISTS.
        present = {ix["name"] for ix in inspect(conn).get_indexes(table.name)}
        for index in indexes:
            if index.name not in present:
                conn.execute(CreateIndex(index))
        return
    for index in indexes:
        conn.execute(CreateIndex(index, if_not_exists=True))


def _drop_schema(conn: Connection, table: Table) -> None:
    conn.execute(DropTable(table, if_exists=True))


class QueueManager:
    """Create, inspect, drop and reset queue tables."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def table(self, name: str) -> Table:
        return queue_table(name)

    def exists(self, name: str) -> bool:
        return has_table(self.engine, table_name_for(name))

    def create(self, name: str) -> None:
        """Create the queue table and its indexes if absent. Existing rows are kept."""
        table = self.table(name)
        try:
            with translate_errors(self.engine, name):
                with self.engine.begin() as conn:
                    _create_schema(conn, table)
        except (StorageError, ConflictError):
            # Postgres reports a lost CREATE race as a unique violation on its catalog.
            if not has_table(self.engine, table.name):
                raise
            logger.info("Queue %s created concurrently", name)
            return
        logger.info("Queue %s ready (table %s)", name, table.name)

    def drop(self, name: str) -> None:
        """Drop the queue table with every message in it. Absent tables are fine."""
        table = self.table(name)
        with translate_errors(self.engine, name):
            with self.engine.begin() as conn:
                _drop_schema(conn, table)
        logger.info("Queue %s dropped", name)

    def clear(self, name: str) -> None:
        """Reset the queue to empty by dropping and recreating its table."""
        table = self.table(name)
        with translate_errors(self.engine, name):
            with self.engine.begin() as conn:
                _drop_schema(conn, table)
                _create_schema(conn, table)
        logger.info("Queue %s cleared", name)


__all__ = ["QueueManager", "queue_table", "table_name_for", "validate_queue_name", "TABLE_PREFIX"]
