"""Engine setup and database error translation for the queue engine."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from dbq.core.errors import ConflictError, DbqError, QueueNotFoundError, StorageError

logger = logging.getLogger(__name__)


def _sqlite_on_connect(dbapi_connection, connection_record) -> None:
    # Hand transaction control to SQLAlchemy so BEGIN can be issued explicitly.
    dbapi_connection.isolation_level = None


def _sqlite_on_begin(conn) -> None:
    # SQLite has no row locks: take the write lock up front so concurrent
    # pulls serialize instead of both reading the same pending rows.
    conn.exec_driver_sql("BEGIN IMMEDIATE")


def configure_engine(engine: Engine) -> Engine:
    """Install dialect-specific hooks needed for pull's locking guarantees."""
    if engine.dialect.name == "sqlite":
        if not event.contains(engine, "connect", _sqlite_on_connect):
            event.listen(engine, "connect", _sqlite_on_connect)
        if not event.contains(engine, "begin", _sqlite_on_begin):
            event.listen(engine, "begin", _sqlite_on_begin)
    return engine


def create_queue_engine(url: str, **engine_options: Any) -> Engine:
    """Create an engine ready for queue operations (used outside Flask)."""
    options = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        options["connect_args"] = {"timeout": 30}
    options.update(engine_options)
    return configure_engine(create_engine(url, **options))


def has_table(engine: Engine, table_name: str) -> bool:
    try:
        return inspect(engine).has_table(table_name)
    except SQLAlchemyError as exc:
        raise StorageError(str(exc)) from exc


@contextmanager
def translate_errors(engine: Engine, queue_name: str, table_name: Optional[str] = None) -> Iterator[None]:
    """Re-raise SQLAlchemy failures as queue errors, keeping the original as cause."""
    try:
        yield
    except DbqError:
        raise
    except IntegrityError as exc:
        logger.warning("Integrity error on queue %s: %s", queue_name, exc.orig)
        raise ConflictError(f"duplicate message id in queue {queue_name}") from exc
    except SQLAlchemyError as exc:
        if table_name is not None and not has_table(engine, table_name):
            raise QueueNotFoundError(queue_name) from exc
        raise StorageError(str(exc)) from exc


__all__ = ["configure_engine", "create_queue_engine", "has_table", "translate_errors"]
