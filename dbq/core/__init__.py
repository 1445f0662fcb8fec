"""Relational queue engine: queue lifecycle and message store."""

from dbq.core.errors import (
    ConflictError,
    DbqError,
    InvalidArgumentError,
    MessageNotFoundError,
    NotFoundError,
    QueueNotFoundError,
    StorageError,
)
from dbq.core.lifecycle import QueueManager, queue_table, table_name_for
from dbq.core.messages import Message, MessageUpdate
from dbq.core.status import MsgStatus
from dbq.core.storage import configure_engine, create_queue_engine
from dbq.core.store import MessageStore

__all__ = [
    "QueueManager",
    "MessageStore",
    "Message",
    "MessageUpdate",
    "MsgStatus",
    "queue_table",
    "table_name_for",
    "configure_engine",
    "create_queue_engine",
    "DbqError",
    "NotFoundError",
    "QueueNotFoundError",
    "MessageNotFoundError",
    "ConflictError",
    "InvalidArgumentError",
    "StorageError",
]
