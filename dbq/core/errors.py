"""Exceptions raised by the queue engine."""

from __future__ import annotations


class DbqError(Exception):
    """Base exception for queue operations."""

    code = "dbq_error"


class NotFoundError(DbqError):
    code = "not_found"


class QueueNotFoundError(NotFoundError):
    """Raised when the table backing a queue does not exist."""

    def __init__(self, queue_name: str):
        super().__init__(f"queue not found: {queue_name}")
        self.queue_name = queue_name


class MessageNotFoundError(NotFoundError):
    """Raised when no message with the given id exists in the queue."""

    def __init__(self, queue_name: str, message_id: int):
        super().__init__(f"message {message_id} not found in queue {queue_name}")
        self.queue_name = queue_name
        self.message_id = message_id


class ConflictError(DbqError):
    """Raised when a pushed id already exists (or repeats within a batch)."""

    code = "conflict"


class InvalidArgumentError(DbqError, ValueError):
    code = "invalid_argument"


class StorageError(DbqError):
    """Connectivity, transaction or statement failure in the database."""

    code = "storage_failure"


__all__ = [
    "DbqError",
    "NotFoundError",
    "QueueNotFoundError",
    "MessageNotFoundError",
    "ConflictError",
    "InvalidArgumentError",
    "StorageError",
]
