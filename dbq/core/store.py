"""Message store: push, pull, point lookup and sparse update.

Every operation is a single transaction against the queue's table. Nothing is
kept in memory between calls; the database is the only source of truth.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine

from dbq.core.errors import InvalidArgumentError, MessageNotFoundError
from dbq.core.lifecycle import queue_table
from dbq.core.messages import Message, MessageUpdate, to_naive_utc, utcnow
from dbq.core.status import MsgStatus
from dbq.core.storage import translate_errors

logger = logging.getLogger(__name__)


class MessageStore:
    """Per-message operations scoped to a queue's table."""

    def __init__(self, engine: Engine):
        self.engine = engine

    def push(self, queue_name: str, messages: Sequence[Message]) -> None:
        """
        Insert a batch of messages atomically.

        Unset timestamps default to now and every message starts PENDING; the
        objects passed in are updated to match the stored rows only after the
        insert commits. A zero id rejects the whole batch before anything is
        written, and a duplicate id aborts the transaction with ConflictError.
        """
        table = queue_table(queue_name)
        if not messages:
            return
        for msg in messages:
            if not msg.id:
                raise InvalidArgumentError("message id is required")

        now = utcnow()
        rows = [
            {
                "id": msg.id,
                "data": msg.data,
                "status": int(MsgStatus.PENDING),
                "schedule_at": to_naive_utc(msg.schedule_at) or now,
                "created_at": to_naive_utc(msg.created_at) or now,
                "updated_at": to_naive_utc(msg.updated_at) or now,
            }
            for msg in messages
        ]

        with translate_errors(self.engine, queue_name, table.name):
            with self.engine.begin() as conn:
                conn.execute(insert(table), rows)

        for msg, row in zip(messages, rows):
            msg.status = MsgStatus.PENDING
            msg.schedule_at = row["schedule_at"]
            msg.created_at = row["created_at"]
            msg.updated_at = row["updated_at"]
        logger.debug("Pushed %s message(s) to %s", len(rows), queue_name)

    def pull(self, queue_name: str, limit: int, dry_run: bool = False) -> List[Message]:
        """
        Claim up to ``limit`` due PENDING messages, oldest schedule first.

        Selected rows are locked with SELECT ... FOR UPDATE for the life of the
        transaction, so concurrent pulls never return the same message. Live
        pulls mark the rows DISPATCHED and commit; dry runs return the rows as
        they are and roll back.
        """
        table = queue_table(queue_name)
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
            raise InvalidArgumentError(f"limit must be a positive integer, got {limit!r}")

        now = utcnow()
        stmt = (
            select(table)
            .where(table.c.status == int(MsgStatus.PENDING), table.c.schedule_at <= now)
            .order_by(table.c.schedule_at.asc(), table.c.id.asc())
            .limit(limit)
            .with_for_update()
        )

        with translate_errors(self.engine, queue_name, table.name):
            with self.engine.connect() as conn:
                trans = conn.begin()
                try:
                    messages = [Message.from_row(row) for row in conn.execute(stmt).mappings()]
                    if dry_run or not messages:
                        trans.rollback()
                        return messages

                    ids = [msg.id for msg in messages]
                    conn.execute(
                        update(table)
                        .where(table.c.id.in_(ids))
                        .values(status=int(MsgStatus.DISPATCHED), updated_at=now)
                    )
                    trans.commit()
                except BaseException:
                    if trans.is_active:
                        trans.rollback()
                    raise

        for msg in messages:
            msg.status = MsgStatus.DISPATCHED
            msg.updated_at = now
        logger.debug("Dispatched %s message(s) from %s", len(messages), queue_name)
        return messages

    def get(self, queue_name: str, message_id: int) -> Message:
        table = queue_table(queue_name)
        stmt = select(table).where(table.c.id == message_id)
        with translate_errors(self.engine, queue_name, table.name):
            with self.engine.connect() as conn:
                row = conn.execute(stmt).mappings().first()
        if row is None:
            raise MessageNotFoundError(queue_name, message_id)
        return Message.from_row(row)

    def update(self, queue_name: str, changes: MessageUpdate) -> None:
        """
        Write only the fields set on ``changes``; last writer wins per field.

        Nothing is executed when no field is set. Status transitions are not
        checked: any status can be written over any other.
        """
        table = queue_table(queue_name)
        if not changes.id:
            raise InvalidArgumentError("message id is required")
        try:
            values = changes.column_values()
        except ValueError as exc:
            raise InvalidArgumentError(str(exc)) from exc
        if not values:
            return

        values["updated_at"] = utcnow()
        stmt = update(table).where(table.c.id == changes.id).values(**values)
        with translate_errors(self.engine, queue_name, table.name):
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
        if result.rowcount == 0:
            raise MessageNotFoundError(queue_name, changes.id)
        logger.debug("Updated message %s in %s: %s", changes.id, queue_name, sorted(values))


__all__ = ["MessageStore"]
