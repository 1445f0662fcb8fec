"""Message records and sparse update requests."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from dbq.core.status import MsgStatus


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every queue table stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


@dataclass
class Message:
    id: int = 0
    data: bytes = b""
    status: MsgStatus = MsgStatus.PENDING
    ret_code: Optional[int] = None
    progress: Optional[bytes] = None
    result: Optional[bytes] = None
    error: Optional[bytes] = None
    created_at: Optional[datetime] = None
    schedule_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Message":
        return cls(
            id=row["id"],
            data=bytes(row["data"]) if row["data"] is not None else b"",
            status=MsgStatus(row["status"]),
            ret_code=row["ret_code"],
            progress=_as_bytes(row["progress"]),
            result=_as_bytes(row["ret_data"]),
            error=_as_bytes(row["error_msg"]),
            created_at=row["created_at"],
            schedule_at=row["schedule_at"],
            updated_at=row["updated_at"],
        )


@dataclass
class MessageUpdate:
    """Fields to change on one message; ``None`` means leave the column alone."""

    id: int
    status: Optional[MsgStatus] = None
    ret_code: Optional[int] = None
    progress: Optional[bytes] = None
    result: Optional[bytes] = None
    error: Optional[bytes] = None

    def column_values(self) -> Dict[str, Any]:
        """Map the supplied fields to their table columns."""
        values: Dict[str, Any] = {}
        if self.status is not None:
            values["status"] = int(MsgStatus.parse(self.status))
        if self.ret_code is not None:
            values["ret_code"] = self.ret_code
        if self.progress is not None:
            values["progress"] = self.progress
        if self.result is not None:
            values["ret_data"] = self.result
        if self.error is not None:
            values["error_msg"] = self.error
        return values


def _as_bytes(value) -> Optional[bytes]:
    if value is None:
        return None
    return bytes(value)


__all__ = ["Message", "MessageUpdate", "utcnow", "to_naive_utc"]
