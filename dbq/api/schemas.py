"""Request/response schemas for the queue API. Byte fields travel as base64."""

from __future__ import annotations

import base64
import binascii
from datetime import datetime, timedelta
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field, field_serializer, field_validator, model_validator

from dbq.core.messages import Message, MessageUpdate, to_naive_utc, utcnow
from dbq.core.status import MsgStatus


def _decode_base64(value):
    if value is None or isinstance(value, bytes):
        return value
    if not isinstance(value, str):
        raise ValueError("expected_base64_string")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        raise ValueError("invalid_base64") from None


class MessageUpdateRequest(BaseModel):
    status: Optional[MsgStatus] = None
    ret_code: Optional[int] = None
    progress: Optional[bytes] = None
    result: Optional[bytes] = Field(default=None, validation_alias=AliasChoices("result", "ret"))
    error: Optional[bytes] = None

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, v):
        if isinstance(v, bool):
            raise ValueError("invalid_status")
        # 0 is the legacy "leave status unchanged" value.
        if v is None or v == 0 or (isinstance(v, str) and v.strip() in ("", "0")):
            return None
        try:
            return MsgStatus.parse(v)
        except ValueError:
            raise ValueError("invalid_status") from None

    @field_validator("progress", "result", "error", mode="before")
    @classmethod
    def _decode(cls, v):
        return _decode_base64(v)

    def to_update(self, message_id: int) -> MessageUpdate:
        return MessageUpdate(
            id=message_id,
            status=self.status,
            ret_code=self.ret_code,
            progress=self.progress,
            result=self.result,
            error=self.error,
        )


class PushParams(BaseModel):
    schedule_at: Optional[datetime] = None
    delay: Optional[float] = Field(default=None, ge=0)

    @model_validator(mode="after")
    def _one_schedule_source(self):
        if self.schedule_at is not None and self.delay is not None:
            raise ValueError("schedule_at_and_delay_are_exclusive")
        return self

    def resolve_schedule_at(self) -> Optional[datetime]:
        if self.schedule_at is not None:
            return to_naive_utc(self.schedule_at)
        if self.delay is not None:
            return utcnow() + timedelta(seconds=self.delay)
        return None


class MessageResponse(BaseModel):
    id: int
    data: bytes
    status: int
    status_name: str
    terminal: bool
    ret_code: Optional[int]
    progress: Optional[bytes]
    result: Optional[bytes]
    error: Optional[bytes]
    created_at: Optional[datetime]
    schedule_at: Optional[datetime]
    updated_at: Optional[datetime]

    @field_serializer("data", "progress", "result", "error")
    def _encode(self, value: Optional[bytes]) -> Optional[str]:
        if value is None:
            return None
        return base64.b64encode(value).decode("ascii")


def serialize_message(msg: Message) -> dict:
    return MessageResponse(
        id=msg.id,
        data=msg.data,
        status=int(msg.status),
        status_name=str(msg.status),
        terminal=msg.status.is_terminal,
        ret_code=msg.ret_code,
        progress=msg.progress,
        result=msg.result,
        error=msg.error,
        created_at=msg.created_at,
        schedule_at=msg.schedule_at,
        updated_at=msg.updated_at,
    ).model_dump(mode="json")
