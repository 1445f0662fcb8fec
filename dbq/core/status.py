"""Message status values.

The designed path is PENDING -> DISPATCHED -> RUNNING -> {FINISHED, FAILED,
CANCELED}. Only PENDING (push) and DISPATCHED (pull) are assigned by the store;
the rest come from callers through sparse updates and are not validated.
"""

from __future__ import annotations

from enum import IntEnum


class MsgStatus(IntEnum):
    # 0 is reserved: older clients send it to mean "leave status alone".
    PENDING = 1
    DISPATCHED = 2
    RUNNING = 3
    CANCELED = 4
    FINISHED = 5
    FAILED = 6

    def __str__(self) -> str:
        return self.name.lower()

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL

    @classmethod
    def parse(cls, value) -> "MsgStatus":
        """Accept an int value, a MsgStatus or a case-insensitive name."""
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"unknown status: {value!r}")
        if isinstance(value, str):
            key = value.strip()
            if key.isdigit():
                return cls(int(key))
            try:
                return cls[key.upper()]
            except KeyError:
                raise ValueError(f"unknown status: {value!r}") from None
        return cls(value)


_TERMINAL = frozenset({MsgStatus.FINISHED, MsgStatus.FAILED, MsgStatus.CANCELED})


__all__ = ["MsgStatus"]
