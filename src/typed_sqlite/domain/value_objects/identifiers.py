"""Core identifiers and type-safe primitives for the SQLite layer.

These value objects keep native handles and engine-assigned row
identifiers apart from ordinary integers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import NewType


# Opaque native pointers, stored as plain integers (ctypes c_void_p values)

ConnectionHandle = NewType("ConnectionHandle", int)
"""Native ``sqlite3*`` pointer owned by exactly one Connection."""

StatementHandle = NewType("StatementHandle", int)
"""Native ``sqlite3_stmt*`` pointer owned by exactly one Statement."""

NULL_HANDLE = 0

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


@dataclass(frozen=True, slots=True, order=True)
class RowId:
    """Engine-assigned 64-bit row identifier.

    SQLite never hands out a rowid of zero for a freshly inserted row,
    so a zero value is rejected here. Negative rowids are legal when the
    application assigns them explicitly.

    Attributes:
        value: The raw 64-bit rowid

    Example:
        >>> RowId(1)
        RowId(1)
        >>> int(RowId(42))
        42
    """

    value: int

    def __post_init__(self) -> None:
        """Validate the row identifier."""
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"RowId requires an int, got {type(self.value).__name__}")
        if self.value == 0:
            raise ValueError("RowId must be nonzero")
        if not INT64_MIN <= self.value <= INT64_MAX:
            raise ValueError(f"RowId {self.value} does not fit in 64 bits")

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __repr__(self) -> str:
        return f"RowId({self.value})"

    def __str__(self) -> str:
        return str(self.value)
