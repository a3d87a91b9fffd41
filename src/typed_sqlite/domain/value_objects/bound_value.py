"""The Bound value: closed sum type for every parameter and column value.

SQLite stores dynamically typed values in one of five storage classes.
Every conversion between application values and the engine goes through
exactly one of the variants below, in both directions.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, ClassVar, Union

from typed_sqlite.domain.value_objects.identifiers import INT64_MAX, INT64_MIN


class ValueKind(IntEnum):
    """Fundamental datatypes, numbered as ``sqlite3_column_type`` reports them."""

    INTEGER = 1
    """64-bit signed integer."""

    REAL = 2
    """IEEE-754 double."""

    TEXT = 3
    """UTF-8 text."""

    BLOB = 4
    """Arbitrary bytes."""

    NULL = 5
    """SQL NULL."""


@dataclass(frozen=True, slots=True)
class Null:
    """SQL NULL."""

    kind: ClassVar[ValueKind] = ValueKind.NULL

    @property
    def value(self) -> None:
        return None


@dataclass(frozen=True, slots=True)
class Integer:
    """A 64-bit signed integer value."""

    value: int
    kind: ClassVar[ValueKind] = ValueKind.INTEGER

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise TypeError(f"Integer requires an int, got {type(self.value).__name__}")
        if not INT64_MIN <= self.value <= INT64_MAX:
            raise OverflowError(f"{self.value} does not fit in a signed 64-bit integer")


@dataclass(frozen=True, slots=True)
class Real:
    """A 64-bit floating point value."""

    value: float
    kind: ClassVar[ValueKind] = ValueKind.REAL

    def __post_init__(self) -> None:
        if not isinstance(self.value, float):
            raise TypeError(f"Real requires a float, got {type(self.value).__name__}")


@dataclass(frozen=True, slots=True)
class Text:
    """An owned UTF-8 string."""

    value: str
    kind: ClassVar[ValueKind] = ValueKind.TEXT

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError(f"Text requires a str, got {type(self.value).__name__}")


@dataclass(frozen=True, slots=True)
class Blob:
    """An owned byte sequence."""

    value: bytes
    kind: ClassVar[ValueKind] = ValueKind.BLOB

    def __post_init__(self) -> None:
        if not isinstance(self.value, bytes):
            raise TypeError(f"Blob requires bytes, got {type(self.value).__name__}")


BoundValue = Union[Null, Integer, Real, Text, Blob]
"""Tagged union over the five SQLite storage classes."""

NULL = Null()


@dataclass(frozen=True, slots=True)
class Json:
    """Wrapper binding any JSON-serializable value as Text.

    Decoding into ``Json`` yields the parsed document in ``value``.
    """

    value: Any


# Largest length sqlite3_bind_zeroblob accepts
MAX_RESERVATION = 2**31 - 1


@dataclass(frozen=True, slots=True)
class Reservation:
    """Request for a BLOB of ``length`` zero bytes, allocated by the engine.

    Bind-only: the parameter is filled without building the bytes in Python.
    Reading the column back yields a Blob.
    """

    length: int
    kind: ClassVar[ValueKind] = ValueKind.BLOB

    def __post_init__(self) -> None:
        if isinstance(self.length, bool) or not isinstance(self.length, int):
            raise TypeError(f"Reservation requires an int, got {type(self.length).__name__}")
        if not 0 <= self.length <= MAX_RESERVATION:
            raise OverflowError(f"cannot reserve {self.length} bytes")

    def __len__(self) -> int:
        return self.length


BindValue = Union[BoundValue, Reservation]
"""Everything a parameter slot accepts: a Bound value or a Reservation."""
