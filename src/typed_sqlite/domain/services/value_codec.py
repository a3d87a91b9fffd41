"""Value codec: application values to Bound values and back.

Encoding is total over the supported Python types and raises
UnsupportedValueError for anything else. Decoding is driven by the
declared target type and only performs lossless coercions:

    Target      Accepts                 Notes
    ----------  ----------------------  ----------------------------------
    int         Integer, integral Real  Annotated IntRange is range-checked
    bool        Integer                 nonzero is True
    float       Real, Integer           Integer only if exactly representable
    str         Text
    bytes       Blob, Text              Text is UTF-8 encoded
    RowId       Integer                 zero is out of range
    Json        Text                    parsed with pydantic-core
    AsJson(T)   Text, Blob              validated with a pydantic TypeAdapter
    datetime    Text                    ISO-8601
    date        Text                    ISO-8601
    UUID        Blob (16 bytes), Text
    Any/object  anything                returns the raw Python value

NULL decodes to None only for ``Optional`` targets.

References:
    - https://sqlite.org/datatype3.html
"""

from __future__ import annotations

import types
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from functools import lru_cache
from typing import Annotated, Any, Union, get_args, get_origin

import pydantic_core
from pydantic import TypeAdapter, ValidationError

from typed_sqlite.domain.entities import strip_annotated
from typed_sqlite.domain.errors import (
    TypeMismatchError,
    UnexpectedNullError,
    UnsupportedValueError,
    ValueOverflowError,
)
from typed_sqlite.domain.value_objects import (
    INT64_MAX,
    INT64_MIN,
    NULL,
    Blob,
    BindValue,
    BoundValue,
    Integer,
    Json,
    Null,
    Real,
    Reservation,
    RowId,
    Text,
)

_BOUND_TYPES = (Null, Integer, Real, Text, Blob)

# Largest magnitude a double holds without losing integer precision
MAX_EXACT_FLOAT_INT = 2**53


@dataclass(frozen=True, slots=True)
class IntRange:
    """Annotated marker restricting an int target to ``[low, high]``."""

    name: str
    low: int
    high: int


@dataclass(frozen=True, slots=True)
class AsJson:
    """Annotated marker: the column holds JSON text validated into the base type."""


Int8 = Annotated[int, IntRange("Int8", -(2**7), 2**7 - 1)]
Int16 = Annotated[int, IntRange("Int16", -(2**15), 2**15 - 1)]
Int32 = Annotated[int, IntRange("Int32", -(2**31), 2**31 - 1)]
UInt8 = Annotated[int, IntRange("UInt8", 0, 2**8 - 1)]
UInt16 = Annotated[int, IntRange("UInt16", 0, 2**16 - 1)]
UInt32 = Annotated[int, IntRange("UInt32", 0, 2**32 - 1)]


def describe(value: Any) -> str:
    """Human-readable type name used in error messages."""
    return type(value).__qualname__


def encode(value: Any) -> BindValue:
    """Convert an application value to a Bound value.

    A Reservation passes through unchanged for the statement to bind.

    Args:
        value: Any supported Python value

    Returns:
        The Bound value variant for ``value``

    Raises:
        UnsupportedValueError: If the type has no mapping or an int
            falls outside the signed 64-bit range.
    """
    if isinstance(value, (*_BOUND_TYPES, Reservation)):
        return value
    if value is None:
        return NULL
    if isinstance(value, bool):
        return Integer(int(value))
    if isinstance(value, RowId):
        return Integer(value.value)
    if isinstance(value, int):
        if not INT64_MIN <= value <= INT64_MAX:
            raise UnsupportedValueError(describe(value), "outside signed 64-bit range")
        return Integer(int(value))
    if isinstance(value, float):
        return Real(float(value))
    if isinstance(value, str):
        return Text(str(value))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return Blob(bytes(value))
    if isinstance(value, Json):
        try:
            return Text(pydantic_core.to_json(value.value).decode("utf-8"))
        except pydantic_core.PydanticSerializationError as e:
            raise UnsupportedValueError(describe(value.value), str(e)) from e
    if isinstance(value, (datetime, date)):
        return Text(value.isoformat())
    if isinstance(value, uuid.UUID):
        return Blob(value.bytes)
    raise UnsupportedValueError(describe(value))


def to_python(value: BoundValue) -> Any:
    """Unwrap a Bound value into its plain Python payload."""
    return value.value


def kind_name(value: BoundValue) -> str:
    return value.kind.name


@lru_cache(maxsize=256)
def _adapter(annotation: Any) -> TypeAdapter[Any]:
    return TypeAdapter(annotation)


def _unwrap_optional(annotation: Any) -> tuple[Any, bool]:
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        args = [a for a in get_args(annotation) if a is not type(None)]
        nullable = len(args) != len(get_args(annotation))
        if len(args) == 1:
            return args[0], nullable
        return Union[tuple(args)], nullable
    return annotation, False


def decode(value: BoundValue, annotation: Any, column: str | int) -> Any:
    """Convert a Bound value to the declared target type.

    Args:
        value: Value read from the engine
        annotation: Target type, possibly ``Optional`` and/or ``Annotated``
        column: Column name or index, for error reporting

    Returns:
        The converted value

    Raises:
        UnexpectedNullError: NULL for a non-optional target
        TypeMismatchError: No lossless conversion exists
        ValueOverflowError: Numeric value outside the target's range
    """
    base, extras = strip_annotated(annotation)
    base, nullable = _unwrap_optional(base)
    inner, inner_extras = strip_annotated(base)
    extras = extras + inner_extras
    base = inner

    if isinstance(value, Null):
        if nullable or base is Any or base is object or base is Null:
            return None if base is not Null else value
        raise UnexpectedNullError(column)

    if base is Any or base is object:
        return to_python(value)
    if base in _BOUND_TYPES:
        if not isinstance(value, base):
            raise TypeMismatchError(column, base.kind.name, kind_name(value))
        return value
    if get_origin(base) is Union and all(a in _BOUND_TYPES for a in get_args(base)):
        return value

    for extra in extras:
        if isinstance(extra, AsJson):
            return _decode_json_as(value, base, column)

    if base is bool:
        if isinstance(value, Integer):
            return value.value != 0
        raise TypeMismatchError(column, "bool", kind_name(value))

    if base is int:
        result = _decode_int(value, column)
        for extra in extras:
            if isinstance(extra, IntRange) and not extra.low <= result <= extra.high:
                raise ValueOverflowError(column, f"{result} does not fit {extra.name}")
        return result

    if base is RowId:
        if not isinstance(value, Integer):
            raise TypeMismatchError(column, "RowId", kind_name(value))
        if value.value == 0:
            raise ValueOverflowError(column, "rowid must be nonzero")
        return RowId(value.value)

    if base is float:
        if isinstance(value, Real):
            return value.value
        if isinstance(value, Integer):
            if abs(value.value) > MAX_EXACT_FLOAT_INT:
                raise ValueOverflowError(column, f"{value.value} not exact as float")
            return float(value.value)
        raise TypeMismatchError(column, "float", kind_name(value))

    if base is str:
        if isinstance(value, Text):
            return value.value
        raise TypeMismatchError(column, "str", kind_name(value))

    if base is bytes:
        if isinstance(value, Blob):
            return value.value
        if isinstance(value, Text):
            return value.value.encode("utf-8")
        raise TypeMismatchError(column, "bytes", kind_name(value))

    if base is Json:
        if not isinstance(value, Text):
            raise TypeMismatchError(column, "JSON text", kind_name(value))
        try:
            return Json(pydantic_core.from_json(value.value))
        except ValueError as e:
            raise TypeMismatchError(column, "JSON text", f"TEXT ({e})") from e

    if base is datetime or base is date:
        if not isinstance(value, Text):
            raise TypeMismatchError(column, base.__name__, kind_name(value))
        try:
            return base.fromisoformat(value.value)
        except ValueError as e:
            raise TypeMismatchError(column, base.__name__, f"TEXT {value.value!r}") from e

    if base is uuid.UUID:
        try:
            if isinstance(value, Blob):
                return uuid.UUID(bytes=value.value)
            if isinstance(value, Text):
                return uuid.UUID(value.value)
        except ValueError as e:
            raise TypeMismatchError(column, "UUID", kind_name(value)) from e
        raise TypeMismatchError(column, "UUID", kind_name(value))

    raise TypeMismatchError(column, getattr(base, "__name__", repr(base)), kind_name(value))


def _decode_int(value: BoundValue, column: str | int) -> int:
    if isinstance(value, Integer):
        return value.value
    if isinstance(value, Real):
        if value.value.is_integer() and INT64_MIN <= value.value <= INT64_MAX:
            return int(value.value)
        raise ValueOverflowError(column, f"{value.value} is not an exact integer")
    raise TypeMismatchError(column, "int", kind_name(value))


def _decode_json_as(value: BoundValue, base: Any, column: str | int) -> Any:
    if not isinstance(value, (Text, Blob)):
        raise TypeMismatchError(column, "JSON text", kind_name(value))
    try:
        return _adapter(base).validate_json(value.value)
    except ValidationError as e:
        name = getattr(base, "__name__", repr(base))
        raise TypeMismatchError(
            column, f"JSON {name}", f"invalid document ({e.error_count()} errors)"
        ) from e
