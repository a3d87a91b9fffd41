"""Value objects for the typed SQLite layer.

Value objects are immutable types that represent domain concepts.
They have no identity - two value objects with the same attributes are equal.

Exports:
    Identifiers:
        - RowId: Engine-assigned row identifier (nonzero, 64-bit)
        - ConnectionHandle, StatementHandle: Opaque native pointers

    Bound values:
        - BoundValue: Union of Null, Integer, Real, Text, Blob
        - ValueKind: Storage class tag
        - Json: JSON document stored as Text
        - Reservation: Zero-filled BLOB of a given length (bind only)
        - BindValue: BoundValue or Reservation

    Engine types:
        - ResultCode, OpenOption, ThreadingMode, StatementState,
          TransactionBehavior, ChangeSummary
"""

from typed_sqlite.domain.value_objects.bound_value import (
    NULL,
    BindValue,
    Blob,
    BoundValue,
    Integer,
    Json,
    Null,
    Real,
    Reservation,
    Text,
    ValueKind,
)
from typed_sqlite.domain.value_objects.engine_types import (
    ChangeSummary,
    OpenOption,
    ResultCode,
    StatementState,
    ThreadingMode,
    TransactionBehavior,
)
from typed_sqlite.domain.value_objects.identifiers import (
    INT64_MAX,
    INT64_MIN,
    NULL_HANDLE,
    ConnectionHandle,
    RowId,
    StatementHandle,
)

__all__ = [
    # Identifiers
    "RowId",
    "ConnectionHandle",
    "StatementHandle",
    "NULL_HANDLE",
    "INT64_MIN",
    "INT64_MAX",
    # Bound values
    "BoundValue",
    "Null",
    "Integer",
    "Real",
    "Text",
    "Blob",
    "NULL",
    "Json",
    "Reservation",
    "BindValue",
    "ValueKind",
    # Engine types
    "ChangeSummary",
    "OpenOption",
    "ResultCode",
    "StatementState",
    "ThreadingMode",
    "TransactionBehavior",
]
