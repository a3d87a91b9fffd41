"""Error taxonomy for the typed SQLite layer.

Every failure is a recoverable exception; callers decide whether to retry
(for example on BUSY/LOCKED) or abort. Engine-originated errors keep the
native extended result code and message verbatim.

Hierarchy:

    TypedSQLiteError
    ├── OpenError
    │   ├── EngineOpenError
    │   ├── ThreadingUnsupportedError
    │   └── LibraryLoadError
    ├── ExecError
    │   ├── PrepareError ── SQLSyntaxError, EnginePrepareError
    │   ├── BindError ── ArityMismatchError, UnknownParameterError,
    │   │                MissingParameterError, UnsupportedValueError,
    │   │                ParameterIndexError, EngineBindError
    │   └── StepError
    ├── FetchError ── NoRowsError, ExtraRowsError
    ├── ExtractError ── UnexpectedNullError, TypeMismatchError,
    │                   ValueOverflowError, MissingColumnError
    └── MisuseError ── ConnectionClosedError, StatementClosedError,
                       ThreadAffinityError
"""

from __future__ import annotations

from typed_sqlite.domain.value_objects import ResultCode, ThreadingMode


class TypedSQLiteError(Exception):
    """Base class for every error raised by this package."""


class EngineErrorMixin:
    """Carries a native result code and message."""

    code: int
    message: str

    @property
    def category(self) -> ResultCode:
        """Primary result code of the native error."""
        return ResultCode.from_code(self.code)


# ---------------------------------------------------------------------------
# Open
# ---------------------------------------------------------------------------


class OpenError(TypedSQLiteError):
    """Opening a connection failed."""


class EngineOpenError(EngineErrorMixin, OpenError):
    """The engine refused to open the database."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"cannot open database: {message} (code {code})")


class ThreadingUnsupportedError(OpenError):
    """The requested threading mode is stronger than the linked build provides."""

    def __init__(self, requested: ThreadingMode, available: ThreadingMode) -> None:
        self.requested = requested
        self.available = available
        super().__init__(
            f"threading mode {requested.name} requested but engine build "
            f"only provides {available.name}"
        )


class LibraryLoadError(OpenError):
    """The native SQLite library could not be located or loaded."""


# ---------------------------------------------------------------------------
# Prepare / bind / step
# ---------------------------------------------------------------------------


class ExecError(TypedSQLiteError):
    """Failure while preparing, binding or stepping a statement."""


class PrepareError(ExecError):
    """Compiling SQL text failed."""


class SQLSyntaxError(PrepareError):
    """The engine rejected the SQL text as malformed."""

    def __init__(self, message: str, offset: int) -> None:
        self.message = message
        self.offset = offset
        where = f" at byte {offset}" if offset >= 0 else ""
        super().__init__(f"syntax error{where}: {message}")


class EnginePrepareError(EngineErrorMixin, PrepareError):
    """The engine rejected the statement for a reason other than syntax."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"prepare failed: {message} (code {code})")


class BindError(ExecError):
    """Assigning parameter values failed."""


class ArityMismatchError(BindError):
    """Positional value count differs from the statement's parameter count."""

    def __init__(self, expected: int, got: int) -> None:
        self.expected = expected
        self.got = got
        super().__init__(f"statement expects {expected} parameters, got {got}")


class UnknownParameterError(BindError):
    """A supplied name has no matching placeholder in the SQL text."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"no parameter named {name!r}")


class MissingParameterError(BindError):
    """A placeholder in the SQL text received no value."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"no value supplied for parameter {name!r}")


class UnsupportedValueError(BindError):
    """An application value has no Bound value mapping."""

    def __init__(self, type_description: str, reason: str | None = None) -> None:
        self.type_description = type_description
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"cannot bind value of type {type_description}{detail}")


class ParameterIndexError(BindError):
    """A positional index is outside 1..parameter_count."""

    def __init__(self, index: int, count: int) -> None:
        self.index = index
        self.count = count
        super().__init__(f"parameter index {index} out of range 1..{count}")


class EngineBindError(EngineErrorMixin, BindError):
    """The engine rejected a bind call."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"bind failed: {message} (code {code})")


class StepError(EngineErrorMixin, ExecError):
    """Executing a step failed (constraint violation, busy, locked, ...)."""

    def __init__(self, code: int, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"step failed: {message} (code {code})")

    @property
    def is_busy(self) -> bool:
        """True when retrying later might succeed."""
        return self.category in (ResultCode.BUSY, ResultCode.LOCKED)


# ---------------------------------------------------------------------------
# Fetch / extract
# ---------------------------------------------------------------------------


class FetchError(TypedSQLiteError):
    """A single-row fetch did not see exactly one row."""


class NoRowsError(FetchError):
    """The query produced no rows."""

    def __init__(self) -> None:
        super().__init__("query returned no rows")


class ExtraRowsError(FetchError):
    """The query produced more than one row."""

    def __init__(self) -> None:
        super().__init__("query returned more than one row")


class ExtractError(TypedSQLiteError):
    """A column value could not be converted to its target type."""


class UnexpectedNullError(ExtractError):
    """NULL read into a non-optional target."""

    def __init__(self, column: str | int) -> None:
        self.column = column
        super().__init__(f"unexpected NULL in column {column!r}")


class TypeMismatchError(ExtractError):
    """Stored value kind cannot be coerced losslessly into the target."""

    def __init__(self, column: str | int, expected: str, actual: str) -> None:
        self.column = column
        self.expected = expected
        self.actual = actual
        super().__init__(f"column {column!r}: expected {expected}, found {actual}")


class ValueOverflowError(ExtractError):
    """Value does not fit the target range without loss."""

    def __init__(self, column: str | int, detail: str | None = None) -> None:
        self.column = column
        self.detail = detail
        suffix = f": {detail}" if detail else ""
        super().__init__(f"value in column {column!r} out of range{suffix}")


class MissingColumnError(ExtractError):
    """A non-optional target field has no corresponding column."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"no column for field {field!r}")


# ---------------------------------------------------------------------------
# Misuse
# ---------------------------------------------------------------------------


class MisuseError(TypedSQLiteError):
    """API used outside its lifetime or threading contract."""


class ConnectionClosedError(MisuseError):
    """Operation on a closed connection."""

    def __init__(self) -> None:
        super().__init__("connection is closed")


class StatementClosedError(MisuseError):
    """Operation on a finalized statement."""

    def __init__(self) -> None:
        super().__init__("statement is closed")


class ThreadAffinityError(MisuseError):
    """Connection used from a thread its threading mode does not allow."""

__all__ = [
    "TypedSQLiteError",
    "OpenError",
    "EngineOpenError",
    "ThreadingUnsupportedError",
    "LibraryLoadError",
    "ExecError",
    "PrepareError",
    "SQLSyntaxError",
    "EnginePrepareError",
    "BindError",
    "ArityMismatchError",
    "UnknownParameterError",
    "MissingParameterError",
    "UnsupportedValueError",
    "ParameterIndexError",
    "EngineBindError",
    "StepError",
    "FetchError",
    "NoRowsError",
    "ExtraRowsError",
    "ExtractError",
    "UnexpectedNullError",
    "TypeMismatchError",
    "ValueOverflowError",
    "MissingColumnError",
    "MisuseError",
    "ConnectionClosedError",
    "StatementClosedError",
    "ThreadAffinityError",
]
