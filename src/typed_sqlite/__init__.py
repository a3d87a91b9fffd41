"""
Typed SQLite - a typed embedding layer over the SQLite C interface

Connections and prepared statements with explicit lifecycles, parameter
binding from Python values, and row extraction into dataclasses, pydantic
models, named tuples or plain tuples.
"""

__version__ = "0.1.0"

from typed_sqlite.application import (  # noqa: E402
    Connection,
    ConnectionBuilder,
    Features,
    Flag,
    Rows,
    Statement,
    Transaction,
    Version,
)
from typed_sqlite.domain.entities import Column, Database, Location, column  # noqa: E402
from typed_sqlite.domain.errors import (  # noqa: E402
    TypedSQLiteError,
    OpenError,
    EngineOpenError,
    ThreadingUnsupportedError,
    LibraryLoadError,
    ExecError,
    PrepareError,
    SQLSyntaxError,
    EnginePrepareError,
    BindError,
    ArityMismatchError,
    UnknownParameterError,
    MissingParameterError,
    UnsupportedValueError,
    ParameterIndexError,
    EngineBindError,
    StepError,
    FetchError,
    NoRowsError,
    ExtraRowsError,
    ExtractError,
    UnexpectedNullError,
    TypeMismatchError,
    ValueOverflowError,
    MissingColumnError,
    MisuseError,
    ConnectionClosedError,
    StatementClosedError,
    ThreadAffinityError,
)
from typed_sqlite.domain.services import (  # noqa: E402
    AsJson,
    Int8,
    Int16,
    Int32,
    Json,
    Row,
    UInt8,
    UInt16,
    UInt32,
)
from typed_sqlite.domain.value_objects import (  # noqa: E402
    Blob,
    BoundValue,
    ChangeSummary,
    Integer,
    Null,
    OpenOption,
    Real,
    Reservation,
    RowId,
    StatementState,
    Text,
    ThreadingMode,
    TransactionBehavior,
    ValueKind,
)
