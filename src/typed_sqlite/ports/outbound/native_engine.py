"""Native engine port: the raw SQLite C entry points.

This outbound port is the only boundary between the typed layer and the
engine. Methods mirror the C interface one to one and report failures
by returning the raw integer result code; they never raise engine
errors themselves. Strings cross the boundary as ``str`` and are
UTF-8 encoded by the implementation.

Handles are plain integers (native pointers). A handle of 0 is NULL.

References:
    - https://sqlite.org/c3ref/intro.html
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Protocol

from typed_sqlite.domain.value_objects import ConnectionHandle, StatementHandle


class NativeEngine(Protocol):
    """Protocol for the SQLite C interface.

    Thread Safety:
        Implementations hold no per-call state. Whether a given handle
        may be used concurrently is decided by the engine's threading
        mode, which callers enforce.
    """

    # -- library ----------------------------------------------------------

    @abstractmethod
    def initialize(self) -> int:
        """``sqlite3_initialize``."""
        ...

    @abstractmethod
    def libversion(self) -> str:
        """Version string, e.g. ``"3.45.0"``."""
        ...

    @abstractmethod
    def libversion_number(self) -> int:
        """Version number, e.g. ``3045000``."""
        ...

    @abstractmethod
    def threadsafe(self) -> int:
        """Compiled threading mode: 0 single-thread, 1 serialized, 2 multi-thread."""
        ...

    @abstractmethod
    def compileoption_get(self, index: int) -> str | None:
        """Compile-time option at ``index``, None past the end."""
        ...

    @abstractmethod
    def errstr(self, code: int) -> str:
        """English description of a result code."""
        ...

    # -- connection -------------------------------------------------------

    @abstractmethod
    def open_v2(
        self, filename: str, flags: int, vfs: str | None = None
    ) -> tuple[int, ConnectionHandle]:
        """Open a connection.

        Returns:
            ``(result_code, handle)``. The handle may be non-NULL even on
            failure and must then still be closed.
        """
        ...

    @abstractmethod
    def close_v2(self, db: ConnectionHandle) -> int:
        """Close a connection handle."""
        ...

    @abstractmethod
    def errmsg(self, db: ConnectionHandle) -> str:
        """Message of the most recent error on ``db``."""
        ...

    @abstractmethod
    def extended_errcode(self, db: ConnectionHandle) -> int:
        """Extended result code of the most recent error on ``db``."""
        ...

    @abstractmethod
    def error_offset(self, db: ConnectionHandle) -> int:
        """Byte offset of the token that caused the last error, or -1."""
        ...

    @abstractmethod
    def extended_result_codes(self, db: ConnectionHandle, onoff: bool) -> int:
        """Enable or disable extended result codes."""
        ...

    @abstractmethod
    def busy_timeout(self, db: ConnectionHandle, milliseconds: int) -> int:
        """Set the busy handler timeout."""
        ...

    @abstractmethod
    def interrupt(self, db: ConnectionHandle) -> None:
        """Ask the running statement to abort. Safe from any thread."""
        ...

    @abstractmethod
    def get_autocommit(self, db: ConnectionHandle) -> bool:
        """True when no explicit transaction is open."""
        ...

    @abstractmethod
    def changes(self, db: ConnectionHandle) -> int:
        """Rows changed by the most recent INSERT/UPDATE/DELETE."""
        ...

    @abstractmethod
    def total_changes(self, db: ConnectionHandle) -> int:
        """Rows changed since the connection was opened."""
        ...

    @abstractmethod
    def last_insert_rowid(self, db: ConnectionHandle) -> int:
        """Rowid of the most recent successful INSERT."""
        ...

    # -- statement --------------------------------------------------------

    @abstractmethod
    def prepare_v2(self, db: ConnectionHandle, sql: str) -> tuple[int, StatementHandle, str]:
        """Compile the first statement in ``sql``.

        Returns:
            ``(result_code, handle, tail)``. ``handle`` is NULL when the
            text held only whitespace or comments; ``tail`` is the
            unconsumed remainder.
        """
        ...

    @abstractmethod
    def step(self, stmt: StatementHandle) -> int:
        """Advance the statement. Returns ROW, DONE or an error code."""
        ...

    @abstractmethod
    def reset(self, stmt: StatementHandle) -> int:
        """Rewind the statement to the beginning."""
        ...

    @abstractmethod
    def finalize(self, stmt: StatementHandle) -> int:
        """Destroy the statement."""
        ...

    @abstractmethod
    def clear_bindings(self, stmt: StatementHandle) -> int:
        """Set every parameter back to NULL."""
        ...

    @abstractmethod
    def bind_parameter_count(self, stmt: StatementHandle) -> int:
        """Highest parameter index."""
        ...

    @abstractmethod
    def bind_parameter_name(self, stmt: StatementHandle, index: int) -> str | None:
        """Placeholder text including its prefix, None for bare ``?``."""
        ...

    @abstractmethod
    def bind_null(self, stmt: StatementHandle, index: int) -> int: ...

    @abstractmethod
    def bind_int64(self, stmt: StatementHandle, index: int, value: int) -> int: ...

    @abstractmethod
    def bind_double(self, stmt: StatementHandle, index: int, value: float) -> int: ...

    @abstractmethod
    def bind_text(self, stmt: StatementHandle, index: int, value: str) -> int:
        """Bind text. The engine keeps its own copy."""
        ...

    @abstractmethod
    def bind_blob(self, stmt: StatementHandle, index: int, value: bytes) -> int:
        """Bind bytes. The engine keeps its own copy; empty binds a zero-length blob."""
        ...

    @abstractmethod
    def bind_zeroblob(self, stmt: StatementHandle, index: int, length: int) -> int:
        """Bind a BLOB of ``length`` zero bytes."""
        ...

    @abstractmethod
    def column_count(self, stmt: StatementHandle) -> int: ...

    @abstractmethod
    def column_name(self, stmt: StatementHandle, index: int) -> str: ...

    @abstractmethod
    def column_type(self, stmt: StatementHandle, index: int) -> int:
        """Storage class of the current row's column (1..5)."""
        ...

    @abstractmethod
    def column_int64(self, stmt: StatementHandle, index: int) -> int: ...

    @abstractmethod
    def column_double(self, stmt: StatementHandle, index: int) -> float: ...

    @abstractmethod
    def column_text(self, stmt: StatementHandle, index: int) -> str: ...

    @abstractmethod
    def column_blob(self, stmt: StatementHandle, index: int) -> bytes:
        """Column bytes; a zero-length blob reads as ``b""``."""
        ...
