"""Engine-level enumerations: result codes, open flags, threading modes.

The numeric values are part of the SQLite C interface and must not change.

References:
    - https://sqlite.org/rescode.html
    - https://sqlite.org/c3ref/open.html
    - https://sqlite.org/threadsafe.html
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum, IntFlag

from typed_sqlite.domain.value_objects.identifiers import RowId


class ResultCode(IntEnum):
    """Primary result codes (the low byte of any extended code)."""

    OK = 0
    ERROR = 1
    INTERNAL = 2
    PERM = 3
    ABORT = 4
    BUSY = 5
    LOCKED = 6
    NOMEM = 7
    READONLY = 8
    INTERRUPT = 9
    IOERR = 10
    CORRUPT = 11
    NOTFOUND = 12
    FULL = 13
    CANTOPEN = 14
    PROTOCOL = 15
    EMPTY = 16
    SCHEMA = 17
    TOOBIG = 18
    CONSTRAINT = 19
    MISMATCH = 20
    MISUSE = 21
    NOLFS = 22
    AUTH = 23
    FORMAT = 24
    RANGE = 25
    NOTADB = 26
    NOTICE = 27
    WARNING = 28
    ROW = 100
    DONE = 101
    UNKNOWN = -1

    @classmethod
    def from_code(cls, code: int) -> ResultCode:
        """Map a primary or extended result code to its primary category."""
        try:
            return cls(code & 0xFF)
        except ValueError:
            return cls.UNKNOWN


class OpenOption(IntFlag):
    """Flags accepted by ``sqlite3_open_v2``."""

    READ_ONLY = 0x00000001
    READ_WRITE = 0x00000002
    CREATE = 0x00000004
    URI = 0x00000040
    MEMORY = 0x00000080
    NO_MUTEX = 0x00008000
    FULL_MUTEX = 0x00010000
    SHARED_CACHE = 0x00020000
    PRIVATE_CACHE = 0x00040000
    NO_FOLLOW = 0x01000000

    @classmethod
    def default(cls) -> OpenOption:
        """Default flags for a fresh connection: read/write, create if missing."""
        return cls.READ_WRITE | cls.CREATE


class ThreadingMode(Enum):
    """Threading guarantee of a linked engine build or of a connection.

    Values follow ``sqlite3_threadsafe()``: 0 single-thread, 1 serialized,
    2 multi-thread. Strength is a separate ordering:

        SINGLE_THREAD < MULTI_THREAD < SERIALIZED
    """

    SINGLE_THREAD = 0
    """No mutexes at all. A connection is pinned to its creating thread."""

    SERIALIZED = 1
    """Engine serializes all access. Any connection is usable from any thread."""

    MULTI_THREAD = 2
    """One thread at a time per connection, distinct connections independent."""

    @property
    def strength(self) -> int:
        return _STRENGTH[self]

    def supports(self, requested: ThreadingMode) -> bool:
        """Check whether a build in this mode can serve ``requested``."""
        return requested.strength <= self.strength

    def open_flags(self) -> OpenOption:
        """Mutex flags that select this mode for a single connection."""
        if self is ThreadingMode.SERIALIZED:
            return OpenOption.FULL_MUTEX
        if self is ThreadingMode.MULTI_THREAD:
            return OpenOption.NO_MUTEX
        return OpenOption(0)


_STRENGTH = {
    ThreadingMode.SINGLE_THREAD: 0,
    ThreadingMode.MULTI_THREAD: 1,
    ThreadingMode.SERIALIZED: 2,
}


class StatementState(Enum):
    """Statement lifecycle states.

    State machine:

        READY ──step()──> EXECUTING ──step()──> DONE
          ^                  │  │
          │                  │  └──engine error──> FAILED
          └──reset()/bind()──┴──────────────────────┘

    DONE and FAILED are terminal: step() leaves them unchanged until an
    explicit reset() or bind().
    """

    READY = "ready"
    """Prepared or freshly reset. Parameters may be bound."""

    EXECUTING = "executing"
    """At least one step taken and a row is available."""

    DONE = "done"
    """Cursor exhausted."""

    FAILED = "failed"
    """A step returned an engine error."""

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (DONE or FAILED)."""
        return self in (StatementState.DONE, StatementState.FAILED)


class TransactionBehavior(Enum):
    """Locking behavior requested by ``BEGIN``."""

    DEFERRED = "DEFERRED"
    IMMEDIATE = "IMMEDIATE"
    EXCLUSIVE = "EXCLUSIVE"


@dataclass(frozen=True, slots=True)
class ChangeSummary:
    """Outcome of running a statement to completion.

    Attributes:
        rows_affected: Rows inserted, updated or deleted by the statement
        last_row_id: RowId assigned by an INSERT, otherwise None
    """

    rows_affected: int
    last_row_id: RowId | None = None
