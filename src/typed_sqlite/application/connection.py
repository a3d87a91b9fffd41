"""Connection: owns one native database handle.

A Connection is opened from a Database descriptor, either directly with
default options or through a ConnectionBuilder. It prepares Statements
that borrow it, runs one-shot statements, scopes transactions, and
enforces the threading mode it was opened with:

    SINGLE_THREAD   every call must come from the creating thread
    MULTI_THREAD    one thread at a time; concurrent use is rejected
    SERIALIZED      unrestricted

Every call is synchronous. ``interrupt()`` is the one operation meant to
be called from another thread, to abort a long-running step.

Usage:
    >>> with Connection.open(Database.memory()) as conn:
    ...     conn.execute("CREATE TABLE users(id INTEGER PRIMARY KEY, username TEXT)")
    ...     conn.execute("INSERT INTO users VALUES (NULL, ?)", ("boo",)).last_row_id
    RowId(1)
"""

from __future__ import annotations

import threading
import time
import weakref
from contextlib import contextmanager
from datetime import timedelta
from typing import TYPE_CHECKING, Any, Generator

from typed_sqlite.application.statement import Statement
from typed_sqlite.application.transaction import Transaction
from typed_sqlite.domain.entities import Database
from typed_sqlite.domain.errors import (
    ConnectionClosedError,
    EngineOpenError,
    EnginePrepareError,
    SQLSyntaxError,
    ThreadAffinityError,
    ThreadingUnsupportedError,
    TypedSQLiteError,
)
from typed_sqlite.domain.value_objects import (
    NULL_HANDLE,
    ChangeSummary,
    ConnectionHandle,
    OpenOption,
    ResultCode,
    RowId,
    ThreadingMode,
    TransactionBehavior,
)
from typed_sqlite.infrastructure.config import get_config
from typed_sqlite.infrastructure.container import resolve_engine
from typed_sqlite.infrastructure.logging import get_logger
from typed_sqlite.infrastructure.metrics import get_metrics
from typed_sqlite.infrastructure.tracing import trace_span

if TYPE_CHECKING:
    from typed_sqlite.ports.outbound import NativeEngine

logger = get_logger(__name__)


def _is_syntax_error(message: str) -> bool:
    return "syntax error" in message or message.startswith("incomplete input")


def _release(engine: NativeEngine, handle: ConnectionHandle) -> None:
    engine.close_v2(handle)
    get_metrics().connections_active.dec()


class ConnectionBuilder:
    """Accumulates open options for a Connection.

    Defaults:
        open flags      the Database's flags (READ_WRITE | CREATE)
        threading mode  ``engine.threading_mode`` from config, else the
                        mode the linked build provides
        busy timeout    ``engine.busy_timeout_ms`` from config (5000 ms)
        vfs             engine default
        engine          resolved from the DI container
    """

    def __init__(self, database: Database) -> None:
        config = get_config().engine
        self._database = database
        self._flags = database.open_flags
        self._threading_mode = (
            ThreadingMode[config.threading_mode.upper()] if config.threading_mode else None
        )
        self._busy_timeout_ms = config.busy_timeout_ms
        self._extended_result_codes = config.extended_result_codes
        self._vfs: str | None = None
        self._engine: NativeEngine | None = None

    def read_only(self) -> ConnectionBuilder:
        """Open without write access."""
        self._flags = (self._flags & ~(OpenOption.READ_WRITE | OpenOption.CREATE)) | (
            OpenOption.READ_ONLY
        )
        return self

    def read_write(self, create: bool = True) -> ConnectionBuilder:
        """Open for reading and writing, optionally creating the file."""
        self._flags = (self._flags & ~(OpenOption.READ_ONLY | OpenOption.CREATE)) | (
            OpenOption.READ_WRITE
        )
        if create:
            self._flags |= OpenOption.CREATE
        return self

    def uri_filenames(self, enabled: bool = True) -> ConnectionBuilder:
        """Interpret the filename as a URI."""
        self._flags = self._flags | OpenOption.URI if enabled else self._flags & ~OpenOption.URI
        return self

    def follow_symbolic_links(self, follow: bool = True) -> ConnectionBuilder:
        """Allow (default) or refuse opening through a symbolic link."""
        if follow:
            self._flags &= ~OpenOption.NO_FOLLOW
        else:
            self._flags |= OpenOption.NO_FOLLOW
        return self

    def shared_cache(self, enabled: bool = True) -> ConnectionBuilder:
        self._flags &= ~(OpenOption.SHARED_CACHE | OpenOption.PRIVATE_CACHE)
        self._flags |= OpenOption.SHARED_CACHE if enabled else OpenOption.PRIVATE_CACHE
        return self

    def flags(self, flags: OpenOption) -> ConnectionBuilder:
        """Add raw open flags."""
        self._flags |= flags
        return self

    def vfs(self, name: str | None) -> ConnectionBuilder:
        """Use the named VFS module (None for the default)."""
        self._vfs = name
        return self

    def threading_mode(self, mode: ThreadingMode) -> ConnectionBuilder:
        """Request a threading mode; must not exceed what the build provides."""
        self._threading_mode = mode
        return self

    def busy_timeout(self, timeout: int | timedelta) -> ConnectionBuilder:
        """Wait up to ``timeout`` (milliseconds or timedelta) on a locked database."""
        if isinstance(timeout, timedelta):
            timeout = int(timeout.total_seconds() * 1000)
        if timeout < 0:
            raise ValueError(f"busy timeout must be non-negative, got {timeout}")
        self._busy_timeout_ms = timeout
        return self

    def extended_result_codes(self, enabled: bool = True) -> ConnectionBuilder:
        self._extended_result_codes = enabled
        return self

    def engine(self, engine: NativeEngine) -> ConnectionBuilder:
        """Use a specific NativeEngine instead of the container's."""
        self._engine = engine
        return self

    @property
    def open_flags(self) -> OpenOption:
        return self._flags

    def open(self) -> Connection:
        """Open the connection.

        Raises:
            ThreadingUnsupportedError: Requested mode is stronger than the build's
            EngineOpenError: The engine failed to open the database
            LibraryLoadError: The native library could not be loaded
        """
        metrics = get_metrics()
        try:
            connection = self._open()
        except TypedSQLiteError as e:
            metrics.connections_opened_total.labels(status="error").inc()
            metrics.errors_total.labels(kind=type(e).__name__).inc()
            raise
        metrics.connections_opened_total.labels(status="success").inc()
        return connection

    def _open(self) -> Connection:
        engine = self._engine if self._engine is not None else resolve_engine()

        available = ThreadingMode(engine.threadsafe())
        requested = self._threading_mode or available
        if not available.supports(requested):
            raise ThreadingUnsupportedError(requested, available)

        flags = self._flags
        if available is not ThreadingMode.SINGLE_THREAD:
            flags = (flags & ~(OpenOption.NO_MUTEX | OpenOption.FULL_MUTEX)) | (
                requested.open_flags()
            )

        code, handle = engine.open_v2(self._database.target, int(flags), self._vfs)
        if code != ResultCode.OK:
            message = engine.errmsg(handle) if handle != NULL_HANDLE else engine.errstr(code)
            if handle != NULL_HANDLE:
                engine.close_v2(handle)
            logger.warning(
                "connection_open_failed",
                database=str(self._database),
                code=code,
                message=message,
            )
            raise EngineOpenError(code, message)

        engine.extended_result_codes(handle, self._extended_result_codes)
        engine.busy_timeout(handle, self._busy_timeout_ms)

        logger.debug(
            "connection_opened",
            database=str(self._database),
            flags=int(flags),
            threading_mode=requested.name,
        )
        return Connection(engine, handle, self._database, flags, requested)


class Connection:
    """A live connection to a SQLite database."""

    def __init__(
        self,
        engine: NativeEngine,
        handle: ConnectionHandle,
        database: Database,
        flags: OpenOption,
        threading_mode: ThreadingMode,
    ) -> None:
        """Take ownership of an open handle. Use ``open`` or ``builder``."""
        self._engine = engine
        self._handle = handle
        self._database = database
        self._flags = flags
        self._threading_mode = threading_mode
        self._owner = threading.get_ident()
        self._guard = threading.RLock()
        self._statements: weakref.WeakSet[Statement] = weakref.WeakSet()
        self._savepoints = 0
        self._log = get_logger(__name__, database=str(database))

        get_metrics().connections_active.inc()
        self._finalizer = weakref.finalize(self, _release, engine, handle)

    @classmethod
    def open(cls, database: Database) -> Connection:
        """Open ``database`` with default options."""
        return ConnectionBuilder(database).open()

    @classmethod
    def builder(cls, database: Database) -> ConnectionBuilder:
        """Start configuring a connection to ``database``."""
        return ConnectionBuilder(database)

    # -- properties -------------------------------------------------------

    @property
    def database(self) -> Database:
        return self._database

    @property
    def open_flags(self) -> OpenOption:
        return self._flags

    @property
    def threading_mode(self) -> ThreadingMode:
        return self._threading_mode

    @property
    def engine(self) -> NativeEngine:
        return self._engine

    @property
    def is_closed(self) -> bool:
        return not self._finalizer.alive

    @property
    def is_autocommit(self) -> bool:
        """True when no transaction is open."""
        with self._use():
            return self._engine.get_autocommit(self._handle)

    @property
    def changes(self) -> int:
        """Rows changed by the most recent INSERT, UPDATE or DELETE."""
        with self._use():
            return self._engine.changes(self._handle)

    @property
    def total_changes(self) -> int:
        with self._use():
            return self._engine.total_changes(self._handle)

    @property
    def last_insert_rowid(self) -> RowId | None:
        with self._use():
            value = self._engine.last_insert_rowid(self._handle)
        return RowId(value) if value != 0 else None

    # -- thread confinement -----------------------------------------------

    @contextmanager
    def _use(self) -> Generator[ConnectionHandle, None, None]:
        """Guard one call into the engine with this connection's mode rules."""
        if not self._finalizer.alive:
            raise ConnectionClosedError()

        mode = self._threading_mode
        if mode is ThreadingMode.SINGLE_THREAD:
            if threading.get_ident() != self._owner:
                raise ThreadAffinityError(
                    "single-thread connection used outside its creating thread"
                )
            yield self._handle
        elif mode is ThreadingMode.MULTI_THREAD:
            if not self._guard.acquire(blocking=False):
                raise ThreadAffinityError(
                    "multi-thread connection used from two threads at once"
                )
            try:
                yield self._handle
            finally:
                self._guard.release()
        else:
            yield self._handle

    def _errmsg(self) -> str:
        return self._engine.errmsg(self._handle)

    def _forget(self, statement: Statement) -> None:
        self._statements.discard(statement)

    def _change_counters(self) -> tuple[int, int]:
        with self._use():
            return (
                self._engine.total_changes(self._handle),
                self._engine.last_insert_rowid(self._handle),
            )

    def _summarize(self, before: tuple[int, int]) -> ChangeSummary:
        """Describe what the statement that ran since ``before`` changed.

        ``sqlite3_changes`` is only meaningful when the statement itself
        wrote rows, so it is read only if the connection-wide total moved.
        The row id is reported only if the statement assigned a new one.
        """
        total_before, rowid_before = before
        with self._use():
            wrote = self._engine.total_changes(self._handle) != total_before
            affected = self._engine.changes(self._handle) if wrote else 0
            rowid = self._engine.last_insert_rowid(self._handle)
        last_row_id = RowId(rowid) if rowid not in (0, rowid_before) else None
        return ChangeSummary(rows_affected=affected, last_row_id=last_row_id)

    def _next_savepoint(self) -> str:
        self._savepoints += 1
        return f"typed_sqlite_sp_{self._savepoints}"

    # -- statements -------------------------------------------------------

    def prepare(self, sql: str) -> Statement:
        """Compile the first statement in ``sql``.

        Raises:
            SQLSyntaxError: The SQL text is malformed
            EnginePrepareError: The engine rejected it (unknown table, ...)
        """
        statement, _ = self._prepare(sql)
        if statement is None:
            get_metrics().statements_prepared_total.labels(status="error").inc()
            raise EnginePrepareError(ResultCode.MISUSE, "SQL text contains no statement")
        return statement

    def _prepare(self, sql: str) -> tuple[Statement | None, str]:
        metrics = get_metrics()
        with trace_span("sqlite.prepare", statement=sql):
            with self._use() as handle:
                code, stmt, tail = self._engine.prepare_v2(handle, sql)
                if code != ResultCode.OK:
                    message = self._errmsg()
                    offset = self._engine.error_offset(handle)
                    metrics.statements_prepared_total.labels(status="error").inc()
                    if ResultCode.from_code(code) is ResultCode.ERROR and _is_syntax_error(message):
                        error: TypedSQLiteError = SQLSyntaxError(message, offset)
                    else:
                        error = EnginePrepareError(code, message)
                    metrics.errors_total.labels(kind=type(error).__name__).inc()
                    self._log.debug(
                        "statement_prepare_failed", sql=sql, code=code, message=message
                    )
                    raise error

        if stmt == NULL_HANDLE:
            return None, tail

        consumed = sql[: len(sql) - len(tail)] if tail else sql
        statement = Statement(self, self._engine, stmt, consumed.strip())
        self._statements.add(statement)
        metrics.statements_prepared_total.labels(status="success").inc()
        return statement, tail

    def execute(self, sql: str, params: Any = None, /, **named: Any) -> ChangeSummary:
        """Prepare, bind, step to completion and finalize one statement.

        Returns:
            Rows changed by the statement and, when it inserted a row,
            the new RowId
        """
        metrics = get_metrics()
        start = time.perf_counter()
        with trace_span("sqlite.execute", statement=sql):
            with self.prepare(sql) as statement:
                summary = statement.bind(params, **named).execute()
        metrics.execute_latency_seconds.observe(time.perf_counter() - start)
        return summary

    def execute_batch(self, sql: str) -> None:
        """Run every statement in a multi-statement script, without parameters."""
        remaining = sql
        while remaining.strip():
            statement, remaining = self._prepare(remaining)
            if statement is None:
                break
            with statement:
                statement.execute()

    def fetch(self, sql: str, params: Any = None, target: Any = None) -> Any:
        """One-shot ``prepare(sql).bind(params).fetch(target)``."""
        with self.prepare(sql) as statement:
            return statement.bind(params).fetch(target)

    # -- transactions -----------------------------------------------------

    def transaction(
        self,
        behavior: TransactionBehavior = TransactionBehavior.DEFERRED,
        *,
        commit_on_exit: bool = False,
    ) -> Transaction:
        """Begin a transaction, or a savepoint if one is already open.

        The guard rolls back on every exit path unless ``commit()`` was
        called first. With ``commit_on_exit=True`` a ``with`` block that
        ends without an exception commits instead.
        """
        return Transaction(self, behavior, commit_on_exit=commit_on_exit)

    # -- teardown ---------------------------------------------------------

    def interrupt(self) -> None:
        """Abort the currently running step at its next opportunity.

        Callable from any thread. A no-op on a closed connection.
        """
        if self._finalizer.alive:
            self._engine.interrupt(self._handle)

    def close(self) -> None:
        """Finalize all live statements and close the handle. Idempotent."""
        if not self._finalizer.alive:
            return
        for statement in list(self._statements):
            statement.close()
        self._finalizer()
        self._log.debug("connection_closed")

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "closed" if self.is_closed else "open"
        return f"Connection({str(self._database)!r}, {self._threading_mode.name}, {state})"
