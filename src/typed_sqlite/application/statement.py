"""Prepared statement with an explicit execution state machine.

A Statement owns one native statement handle and borrows the Connection
that prepared it. The handle is finalized exactly once: by ``close()``,
when the owning Connection closes, or when the Statement is garbage
collected, whichever comes first.

Usage:
    >>> with conn.prepare("SELECT id, username FROM users WHERE id = ?") as stmt:
    ...     user = stmt.bind(1).fetch((int, str))
    ...     for row in stmt.bind(2).rows(User):
    ...         ...
"""

from __future__ import annotations

import weakref
from collections.abc import Iterator
from typing import TYPE_CHECKING, Any, Generic, TypeVar, overload

from typed_sqlite.domain.entities import RowMapping, mapping_for
from typed_sqlite.domain.errors import (
    EngineBindError,
    ExtraRowsError,
    MisuseError,
    NoRowsError,
    ParameterIndexError,
    StatementClosedError,
    StepError,
)
from typed_sqlite.domain.services import Row, bind_at, bind_parameters, extract
from typed_sqlite.domain.value_objects import (
    NULL,
    NULL_HANDLE,
    Blob,
    BindValue,
    BoundValue,
    ChangeSummary,
    Integer,
    Null,
    Real,
    Reservation,
    ResultCode,
    StatementHandle,
    StatementState,
    Text,
    ValueKind,
)
from typed_sqlite.infrastructure.logging import get_logger
from typed_sqlite.infrastructure.metrics import get_metrics

if TYPE_CHECKING:
    from typed_sqlite.application.connection import Connection
    from typed_sqlite.ports.outbound import NativeEngine

logger = get_logger(__name__)

T = TypeVar("T")

def _release(engine: NativeEngine, handle: StatementHandle) -> None:
    engine.finalize(handle)
    get_metrics().statements_active.dec()


class Statement:
    """A compiled SQL statement.

    Attributes:
        sql: The SQL text this statement was compiled from
        state: Current StatementState
        last_error: The StepError that moved the statement to FAILED
    """

    def __init__(
        self,
        connection: Connection,
        engine: NativeEngine,
        handle: StatementHandle,
        sql: str,
    ) -> None:
        """Wrap a freshly prepared handle. Use ``Connection.prepare``."""
        self._connection = connection
        self._engine = engine
        self._handle = handle
        self._sql = sql
        self._state = StatementState.READY
        self._error: StepError | None = None
        self._generation = 0
        self._columns: tuple[str, ...] | None = None

        count = engine.bind_parameter_count(handle)
        self._parameter_names = tuple(
            engine.bind_parameter_name(handle, index) for index in range(1, count + 1)
        )

        get_metrics().statements_active.inc()
        self._finalizer = weakref.finalize(self, _release, engine, handle)

    # -- introspection ----------------------------------------------------

    @property
    def sql(self) -> str:
        return self._sql

    @property
    def state(self) -> StatementState:
        return self._state

    @property
    def last_error(self) -> StepError | None:
        return self._error

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def is_closed(self) -> bool:
        return not self._finalizer.alive

    @property
    def generation(self) -> int:
        """Incremented by every reset, rebind and close."""
        return self._generation

    @property
    def parameter_count(self) -> int:
        return len(self._parameter_names)

    @property
    def parameter_names(self) -> tuple[str | None, ...]:
        """Placeholder text per slot (index 0 is parameter 1), None for ``?``."""
        return self._parameter_names

    def parameter_name(self, index: int) -> str | None:
        if not 1 <= index <= len(self._parameter_names):
            raise ParameterIndexError(index, len(self._parameter_names))
        return self._parameter_names[index - 1]

    @property
    def columns(self) -> tuple[str, ...]:
        """Result column names, read from the engine on first access."""
        if self._columns is None:
            self._check()
            count = self._engine.column_count(self._handle)
            self._columns = tuple(
                self._engine.column_name(self._handle, index) for index in range(count)
            )
        return self._columns

    @property
    def column_count(self) -> int:
        return len(self.columns)

    # -- lifecycle --------------------------------------------------------

    def _check(self) -> None:
        if not self._finalizer.alive:
            raise StatementClosedError()

    def reset(self) -> Statement:
        """Return to READY, keeping bindings and clearing any failure.

        Legal from every state.
        """
        self._check()
        with self._connection._use():
            self._engine.reset(self._handle)
        self._state = StatementState.READY
        self._error = None
        self._generation += 1
        return self

    def clear_bindings(self) -> Statement:
        """Reset every parameter to NULL."""
        self._check()
        with self._connection._use():
            self._engine.clear_bindings(self._handle)
        return self

    def close(self) -> None:
        """Finalize the native handle. Safe to call more than once."""
        if self._finalizer.alive:
            self._generation += 1
            self._finalizer()
            self._connection._forget(self)
            logger.debug("statement_closed", sql=self._sql)

    def __enter__(self) -> Statement:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    # -- binding ----------------------------------------------------------

    def bind_value(self, index: int, value: BindValue) -> None:
        """Write one Bound value or Reservation into a 1-based slot."""
        engine, handle = self._engine, self._handle
        if isinstance(value, Null):
            code = engine.bind_null(handle, index)
        elif isinstance(value, Integer):
            code = engine.bind_int64(handle, index, value.value)
        elif isinstance(value, Real):
            code = engine.bind_double(handle, index, value.value)
        elif isinstance(value, Text):
            code = engine.bind_text(handle, index, value.value)
        elif isinstance(value, Reservation):
            code = engine.bind_zeroblob(handle, index, value.length)
        else:
            code = engine.bind_blob(handle, index, value.value)

        if code == ResultCode.RANGE:
            raise ParameterIndexError(index, self.parameter_count)
        if code != ResultCode.OK:
            raise EngineBindError(code, self._connection._errmsg())

    def _prepare_for_binding(self) -> None:
        self._check()
        if self._state is not StatementState.READY:
            self.reset()
        else:
            self._generation += 1

    def bind(self, params: Any = None, /, **named: Any) -> Statement:
        """Bind parameters, resetting first if execution already started.

        Args:
            params: A sequence (positional), a mapping, dataclass or
                pydantic model (named), or a single scalar value
            **named: Named values, used when ``params`` is omitted

        Returns:
            self, for chaining

        Raises:
            ArityMismatchError: Positional count differs from the slot count
            MissingParameterError: A named placeholder got no value
            UnknownParameterError: A supplied name has no placeholder
            UnsupportedValueError: A value has no Bound value mapping
        """
        if params is not None and named:
            raise TypeError("pass either positional params or keyword params, not both")
        self._prepare_for_binding()
        with self._connection._use():
            bind_parameters(self, named if named else params)
        return self

    def bind_at(self, index: int, value: Any) -> Statement:
        """Bind a single value to a 1-based slot.

        Raises:
            ParameterIndexError: If ``index`` is not a valid slot
        """
        self._prepare_for_binding()
        with self._connection._use():
            bind_at(self, index, value)
        return self

    # -- execution --------------------------------------------------------

    def step(self) -> StatementState:
        """Advance one row.

        A terminal state (DONE or FAILED) is returned unchanged without
        touching the engine.

        Returns:
            EXECUTING when a row is available, DONE when exhausted

        Raises:
            StepError: The engine reported an error; the statement is FAILED
        """
        self._check()
        if self._state.is_terminal():
            return self._state

        metrics = get_metrics()
        with self._connection._use():
            code = self._engine.step(self._handle)
            if code == ResultCode.ROW:
                self._state = StatementState.EXECUTING
                metrics.steps_total.labels(outcome="row").inc()
                return self._state
            if code == ResultCode.DONE:
                self._state = StatementState.DONE
                metrics.steps_total.labels(outcome="done").inc()
                return self._state

            self._error = StepError(code, self._connection._errmsg())

        self._state = StatementState.FAILED
        metrics.steps_total.labels(outcome="error").inc()
        metrics.errors_total.labels(kind="StepError").inc()
        logger.error(
            "statement_step_failed",
            sql=self._sql,
            code=code,
            category=self._error.category.name,
            message=self._error.message,
        )
        raise self._error

    def _raise_if_failed(self) -> None:
        if self._state is StatementState.FAILED and self._error is not None:
            raise self._error

    def _read_value(self, index: int) -> BoundValue:
        engine, handle = self._engine, self._handle
        kind = engine.column_type(handle, index)
        if kind == ValueKind.INTEGER:
            return Integer(engine.column_int64(handle, index))
        if kind == ValueKind.REAL:
            return Real(engine.column_double(handle, index))
        if kind == ValueKind.TEXT:
            return Text(engine.column_text(handle, index))
        if kind == ValueKind.BLOB:
            return Blob(engine.column_blob(handle, index))
        return NULL

    def read_row(self) -> Row:
        """Materialize the current row.

        Raises:
            MisuseError: If no row is available (state is not EXECUTING)
        """
        self._check()
        if self._state is not StatementState.EXECUTING:
            raise MisuseError(f"no current row (statement is {self._state.value})")
        columns = self.columns
        with self._connection._use():
            values = [self._read_value(index) for index in range(len(columns))]
        return Row(values, columns)

    @overload
    def fetch(self) -> Row: ...

    @overload
    def fetch(self, target: type[T]) -> T: ...

    @overload
    def fetch(self, target: Any) -> Any: ...

    def fetch(self, target: Any = None) -> Any:
        """Step once and extract exactly one row.

        One further step checks that no second row exists, so a query that
        unexpectedly matches several rows is reported instead of silently
        truncated.

        Args:
            target: Extraction target (see ``row_mapping``); None returns a Row

        Raises:
            NoRowsError: The first step produced no row
            ExtraRowsError: A second row was available
            ExtractError: The row could not be converted to ``target``
            StepError: The engine failed while stepping
        """
        state = self.step()
        self._raise_if_failed()
        if state is StatementState.DONE:
            raise NoRowsError()
        row = self.read_row()
        result = row if target is None else extract(row, target)
        if self.step() is StatementState.EXECUTING:
            raise ExtraRowsError()
        return result

    def fetch_optional(self, target: Any = None) -> Any:
        """Like ``fetch`` but returns None when the query produced no rows."""
        try:
            return self.fetch(target)
        except NoRowsError:
            return None

    @overload
    def rows(self) -> Rows[Row]: ...

    @overload
    def rows(self, target: type[T]) -> Rows[T]: ...

    @overload
    def rows(self, target: Any) -> Rows[Any]: ...

    def rows(self, target: Any = None) -> Rows[Any]:
        """Lazy iterator over the remaining rows, extracted into ``target``."""
        self._check()
        return Rows(self, None if target is None else mapping_for(target))

    def execute(self, params: Any = None, /, **named: Any) -> ChangeSummary:
        """Bind (if given), then step to completion.

        Returns:
            Rows changed by this statement (trigger writes excluded) and,
            when it inserted a row, the RowId assigned last
        """
        if params is not None or named:
            self.bind(params, **named)
        elif self._state is not StatementState.READY:
            self.reset()

        before = self._connection._change_counters()
        while self.step() is StatementState.EXECUTING:
            pass
        return self._connection._summarize(before)

    def __repr__(self) -> str:
        return f"Statement({self._sql!r}, state={self._state.value})"


class Rows(Iterator[T], Generic[T]):
    """Finite, non-restartable iterator over a statement's result rows.

    Resetting or rebinding the statement invalidates the iterator.
    """

    def __init__(self, statement: Statement, mapping: RowMapping | None) -> None:
        self._statement = statement
        self._mapping = mapping
        self._generation = statement.generation
        self._exhausted = False

    def __iter__(self) -> Rows[T]:
        return self

    def __next__(self) -> T:
        if self._exhausted:
            raise StopIteration
        statement = self._statement
        if statement.generation != self._generation:
            self._exhausted = True
            raise MisuseError("statement was reset or closed during iteration")

        state = statement.step()
        if state is not StatementState.EXECUTING:
            self._exhausted = True
            statement._raise_if_failed()
            raise StopIteration

        row = statement.read_row()
        if self._mapping is None:
            return row  # type: ignore[return-value]
        return extract(row, self._mapping)
