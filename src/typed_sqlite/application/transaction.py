"""Scoped transaction guard.

``Connection.transaction()`` issues ``BEGIN`` (or ``SAVEPOINT`` when a
transaction is already open) and returns a guard. The guard guarantees
the transaction does not outlive it: it rolls back on every exit path
unless ``commit()`` was called first, including when an un-committed
guard is garbage collected.

Usage:
    >>> with conn.transaction() as tx:
    ...     conn.execute("INSERT INTO users VALUES (NULL, 'boo', 0.69)")
    ...     tx.commit()
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from typed_sqlite.domain.errors import MisuseError, TypedSQLiteError
from typed_sqlite.domain.value_objects import TransactionBehavior
from typed_sqlite.infrastructure.logging import get_logger
from typed_sqlite.infrastructure.metrics import get_metrics

if TYPE_CHECKING:
    from typed_sqlite.application.connection import Connection

logger = get_logger(__name__)


class Transaction:
    """Guard over one transaction or savepoint.

    Attributes:
        behavior: Locking behavior passed to BEGIN (ignored for savepoints)
        savepoint: Savepoint name when nested, otherwise None
    """

    def __init__(
        self,
        connection: Connection,
        behavior: TransactionBehavior = TransactionBehavior.DEFERRED,
        *,
        commit_on_exit: bool = False,
    ) -> None:
        self._connection = connection
        self.behavior = behavior
        self._commit_on_exit = commit_on_exit
        self._active = False

        if connection.is_autocommit:
            self.savepoint: str | None = None
            connection.execute_batch(f"BEGIN {behavior.value}")
        else:
            self.savepoint = connection._next_savepoint()
            connection.execute_batch(f'SAVEPOINT "{self.savepoint}"')
        self._active = True
        logger.debug("transaction_started", behavior=behavior.value, savepoint=self.savepoint)

    @property
    def is_active(self) -> bool:
        return self._active

    @property
    def is_nested(self) -> bool:
        return self.savepoint is not None

    def _require_active(self) -> None:
        if not self._active:
            raise MisuseError("transaction already finished")

    def commit(self) -> None:
        """Commit the transaction (or release the savepoint).

        Raises:
            MisuseError: The guard already committed or rolled back
            StepError: The engine refused to commit (e.g. BUSY)
        """
        self._require_active()
        if self.savepoint is None:
            self._connection.execute_batch("COMMIT")
        else:
            self._connection.execute_batch(f'RELEASE "{self.savepoint}"')
        self._active = False
        get_metrics().transactions_total.labels(outcome="commit").inc()
        logger.debug("transaction_committed", savepoint=self.savepoint)

    def rollback(self) -> None:
        """Roll back the transaction (or to the savepoint, then release it)."""
        self._require_active()
        self._active = False
        connection = self._connection
        if self.savepoint is None:
            # the engine may already have rolled back on its own (e.g. after SQLITE_FULL)
            if not connection.is_autocommit:
                connection.execute_batch("ROLLBACK")
        else:
            connection.execute_batch(
                f'ROLLBACK TO "{self.savepoint}"; RELEASE "{self.savepoint}"'
            )
        get_metrics().transactions_total.labels(outcome="rollback").inc()
        logger.debug("transaction_rolled_back", savepoint=self.savepoint)

    def __enter__(self) -> Transaction:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if not self._active:
            return
        if exc_type is None and self._commit_on_exit:
            self.commit()
        else:
            self.rollback()

    def __del__(self) -> None:
        if not getattr(self, "_active", False) or self._connection.is_closed:
            return
        logger.warning("transaction_dropped_without_commit", savepoint=self.savepoint)
        try:
            self.rollback()
        except TypedSQLiteError as e:
            logger.error("transaction_rollback_failed", error=str(e))
