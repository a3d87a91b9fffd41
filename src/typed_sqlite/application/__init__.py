"""Application layer for the typed SQLite layer.

The application layer drives the native engine on behalf of callers.

Exports:
    - Connection, ConnectionBuilder: Own a native database handle
    - Statement, Rows: Own a native statement handle
    - Transaction: Scoped transaction guard
    - Features, Version, Flag: Engine feature probe
"""

from typed_sqlite.application.connection import Connection, ConnectionBuilder
from typed_sqlite.application.features import Features, Flag, Version
from typed_sqlite.application.statement import Rows, Statement
from typed_sqlite.application.transaction import Transaction

__all__ = [
    "Connection",
    "ConnectionBuilder",
    "Statement",
    "Rows",
    "Transaction",
    "Features",
    "Flag",
    "Version",
]
