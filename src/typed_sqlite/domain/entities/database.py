"""Database descriptor: where to open a connection and with which flags.

A Database is a pure value. Constructing one performs no I/O and holds no
engine resource; it is consumed by ``Connection.open``.

Usage:
    >>> Database.memory()
    Database(location=<Location.MEMORY: 'memory'>, target=':memory:', ...)
    >>> Database.file("app.db").with_flags(OpenOption.READ_ONLY).open_flags
    <OpenOption.READ_ONLY: 1>
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum

from typed_sqlite.domain.value_objects import OpenOption


class Location(Enum):
    """Kind of target a descriptor points at."""

    MEMORY = "memory"
    """Private or named in-memory database."""

    FILE = "file"
    """Filesystem path."""

    URI = "uri"
    """``file:`` URI interpreted by the engine."""


@dataclass(frozen=True, slots=True)
class Database:
    """Immutable description of a database to open.

    Attributes:
        location: Kind of target
        target: Filename handed to ``sqlite3_open_v2``
        open_flags: Flags combined with the builder's options at open time
    """

    location: Location
    target: str
    open_flags: OpenOption = field(default_factory=OpenOption.default)

    @classmethod
    def memory(cls, name: str | None = None) -> Database:
        """Describe an in-memory database.

        Args:
            name: When given, connections opening the same name share one
                in-memory database for as long as any of them is open.
        """
        if name is None:
            return cls(Location.MEMORY, ":memory:", OpenOption.default() | OpenOption.MEMORY)
        return cls(
            Location.MEMORY,
            f"file:{name}?mode=memory&cache=shared",
            OpenOption.default() | OpenOption.URI,
        )

    @classmethod
    def file(cls, path: str | os.PathLike[str]) -> Database:
        """Describe a database file on disk."""
        return cls(Location.FILE, os.fspath(path))

    @classmethod
    def uri(cls, uri: str) -> Database:
        """Describe a database by engine-specific ``file:`` URI."""
        return cls(Location.URI, uri, OpenOption.default() | OpenOption.URI)

    def with_flags(self, flags: OpenOption) -> Database:
        """Return a copy whose open flags are replaced by ``flags``.

        Location-specific flags (MEMORY, URI) are preserved.
        """
        keep = self.open_flags & (OpenOption.MEMORY | OpenOption.URI)
        return replace(self, open_flags=flags | keep)

    @property
    def is_memory(self) -> bool:
        return self.location is Location.MEMORY

    def __str__(self) -> str:
        return self.target
