"""Feature probe: version, threading mode and compile-time options.

The probe stream is plain text, one item per line:

    3045000          version number (major * 1_000_000 + minor * 1000 + patch)
    1                sqlite3_threadsafe(): 0, 1 or 2
                     blank separator
    ENABLE_FTS5      one compile-time option per line
    THREADSAFE=1
    ...

``Features.probe()`` reads the values from a live engine, ``render()``
writes the stream, and ``parse()`` reads it back.

References:
    - https://sqlite.org/compile.html
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from typed_sqlite.domain.errors import LibraryLoadError
from typed_sqlite.domain.value_objects import ResultCode, ThreadingMode
from typed_sqlite.infrastructure.container import resolve_engine
from typed_sqlite.infrastructure.logging import get_logger
from typed_sqlite.ports.outbound import NativeEngine

logger = get_logger(__name__)

OPTION_PREFIX = "SQLITE_"


class Flag(Enum):
    """Well-known compile-time options that change available features."""

    CASE_SENSITIVE_LIKE = "CASE_SENSITIVE_LIKE"
    ENABLE_API_ARMOR = "ENABLE_API_ARMOR"
    ENABLE_COLUMN_METADATA = "ENABLE_COLUMN_METADATA"
    ENABLE_FTS3 = "ENABLE_FTS3"
    ENABLE_FTS5 = "ENABLE_FTS5"
    ENABLE_JSON1 = "ENABLE_JSON1"
    ENABLE_MEMORY_MANAGEMENT = "ENABLE_MEMORY_MANAGEMENT"
    ENABLE_NORMALIZE = "ENABLE_NORMALIZE"
    ENABLE_PREUPDATE_HOOK = "ENABLE_PREUPDATE_HOOK"
    ENABLE_RTREE = "ENABLE_RTREE"
    ENABLE_SESSION = "ENABLE_SESSION"
    ENABLE_SNAPSHOT = "ENABLE_SNAPSHOT"
    ENABLE_STAT4 = "ENABLE_STAT4"
    OMIT_ATTACH = "OMIT_ATTACH"
    OMIT_AUTHORIZATION = "OMIT_AUTHORIZATION"
    OMIT_AUTOINIT = "OMIT_AUTOINIT"
    OMIT_AUTORESET = "OMIT_AUTORESET"
    OMIT_BLOB_LITERAL = "OMIT_BLOB_LITERAL"
    OMIT_COMPLETE = "OMIT_COMPLETE"
    OMIT_DECLTYPE = "OMIT_DECLTYPE"
    OMIT_DEPRECATED = "OMIT_DEPRECATED"
    OMIT_DESERIALIZE = "OMIT_DESERIALIZE"
    OMIT_GET_TABLE = "OMIT_GET_TABLE"
    OMIT_JSON = "OMIT_JSON"
    OMIT_LIKE_OPTIMIZATION = "OMIT_LIKE_OPTIMIZATION"
    OMIT_LOAD_EXTENSION = "OMIT_LOAD_EXTENSION"
    OMIT_MEMORYDB = "OMIT_MEMORYDB"
    OMIT_SHARED_CACHE = "OMIT_SHARED_CACHE"
    OMIT_TCL_VARIABLE = "OMIT_TCL_VARIABLE"
    OMIT_TEMPDB = "OMIT_TEMPDB"
    OMIT_TRACE = "OMIT_TRACE"
    OMIT_UTF16 = "OMIT_UTF16"
    SOUNDEX = "SOUNDEX"

    @classmethod
    def parse(cls, option: str) -> Flag | None:
        """Map a compile option (with or without ``SQLITE_``) to a Flag."""
        name = option_name(option)
        try:
            return cls(name)
        except ValueError:
            return None


def option_name(option: str) -> str:
    """``"SQLITE_THREADSAFE=1"`` -> ``"THREADSAFE"``."""
    name = option.strip().split("=", 1)[0]
    return name[len(OPTION_PREFIX):] if name.startswith(OPTION_PREFIX) else name


@dataclass(frozen=True, slots=True, order=True)
class Version:
    """Engine version triple."""

    major: int
    minor: int
    patch: int

    @classmethod
    def from_number(cls, number: int) -> Version:
        """Decode ``sqlite3_libversion_number()``."""
        if number < 0:
            raise ValueError(f"invalid version number {number}")
        return cls(number // 1_000_000, (number // 1000) % 1000, number % 1000)

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse ``"3.45.0"`` (missing parts default to 0)."""
        parts = [int(p) for p in text.strip().split(".")]
        if not 1 <= len(parts) <= 3:
            raise ValueError(f"invalid version string {text!r}")
        parts += [0] * (3 - len(parts))
        return cls(*parts[:3])

    @property
    def number(self) -> int:
        return self.major * 1_000_000 + self.minor * 1000 + self.patch

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True, slots=True)
class Features:
    """What the linked engine build provides.

    Attributes:
        version: Engine version
        threading_mode: Compiled threading mode
        compile_options: Compile-time options, without the ``SQLITE_`` prefix
    """

    version: Version
    threading_mode: ThreadingMode
    compile_options: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def probe(cls, engine: NativeEngine | None = None) -> Features:
        """Read features from a live engine.

        Raises:
            LibraryLoadError: The library failed to load or initialize
        """
        engine = engine if engine is not None else resolve_engine()
        code = engine.initialize()
        if code != ResultCode.OK:
            raise LibraryLoadError(f"sqlite3_initialize failed: {engine.errstr(code)}")

        options = []
        index = 0
        while (option := engine.compileoption_get(index)) is not None:
            options.append(option)
            index += 1

        features = cls(
            version=Version.from_number(engine.libversion_number()),
            threading_mode=ThreadingMode(engine.threadsafe()),
            compile_options=tuple(options),
        )
        logger.debug(
            "engine_probed",
            version=str(features.version),
            threading_mode=features.threading_mode.name,
            options=len(options),
        )
        return features

    @classmethod
    def parse(cls, text: str | Iterable[str]) -> Features:
        """Parse a probe stream.

        Raises:
            ValueError: The stream is truncated or malformed
        """
        if isinstance(text, str):
            lines = text.splitlines()
        else:
            lines = [line.rstrip("\n") for line in text]
        if len(lines) < 2:
            raise ValueError("probe output needs a version line and a threading line")
        try:
            version = Version.from_number(int(lines[0].strip()))
            threading_mode = ThreadingMode(int(lines[1].strip()))
        except ValueError as e:
            raise ValueError(f"malformed probe header: {e}") from e
        if len(lines) > 2 and lines[2].strip():
            raise ValueError("probe output is missing the blank separator line")
        options = tuple(
            option_name(line) + _value_suffix(line) for line in lines[3:] if line.strip()
        )
        return cls(version, threading_mode, options)

    def render(self) -> str:
        """Write the probe stream."""
        lines = [str(self.version.number), str(self.threading_mode.value), ""]
        lines.extend(self.compile_options)
        return "\n".join(lines) + "\n"

    def option(self, name: str) -> str | None:
        """Value of a ``NAME=value`` option, ``""`` for a bare option, None if unset."""
        wanted = option_name(name)
        for option in self.compile_options:
            key, _, value = option.partition("=")
            if option_name(key) == wanted:
                return value
        return None

    def is_enabled(self, flag: Flag | str) -> bool:
        """Check whether a compile-time option is present."""
        name = flag.value if isinstance(flag, Flag) else flag
        return self.option(name) is not None

    @property
    def flags(self) -> frozenset[Flag]:
        """Well-known flags present in this build."""
        return frozenset(
            flag for flag in map(Flag.parse, self.compile_options) if flag is not None
        )


def _value_suffix(line: str) -> str:
    _, sep, value = line.strip().partition("=")
    return f"={value}" if sep else ""
