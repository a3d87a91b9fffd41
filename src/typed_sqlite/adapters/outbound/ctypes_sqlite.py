"""Native engine adapter backed by ctypes and the system libsqlite3.

Library search order:
    1. Explicit ``library_path`` argument
    2. ``engine.library_path`` from configuration
       (``TYPED_SQLITE_ENGINE__LIBRARY_PATH``)
    3. ``ctypes.util.find_library("sqlite3")``
    4. Well-known sonames (``libsqlite3.so.0``, ``libsqlite3.dylib``, ...)
    5. The interpreter's ``_sqlite3`` extension, whose dynamic symbol
       table exposes the library it links against

Loaded libraries are cached per resolved path, so every adapter instance
over the same library shares one set of prototypes.
"""

from __future__ import annotations

import ctypes
import ctypes.util
import os
import sys
import threading
from typing import Any

from typed_sqlite.domain.errors import LibraryLoadError
from typed_sqlite.domain.value_objects import ConnectionHandle, StatementHandle
from typed_sqlite.infrastructure.logging import get_logger

logger = get_logger(__name__)

# Tells the engine to copy bound text/blob data before the call returns
SQLITE_TRANSIENT = ctypes.c_void_p(-1)

_SONAMES = {
    "darwin": ("libsqlite3.dylib", "libsqlite3.0.dylib"),
    "win32": ("sqlite3.dll", "winsqlite3.dll"),
}
_DEFAULT_SONAMES = ("libsqlite3.so.0", "libsqlite3.so")

_c_void_p = ctypes.c_void_p
_c_int = ctypes.c_int
_c_int64 = ctypes.c_int64
_c_double = ctypes.c_double
_c_char_p = ctypes.c_char_p

# name -> (argtypes, restype)
_PROTOTYPES: dict[str, tuple[list[Any], Any]] = {
    "sqlite3_initialize": ([], _c_int),
    "sqlite3_libversion": ([], _c_char_p),
    "sqlite3_libversion_number": ([], _c_int),
    "sqlite3_threadsafe": ([], _c_int),
    "sqlite3_compileoption_get": ([_c_int], _c_char_p),
    "sqlite3_errstr": ([_c_int], _c_char_p),
    "sqlite3_open_v2": ([_c_char_p, ctypes.POINTER(_c_void_p), _c_int, _c_char_p], _c_int),
    "sqlite3_close_v2": ([_c_void_p], _c_int),
    "sqlite3_errmsg": ([_c_void_p], _c_char_p),
    "sqlite3_extended_errcode": ([_c_void_p], _c_int),
    "sqlite3_extended_result_codes": ([_c_void_p, _c_int], _c_int),
    "sqlite3_busy_timeout": ([_c_void_p, _c_int], _c_int),
    "sqlite3_interrupt": ([_c_void_p], None),
    "sqlite3_get_autocommit": ([_c_void_p], _c_int),
    "sqlite3_changes": ([_c_void_p], _c_int),
    "sqlite3_total_changes": ([_c_void_p], _c_int),
    "sqlite3_last_insert_rowid": ([_c_void_p], _c_int64),
    "sqlite3_prepare_v2": (
        [_c_void_p, _c_void_p, _c_int, ctypes.POINTER(_c_void_p), ctypes.POINTER(_c_void_p)],
        _c_int,
    ),
    "sqlite3_step": ([_c_void_p], _c_int),
    "sqlite3_reset": ([_c_void_p], _c_int),
    "sqlite3_finalize": ([_c_void_p], _c_int),
    "sqlite3_clear_bindings": ([_c_void_p], _c_int),
    "sqlite3_bind_parameter_count": ([_c_void_p], _c_int),
    "sqlite3_bind_parameter_name": ([_c_void_p, _c_int], _c_char_p),
    "sqlite3_bind_null": ([_c_void_p, _c_int], _c_int),
    "sqlite3_bind_int64": ([_c_void_p, _c_int, _c_int64], _c_int),
    "sqlite3_bind_double": ([_c_void_p, _c_int, _c_double], _c_int),
    "sqlite3_bind_text": ([_c_void_p, _c_int, _c_char_p, _c_int, _c_void_p], _c_int),
    "sqlite3_bind_blob": ([_c_void_p, _c_int, _c_char_p, _c_int, _c_void_p], _c_int),
    "sqlite3_bind_zeroblob": ([_c_void_p, _c_int, _c_int], _c_int),
    "sqlite3_column_count": ([_c_void_p], _c_int),
    "sqlite3_column_name": ([_c_void_p, _c_int], _c_char_p),
    "sqlite3_column_type": ([_c_void_p, _c_int], _c_int),
    "sqlite3_column_int64": ([_c_void_p, _c_int], _c_int64),
    "sqlite3_column_double": ([_c_void_p, _c_int], _c_double),
    "sqlite3_column_text": ([_c_void_p, _c_int], _c_void_p),
    "sqlite3_column_blob": ([_c_void_p, _c_int], _c_void_p),
    "sqlite3_column_bytes": ([_c_void_p, _c_int], _c_int),
}

# Added in 3.38; absent from older builds
_OPTIONAL_PROTOTYPES: dict[str, tuple[list[Any], Any]] = {
    "sqlite3_error_offset": ([_c_void_p], _c_int),
}

_libraries: dict[str, ctypes.CDLL] = {}
_libraries_lock = threading.Lock()


def _candidates(library_path: str | None) -> list[str]:
    """Library names and paths to try, in priority order."""
    if library_path:
        return [os.fspath(library_path)]

    from typed_sqlite.infrastructure.config import get_config

    configured = get_config().engine.library_path
    if configured:
        return [os.fspath(configured)]

    candidates: list[str] = []
    found = ctypes.util.find_library("sqlite3")
    if found:
        candidates.append(found)
    candidates.extend(_SONAMES.get(sys.platform, _DEFAULT_SONAMES))
    try:
        import _sqlite3

        candidates.append(_sqlite3.__file__)
    except (ImportError, AttributeError):
        pass
    return candidates


def _declare(lib: ctypes.CDLL) -> None:
    for name, (argtypes, restype) in _PROTOTYPES.items():
        func = getattr(lib, name)
        func.argtypes = argtypes
        func.restype = restype
    for name, (argtypes, restype) in _OPTIONAL_PROTOTYPES.items():
        func = getattr(lib, name, None)
        if func is not None:
            func.argtypes = argtypes
            func.restype = restype


def load_library(library_path: str | None = None) -> ctypes.CDLL:
    """Load libsqlite3 and declare its prototypes.

    Args:
        library_path: Explicit path or soname; skips the search when given

    Returns:
        The loaded library

    Raises:
        LibraryLoadError: If no candidate loads or exposes the SQLite API
    """
    failures: list[str] = []
    for candidate in _candidates(library_path):
        with _libraries_lock:
            cached = _libraries.get(candidate)
            if cached is not None:
                return cached
            try:
                lib = ctypes.CDLL(candidate)
                _declare(lib)
            except (OSError, AttributeError) as e:
                failures.append(f"{candidate}: {e}")
                continue
            _libraries[candidate] = lib
        logger.debug("sqlite_library_loaded", path=candidate)
        return lib

    detail = "; ".join(failures) if failures else "no candidates found"
    raise LibraryLoadError(f"cannot load the SQLite library ({detail})")


def _decode(raw: bytes | None) -> str | None:
    return None if raw is None else raw.decode("utf-8", errors="replace")


class CtypesSQLite:
    """NativeEngine implementation calling libsqlite3 through ctypes."""

    def __init__(self, library_path: str | None = None) -> None:
        """Load the library.

        Args:
            library_path: Optional explicit library path or soname

        Raises:
            LibraryLoadError: If the library cannot be loaded
        """
        self._lib = load_library(library_path)

    # -- library ----------------------------------------------------------

    def initialize(self) -> int:
        return self._lib.sqlite3_initialize()

    def libversion(self) -> str:
        return _decode(self._lib.sqlite3_libversion()) or ""

    def libversion_number(self) -> int:
        return self._lib.sqlite3_libversion_number()

    def threadsafe(self) -> int:
        return self._lib.sqlite3_threadsafe()

    def compileoption_get(self, index: int) -> str | None:
        return _decode(self._lib.sqlite3_compileoption_get(index))

    def errstr(self, code: int) -> str:
        return _decode(self._lib.sqlite3_errstr(code)) or f"error {code}"

    # -- connection -------------------------------------------------------

    def open_v2(
        self, filename: str, flags: int, vfs: str | None = None
    ) -> tuple[int, ConnectionHandle]:
        handle = ctypes.c_void_p()
        code = self._lib.sqlite3_open_v2(
            filename.encode("utf-8"),
            ctypes.byref(handle),
            flags,
            vfs.encode("utf-8") if vfs else None,
        )
        return code, ConnectionHandle(handle.value or 0)

    def close_v2(self, db: ConnectionHandle) -> int:
        return self._lib.sqlite3_close_v2(db)

    def errmsg(self, db: ConnectionHandle) -> str:
        return _decode(self._lib.sqlite3_errmsg(db)) or ""

    def extended_errcode(self, db: ConnectionHandle) -> int:
        return self._lib.sqlite3_extended_errcode(db)

    def error_offset(self, db: ConnectionHandle) -> int:
        func = getattr(self._lib, "sqlite3_error_offset", None)
        if func is None:
            return -1
        return func(db)

    def extended_result_codes(self, db: ConnectionHandle, onoff: bool) -> int:
        return self._lib.sqlite3_extended_result_codes(db, 1 if onoff else 0)

    def busy_timeout(self, db: ConnectionHandle, milliseconds: int) -> int:
        return self._lib.sqlite3_busy_timeout(db, milliseconds)

    def interrupt(self, db: ConnectionHandle) -> None:
        self._lib.sqlite3_interrupt(db)

    def get_autocommit(self, db: ConnectionHandle) -> bool:
        return self._lib.sqlite3_get_autocommit(db) != 0

    def changes(self, db: ConnectionHandle) -> int:
        return self._lib.sqlite3_changes(db)

    def total_changes(self, db: ConnectionHandle) -> int:
        return self._lib.sqlite3_total_changes(db)

    def last_insert_rowid(self, db: ConnectionHandle) -> int:
        return self._lib.sqlite3_last_insert_rowid(db)

    # -- statement --------------------------------------------------------

    def prepare_v2(self, db: ConnectionHandle, sql: str) -> tuple[int, StatementHandle, str]:
        encoded = sql.encode("utf-8")
        buffer = ctypes.create_string_buffer(encoded)
        handle = ctypes.c_void_p()
        tail = ctypes.c_void_p()
        code = self._lib.sqlite3_prepare_v2(
            db, buffer, len(encoded) + 1, ctypes.byref(handle), ctypes.byref(tail)
        )
        consumed = (tail.value - ctypes.addressof(buffer)) if tail.value else len(encoded)
        remainder = encoded[consumed:].decode("utf-8", errors="replace")
        return code, StatementHandle(handle.value or 0), remainder

    def step(self, stmt: StatementHandle) -> int:
        return self._lib.sqlite3_step(stmt)

    def reset(self, stmt: StatementHandle) -> int:
        return self._lib.sqlite3_reset(stmt)

    def finalize(self, stmt: StatementHandle) -> int:
        return self._lib.sqlite3_finalize(stmt)

    def clear_bindings(self, stmt: StatementHandle) -> int:
        return self._lib.sqlite3_clear_bindings(stmt)

    def bind_parameter_count(self, stmt: StatementHandle) -> int:
        return self._lib.sqlite3_bind_parameter_count(stmt)

    def bind_parameter_name(self, stmt: StatementHandle, index: int) -> str | None:
        return _decode(self._lib.sqlite3_bind_parameter_name(stmt, index))

    def bind_null(self, stmt: StatementHandle, index: int) -> int:
        return self._lib.sqlite3_bind_null(stmt, index)

    def bind_int64(self, stmt: StatementHandle, index: int, value: int) -> int:
        return self._lib.sqlite3_bind_int64(stmt, index, value)

    def bind_double(self, stmt: StatementHandle, index: int, value: float) -> int:
        return self._lib.sqlite3_bind_double(stmt, index, value)

    def bind_text(self, stmt: StatementHandle, index: int, value: str) -> int:
        encoded = value.encode("utf-8")
        return self._lib.sqlite3_bind_text(stmt, index, encoded, len(encoded), SQLITE_TRANSIENT)

    def bind_blob(self, stmt: StatementHandle, index: int, value: bytes) -> int:
        if not value:
            return self.bind_zeroblob(stmt, index, 0)
        return self._lib.sqlite3_bind_blob(stmt, index, value, len(value), SQLITE_TRANSIENT)

    def bind_zeroblob(self, stmt: StatementHandle, index: int, length: int) -> int:
        return self._lib.sqlite3_bind_zeroblob(stmt, index, length)

    def column_count(self, stmt: StatementHandle) -> int:
        return self._lib.sqlite3_column_count(stmt)

    def column_name(self, stmt: StatementHandle, index: int) -> str:
        return _decode(self._lib.sqlite3_column_name(stmt, index)) or ""

    def column_type(self, stmt: StatementHandle, index: int) -> int:
        return self._lib.sqlite3_column_type(stmt, index)

    def column_int64(self, stmt: StatementHandle, index: int) -> int:
        return self._lib.sqlite3_column_int64(stmt, index)

    def column_double(self, stmt: StatementHandle, index: int) -> float:
        return self._lib.sqlite3_column_double(stmt, index)

    def column_text(self, stmt: StatementHandle, index: int) -> str:
        # column_text must be called before column_bytes for the length to match
        pointer = self._lib.sqlite3_column_text(stmt, index)
        size = self._lib.sqlite3_column_bytes(stmt, index)
        if not pointer or size == 0:
            return ""
        return ctypes.string_at(pointer, size).decode("utf-8", errors="replace")

    def column_blob(self, stmt: StatementHandle, index: int) -> bytes:
        pointer = self._lib.sqlite3_column_blob(stmt, index)
        size = self._lib.sqlite3_column_bytes(stmt, index)
        if not pointer or size == 0:
            return b""
        return ctypes.string_at(pointer, size)
