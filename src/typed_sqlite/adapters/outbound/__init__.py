"""Outbound adapters - concrete implementations of outbound ports."""

from typed_sqlite.adapters.outbound.ctypes_sqlite import CtypesSQLite, load_library

__all__ = [
    "CtypesSQLite",
    "load_library",
]
