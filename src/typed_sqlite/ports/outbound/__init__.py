"""Outbound ports - interfaces for external dependencies.

The only external dependency of the typed layer is the native engine.
"""

from typed_sqlite.ports.outbound.native_engine import NativeEngine

__all__ = [
    "NativeEngine",
]
