"""Ports layer - interface definitions following Hexagonal Architecture.

Ports are abstract interfaces (protocols) that define contracts. The
typed layer has a single outbound port, the native engine; adapters
implement it with concrete functionality.
"""

from typed_sqlite.ports.outbound import NativeEngine

__all__ = [
    "NativeEngine",
]
