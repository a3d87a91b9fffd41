"""Domain entities for the typed SQLite layer.

Exports:
    - Database, Location: Immutable description of a database to open
    - Column, column(): Field-level mapping options
    - FieldSpec, RowMapping, mapping_for(): Row mapping metadata
"""

from typed_sqlite.domain.entities.database import Database, Location
from typed_sqlite.domain.entities.row_mapping import (
    Column,
    NO_DEFAULT,
    FieldSpec,
    RowMapping,
    column,
    is_nullable,
    mapping_for,
    strip_annotated,
)

__all__ = [
    "Database",
    "Location",
    "Column",
    "FieldSpec",
    "NO_DEFAULT",
    "RowMapping",
    "column",
    "is_nullable",
    "mapping_for",
    "strip_annotated",
]
