"""Domain services for the typed SQLite layer.

Domain services contain the conversion logic between application values
and the engine's dynamic values.

Exports:
    Value codec:
        - encode, decode, to_python: Bound value conversions
        - Json, AsJson: JSON-as-text wrappers
        - Int8, Int16, Int32, UInt8, UInt16, UInt32, IntRange: Range-checked ints

    Parameter binder:
        - ParameterSlots: What the binder writes to
        - bind_parameters, bind_positional, bind_named, bind_at

    Row extractor:
        - Row: A materialized result row
        - extract: Row to target structure
"""

from typed_sqlite.domain.services.parameter_binder import (
    ParameterSlots,
    bind_at,
    bind_named,
    bind_parameters,
    bind_positional,
    normalize_name,
)
from typed_sqlite.domain.services.row_extractor import Row, extract, zero_value
from typed_sqlite.domain.services.value_codec import (
    AsJson,
    Int8,
    Int16,
    Int32,
    IntRange,
    Json,
    UInt8,
    UInt16,
    UInt32,
    decode,
    encode,
    to_python,
)

__all__ = [
    # Value codec
    "encode",
    "decode",
    "to_python",
    "Json",
    "AsJson",
    "IntRange",
    "Int8",
    "Int16",
    "Int32",
    "UInt8",
    "UInt16",
    "UInt32",
    # Parameter binder
    "ParameterSlots",
    "bind_parameters",
    "bind_positional",
    "bind_named",
    "bind_at",
    "normalize_name",
    # Row extractor
    "Row",
    "extract",
    "zero_value",
]
