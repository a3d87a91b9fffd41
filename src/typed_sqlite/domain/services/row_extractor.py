"""Row extractor: materializes a result row into a target structure.

Columns are paired with target fields using the target's RowMapping,
either positionally or by column name, then each value is converted by
the value codec. Extra columns that no field asks for are ignored.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, overload

from typed_sqlite.domain.entities import (
    NO_DEFAULT,
    FieldSpec,
    RowMapping,
    mapping_for,
    strip_annotated,
)
from typed_sqlite.domain.errors import MissingColumnError
from typed_sqlite.domain.services.value_codec import decode, to_python
from typed_sqlite.domain.value_objects import BoundValue


class Row(Sequence[Any]):
    """One result row as read from the engine.

    Indexing by position or column name returns the plain Python value;
    ``raw()`` returns the Bound value.
    """

    __slots__ = ("_values", "_columns")

    def __init__(self, values: Sequence[BoundValue], columns: Sequence[str]) -> None:
        self._values = tuple(values)
        self._columns = tuple(columns)

    @property
    def columns(self) -> tuple[str, ...]:
        return self._columns

    @property
    def values(self) -> tuple[BoundValue, ...]:
        return self._values

    def index_of(self, name: str) -> int | None:
        """Position of the first column called ``name``, or None."""
        try:
            return self._columns.index(name)
        except ValueError:
            return None

    def raw(self, key: int | str) -> BoundValue:
        """Bound value at a position or column name."""
        if isinstance(key, str):
            index = self.index_of(key)
            if index is None:
                raise KeyError(key)
            return self._values[index]
        return self._values[key]

    @overload
    def __getitem__(self, key: int | str) -> Any: ...

    @overload
    def __getitem__(self, key: slice) -> tuple[Any, ...]: ...

    def __getitem__(self, key: int | str | slice) -> Any:
        if isinstance(key, slice):
            return tuple(to_python(v) for v in self._values[key])
        return to_python(self.raw(key))

    def __len__(self) -> int:
        return len(self._values)

    def as_dict(self) -> dict[str, Any]:
        return {name: to_python(value) for name, value in zip(self._columns, self._values)}

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Row):
            return self._values == other._values and self._columns == other._columns
        if isinstance(other, tuple):
            return tuple(self) == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(self))

    def __repr__(self) -> str:
        return f"Row({', '.join(f'{c}={v!r}' for c, v in self.as_dict().items())})"


def zero_value(field_spec: FieldSpec) -> Any:
    """Value used for an optional field whose column is absent.

    The field's declared default wins; otherwise None for nullable
    fields and the empty value of the base type.

    Raises:
        MissingColumnError: If no empty value exists for the type
    """
    if field_spec.default_factory is not None:
        return field_spec.default_factory()
    if field_spec.default is not NO_DEFAULT:
        return field_spec.default
    if field_spec.nullable:
        return None
    base = strip_annotated(field_spec.annotation)[0]
    if base in (int, float, str, bytes, bool):
        return base()
    raise MissingColumnError(field_spec.name)


def _locate(row: Row, mapping: RowMapping, field_spec: FieldSpec) -> int | None:
    if mapping.by_name:
        return row.index_of(field_spec.column)
    return field_spec.position if field_spec.position < len(row) else None


def extract(row: Row, target: Any) -> Any:
    """Convert a row into ``target``.

    Args:
        row: Row read from the engine
        target: A type, tuple of types, or RowMapping (see row_mapping)

    Returns:
        The constructed target instance (or scalar)

    Raises:
        MissingColumnError: A non-optional field has no column
        UnexpectedNullError, TypeMismatchError, ValueOverflowError:
            From the value codec
    """
    mapping = mapping_for(target)
    values: dict[str, Any] = {}
    for field_spec in mapping.fields:
        index = _locate(row, mapping, field_spec)
        if index is None:
            if not field_spec.optional:
                raise MissingColumnError(field_spec.name)
            values[field_spec.name] = zero_value(field_spec)
            continue
        label: str | int = row.columns[index] if index < len(row.columns) else index
        values[field_spec.name] = decode(row.values[index], field_spec.annotation, label)
    return mapping.factory(values)
