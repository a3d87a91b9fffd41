"""Parameter binder: assigns application values to statement slots.

SQLite numbers parameters from 1. Positional binding maps sequence index
``i`` to slot ``i + 1``; named binding matches ``:name``, ``@name`` and
``$name`` placeholders against mapping keys with the prefix stripped.

What a call to ``bind_parameters`` treats as which kind of input:

    None                         no parameters
    Mapping                      named
    Bound value, Json, RowId,    positional, a single value
    Reservation
    dataclass / BaseModel        named, one entry per field
    list / tuple                 positional
    anything else                positional, a single value
"""

from __future__ import annotations

import dataclasses
from abc import abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from pydantic import BaseModel

from typed_sqlite.domain.entities.row_mapping import COLUMN_METADATA_KEY, SCALAR_TYPES
from typed_sqlite.domain.errors import (
    ArityMismatchError,
    MissingParameterError,
    ParameterIndexError,
    UnknownParameterError,
)
from typed_sqlite.domain.services.value_codec import encode
from typed_sqlite.domain.value_objects import BindValue, Reservation

PLACEHOLDER_PREFIXES = ":@$?"


class ParameterSlots(Protocol):
    """The slice of a prepared statement the binder writes to."""

    @property
    @abstractmethod
    def parameter_count(self) -> int:
        """Number of parameter slots (highest index)."""
        ...

    @abstractmethod
    def parameter_name(self, index: int) -> str | None:
        """Placeholder text at a 1-based index, None for a bare ``?``."""
        ...

    @abstractmethod
    def bind_value(self, index: int, value: BindValue) -> None:
        """Write a Bound value or Reservation into a 1-based slot."""
        ...


def normalize_name(name: str) -> str:
    """Strip the placeholder prefix from a parameter name."""
    return name.lstrip(PLACEHOLDER_PREFIXES) if name[:1] in PLACEHOLDER_PREFIXES else name


def bind_at(slots: ParameterSlots, index: int, value: Any) -> None:
    """Bind one value to a 1-based slot.

    Raises:
        ParameterIndexError: If ``index`` is outside ``1..parameter_count``
        UnsupportedValueError: If ``value`` has no Bound value mapping
    """
    count = slots.parameter_count
    if not 1 <= index <= count:
        raise ParameterIndexError(index, count)
    slots.bind_value(index, encode(value))


def bind_positional(slots: ParameterSlots, values: Sequence[Any]) -> None:
    """Bind a sequence of values to slots 1..n.

    Raises:
        ArityMismatchError: If ``len(values)`` differs from the slot count
    """
    count = slots.parameter_count
    if len(values) != count:
        raise ArityMismatchError(count, len(values))
    encoded = [encode(value) for value in values]
    for index, value in enumerate(encoded, start=1):
        slots.bind_value(index, value)


def bind_named(slots: ParameterSlots, values: Mapping[str, Any]) -> None:
    """Bind a mapping of values to named placeholders.

    Every placeholder must receive a value and every supplied key must
    name a placeholder. Missing placeholders are reported before unknown
    keys, in slot order.

    Raises:
        MissingParameterError: A placeholder has no value
        UnknownParameterError: A key matches no placeholder
    """
    supplied = {normalize_name(key): value for key, value in values.items()}

    slot_names: dict[str, int] = {}
    for index in range(1, slots.parameter_count + 1):
        raw = slots.parameter_name(index)
        name = normalize_name(raw) if raw else str(index)
        slot_names.setdefault(name, index)

    for name in slot_names:
        if name not in supplied:
            raise MissingParameterError(name)
    for name in supplied:
        if name not in slot_names:
            raise UnknownParameterError(name)

    encoded = {index: encode(supplied[name]) for name, index in slot_names.items()}
    for index, value in encoded.items():
        slots.bind_value(index, value)


def fields_of(instance: Any) -> dict[str, Any] | None:
    """Named values of a dataclass or pydantic model instance, else None."""
    if dataclasses.is_dataclass(instance) and not isinstance(instance, type):
        result = {}
        for f in dataclasses.fields(instance):
            marker = f.metadata.get(COLUMN_METADATA_KEY)
            key = marker.name if marker is not None and marker.name else f.name
            result[key] = getattr(instance, f.name)
        return result
    if isinstance(instance, BaseModel):
        return {name: getattr(instance, name) for name in type(instance).model_fields}
    return None


def bind_parameters(slots: ParameterSlots, params: Any) -> None:
    """Bind ``params`` using the rule table in the module docstring."""
    if params is None:
        bind_positional(slots, ())
    elif isinstance(params, Mapping):
        bind_named(slots, params)
    elif isinstance(params, (*SCALAR_TYPES, Reservation)):
        bind_positional(slots, (params,))
    elif (named := fields_of(params)) is not None:
        bind_named(slots, named)
    elif isinstance(params, (list, tuple)):
        bind_positional(slots, params)
    else:
        bind_positional(slots, (params,))
