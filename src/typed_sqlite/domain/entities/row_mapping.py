"""Row mapping metadata: how result columns pair with target fields.

A RowMapping is a static description of a target structure - field
names or positions, expected Python types, and optionality. It is built
once per target by reflection and cached, then handed to the row
extractor. Statements never own mappings.

Supported targets:
    - A single type (``int``, ``str``, ``RowId``...): first column, scalar result
    - A tuple of types (``(int, str, float)``): positional, plain tuple result
    - A ``typing.NamedTuple`` subclass: positional
    - A dataclass: by column name
    - A pydantic ``BaseModel``: by column name

Field-level options come from a ``Column`` marker, either inside
``typing.Annotated`` or via the ``column()`` dataclass helper:

    @dataclass
    class User:
        id: RowId
        name: Annotated[str, Column("username")]
        score: float = column(optional=True)

A field whose column is absent fails with MissingColumnError unless it
is explicitly marked optional; having a default value is not enough.
"""

from __future__ import annotations

import dataclasses
import threading
import types
from dataclasses import dataclass
from typing import Annotated, Any, Callable, Union, get_args, get_origin, get_type_hints

from pydantic import BaseModel

from typed_sqlite.domain.value_objects import Blob, Integer, Json, Null, Real, RowId, Text

# Dataclass-shaped types that decode from a single column
SCALAR_TYPES: tuple[type, ...] = (Null, Integer, Real, Text, Blob, Json, RowId)


@dataclass(frozen=True, slots=True)
class Column:
    """Per-field mapping options.

    Attributes:
        name: Result column name (defaults to the field name)
        optional: Missing column yields the field default or zero value
    """

    name: str | None = None
    optional: bool = False


COLUMN_METADATA_KEY = "typed_sqlite"

# Marks a field that declares no default value
NO_DEFAULT: Any = object()


def column(
    name: str | None = None,
    *,
    optional: bool = False,
    default: Any = dataclasses.MISSING,
    default_factory: Any = dataclasses.MISSING,
) -> Any:
    """Dataclass field carrying a Column marker."""
    marker = Column(name=name, optional=optional)
    if default is not dataclasses.MISSING:
        return dataclasses.field(default=default, metadata={COLUMN_METADATA_KEY: marker})
    if default_factory is not dataclasses.MISSING:
        return dataclasses.field(
            default_factory=default_factory, metadata={COLUMN_METADATA_KEY: marker}
        )
    return dataclasses.field(metadata={COLUMN_METADATA_KEY: marker})


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One target field.

    Attributes:
        name: Attribute name on the target
        annotation: Declared type, ``Optional``/``Annotated`` wrappers included
        column: Column name used for by-name extraction
        position: Zero-based column index used for positional extraction
        optional: Whether a missing column is tolerated
        default: Value substituted for a missing optional column
        default_factory: Callable producing that value, if declared that way
    """

    name: str
    annotation: Any
    column: str
    position: int
    optional: bool = False
    default: Any = NO_DEFAULT
    default_factory: Callable[[], Any] | None = None

    @property
    def nullable(self) -> bool:
        """Whether the declared type admits None."""
        return is_nullable(self.annotation)


@dataclass(frozen=True, slots=True)
class RowMapping:
    """Static description of a target structure.

    Attributes:
        target: The type or tuple of types this mapping was built for
        fields: Field field_specs in declaration order
        by_name: Pair columns by name (True) or by position (False)
        scalar: Result is the single decoded value, not a structure
        factory: Builds the result from decoded field values in order
    """

    target: Any
    fields: tuple[FieldSpec, ...]
    by_name: bool
    scalar: bool
    factory: Callable[[dict[str, Any]], Any]

    @property
    def width(self) -> int:
        return len(self.fields)


def is_nullable(annotation: Any) -> bool:
    """Check whether an annotation is ``Optional[...]`` / ``X | None``."""
    annotation = strip_annotated(annotation)[0]
    origin = get_origin(annotation)
    if origin is Union or origin is types.UnionType:
        return type(None) in get_args(annotation)
    return annotation is None or annotation is type(None) or annotation is Any


def strip_annotated(annotation: Any) -> tuple[Any, tuple[Any, ...]]:
    """Split ``Annotated[T, *extras]`` into ``(T, extras)``."""
    if get_origin(annotation) is Annotated:
        base, *extras = get_args(annotation)
        return base, tuple(extras)
    return annotation, ()


def _marker(extras: tuple[Any, ...]) -> Column | None:
    for extra in extras:
        if isinstance(extra, Column):
            return extra
    return None


def _field_spec(
    name: str,
    annotation: Any,
    position: int,
    marker: Column | None,
    default: Any = NO_DEFAULT,
    default_factory: Callable[[], Any] | None = None,
) -> FieldSpec:
    if marker is None:
        marker = _marker(strip_annotated(annotation)[1])
    return FieldSpec(
        name=name,
        annotation=annotation,
        column=(marker.name if marker and marker.name else name),
        position=position,
        optional=bool(marker and marker.optional),
        default=default,
        default_factory=default_factory,
    )


def _from_dataclass(cls: type) -> RowMapping:
    hints = get_type_hints(cls, include_extras=True)
    field_specs = []
    for position, f in enumerate(f for f in dataclasses.fields(cls) if f.init):
        default = NO_DEFAULT if f.default is dataclasses.MISSING else f.default
        factory = None if f.default_factory is dataclasses.MISSING else f.default_factory
        field_specs.append(
            _field_spec(
                f.name,
                hints[f.name],
                position,
                f.metadata.get(COLUMN_METADATA_KEY),
                default,
                factory,
            )
        )
    return RowMapping(cls, tuple(field_specs), True, False, lambda values: cls(**values))


def _from_model(cls: type[BaseModel]) -> RowMapping:
    field_specs = []
    for position, (name, info) in enumerate(cls.model_fields.items()):
        default = NO_DEFAULT if info.is_required() or info.default_factory else info.default
        field_specs.append(
            _field_spec(
                name,
                info.annotation,
                position,
                _marker(tuple(info.metadata)),
                default,
                info.default_factory,
            )
        )
    return RowMapping(cls, tuple(field_specs), True, False, lambda values: cls(**values))


def _from_namedtuple(cls: type) -> RowMapping:
    hints = get_type_hints(cls, include_extras=True)
    defaults = getattr(cls, "_field_defaults", {})
    field_specs = tuple(
        _field_spec(name, hints.get(name, Any), position, None, defaults.get(name, NO_DEFAULT))
        for position, name in enumerate(cls._fields)
    )
    return RowMapping(cls, field_specs, False, False, lambda values: cls(**values))


def _from_tuple(target: tuple[Any, ...]) -> RowMapping:
    field_specs = tuple(
        _field_spec(f"_{position}", annotation, position, None)
        for position, annotation in enumerate(target)
    )
    return RowMapping(target, field_specs, False, False, lambda values: tuple(values.values()))


def _from_scalar(target: Any) -> RowMapping:
    field_spec = _field_spec("_0", target, 0, None)
    return RowMapping(target, (field_spec,), False, True, lambda values: values["_0"])


def _is_namedtuple(target: Any) -> bool:
    return isinstance(target, type) and issubclass(target, tuple) and hasattr(target, "_fields")


def _build(target: Any) -> RowMapping:
    if isinstance(target, tuple):
        return _from_tuple(target)
    if target in SCALAR_TYPES:
        return _from_scalar(target)
    if isinstance(target, type) and dataclasses.is_dataclass(target):
        return _from_dataclass(target)
    if isinstance(target, type) and issubclass(target, BaseModel):
        return _from_model(target)
    if _is_namedtuple(target):
        return _from_namedtuple(target)
    return _from_scalar(target)


_cache: dict[Any, RowMapping] = {}
_cache_lock = threading.Lock()


def mapping_for(target: Any) -> RowMapping:
    """Return the (cached) row mapping for a target.

    Args:
        target: A type, a tuple of types, or an existing RowMapping

    Returns:
        The RowMapping describing ``target``
    """
    if isinstance(target, RowMapping):
        return target
    try:
        cached = _cache.get(target)
    except TypeError:
        # unhashable annotation
        return _build(target)
    if cached is not None:
        return cached
    mapping = _build(target)
    with _cache_lock:
        _cache.setdefault(target, mapping)
    return mapping
