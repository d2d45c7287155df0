"""
Field metadata for entity dataclasses.

An entity is any dataclass. Each field resolves to exactly one column and one
``FieldKind``; the mapping is rebuilt on every call and never cached.

Field options are carried in ``dataclasses.field(metadata=...)``:

- ``column``: explicit column name
- ``primary``: marks the primary key (a column named ``id`` is primary anyway)
- ``reference``: field is a reference to another entity and is never written
- ``default``: textual default used by ``helpers.bind_default``

``column()`` builds such a field.
"""
import dataclasses
import datetime
import decimal
import enum
import types
import typing
from dataclasses import dataclass
from typing import Any

from entitydb.exceptions import AllowListError
from entitydb.names import column_name

__all__ = [
    'FieldKind',
    'FieldMeta',
    'column',
    'describe',
    'build_index',
    'primary_key',
    'writable_fields',
    'is_entity',
    'ensure_entity',
]


class FieldKind(enum.Enum):
    """Closed set of field categories the engine dispatches on."""
    INTEGER = enum.auto()
    FLOAT = enum.auto()
    DECIMAL = enum.auto()
    STRING = enum.auto()
    BOOLEAN = enum.auto()
    TIMESTAMP = enum.auto()
    DATE = enum.auto()
    BYTES = enum.auto()
    SEQUENCE = enum.auto()
    MAPPING = enum.auto()
    REFERENCE = enum.auto()
    ANY = enum.auto()


_SCALAR_KINDS: list[tuple[type, FieldKind]] = [
    # order matters: bool before int, datetime before date
    (bool, FieldKind.BOOLEAN),
    (int, FieldKind.INTEGER),
    (float, FieldKind.FLOAT),
    (decimal.Decimal, FieldKind.DECIMAL),
    (str, FieldKind.STRING),
    (datetime.datetime, FieldKind.TIMESTAMP),
    (datetime.date, FieldKind.DATE),
    (bytes, FieldKind.BYTES),
    (bytearray, FieldKind.BYTES),
]

_ZERO_VALUES: dict[FieldKind, Any] = {
    FieldKind.INTEGER: 0,
    FieldKind.FLOAT: 0.0,
    FieldKind.DECIMAL: decimal.Decimal(0),
    FieldKind.STRING: '',
    FieldKind.BOOLEAN: False,
    FieldKind.BYTES: b'',
}


@dataclass(frozen=True, slots=True)
class FieldMeta:
    """One field of an entity and the column it maps to."""
    name: str
    column: str
    kind: FieldKind
    pytype: Any
    primary: bool = False
    nullable: bool = False
    field: dataclasses.Field | None = None

    @property
    def writable(self) -> bool:
        return not self.primary and self.kind is not FieldKind.REFERENCE

    def zero(self) -> Any:
        """Value for a field that no result column was scanned into."""
        if self.field is not None:
            if self.field.default is not dataclasses.MISSING:
                return self.field.default
            if self.field.default_factory is not dataclasses.MISSING:
                return self.field.default_factory()
        if self.nullable:
            return None
        if self.kind is FieldKind.SEQUENCE:
            origin = typing.get_origin(self.pytype) or self.pytype
            return origin() if origin in {list, tuple, set, frozenset} else []
        if self.kind is FieldKind.MAPPING:
            return {}
        return _ZERO_VALUES.get(self.kind)


def column(name: str | None = None, *, primary: bool = False,
           reference: bool = False, default: Any = dataclasses.MISSING,
           default_factory: Any = dataclasses.MISSING, text_default: str | None = None,
           **kwargs: Any) -> Any:
    """Declare a dataclass field with column options.

    Examples
        @dataclass
        class User:
            user_id: int = column('id', primary=True, default=0)
            email: str = column('mail', default='')
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    if name:
        metadata['column'] = name
    if primary:
        metadata['primary'] = True
    if reference:
        metadata['reference'] = True
    if text_default is not None:
        metadata['default'] = text_default
    return dataclasses.field(default=default, default_factory=default_factory,
                             metadata=metadata, **kwargs)


def resolve_kind(tp: Any) -> tuple[FieldKind, bool, Any]:
    """Map a type annotation to ``(kind, nullable, inner type)``.
    """
    nullable = False
    origin = typing.get_origin(tp)
    if origin is typing.Union or origin is types.UnionType:
        args = [a for a in typing.get_args(tp) if a is not type(None)]
        nullable = len(args) < len(typing.get_args(tp))
        if len(args) != 1:
            return FieldKind.ANY, nullable, tp
        tp = args[0]
        origin = typing.get_origin(tp)

    if origin is typing.Annotated:
        tp = typing.get_args(tp)[0]
        origin = typing.get_origin(tp)

    base = origin or tp
    if base in {list, tuple, set, frozenset}:
        return FieldKind.SEQUENCE, nullable, tp
    if base is dict:
        return FieldKind.MAPPING, nullable, tp
    if isinstance(base, type):
        if dataclasses.is_dataclass(base):
            return FieldKind.REFERENCE, nullable, tp
        for pytype, kind in _SCALAR_KINDS:
            if issubclass(base, pytype):
                return kind, nullable, tp
    return FieldKind.ANY, nullable, tp


def describe(entity: Any) -> list[FieldMeta]:
    """Return the field metadata of an entity in declaration order.
    """
    cls = entity if isinstance(entity, type) else type(entity)
    hints = typing.get_type_hints(cls)
    metas = []
    for f in dataclasses.fields(cls):
        kind, nullable, pytype = resolve_kind(hints.get(f.name, f.type))
        if f.metadata.get('reference'):
            kind = FieldKind.REFERENCE
        if f.default is None:
            nullable = True
        col = column_name(f)
        metas.append(FieldMeta(
            name=f.name,
            column=col,
            kind=kind,
            pytype=pytype,
            primary=col == 'id' or bool(f.metadata.get('primary')),
            nullable=nullable,
            field=f,
        ))
    return metas


def build_index(entity: Any) -> dict[str, FieldMeta]:
    """Map column names to field metadata.

    Two fields resolving to the same column are not reported: the field
    declared last wins.
    """
    return {meta.column: meta for meta in describe(entity)}


def primary_key(entity: Any) -> FieldMeta | None:
    """Return the primary key field, or None when the entity has none.
    """
    for meta in describe(entity):
        if meta.primary:
            return meta
    return None


def writable_fields(entity: Any) -> list[FieldMeta]:
    """Fields that INSERT and UPDATE statements write.

    Excludes the primary key and reference fields.
    """
    return [meta for meta in describe(entity) if meta.writable]


def is_entity(obj: Any) -> bool:
    """Check if obj is an entity class (a dataclass type, not an instance)."""
    return isinstance(obj, type) and dataclasses.is_dataclass(obj)


def ensure_entity(entity: Any, message: str) -> None:
    """Raise AllowListError with message unless entity is an entity class.
    """
    if not is_entity(entity):
        raise AllowListError(message)
