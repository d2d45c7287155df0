"""
Row marshalling into caller-chosen destinations.

The destination type decides the shape of the result:

- ``Entity``: one instance; every row is scanned into the same receivers so
  the last row wins. ``None`` when there are no rows.
- ``list[Entity]``: one new instance per row, in result order.
- ``int``, ``float``, ``str``: first column of the first row, or ``None``.
- ``list[int]``, ``list[float]``, ``list[str]``: first column of every row.

Anything else is rejected with ``ERR_ALLOW`` before a statement runs.
"""
import enum
import logging
import typing
from typing import Any, NamedTuple

from entitydb.exceptions import ERR_ALLOW, AllowListError
from entitydb.fields import build_index, describe, is_entity
from entitydb.types import Binding, Receiver, receiver_for_type

logger = logging.getLogger(__name__)

__all__ = [
    'Shape',
    'Destination',
    'check_destination',
    'construct',
    'unmarshal',
]

SCALAR_TYPES = (int, float, str)


class Shape(enum.Enum):
    SCALAR = 'scalar'
    STRUCT = 'struct'
    SCALAR_LIST = 'scalar_list'
    STRUCT_LIST = 'struct_list'


class Destination(NamedTuple):
    shape: Shape
    item: type


def check_destination(tp: Any) -> Destination:
    """Classify a destination type, raising AllowListError when unsupported.

    Examples
        check_destination(User) -> Destination(Shape.STRUCT, User)
        check_destination(list[str]) -> Destination(Shape.SCALAR_LIST, str)
    """
    if tp in SCALAR_TYPES:
        return Destination(Shape.SCALAR, tp)
    if is_entity(tp):
        return Destination(Shape.STRUCT, tp)
    if typing.get_origin(tp) is list:
        args = typing.get_args(tp)
        if len(args) == 1:
            item = args[0]
            if item in SCALAR_TYPES:
                return Destination(Shape.SCALAR_LIST, item)
            if is_entity(item):
                return Destination(Shape.STRUCT_LIST, item)
    raise AllowListError(ERR_ALLOW)


def _bind(entity: type, columns: list[str]) -> list[Binding]:
    """Pair every result column that maps to a field with a fresh receiver.

    Columns with no matching field are ignored.
    """
    index = build_index(entity)
    return [Binding(position, col, index[col].name, Receiver.for_field(index[col]))
            for position, col in enumerate(columns) if col in index]


def _scan(bindings: list[Binding], row: Any) -> None:
    for binding in bindings:
        binding.receiver.scan(row[binding.position])


def construct(entity: type, values: dict[str, Any]) -> Any:
    """Build an instance from field values, filling the rest with zero values.

    Fields excluded from ``__init__`` are assigned after construction.
    """
    kwargs, late = {}, {}
    for meta in describe(entity):
        value = values[meta.name] if meta.name in values else meta.zero()
        if meta.field is not None and not meta.field.init:
            late[meta.name] = value
        else:
            kwargs[meta.name] = value
    obj = entity(**kwargs)
    for name, value in late.items():
        object.__setattr__(obj, name, value)
    return obj


def unmarshal_struct(cursor: Any, entity: type) -> Any | None:
    bindings = _bind(entity, cursor.columns)
    seen = False
    for row in cursor:
        _scan(bindings, row)
        seen = True
    if not seen:
        return None
    return construct(entity, {b.field: b.receiver.value for b in bindings})


def unmarshal_struct_list(cursor: Any, entity: type) -> list:
    columns = cursor.columns
    result = []
    for row in cursor:
        bindings = _bind(entity, columns)
        _scan(bindings, row)
        result.append(construct(entity, {b.field: b.receiver.value for b in bindings}))
    return result


def unmarshal_scalar(cursor: Any, tp: type) -> Any | None:
    row = cursor.fetchone()
    if row is None:
        return None
    receiver = receiver_for_type(tp)
    receiver.scan(row[0])
    return receiver.value


def unmarshal_scalar_list(cursor: Any, tp: type) -> list:
    result = []
    for row in cursor:
        receiver = receiver_for_type(tp)
        receiver.scan(row[0])
        result.append(receiver.value)
    return result


_UNMARSHALLERS = {
    Shape.SCALAR: unmarshal_scalar,
    Shape.STRUCT: unmarshal_struct,
    Shape.SCALAR_LIST: unmarshal_scalar_list,
    Shape.STRUCT_LIST: unmarshal_struct_list,
}


def unmarshal(cursor: Any, destination: Destination) -> Any:
    """Read the cursor's result set into the destination shape.
    """
    result = _UNMARSHALLERS[destination.shape](cursor, destination.item)
    if isinstance(result, list):
        logger.debug(f'Unmarshalled {len(result)} {destination.item.__name__} row(s)')
    return result
