"""
Typed receivers for result values.

A ``Receiver`` is allocated per mapped column and converts whatever the driver
returns into the declared Python type of the destination field. Conversions
that would lose data (a fractional float into an int field, NULL into a
non-nullable field) raise ``TypeConversionError`` instead of truncating.
"""
import datetime
import decimal
import enum
import json
import typing
from typing import Any

import dateutil.parser

from entitydb.exceptions import TypeConversionError
from entitydb.fields import FieldKind, FieldMeta, resolve_kind

__all__ = [
    'Receiver',
    'Binding',
    'convert_value',
    'receiver_for_type',
]

TRUE_STRINGS = {'1', 't', 'true', 'y', 'yes', 'on'}
FALSE_STRINGS = {'0', 'f', 'false', 'n', 'no', 'off'}


def _fail(kind: FieldKind, value: Any, name: str, reason: str = '') -> TypeConversionError:
    target = f' for {name}' if name else ''
    extra = f': {reason}' if reason else ''
    return TypeConversionError(
        f'cannot convert {type(value).__name__} {value!r} to {kind.name.lower()}{target}{extra}')


def _to_integer(value: Any, name: str) -> int:
    if isinstance(value, int):
        return int(value)
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        raise _fail(FieldKind.INTEGER, value, name, 'fractional part would be lost')
    if isinstance(value, decimal.Decimal):
        if value == value.to_integral_value():
            return int(value)
        raise _fail(FieldKind.INTEGER, value, name, 'fractional part would be lost')
    if isinstance(value, (str, bytes)):
        try:
            return int(value)
        except ValueError as err:
            raise _fail(FieldKind.INTEGER, value, name) from err
    raise _fail(FieldKind.INTEGER, value, name)


def _to_float(value: Any, name: str) -> float:
    if isinstance(value, (int, float, decimal.Decimal)):
        return float(value)
    if isinstance(value, (str, bytes)):
        try:
            return float(value)
        except ValueError as err:
            raise _fail(FieldKind.FLOAT, value, name) from err
    raise _fail(FieldKind.FLOAT, value, name)


def _to_decimal(value: Any, name: str) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    if isinstance(value, bytes):
        value = value.decode()
    try:
        return decimal.Decimal(str(value))
    except decimal.InvalidOperation as err:
        raise _fail(FieldKind.DECIMAL, value, name) from err


def _to_string(value: Any, name: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode()
    return str(value)


def _to_boolean(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in {0, 1}:
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    raise _fail(FieldKind.BOOLEAN, value, name)


def _parse_datetime(value: Any, kind: FieldKind, name: str) -> datetime.datetime:
    if isinstance(value, bytes):
        value = value.decode()
    try:
        return dateutil.parser.parse(value)
    except (ValueError, OverflowError) as err:
        raise _fail(kind, value, name) from err


def _to_timestamp(value: Any, name: str) -> datetime.datetime:
    if isinstance(value, datetime.datetime):
        return value
    if isinstance(value, datetime.date):
        return datetime.datetime.combine(value, datetime.time())
    if isinstance(value, (str, bytes)):
        return _parse_datetime(value, FieldKind.TIMESTAMP, name)
    raise _fail(FieldKind.TIMESTAMP, value, name)


def _to_date(value: Any, name: str) -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, (str, bytes)):
        return _parse_datetime(value, FieldKind.DATE, name).date()
    raise _fail(FieldKind.DATE, value, name)


def _to_bytes(value: Any, name: str) -> bytes:
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode()
    raise _fail(FieldKind.BYTES, value, name)


def _decode_json(value: Any, kind: FieldKind, expected: type, name: str) -> Any:
    try:
        decoded = json.loads(value)
    except ValueError as err:
        raise _fail(kind, value, name, 'invalid json') from err
    if not isinstance(decoded, expected):
        raise _fail(kind, value, name, f'json is not a {expected.__name__}')
    return decoded


def _to_sequence(value: Any, pytype: Any, name: str) -> Any:
    if isinstance(value, (str, bytes, bytearray)):
        value = _decode_json(value, FieldKind.SEQUENCE, list, name)
    elif not isinstance(value, (list, tuple, set, frozenset)):
        raise _fail(FieldKind.SEQUENCE, value, name)
    origin = typing.get_origin(pytype) or pytype
    if origin in {list, tuple, set, frozenset} and not isinstance(value, origin):
        return origin(value)
    return value


def _to_mapping(value: Any, name: str) -> dict:
    if isinstance(value, dict):
        return value
    if isinstance(value, (str, bytes, bytearray)):
        return _decode_json(value, FieldKind.MAPPING, dict, name)
    raise _fail(FieldKind.MAPPING, value, name)


def convert_value(kind: FieldKind, value: Any, pytype: Any = None,
                  nullable: bool = True, name: str = '') -> Any:
    """Convert a driver value into the Python type of a field kind.
    """
    if value is None:
        if nullable:
            return None
        raise TypeConversionError(f'NULL scanned into non-nullable {name or kind.name.lower()}')

    if kind is FieldKind.INTEGER:
        result = _to_integer(value, name)
    elif kind is FieldKind.FLOAT:
        result = _to_float(value, name)
    elif kind is FieldKind.DECIMAL:
        result = _to_decimal(value, name)
    elif kind is FieldKind.STRING:
        result = _to_string(value, name)
    elif kind is FieldKind.BOOLEAN:
        result = _to_boolean(value, name)
    elif kind is FieldKind.TIMESTAMP:
        result = _to_timestamp(value, name)
    elif kind is FieldKind.DATE:
        result = _to_date(value, name)
    elif kind is FieldKind.BYTES:
        result = _to_bytes(value, name)
    elif kind is FieldKind.SEQUENCE:
        result = _to_sequence(value, pytype, name)
    elif kind is FieldKind.MAPPING:
        result = _to_mapping(value, name)
    else:
        return value

    if isinstance(pytype, type) and issubclass(pytype, enum.Enum) and not isinstance(result, pytype):
        try:
            return pytype(result)
        except ValueError as err:
            raise _fail(kind, value, name, f'not a valid {pytype.__name__}') from err
    return result


class Receiver:
    """Holds the last value scanned for one column.
    """
    __slots__ = ('kind', 'pytype', 'nullable', 'name', 'value', 'scanned')

    def __init__(self, kind: FieldKind, pytype: Any = None, nullable: bool = True,
                 name: str = '') -> None:
        self.kind = kind
        self.pytype = pytype
        self.nullable = nullable
        self.name = name
        self.value = None
        self.scanned = False

    @classmethod
    def for_field(cls, meta: FieldMeta) -> 'Receiver':
        return cls(meta.kind, meta.pytype, meta.nullable, meta.name)

    def scan(self, value: Any) -> None:
        self.value = convert_value(self.kind, value, self.pytype, self.nullable, self.name)
        self.scanned = True

    def __repr__(self) -> str:
        return f'Receiver({self.name or self.kind.name}={self.value!r})'


class Binding(typing.NamedTuple):
    """A result column paired with its receiver and target field."""
    position: int
    column: str
    field: str
    receiver: Receiver


def receiver_for_type(tp: Any) -> Receiver:
    """Receiver for a scalar destination type such as int or str."""
    kind, _, pytype = resolve_kind(tp)
    return Receiver(kind, pytype, nullable=True)
