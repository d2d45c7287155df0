"""
Small utilities for working with entities outside of statements.
"""
import base64
import binascii
import dataclasses
import json
import logging
import secrets
from typing import Any

from entitydb.exceptions import TypeConversionError, ValidationError
from entitydb.fields import FieldKind, describe, resolve_kind
from entitydb.marshal import construct
from entitydb.types import convert_value

logger = logging.getLogger(__name__)

__all__ = [
    'encrypt',
    'decrypt',
    'random_string',
    'bind_default',
    'trim_all',
    'to_json',
    'from_json',
    'parse_int',
]


def _salt_bytes(salt: str) -> bytes:
    key = salt.encode()
    if not key:
        raise ValidationError('salt cannot be empty')
    return key


def encrypt(data: str, salt: str) -> str:
    """Obfuscate text with a salt.

    Each character's code point is shifted by the matching salt byte and the
    results are joined as ``_n_n_n`` before base64 encoding. This is not
    encryption in the cryptographic sense.

    Examples
        encrypt('ab', 'k') -> 'XzIwNF8yMDU='
    """
    key = _salt_bytes(salt)
    shifted = [ord(char) + key[i % len(key)] for i, char in enumerate(data)]
    text = ''.join(f'_{n}' for n in shifted)
    return base64.b64encode(text.encode()).decode()


def decrypt(token: str, salt: str) -> str:
    """Reverse ``encrypt``. Returns ``''`` when the token cannot be decoded.
    """
    key = _salt_bytes(salt)
    try:
        text = base64.b64decode(token, validate=True).decode()
    except (binascii.Error, UnicodeDecodeError):
        return ''
    if not text:
        return ''
    try:
        return ''.join(chr(int(part) - key[i % len(key)])
                       for i, part in enumerate(text[1:].split('_')))
    except ValueError:
        return ''


def random_string(length: int) -> str:
    """Random string of hex digits, upper case for high bytes.

    Bytes are formatted without padding, so a string built from ``length``
    bytes is truncated to ``length`` characters.
    """
    if length <= 0:
        return ''
    text = ''.join(f'{b:X}' if b > 127 else f'{b:x}' for b in secrets.token_bytes(length))
    return text[:length]


def _parse_default(kind: FieldKind, text: str, name: str) -> Any:
    if kind is FieldKind.STRING:
        return text
    if kind is FieldKind.BOOLEAN:
        return text.upper() == 'TRUE'
    if kind in {FieldKind.INTEGER, FieldKind.FLOAT}:
        try:
            return convert_value(kind, text.strip(), name=name)
        except TypeConversionError as err:
            raise ValidationError(f'invalid default {text!r} for {name}') from err
    raise ValidationError(f'unsupported type for default of {name}')


def _is_empty(value: Any) -> bool:
    return value is None or value in ('', 0)


def bind_default(obj: Any) -> Any:
    """Fill empty fields from their ``default`` metadata.

    A field is empty when it holds None, ``''``, ``0`` or False. Only fields
    declared with a textual default (``column(text_default=...)``) are
    touched. The instance is updated in place and returned.

    Examples
        @dataclass
        class Account:
            status: str = column(text_default='active', default='')
            retries: int = column(text_default='3', default=0)

        bind_default(Account()) -> Account(status='active', retries=3)
    """
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise ValidationError('bind_default requires a dataclass instance')
    for meta in describe(obj):
        text = meta.field.metadata.get('default') if meta.field else None
        if text is None or not _is_empty(getattr(obj, meta.name)):
            continue
        value = _parse_default(meta.kind, text, meta.name)
        object.__setattr__(obj, meta.name, value)
    return obj


def trim_all(obj: Any) -> Any:
    """Strip surrounding whitespace from a string or from every str field.

    Dataclass instances are updated in place and returned.
    """
    if isinstance(obj, str):
        return obj.strip()
    if not dataclasses.is_dataclass(obj) or isinstance(obj, type):
        raise ValidationError('trim_all requires a str or a dataclass instance')
    for f in dataclasses.fields(obj):
        value = getattr(obj, f.name)
        if isinstance(value, str):
            object.__setattr__(obj, f.name, value.strip())
    return obj


def to_json(value: Any) -> str:
    """Encode a value as JSON, falling back to ``[]`` or ``{}``.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)
    try:
        return json.dumps(value, default=str)
    except (TypeError, ValueError) as err:
        logger.warning(f'Could not encode {type(value).__name__} as json: {err}')
        return '[]' if isinstance(value, (list, tuple, set, frozenset)) else '{}'


def from_json(cls: type, data: str | bytes) -> Any:
    """Decode JSON text into a dataclass instance or plain value.

    Object keys are matched against field names, then column names. Unknown
    keys are ignored and missing fields take their default or zero value.
    """
    try:
        decoded = json.loads(data)
    except ValueError as err:
        raise ValidationError(f'invalid json for {cls.__name__}: {err}') from err

    if not dataclasses.is_dataclass(cls):
        kind, nullable, pytype = resolve_kind(cls)
        return convert_value(kind, decoded, pytype, nullable, name=getattr(cls, '__name__', ''))

    if not isinstance(decoded, dict):
        raise ValidationError(f'expected a json object for {cls.__name__}')

    values = {}
    for meta in describe(cls):
        if meta.name in decoded:
            raw = decoded[meta.name]
        elif meta.column in decoded:
            raw = decoded[meta.column]
        else:
            continue
        if meta.kind is FieldKind.REFERENCE and isinstance(raw, dict):
            values[meta.name] = from_json(meta.pytype, json.dumps(raw))
        else:
            values[meta.name] = convert_value(meta.kind, raw, meta.pytype, meta.nullable, meta.name)
    return construct(cls, values)


def parse_int(text: str, default: int = 0) -> int:
    """Parse a base 10 integer, returning default when text is not one."""
    try:
        return int(str(text).strip())
    except (TypeError, ValueError):
        return default
