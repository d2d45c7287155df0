"""
Column and table name resolution.

Field names map to columns by snake-casing, unless the field carries an
explicit ``column`` metadata entry. Entity classes map to tables the same way,
unless they expose a ``table_name()`` method.
"""
import dataclasses
import inspect
from typing import Any

__all__ = [
    'to_snake',
    'column_name',
    'table_name',
]


def _is_upper(ch: str) -> bool:
    return 'A' <= ch <= 'Z'


def _is_lower_or_digit(ch: str) -> bool:
    return 'a' <= ch <= 'z' or '0' <= ch <= '9'


def to_snake(identifier: str) -> str:
    """Convert an identifier to lower-case, underscore-delimited form.

    A delimiter goes before an upper-case letter that starts a new word: one
    that follows a lower-case letter or digit, or that ends a run of capitals
    and is followed by a lower-case letter.

    Examples
        to_snake('UserID') -> 'user_id'
        to_snake('HTTPServer') -> 'http_server'
        to_snake('user_id') -> 'user_id'
    """
    out = []
    last = len(identifier) - 1
    for i, ch in enumerate(identifier):
        if _is_upper(ch):
            if i > 0:
                prev = identifier[i - 1]
                nxt = identifier[i + 1] if i < last else ''
                if _is_lower_or_digit(prev) or (_is_upper(prev) and 'a' <= nxt <= 'z'):
                    out.append('_')
            ch = chr(ord(ch) + 32)
        out.append(ch)
    return ''.join(out)


def column_name(field: dataclasses.Field) -> str:
    """Resolve the column for a dataclass field.
    """
    explicit = field.metadata.get('column')
    if explicit:
        return explicit
    return to_snake(field.name)


def table_name(entity: Any) -> str:
    """Resolve the table for an entity class or instance.

    A ``table_name()`` method returning a non-empty string wins over the
    snake-cased class name.
    """
    cls = entity if isinstance(entity, type) else type(entity)
    hook = inspect.getattr_static(cls, 'table_name', None)
    if hook is not None:
        if isinstance(entity, type) and not isinstance(hook, (classmethod, staticmethod)):
            # plain method, bind it to an uninitialised instance
            entity = cls.__new__(cls)
        name = entity.table_name()
        if name:
            return str(name)
    return to_snake(cls.__name__)
