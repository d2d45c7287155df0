"""
SQL statement synthesis.

Builds INSERT/UPDATE/DELETE text from entity metadata and caller-supplied
filter fragments, expands sequence arguments into inline ``IN`` lists, and
renders statements with literal values for the log.

Row values are bound as driver parameters. Literal embedding is only used for
``IN`` lists, whose length is not known to the statement, and for the log.

    sql + args → expand IN lists → Statement(sql, params) → strategy.to_driver()
"""
import dataclasses
import datetime
import decimal
import enum
import json
import re
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING, Any, NamedTuple

from entitydb.exceptions import TypeConversionError, ValidationError
from entitydb.fields import FieldKind, primary_key, writable_fields
from entitydb.names import table_name

from libb import issequence

if TYPE_CHECKING:
    from entitydb.strategy.base import DialectStrategy

__all__ = [
    'Statement',
    'KeysValues',
    'render_literal',
    'render_sql',
    'expand_in',
    'keys_values',
    'build_insert',
    'build_update',
    'build_delete',
    'tokenize_sql',
]

DEFAULT = 'DEFAULT'
TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'
DATE_FORMAT = '%Y-%m-%d'

# a fragment that already is a complete statement is used verbatim
_UPDATE_STATEMENT = re.compile(r'^\s*UPDATE\s', re.IGNORECASE)
_DELETE_STATEMENT = re.compile(r'DELETE FROM (.*?) ', re.IGNORECASE)


# =============================================================================
# Data Structures
# =============================================================================

class TokenType(Enum):
    """Token types identified during placeholder scanning."""
    SQL_TEXT = auto()
    STRING_LITERAL = auto()
    NUMBERED_PH = auto()        # $1
    QMARK_PH = auto()           # ?
    PERCENT = auto()            # bare %


@dataclass(slots=True)
class Token:
    """Token from SQL scanning."""
    type: TokenType
    text: str
    number: int = 0


@dataclass(frozen=True, slots=True)
class Statement:
    """Final statement text and its positional parameters.
    """
    sql: str
    params: tuple = ()


class KeysValues(NamedTuple):
    """Comma-joined column list and value list of an INSERT."""
    keys: str
    values: str
    params: tuple


_TOKENIZE = re.compile(r"""
    (?P<string>'(?:[^']|'')*'|"(?:[^"]|"")*")
    |(?P<numbered>\$(?P<number>\d+))
    |(?P<qmark>\?)
    |(?P<percent>%)
""", re.VERBOSE)

_NUMBERED = re.compile(r'\$\d+')


def tokenize_sql(sql: str) -> list[Token]:
    """Split SQL into text, string literals and placeholders.

    Parameters
        sql: SQL query string

    Returns
        List of tokens preserving all SQL text
    """
    tokens = []
    last_end = 0

    for match in _TOKENIZE.finditer(sql):
        start, end = match.span()
        if start > last_end:
            tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:start]))

        if match.group('string'):
            tokens.append(Token(TokenType.STRING_LITERAL, match.group(0)))
        elif match.group('numbered'):
            tokens.append(Token(TokenType.NUMBERED_PH, match.group(0), int(match.group('number'))))
        elif match.group('qmark'):
            tokens.append(Token(TokenType.QMARK_PH, match.group(0)))
        else:
            tokens.append(Token(TokenType.PERCENT, match.group(0)))
        last_end = end

    if last_end < len(sql):
        tokens.append(Token(TokenType.SQL_TEXT, sql[last_end:]))

    return tokens


# =============================================================================
# Literal Rendering
# =============================================================================

def quote_literal(text: str) -> str:
    """Single-quote text, doubling embedded quotes."""
    return "'" + text.replace("'", "''") + "'"


def render_literal(value: Any) -> str:
    """Render a Python value as an SQL literal.

    Strings and structured values are single-quoted, timestamps use
    ``'YYYY-MM-DD HH:MM:SS'``, sequences and mappings are JSON-encoded then
    quoted, numbers are emitted bare.
    """
    if value is None:
        return 'NULL'
    if isinstance(value, enum.Enum):
        return render_literal(value.value)
    if isinstance(value, bool):
        return 'TRUE' if value else 'FALSE'
    if isinstance(value, (int, float, decimal.Decimal)):
        return str(value)
    if isinstance(value, str):
        return quote_literal(value)
    if isinstance(value, datetime.datetime):
        return quote_literal(value.strftime(TIMESTAMP_FORMAT))
    if isinstance(value, datetime.date):
        return quote_literal(value.strftime(DATE_FORMAT))
    if isinstance(value, (bytes, bytearray, memoryview)):
        return quote_literal('\\x' + bytes(value).hex())
    if isinstance(value, (list, tuple, set, frozenset)):
        return quote_literal(json.dumps(list(value), default=str))
    if isinstance(value, dict):
        return quote_literal(json.dumps(value, default=str))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return quote_literal(json.dumps(dataclasses.asdict(value), default=str))
    return quote_literal(str(value))


def render_sql(strategy: 'DialectStrategy', sql: str, params: Sequence[Any] = ()) -> str:
    """Substitute placeholders with literal values for readability.

    Only used for logging; the result is never executed.
    """
    if not params:
        return sql
    params = list(params)
    parts = []
    position = 0
    for token in tokenize_sql(sql):
        if token.type is TokenType.NUMBERED_PH and strategy.numbered:
            if 0 < token.number <= len(params):
                parts.append(render_literal(params[token.number - 1]))
                continue
        elif token.type is TokenType.QMARK_PH and not strategy.numbered:
            if position < len(params):
                parts.append(render_literal(params[position]))
                position += 1
                continue
        parts.append(token.text)
    return ''.join(parts)


# =============================================================================
# IN Clause Expansion
# =============================================================================

def is_sequence_arg(arg: Any) -> bool:
    """Check if an argument is a sequence to inline into an IN list."""
    if isinstance(arg, (str, bytes, bytearray)):
        return False
    return isinstance(arg, (set, frozenset)) or issequence(arg)


def _render_in_list(values: Any) -> str:
    items = []
    for value in values:
        if isinstance(value, enum.Enum):
            value = value.value
        if not isinstance(value, (str, int, float, decimal.Decimal, datetime.date)):
            raise TypeConversionError(f'cannot inline {type(value).__name__} {value!r} in an IN list')
        items.append(render_literal(value))
    return ','.join(items)


def expand_in(strategy: 'DialectStrategy', sql: str, args: Sequence[Any] = ()) -> Statement:
    """Inline sequence arguments as IN lists.

    Every sequence argument is removed from the positional arguments and
    rendered as a comma-joined literal list. Occurrences of ``IN <placeholder>``
    are replaced left to right with the pending lists. Once the lists run out
    the keyword is left bare (`` IN ``); an empty sequence contributes no list.

    In the numbered dialect the placeholders that remain are renumbered to
    the positions of the residual arguments.

    Examples
        expand_in(pg, 'SELECT * FROM user WHERE id IN $1', [[1, 2, 3]])
        -> Statement('SELECT * FROM user WHERE id IN (1,2,3)', ())
    """
    lists = []
    residual = []
    renumber = {}
    for position, arg in enumerate(args, start=1):
        if is_sequence_arg(arg):
            if len(arg):
                lists.append(_render_in_list(arg))
            continue
        residual.append(arg)
        renumber[position] = len(residual)

    pending = iter(lists)

    def replace(match: re.Match) -> str:
        inline = next(pending, None)
        if inline is None:
            return ' IN '
        return f' IN ({inline})'

    sql = strategy.in_pattern.sub(replace, sql)

    if strategy.numbered and len(residual) < len(args):
        sql = _renumber(sql, renumber)

    return Statement(sql, tuple(residual))


def _renumber(sql: str, renumber: dict[int, int]) -> str:
    if not _NUMBERED.search(sql):
        return sql
    parts = []
    for token in tokenize_sql(sql):
        if token.type is TokenType.NUMBERED_PH and token.number in renumber:
            parts.append(f'${renumber[token.number]}')
        else:
            parts.append(token.text)
    return ''.join(parts)


# =============================================================================
# Statement Builders
# =============================================================================

def keys_values(strategy: 'DialectStrategy', row: Any) -> KeysValues:
    """Column list, value list and parameters for inserting a row.

    A timestamp field holding None takes the column default.
    """
    keys, values, params = [], [], []
    for meta in writable_fields(row):
        value = getattr(row, meta.name)
        if value is None and meta.kind is FieldKind.TIMESTAMP:
            if strategy.default_keyword:
                keys.append(strategy.quote_identifier(meta.column))
                values.append(DEFAULT)
            continue
        keys.append(strategy.quote_identifier(meta.column))
        params.append(strategy.adapt_value(meta.kind, value))
        values.append(strategy.placeholder(len(params)))
    return KeysValues(','.join(keys), ','.join(values), tuple(params))


def build_insert(strategy: 'DialectStrategy', entity: Any, row: Any) -> Statement:
    """INSERT statement for one row, returning the key where the dialect can.
    """
    table = strategy.quote_identifier(table_name(entity))
    kv = keys_values(strategy, row)
    if kv.keys:
        sql = f'INSERT INTO {table}({kv.keys}) VALUES ({kv.values})'
    else:
        sql = f'INSERT INTO {table} DEFAULT VALUES'
    pk = primary_key(entity)
    if pk is not None:
        sql += strategy.returning_clause(strategy.quote_identifier(pk.column))
    return Statement(sql, kv.params)


def build_update(strategy: 'DialectStrategy', entity: Any, row: Any,
                 where: str = '', args: Sequence[Any] = ()) -> Statement:
    """UPDATE statement setting every writable field of row.

    An empty ``where`` filters on the row's primary key and takes no
    arguments. A fragment that is already an UPDATE statement is used
    verbatim.
    """
    if _UPDATE_STATEMENT.match(where):
        return expand_in(strategy, where, args)

    if not where.strip():
        if args:
            raise ValidationError('update arguments given without a filter')
        pk = primary_key(entity)
        if pk is None:
            raise ValidationError(f'{entity.__name__} has no primary key to update by')
        where = f'{strategy.quote_identifier(pk.column)} = {strategy.placeholder(1)}'
        args = (strategy.adapt_value(pk.kind, getattr(row, pk.name)),)

    filtered = expand_in(strategy, where, args)

    fields = writable_fields(entity)
    values = [strategy.adapt_value(meta.kind, getattr(row, meta.name)) for meta in fields]
    offset, params = strategy.order_params(values, filtered.params)
    sets = [f'{strategy.quote_identifier(meta.column)}={strategy.placeholder(offset + i)}'
            for i, meta in enumerate(fields, start=1)]

    table = strategy.quote_identifier(table_name(entity))
    sql = f"UPDATE {table} SET {','.join(sets)} WHERE {filtered.sql}"
    return Statement(sql, params)


def build_delete(strategy: 'DialectStrategy', entity: Any, where: str,
                 args: Sequence[Any] = ()) -> Statement:
    """DELETE statement for a bare filter, or the fragment itself when it
    already is a DELETE statement.
    """
    if not where or not where.strip():
        raise ValidationError('delete requires a filter')
    if not _DELETE_STATEMENT.search(where):
        table = strategy.quote_identifier(table_name(entity))
        where = f'DELETE FROM {table} WHERE {where}'
    return expand_in(strategy, where, args)
