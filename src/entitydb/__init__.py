"""
Entity mapping over PostgreSQL and SQLite.

Entities are plain dataclasses. All operations can be called either as:
- Module functions: entitydb.query(cn, list[User], sql, *args)
- ConnectionWrapper methods: cn.query(list[User], sql, *args)

Module functions also accept raw sqlite3 and psycopg connections.
"""
__version__ = '0.1.0'

from entitydb.connection import ConnectionWrapper, connect
from entitydb.data import delete, insert, update
from entitydb.exceptions import ERR_ALLOW, ERR_DELETE_ALLOW, ERR_INSERT_ALLOW
from entitydb.exceptions import ERR_UPDATE_ALLOW, AllowListError
from entitydb.exceptions import DatabaseError, DbConnectionError, IntegrityError
from entitydb.exceptions import OperationalError, ProgrammingError, QueryError
from entitydb.exceptions import TypeConversionError, UniqueViolation
from entitydb.exceptions import ValidationError
from entitydb.fields import FieldKind, FieldMeta, build_index, column
from entitydb.helpers import bind_default, decrypt, encrypt, from_json
from entitydb.helpers import parse_int, random_string, to_json, trim_all
from entitydb.names import column_name, table_name, to_snake
from entitydb.options import DatabaseOptions
from entitydb.query import query
from entitydb.transaction import Transaction as transaction

__all__ = [
    'connect',
    'ConnectionWrapper',
    'transaction',
    'DatabaseOptions',
    'query',
    'insert',
    'update',
    'delete',
    'column',
    'build_index',
    'FieldKind',
    'FieldMeta',
    'to_snake',
    'column_name',
    'table_name',
    'encrypt',
    'decrypt',
    'random_string',
    'bind_default',
    'trim_all',
    'to_json',
    'from_json',
    'parse_int',
    'ERR_ALLOW',
    'ERR_INSERT_ALLOW',
    'ERR_UPDATE_ALLOW',
    'ERR_DELETE_ALLOW',
    'AllowListError',
    'IntegrityError',
    'ProgrammingError',
    'OperationalError',
    'UniqueViolation',
    'DbConnectionError',
    'ValidationError',
    'DatabaseError',
    'QueryError',
    'TypeConversionError',
]
