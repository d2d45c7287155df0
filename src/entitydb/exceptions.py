"""
Exception classes for entity mapping and statement execution.
"""
import sqlite3

import psycopg

ERR_ALLOW = 'query: allow list: dataclass/list/int/float/str'
ERR_INSERT_ALLOW = 'insert: allow list: dataclass'
ERR_UPDATE_ALLOW = 'update: allow list: dataclass'
ERR_DELETE_ALLOW = 'delete: allow list: dataclass'


class DatabaseError(Exception):
    """Base class for all entitydb errors.
    """


class QueryError(DatabaseError):
    """Error in query syntax or statement synthesis.
    """


class TypeConversionError(DatabaseError):
    """Error converting a value between Python and the database.
    """


class ValidationError(DatabaseError):
    """Error in input validation.
    """


class AllowListError(ValidationError):
    """Destination or entity type is outside the supported set.

    The message is one of the fixed ``ERR_*`` constants so callers can
    compare against it.
    """

    def __init__(self, message: str = ERR_ALLOW) -> None:
        super().__init__(message)


DbConnectionError = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    sqlite3.OperationalError,
    sqlite3.InterfaceError,
    )

IntegrityError = (
    psycopg.IntegrityError,
    sqlite3.IntegrityError,
    )

ProgrammingError = (
    psycopg.ProgrammingError,
    psycopg.DatabaseError,
    sqlite3.ProgrammingError,
    sqlite3.DatabaseError,
    QueryError,
    )

OperationalError = (
    psycopg.OperationalError,
    sqlite3.OperationalError,
    )

UniqueViolation = (
    psycopg.errors.UniqueViolation,
    sqlite3.IntegrityError,
    )
