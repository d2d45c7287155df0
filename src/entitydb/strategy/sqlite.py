"""
SQLite-specific strategy implementation.

SQLite takes ``?`` placeholders natively, so statements reach the driver as
written. Identifiers are back-quoted by default, and the generated key of an
INSERT is read from ``cursor.lastrowid`` rather than a RETURNING clause.
The sqlite3 module has no adapters for ``Decimal`` or (since Python 3.12)
for dates, so those are bound as text.
"""
import datetime
import decimal
import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from entitydb.fields import FieldKind
from entitydb.strategy.base import DialectStrategy, register_strategy

if TYPE_CHECKING:
    from entitydb.options import DatabaseOptions

logger = logging.getLogger(__name__)


@register_strategy('sqlite')
class SQLiteStrategy(DialectStrategy):
    """SQLite statement handling.
    """

    numbered = False
    in_pattern = re.compile(r'\s+IN\s+\?', re.IGNORECASE)
    default_keyword = False

    def __init__(self, quote_identifiers: bool = True) -> None:
        super().__init__(quote_identifiers=quote_identifiers)

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def placeholder(self, position: int) -> str:
        return '?'

    def quote_identifier(self, identifier: str) -> str:
        """Back-quote identifiers when quoting is enabled.
        """
        if not self.quote_identifiers:
            return identifier
        return '`' + identifier.replace('`', '``') + '`'

    def to_driver(self, sql: str, params: Sequence[Any]) -> tuple[str, tuple]:
        return sql, tuple(params)

    def returning_clause(self, column: str) -> str:
        return ''

    def last_insert_id(self, cursor: Any) -> Any:
        return cursor.lastrowid

    def adapt_value(self, kind: FieldKind, value: Any) -> Any:
        """Bind decimals and dates as text.
        """
        value = super().adapt_value(kind, value)
        if isinstance(value, decimal.Decimal):
            return str(value)
        if isinstance(value, datetime.datetime):
            return value.isoformat(sep=' ')
        if isinstance(value, datetime.date):
            return value.isoformat()
        return value

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for SQLite.
        """
        sqlite_conn = conn
        if hasattr(conn, 'dbapi_connection'):
            sqlite_conn = conn.dbapi_connection

        sqlite_conn.execute('PRAGMA foreign_keys = ON')
        self.enable_autocommit(sqlite_conn)
        logger.debug('Configured SQLite connection: foreign keys on, auto-commit on')

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = None

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for SQLite.
        """
        raw_conn.isolation_level = 'DEFERRED'

    def is_autocommit(self, raw_conn: Any) -> bool:
        return raw_conn.isolation_level is None
