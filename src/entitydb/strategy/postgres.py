"""
PostgreSQL-specific strategy implementation.

Callers write numbered placeholders (``$1``, ``$2``) in their SQL, as they
would in psql or a server-side prepared statement. psycopg expects ``%s``, so
``to_driver`` rewrites the placeholders, reorders the parameters to match,
and escapes literal percent signs. Generated keys come back through
``INSERT ... RETURNING``.
"""
import logging
import re
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from entitydb.exceptions import QueryError
from entitydb.sql import TokenType, tokenize_sql
from entitydb.strategy.base import DialectStrategy, register_strategy

if TYPE_CHECKING:
    from entitydb.options import DatabaseOptions

logger = logging.getLogger(__name__)


def _escape_percent(text: str) -> str:
    return text.replace('%', '%%')


@register_strategy('postgresql')
class PostgresStrategy(DialectStrategy):
    """PostgreSQL statement handling.
    """

    numbered = True
    in_pattern = re.compile(r'\s+IN\s+\$\d*', re.IGNORECASE)

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def placeholder(self, position: int) -> str:
        return f'${position}'

    def quote_identifier(self, identifier: str) -> str:
        """Double-quote identifiers when quoting is enabled.
        """
        if not self.quote_identifiers:
            return identifier
        return '"' + identifier.replace('"', '""') + '"'

    def to_driver(self, sql: str, params: Sequence[Any]) -> tuple[str, tuple | None]:
        """Rewrite ``$n`` placeholders to psycopg's ``%s``.

        Parameters are reordered to follow the placeholders in text order,
        so ``$2 ... $1`` and repeated placeholders bind correctly. SQL with no
        numbered placeholders passes through untouched.
        """
        tokens = tokenize_sql(sql)
        if not any(t.type is TokenType.NUMBERED_PH for t in tokens):
            return sql, (tuple(params) if params else None)

        parts = []
        ordered = []
        for token in tokens:
            if token.type is TokenType.NUMBERED_PH:
                if not 0 < token.number <= len(params):
                    raise QueryError(f'placeholder {token.text} has no argument ({len(params)} given)')
                parts.append('%s')
                ordered.append(params[token.number - 1])
            elif token.type in {TokenType.PERCENT, TokenType.STRING_LITERAL}:
                parts.append(_escape_percent(token.text))
            else:
                parts.append(token.text)
        return ''.join(parts), tuple(ordered)

    def returning_clause(self, column: str) -> str:
        return f' RETURNING {column}'

    def last_insert_id(self, cursor: Any) -> Any:
        """Read the key produced by the RETURNING clause.
        """
        row = cursor.fetchone()
        if row is None:
            return None
        return row[0]

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname

        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port,
            database=options.database,
            query=query,
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for PostgreSQL."""
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database', 'port']

    def configure_connection(self, conn: Any) -> None:
        """Configure connection settings for PostgreSQL.
        """
        raw_conn = conn
        if hasattr(conn, 'driver_connection'):
            raw_conn = conn.driver_connection
        self.enable_autocommit(raw_conn)
        logger.debug('Configured PostgreSQL connection: auto-commit on')

    def enable_autocommit(self, raw_conn: Any) -> None:
        """Enable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = True

    def disable_autocommit(self, raw_conn: Any) -> None:
        """Disable auto-commit mode for PostgreSQL.
        """
        raw_conn.autocommit = False

    def is_autocommit(self, raw_conn: Any) -> bool:
        return bool(raw_conn.autocommit)
