"""
Cursor handling for statement execution.

Statements are logged with their parameters substituted before they are
translated to the driver's paramstyle and executed. Cursors are always
closed, including when execution fails.
"""
import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from functools import wraps
from typing import Any

from entitydb.sql import Statement, render_sql
from entitydb.strategy import DialectStrategy, get_db_strategy
from entitydb.utils import get_raw_connection

logger = logging.getLogger(__name__)

__all__ = [
    'Cursor',
    'open_cursor',
    'dumpsql',
]


def dumpsql(func):
    """Decorator for logging statements and their parameters."""
    @wraps(func)
    def wrapper(self, statement: Statement, *args: Any, **kwargs: Any):
        start = time.time()
        logger.debug(f'SQL:\n{render_sql(self.strategy, statement.sql, statement.params)}')
        try:
            return func(self, statement, *args, **kwargs)
        except Exception:
            logger.error(f'Error with query:\nSQL:\n{statement.sql}\nargs: {statement.params}')
            raise
        finally:
            elapsed = time.time() - start
            if hasattr(self.connwrapper, 'addcall'):
                self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


class Cursor:
    """Thin wrapper over a DBAPI cursor that executes ``Statement`` objects.

    Placeholder translation is delegated to the dialect strategy.
    """

    def __init__(self, cursor: Any, connection_wrapper: Any,
                 strategy: DialectStrategy) -> None:
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper
        self.strategy = strategy

    def __getattr__(self, name: str) -> Any:
        """Delegate members to underlying cursor."""
        return getattr(self.dbapi_cursor, name)

    @dumpsql
    def execute(self, statement: Statement) -> 'Cursor':
        """Execute a statement in the dialect's placeholder syntax."""
        sql, params = self.strategy.to_driver(statement.sql, statement.params)
        if params is None:
            self.dbapi_cursor.execute(sql)
        else:
            self.dbapi_cursor.execute(sql, params)
        return self

    @property
    def columns(self) -> list[str]:
        """Result column names of the last statement, or [] for DML."""
        if self.dbapi_cursor.description is None:
            return []
        return [desc[0] for desc in self.dbapi_cursor.description]

    @property
    def rowcount(self) -> int:
        return self.dbapi_cursor.rowcount

    def fetchone(self) -> Any:
        return self.dbapi_cursor.fetchone()

    def __iter__(self) -> Iterator:
        """Iterate remaining rows one at a time."""
        while True:
            row = self.dbapi_cursor.fetchone()
            if row is None:
                return
            yield row

    def last_insert_id(self) -> Any:
        return self.strategy.last_insert_id(self.dbapi_cursor)

    def close(self) -> None:
        self.dbapi_cursor.close()


@contextmanager
def open_cursor(cn: Any, strategy: DialectStrategy | None = None):
    """Context manager yielding a Cursor that is closed on every exit path.

    Args:
        cn: ConnectionWrapper or raw DBAPI connection
        strategy: Dialect strategy, detected from cn when omitted
    """
    strategy = strategy or get_db_strategy(cn)
    raw_conn = get_raw_connection(cn)
    cursor = Cursor(raw_conn.cursor(), cn, strategy)
    try:
        yield cursor
    finally:
        cursor.close()
