"""
Transaction handling for batch write operations.
"""
import logging
import threading
from typing import Any

from entitydb.cursor import open_cursor
from entitydb.strategy import get_db_strategy
from entitydb.utils import get_raw_connection

logger = logging.getLogger(__name__)

_local = threading.local()


def _active_transactions() -> set[int]:
    if not hasattr(_local, 'active_transactions'):
        _local.active_transactions = set()
    return _local.active_transactions


class Transaction:
    """Context manager running a group of statements in one transaction.

    Commits when the block exits cleanly, rolls back when it raises, and
    always restores the connection's auto-commit mode. Transaction state is
    tracked per thread; nesting a transaction on the same connection within
    one thread is not supported.

    Examples
        with Transaction(cn) as tx, tx.cursor() as cursor:
            cursor.execute(Statement('delete from ...', args))
            cursor.execute(Statement('update ...', args))
    """

    def __init__(self, cn: Any) -> None:
        self.connection = cn
        self.strategy = get_db_strategy(cn)
        self.raw_connection = get_raw_connection(cn)
        self._restore_autocommit = False
        self._wrapped = cn is not self.raw_connection

        if id(self.raw_connection) in _active_transactions():
            raise RuntimeError('Nested transactions are not supported')

    def cursor(self):
        """Cursor bound to this transaction's connection."""
        return open_cursor(self.connection, self.strategy)

    def __enter__(self) -> 'Transaction':
        _active_transactions().add(id(self.raw_connection))

        if self.strategy.is_autocommit(self.raw_connection):
            self.strategy.disable_autocommit(self.raw_connection)
            self._restore_autocommit = True

        if self._wrapped:
            self.connection.in_transaction = True

        logger.debug(f'Started transaction for connection {id(self.raw_connection)}')
        return self

    def __exit__(self, exc_type: type | None, value: Exception | None, traceback: Any | None) -> None:
        try:
            if exc_type is not None:
                self.raw_connection.rollback()
                logger.warning(f'Rolling back the current transaction: {value}')
            else:
                self.raw_connection.commit()
                logger.debug(f'Committed transaction for connection {id(self.raw_connection)}')
        finally:
            _active_transactions().discard(id(self.raw_connection))
            if self._restore_autocommit:
                self.strategy.enable_autocommit(self.raw_connection)

            if self._wrapped:
                self.connection.in_transaction = False
