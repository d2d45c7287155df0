"""
Read operations.
"""
import logging
from typing import Any

from entitydb.cursor import open_cursor
from entitydb.marshal import check_destination, unmarshal
from entitydb.sql import expand_in
from entitydb.strategy import get_db_strategy

logger = logging.getLogger(__name__)

__all__ = ['query']


def query(cn: Any, tp: Any, sql: str, *args: Any) -> Any:
    """Execute a statement and marshal its rows into ``tp``.

    Placeholders follow the connection's dialect (``$1`` for postgresql,
    ``?`` for sqlite). A list or tuple argument is inlined as an ``IN`` list.

    Args:
        cn: ConnectionWrapper or raw DBAPI connection
        tp: Destination type, one of an entity dataclass, ``list[Entity]``,
            ``int``, ``float``, ``str`` or a ``list`` of those scalars
        sql: Statement text
        *args: Positional parameters

    Returns
        An instance, a list, a scalar, or None when a single-value
        destination gets no rows

    Raises
        AllowListError: ``tp`` is unsupported; nothing is executed

    Examples
        users = query(cn, list[User], 'select * from user where id in $1', [1, 2])
        count = query(cn, int, 'select count(*) from user')
    """
    destination = check_destination(tp)
    strategy = get_db_strategy(cn)
    statement = expand_in(strategy, sql, args)
    with open_cursor(cn, strategy) as cursor:
        cursor.execute(statement)
        return unmarshal(cursor, destination)
