"""
Write operations.

Batches run inside a single transaction: either every row is written or the
transaction is rolled back and the driver error propagates.
"""
import dataclasses
import logging
from collections.abc import Iterable
from typing import Any

from entitydb.exceptions import ERR_DELETE_ALLOW, ERR_INSERT_ALLOW
from entitydb.exceptions import ERR_UPDATE_ALLOW, ValidationError
from entitydb.fields import FieldMeta, ensure_entity, primary_key
from entitydb.sql import build_delete, build_insert, build_update
from entitydb.strategy import get_db_strategy
from entitydb.transaction import Transaction
from entitydb.types import Receiver

logger = logging.getLogger(__name__)

__all__ = [
    'insert',
    'update',
    'delete',
]


def _check_rows(entity: type, rows: Iterable[Any]) -> list[Any]:
    rows = list(rows)
    for row in rows:
        if not isinstance(row, entity):
            raise ValidationError(f'Expected {entity.__name__} rows, got {type(row).__name__}')
    return rows


def _assign_key(row: Any, pk: FieldMeta, key: Any) -> Any:
    """Write a generated key into row, replacing frozen instances."""
    receiver = Receiver.for_field(pk)
    receiver.scan(key)
    params = getattr(type(row), '__dataclass_params__', None)
    if params is not None and params.frozen:
        return dataclasses.replace(row, **{pk.name: receiver.value})
    setattr(row, pk.name, receiver.value)
    return row


def insert(cn: Any, entity: type, rows: Iterable[Any]) -> list[Any]:
    """Insert rows and fill in their generated primary keys.

    Args:
        cn: ConnectionWrapper or raw DBAPI connection
        entity: Entity dataclass the rows belong to
        rows: Instances of entity

    Returns
        The inserted rows with their keys set. Frozen instances are replaced
        by copies carrying the key. Keys are assigned only after the batch
        commits, so rows of a failed batch are left untouched.
    """
    ensure_entity(entity, ERR_INSERT_ALLOW)
    rows = _check_rows(entity, rows)
    strategy = get_db_strategy(cn)
    pk = primary_key(entity)

    keys = []
    with Transaction(cn) as tx, tx.cursor() as cursor:
        for row in rows:
            cursor.execute(build_insert(strategy, entity, row))
            keys.append(cursor.last_insert_id() if pk is not None else None)

    inserted = [row if key is None else _assign_key(row, pk, key)
                for row, key in zip(rows, keys)]
    logger.debug(f'Inserted {len(inserted)} {entity.__name__} row(s)')
    return inserted


def update(cn: Any, entity: type, rows: Iterable[Any], where: str = '', *args: Any) -> int:
    """Update every writable column of each row.

    Args:
        cn: ConnectionWrapper or raw DBAPI connection
        entity: Entity dataclass the rows belong to
        rows: Instances of entity
        where: Filter fragment, or a complete UPDATE statement used as is.
            Empty filters on the row's primary key and takes no args.
        *args: Parameters of the filter fragment

    Returns
        Total number of affected rows
    """
    ensure_entity(entity, ERR_UPDATE_ALLOW)
    rows = _check_rows(entity, rows)
    strategy = get_db_strategy(cn)

    total = 0
    with Transaction(cn) as tx, tx.cursor() as cursor:
        for row in rows:
            cursor.execute(build_update(strategy, entity, row, where, args))
            total += max(cursor.rowcount, 0)

    logger.debug(f'Updated {total} {entity.__name__} row(s)')
    return total


def delete(cn: Any, entity: type, where: str, *args: Any) -> int:
    """Delete the rows matching a filter fragment.

    Args:
        cn: ConnectionWrapper or raw DBAPI connection
        entity: Entity dataclass naming the table
        where: Filter fragment, or a complete DELETE statement used as is
        *args: Parameters of the fragment

    Returns
        Number of deleted rows
    """
    ensure_entity(entity, ERR_DELETE_ALLOW)
    strategy = get_db_strategy(cn)
    statement = build_delete(strategy, entity, where, args)

    with Transaction(cn) as tx, tx.cursor() as cursor:
        cursor.execute(statement)
        rowcount = max(cursor.rowcount, 0)

    logger.debug(f'Deleted {rowcount} {entity.__name__} row(s)')
    return rowcount
