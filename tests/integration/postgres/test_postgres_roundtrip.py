"""
Round trips against PostgreSQL running in a container.

Skipped when no container runtime is available.
"""
import datetime
from decimal import Decimal

import entitydb as db
import pytest
from tests.fixtures.entities import AuditLog, Purchase, Tag, User

pytestmark = pytest.mark.postgres


def test_query_native_types(pg_conn):
    """jsonb, numeric, boolean and timestamp columns map onto their fields"""
    alice = db.query(pg_conn, User, 'select * from users where name = $1', 'Alice')

    assert alice.id == 1
    assert alice.email == 'alice@example.com'
    assert alice.active is True
    assert alice.created_at == datetime.datetime(2024, 1, 2, 3, 4, 5)
    assert alice.tags == ['admin']
    assert alice.profile == {'team': 'red'}
    assert alice.balance == Decimal('100.50')


def test_query_placeholders_out_of_order(pg_conn):
    names = db.query(pg_conn, list[str],
                     'select name from users where age > $2 and active = $1 order by id', True, 26)
    assert names == ['Alice', 'Charlie']


def test_query_in_list_with_residual_placeholder(pg_conn):
    users = db.query(pg_conn, list[User],
                     'select * from users where id in $1 and age < $2 order by id', [1, 2, 3], 31)
    assert [u.name for u in users] == ['Alice', 'Bob']


def test_query_percent_literal(pg_conn):
    names = db.query(pg_conn, list[str], "select name from users where name like 'A%' and age > $1", 20)
    assert names == ['Alice']


def test_query_scalars_and_empty(pg_conn):
    assert db.query(pg_conn, int, 'select count(*) from users') == 3
    assert db.query(pg_conn, float, 'select sum(amount) from purchase where user_id = $1', 1) == 24.99
    assert db.query(pg_conn, User, 'select * from users where id = $1', 42) is None
    assert db.query(pg_conn, list[int], 'select id from users where id = $1', 42) == []


def test_insert_returning_keys(pg_conn, make_users):
    inserted = db.insert(pg_conn, User, make_users('Dana', 'Eve'))
    assert [u.id for u in inserted] == [4, 5]

    eve = db.query(pg_conn, User, 'select * from users where id = $1', 5)
    assert eve.tags == ['eve']
    assert eve.profile == {'n': 1}
    assert eve.balance == Decimal('10.25')
    assert isinstance(eve.created_at, datetime.datetime)


def test_insert_frozen_and_keyless(pg_conn):
    tags = db.insert(pg_conn, Tag, [Tag(label='a'), Tag(label='b')])
    assert tags == [Tag(id=1, label='a'), Tag(id=2, label='b')]

    assert db.insert(pg_conn, AuditLog, [AuditLog('x')]) == [AuditLog('x')]


def test_insert_batch_rolls_back(pg_conn, make_users):
    rows = make_users('Finn', 'Bob')
    with pytest.raises(db.IntegrityError):
        db.insert(pg_conn, User, rows)
    assert rows[0].id == 0

    assert db.query(pg_conn, int, 'select count(*) from users') == 3
    assert pg_conn.in_transaction is False


def test_update_by_primary_key_and_filter(pg_conn):
    bob = db.query(pg_conn, User, 'select * from users where id = $1', 2)
    bob.score = 9.75
    assert db.update(pg_conn, User, [bob]) == 1
    assert db.query(pg_conn, float, 'select score from users where id = $1', 2) == 9.75

    row = Purchase(user_id=3, amount=Decimal('2.00'), placed_on=datetime.date(2024, 9, 1))
    assert db.update(pg_conn, Purchase, [row], 'user_id = $1', 1) == 2
    assert db.query(pg_conn, int, 'select count(*) from purchase where user_id = $1', 3) == 3


def test_delete(pg_conn):
    assert db.delete(pg_conn, Purchase, 'id in $1', [1, 2]) == 2
    assert db.delete(pg_conn, Purchase, 'delete from purchase where user_id = $1', 3) == 1
    assert db.query(pg_conn, int, 'select count(*) from purchase') == 0


if __name__ == '__main__':
    __import__('pytest').main([__file__])
