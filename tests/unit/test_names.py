"""Tests for column and table name resolution."""
from dataclasses import dataclass, fields

import pytest
from entitydb import column
from entitydb.names import column_name, table_name, to_snake


class TestToSnake:

    @pytest.mark.parametrize(('identifier', 'expected'), [
        ('UserName', 'user_name'),
        ('userName', 'user_name'),
        ('user', 'user'),
        ('User', 'user'),
        ('UserID', 'user_id'),
        ('HTTPServer', 'http_server'),
        ('Address2Line', 'address2_line'),
        ('already_snake', 'already_snake'),
        ('', ''),
    ], ids=[
        'pascal', 'camel', 'lower', 'single_word', 'trailing_acronym',
        'leading_acronym', 'digit_boundary', 'snake_unchanged', 'empty'
    ])
    def test_conversion(self, identifier, expected):
        assert to_snake(identifier) == expected

    def test_idempotent(self):
        assert to_snake(to_snake('AccountOwnerID')) == to_snake('AccountOwnerID')


@dataclass
class Account:
    account_id: int = column('id', default=0)
    ownerName: str = ''
    balance: float = 0.0


class TestColumnName:

    def test_explicit_column_wins(self):
        by_name = {f.name: f for f in fields(Account)}
        assert column_name(by_name['account_id']) == 'id'

    def test_snake_cased_field_name(self):
        by_name = {f.name: f for f in fields(Account)}
        assert column_name(by_name['ownerName']) == 'owner_name'
        assert column_name(by_name['balance']) == 'balance'


@dataclass
class UserProfile:
    id: int = 0


@dataclass
class Named:
    id: int = 0

    @classmethod
    def table_name(cls):
        return 'custom_named'


@dataclass
class StaticNamed:
    id: int = 0

    @staticmethod
    def table_name():
        return 'static_named'


@dataclass
class InstanceNamed:
    id: int = 0

    def table_name(self):
        return 'instance_named'


@dataclass
class BlankNamed:
    id: int = 0

    @classmethod
    def table_name(cls):
        return ''


class TestTableName:

    @pytest.mark.parametrize(('entity', 'expected'), [
        (UserProfile, 'user_profile'),
        (Named, 'custom_named'),
        (StaticNamed, 'static_named'),
        (InstanceNamed, 'instance_named'),
        (BlankNamed, 'blank_named'),
    ], ids=['snake_class_name', 'classmethod', 'staticmethod', 'plain_method', 'blank_falls_back'])
    def test_class(self, entity, expected):
        assert table_name(entity) == expected

    def test_instance(self):
        assert table_name(UserProfile()) == 'user_profile'
        assert table_name(InstanceNamed(id=5)) == 'instance_named'


if __name__ == '__main__':
    __import__('pytest').main([__file__])
