"""Tests for entity helper utilities."""
import datetime
import decimal
import string
from dataclasses import dataclass

import pytest
from entitydb import TypeConversionError, ValidationError, column
from entitydb.helpers import bind_default, decrypt, encrypt, from_json
from entitydb.helpers import parse_int, random_string, to_json, trim_all
from tests.fixtures.entities import Purchase, Tag, User


@dataclass
class Account:
    id: int = 0
    status: str = column(text_default='active', default='')
    retries: int = column(text_default='3', default=0)
    ratio: float = column(text_default=' 0.5 ', default=0.0)
    enabled: bool = column(text_default='true', default=False)
    note: str = ''


class TestEncrypt:

    def test_known_value(self):
        assert encrypt('ab', 'k') == 'XzIwNF8yMDU='

    @pytest.mark.parametrize('text', ['hello', 'héllo wörld', '', 'a_b_c'],
                             ids=['ascii', 'unicode', 'empty', 'underscores'])
    def test_reversible(self, text):
        assert decrypt(encrypt(text, 'pepper'), 'pepper') == text

    def test_wrong_salt_does_not_reveal_text(self):
        assert decrypt(encrypt('secret', 'one'), 'two') != 'secret'

    @pytest.mark.parametrize('token', ['***', 'bm90IG51bWJlcnM='], ids=['not_base64', 'not_numbers'])
    def test_undecodable_token(self, token):
        assert decrypt(token, 'k') == ''

    def test_empty_salt(self):
        with pytest.raises(ValidationError):
            encrypt('a', '')
        with pytest.raises(ValidationError):
            decrypt('XzIwNF8yMDU=', '')


class TestRandomString:

    @pytest.mark.parametrize('length', [1, 8, 33])
    def test_length_and_alphabet(self, length):
        value = random_string(length)
        assert len(value) == length
        assert set(value) <= set(string.hexdigits)

    def test_non_positive(self):
        assert random_string(0) == ''
        assert random_string(-3) == ''


class TestBindDefault:

    def test_fills_empty_fields(self):
        account = bind_default(Account())
        assert account == Account(status='active', retries=3, ratio=0.5, enabled=True)

    def test_keeps_populated_fields(self):
        account = bind_default(Account(status='locked', retries=5))
        assert account.status == 'locked'
        assert account.retries == 5

    def test_updates_in_place(self):
        account = Account()
        assert bind_default(account) is account
        assert account.status == 'active'

    def test_fields_without_default_untouched(self):
        assert bind_default(Account()).note == ''

    def test_frozen_instance(self):
        @dataclass(frozen=True)
        class Setting:
            value: str = column(text_default='on', default='')

        assert bind_default(Setting()).value == 'on'

    def test_invalid_default_text(self):
        @dataclass
        class Broken:
            count: int = column(text_default='many', default=0)

        with pytest.raises(ValidationError, match='count'):
            bind_default(Broken())

    def test_unsupported_kind(self):
        @dataclass
        class Priced:
            price: decimal.Decimal | None = column(text_default='1.00', default=None)

        with pytest.raises(ValidationError):
            bind_default(Priced())

    def test_requires_instance(self):
        with pytest.raises(ValidationError):
            bind_default(Account)


class TestTrimAll:

    def test_string(self):
        assert trim_all('  a b \n') == 'a b'

    def test_entity_string_fields(self):
        user = trim_all(User(name=' Ann ', email='\tann@x.com '))
        assert user.name == 'Ann'
        assert user.email == 'ann@x.com'

    def test_frozen_entity(self):
        assert trim_all(Tag(id=1, label=' x ')).label == 'x'

    def test_rejects_other_values(self):
        with pytest.raises(ValidationError):
            trim_all(5)


class TestJson:

    def test_to_json_entity(self):
        assert to_json(Tag(id=1, label='x')) == '{"id": 1, "label": "x"}'

    def test_to_json_falls_back_for_unencodable(self):
        looped = []
        looped.append(looped)
        assert to_json(looped) == '[]'
        cyclic = {}
        cyclic['self'] = cyclic
        assert to_json(cyclic) == '{}'

    def test_to_json_stringifies_unknown_types(self):
        assert to_json({'when': datetime.date(2024, 1, 2)}) == '{"when": "2024-01-02"}'

    def test_from_json_by_field_and_column(self):
        user = from_json(User, '{"id": 3, "name": "Ann", "mail": "a@x.com", '
                               '"tags": ["x"], "balance": "1.50", "unknown": 1}')
        assert user == User(id=3, name='Ann', email='a@x.com', tags=['x'],
                            balance=decimal.Decimal('1.50'))

    def test_from_json_field_name_preferred(self):
        user = from_json(User, '{"email": "field@x.com", "mail": "column@x.com"}')
        assert user.email == 'field@x.com'

    def test_from_json_nested_reference(self):
        purchase = from_json(Purchase, '{"id": 9, "amount": "2.5", "user": {"name": "Bob"}}')
        assert purchase.purchase_id == 9
        assert purchase.amount == decimal.Decimal('2.5')
        assert purchase.user.name == 'Bob'

    def test_from_json_plain_types(self):
        assert from_json(int, '5') == 5
        assert from_json(list[int], '[1, 2]') == [1, 2]

    def test_from_json_invalid(self):
        with pytest.raises(ValidationError):
            from_json(User, '{not json')
        with pytest.raises(ValidationError):
            from_json(User, '[1, 2]')

    def test_from_json_bad_field_value(self):
        with pytest.raises(TypeConversionError):
            from_json(User, '{"age": "old"}')


class TestParseInt:

    @pytest.mark.parametrize(('text', 'expected'), [
        ('42', 42),
        (' -7 ', -7),
        ('0010', 10),
        ('abc', 0),
        ('', 0),
        (None, 0),
    ], ids=['plain', 'signed', 'leading_zeros', 'text', 'empty', 'none'])
    def test_parse(self, text, expected):
        assert parse_int(text) == expected

    def test_custom_default(self):
        assert parse_int('x', default=-1) == -1


if __name__ == '__main__':
    __import__('pytest').main([__file__])
