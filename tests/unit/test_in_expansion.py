"""Tests for inlining sequence arguments as IN lists.

Sequence arguments are removed from the positional arguments and rendered
into the statement; everything else stays bound.
"""
import datetime

import pytest
from entitydb import TypeConversionError
from entitydb.sql import Statement, expand_in
from entitydb.strategy import get_strategy


@pytest.fixture
def pg():
    return get_strategy('postgresql')


@pytest.fixture
def lite():
    return get_strategy('sqlite')


class TestNumberedPlaceholders:

    def test_single_list(self, pg):
        result = expand_in(pg, 'SELECT * FROM user WHERE id IN $1', [[1, 2, 3]])
        assert result == Statement('SELECT * FROM user WHERE id IN (1,2,3)', ())

    @pytest.mark.parametrize(('sql', 'args'), [
        ('id IN $1 AND name = $2', [[1, 2], 'x']),
        ('id IN $2 AND name = $1', ['x', [1, 2]]),
        ('id IN $1 AND name = $2', ((1, 2), 'x')),
    ], ids=['list_first', 'list_second', 'tuple'])
    def test_residual_renumbered(self, pg, sql, args):
        assert expand_in(pg, sql, args) == Statement('id IN (1,2) AND name = $1', ('x',))

    def test_multiple_lists_left_to_right(self, pg):
        result = expand_in(pg, 'a IN $1 AND b IN $2 AND c = $3', [[1], ['x', 'y'], 9])
        assert result == Statement("a IN (1) AND b IN ('x','y') AND c = $1", (9,))

    def test_case_insensitive_keyword(self, pg):
        result = expand_in(pg, 'select 1 where id in $1', [[4, 5]])
        assert result.sql == 'select 1 where id IN (4,5)'

    def test_no_sequences_untouched(self, pg):
        sql = 'SELECT * FROM user WHERE id = $1 AND name = $2'
        assert expand_in(pg, sql, [1, 'a']) == Statement(sql, (1, 'a'))

    def test_strings_are_not_sequences(self, pg):
        result = expand_in(pg, 'name = $1', ['abc'])
        assert result == Statement('name = $1', ('abc',))


class TestPositionalPlaceholders:

    def test_single_list(self, lite):
        result = expand_in(lite, 'SELECT * FROM user WHERE id IN ?', [[1, 2, 3]])
        assert result == Statement('SELECT * FROM user WHERE id IN (1,2,3)', ())

    def test_residual_order_kept(self, lite):
        result = expand_in(lite, 'name = ? AND id IN ? AND age > ?', ['a', [1, 2], 30])
        assert result == Statement('name = ? AND id IN (1,2) AND age > ?', ('a', 30))

    def test_strings_quoted(self, lite):
        result = expand_in(lite, 'name IN ?', [["O'Brien", 'Ann']])
        assert result.sql == "name IN ('O''Brien','Ann')"


class TestExhaustedLists:

    def test_bare_keyword_left_when_lists_run_out(self, pg):
        result = expand_in(pg, 'a IN $1 AND b IN $2', [[1, 2]])
        assert result.sql == 'a IN (1,2) AND b IN '

    def test_bare_keyword_without_sequence_args(self, lite):
        result = expand_in(lite, 'id IN ?', [5])
        assert result == Statement('id IN ', (5,))

    def test_empty_sequence_contributes_nothing(self, lite):
        result = expand_in(lite, 'id IN ?', [[]])
        assert result == Statement('id IN ', ())


class TestListElements:

    def test_numbers_bare_and_dates_quoted(self, lite):
        result = expand_in(lite, 'x IN ?', [[1, 2.5, datetime.date(2024, 1, 2)]])
        assert result.sql == "x IN (1,2.5,'2024-01-02')"

    def test_sets_expand(self, lite):
        result = expand_in(lite, 'x IN ?', [{7}])
        assert result.sql == 'x IN (7)'

    @pytest.mark.parametrize('element', [None, object(), [1]], ids=['none', 'object', 'nested'])
    def test_unsupported_element(self, lite, element):
        with pytest.raises(TypeConversionError):
            expand_in(lite, 'x IN ?', [[element]])


if __name__ == '__main__':
    __import__('pytest').main([__file__])
