"""
Unit tests for money and quantity parsing.
"""

import pytest
from decimal import Decimal

from posledger.utils.number_format import parse_money, parse_quantity, parse_whole, to_money


class TestParseMoney:

    @pytest.mark.parametrize('value, expected', [
        ('12.50', Decimal('12.50')),
        ('12,5', Decimal('12.50')),
        (3, Decimal('3.00')),
        (0.1, Decimal('0.10')),
        ('0', Decimal('0.00')),
    ])
    def test_valid_amounts(self, value, expected):
        assert parse_money(value) == expected

    @pytest.mark.parametrize('value', [None, '', 'abc', True, '-1', 'NaN', 'Infinity', '1.234'])
    def test_invalid_amounts(self, value):
        with pytest.raises(ValueError):
            parse_money(value)

    def test_zero_rejected_when_not_allowed(self):
        with pytest.raises(ValueError, match='mayor a 0'):
            parse_money('0', allow_zero=False)


class TestParseQuantity:

    def test_whole_numbers(self):
        assert parse_quantity(4) == 4
        assert parse_quantity('4') == 4
        assert parse_quantity(4.0) == 4

    @pytest.mark.parametrize('value', [0, -1, 1.5, '2.5', 'x', None, False])
    def test_rejected(self, value):
        with pytest.raises(ValueError):
            parse_quantity(value)

    def test_zero_allowed_for_stock(self):
        assert parse_whole(0, allow_zero=True) == 0


def test_to_money_rounds_half_up():
    assert to_money(Decimal('0.125')) == Decimal('0.13')
    assert to_money(3) == Decimal('3.00')
