"""Unit tests for validators."""

import base64
import pytest
from datetime import date
from decimal import Decimal
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from shared.validators import (
    validate_amount,
    validate_quantity,
    validate_date,
    validate_date_range,
    validate_payment_method,
    validate_item_name,
    validate_optional_text,
    validate_required_fields,
    validate_file_extension,
    validate_file_size,
    decode_base64_image,
    parse_model
)
from shared.exceptions import ValidationError
from sales.models import SaleInput
from expenses.models import ExpenseTransactionInput


class TestAmounts:
    """Test cases for amount and quantity validation."""

    @pytest.mark.parametrize('value,expected', [
        (45.67, Decimal('45.67')),
        ('100', Decimal('100')),
        (' 0.01 ', Decimal('0.01')),
        (Decimal('9999999999.99'), Decimal('9999999999.99'))
    ])
    def test_valid_amounts(self, value, expected):
        assert validate_amount(value) == expected

    @pytest.mark.parametrize('value', [0, -5, '-0.01', 'abc', None, '', True, 'NaN', 'Infinity', 1.234])
    def test_invalid_amounts(self, value):
        with pytest.raises(ValidationError) as exc_info:
            validate_amount(value)

        assert exc_info.value.field == 'amount'

    def test_amount_too_large(self):
        with pytest.raises(ValidationError, match="too large"):
            validate_amount('10000000000')

    def test_quantity_allows_three_decimals(self):
        assert validate_quantity('1.125') == Decimal('1.125')

    @pytest.mark.parametrize('value', [0, -1, '0.0001', 'two'])
    def test_invalid_quantity(self, value):
        with pytest.raises(ValidationError):
            validate_quantity(value)

    @pytest.mark.parametrize('value', ['1e200', '10000000', 10 ** 30])
    def test_quantity_too_large(self, value):
        with pytest.raises(ValidationError, match="Unit is too large"):
            validate_quantity(value)

    def test_largest_quantity(self):
        assert validate_quantity('9999999.999') == Decimal('9999999.999')


class TestDates:
    """Test cases for date validation."""

    def test_valid_date(self):
        assert validate_date('2024-02-29') == '2024-02-29'
        assert validate_date(date(2024, 1, 5)) == '2024-01-05'

    @pytest.mark.parametrize('value', ['2023-02-29', '15/01/2024', 'yesterday', None, ''])
    def test_invalid_date(self, value):
        with pytest.raises(ValidationError):
            validate_date(value)

    def test_date_range(self):
        assert validate_date_range('2024-01-01', '2024-01-31') == ('2024-01-01', '2024-01-31')
        assert validate_date_range(None, None) == (None, None)

    def test_reversed_date_range(self):
        with pytest.raises(ValidationError, match="Start date"):
            validate_date_range('2024-02-01', '2024-01-01')


class TestText:
    """Test cases for payment methods and free text."""

    def test_payment_methods(self):
        assert validate_payment_method(' Cash ') == 'Cash'
        assert validate_payment_method('Bank Transfer') == 'Bank Transfer'

    @pytest.mark.parametrize('value', ['', None, 'Bitcoin', 'cash', 5])
    def test_invalid_payment_method(self, value):
        with pytest.raises(ValidationError):
            validate_payment_method(value)

    def test_item_name(self):
        assert validate_item_name('  Flour ') == 'Flour'

        with pytest.raises(ValidationError):
            validate_item_name('   ')
        with pytest.raises(ValidationError):
            validate_item_name('x' * 201)

    def test_optional_text(self):
        assert validate_optional_text('  ', 10, 'note') is None
        assert validate_optional_text(None, 10, 'note') is None

        with pytest.raises(ValidationError):
            validate_optional_text('x' * 11, 10, 'note')

    def test_required_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_required_fields({'a': 1, 'b': None}, ['a', 'b', 'c'])

        assert exc_info.value.errors == {'b': 'Field required', 'c': 'Field required'}


class TestImages:
    """Test cases for image payload validation."""

    def test_file_extension(self):
        assert validate_file_extension('Bill.JPG', ['.jpg', '.png']) == 'jpg'

        with pytest.raises(ValidationError):
            validate_file_extension('bill.pdf', ['.jpg', '.png'])
        with pytest.raises(ValidationError):
            validate_file_extension('bill', ['.jpg'])

    def test_file_size(self):
        assert validate_file_size(1024, 5) == 1024

        with pytest.raises(ValidationError):
            validate_file_size(5 * 1024 * 1024 + 1, 5)

    def test_decode_base64_image(self):
        encoded = base64.b64encode(b'image-bytes').decode()

        assert decode_base64_image(encoded) == b'image-bytes'
        assert decode_base64_image(f'data:image/png;base64,{encoded}') == b'image-bytes'

    def test_decode_rejects_non_image(self):
        with pytest.raises(ValidationError):
            decode_base64_image('data:text/plain;base64,aGVsbG8=')
        with pytest.raises(ValidationError):
            decode_base64_image('not base64!')


class TestParseModel:
    """Test cases for request model parsing."""

    def test_valid_sale(self):
        sale = parse_model(SaleInput, {
            'date': '2024-01-15',
            'amount': '500',
            'payment_type': 'Cash',
            'note': '  ',
            'unknown': 'ignored'
        })

        assert sale.amount == Decimal('500')
        assert sale.note is None

    def test_collects_every_field_error(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_model(SaleInput, {'date': 'nope', 'amount': 0, 'payment_type': 'Cash'})

        errors = exc_info.value.errors
        assert errors['date'] == "Invalid date format. Use YYYY-MM-DD"
        assert errors['amount'] == "Amount must be greater than 0"
        assert exc_info.value.status_code == 400

    def test_missing_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_model(SaleInput, {})

        assert set(exc_info.value.errors) == {'date', 'amount', 'payment_type'}

    def test_nested_item_errors(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_model(ExpenseTransactionInput, {
                'date': '2024-01-15',
                'payment_mode': 'Card',
                'items': [
                    {'item_name': 'Flour', 'unit': 1, 'price_per_unit': 10},
                    {'item_name': 'Sugar', 'unit': -1, 'price_per_unit': 10}
                ]
            })

        assert 'items.1.unit' in exc_info.value.errors

    def test_line_total_too_large(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_model(ExpenseTransactionInput, {
                'date': '2024-01-15',
                'payment_mode': 'Card',
                'items': [{'item_name': 'Gold', 'unit': 2, 'price_per_unit': '9999999999.99'}]
            })

        assert exc_info.value.errors == {'items.0': 'Line total is too large'}

    def test_grand_total_too_large(self):
        item = {'item_name': 'Gold', 'unit': 1, 'price_per_unit': '9999999999.99'}

        with pytest.raises(ValidationError) as exc_info:
            parse_model(ExpenseTransactionInput, {
                'date': '2024-01-15',
                'payment_mode': 'Card',
                'items': [item, dict(item)]
            })

        assert exc_info.value.errors == {'items': 'Grand total is too large'}

    def test_largest_grand_total(self):
        expense = parse_model(ExpenseTransactionInput, {
            'date': '2024-01-15',
            'payment_mode': 'Card',
            'items': [
                {'item_name': 'Gold', 'unit': 1, 'price_per_unit': '9999999999.98'},
                {'item_name': 'Bag', 'unit': 1, 'price_per_unit': '0.01'}
            ]
        })

        assert len(expense.items) == 2

    def test_expense_needs_items(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_model(ExpenseTransactionInput, {
                'date': '2024-01-15',
                'payment_mode': 'Card',
                'items': []
            })

        assert 'items' in exc_info.value.errors

    def test_body_must_be_object(self):
        with pytest.raises(ValidationError):
            parse_model(SaleInput, ['not', 'a', 'dict'])


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
