"""Unit tests for the aggregation functions."""

import pytest
import random
from datetime import date, timedelta
from decimal import Decimal
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from reports.aggregation import (
    bucket_by_day,
    expense_amount,
    group_by_category,
    group_by_month,
    profit,
    recompute_grand_total,
    recompute_line_total,
    reconcile_by_payment_method,
    summarize,
    sync_line_totals,
    to_decimal,
    total_amount,
    total_expenses,
    total_sales
)


@pytest.fixture
def sales():
    """Sales across every payment method."""
    return [
        {'amount': 500, 'payment_type': 'Cash', 'category': 'Retail', 'date': '2024-03-01'},
        {'amount': 1000, 'payment_type': 'Gpay', 'category': 'Online', 'date': '2024-03-02'},
        {'amount': 45.67, 'payment_type': 'Card', 'category': 'Retail', 'date': '2024-03-02'},
        {'amount': 12.10, 'payment_type': 'Bank Transfer', 'date': '2024-04-10'},
        {'amount': 0.1, 'payment_type': 'Cheque', 'category': '', 'date': '2024-04-11'},
        {'amount': 0.2, 'payment_type': 'Other', 'category': None, 'date': '2024-04-11'}
    ]


@pytest.fixture
def expenses():
    """Expenses, some with loaded items."""
    return [
        {'grand_total': 200, 'payment_mode': 'Cash', 'date': '2024-03-01'},
        {
            'grand_total': 175,
            'payment_mode': 'Card',
            'date': '2024-03-02',
            'items': [
                {'unit': 3, 'price_per_unit': 50},
                {'unit': 1, 'price_per_unit': 25}
            ]
        },
        {'grand_total': 33.33, 'payment_mode': 'Gpay', 'date': '2024-04-11'}
    ]


class TestScenarios:
    """Reference figures for small data sets."""

    def test_cash_sale_and_cash_expense(self):
        sales = [{'amount': 500, 'payment_type': 'Cash'}]
        expenses = [{'grand_total': 200, 'payment_mode': 'Cash'}]

        assert total_sales(sales) == 500
        assert total_expenses(expenses) == 200
        assert profit(sales, expenses) == 300
        assert reconcile_by_payment_method(sales, expenses) == {
            'cash_in_hand': 300,
            'bank_balance': 0
        }

    def test_non_cash_sale_goes_to_bank(self):
        sales = [{'amount': 1000, 'payment_type': 'Gpay'}]

        result = reconcile_by_payment_method(sales, [])

        assert result['bank_balance'] == 1000
        assert result['cash_in_hand'] == 0
        assert profit(sales, []) == 1000

    def test_line_and_grand_totals(self):
        items = [
            {'unit': 3, 'price_per_unit': 50},
            {'unit': 1, 'price_per_unit': 25}
        ]

        assert recompute_line_total(3, 50) == 150
        assert recompute_line_total(1, 25) == 25
        assert recompute_grand_total(items) == 175

    def test_empty_window_has_zero_buckets(self):
        day0 = date(2024, 3, 10)

        buckets = bucket_by_day([], [], 7, day0)

        assert len(buckets) == 7
        assert [bucket['date'] for bucket in buckets] == [
            day0 - timedelta(days=offset) for offset in range(6, -1, -1)
        ]
        for bucket in buckets:
            assert bucket['sales_total'] == 0
            assert bucket['expenses_total'] == 0

    def test_group_by_category_sums(self):
        sales = [
            {'amount': 100, 'category': 'A'},
            {'amount': 50, 'category': 'B'},
            {'amount': 25, 'category': 'A'}
        ]

        assert group_by_category(sales) == {'A': 125, 'B': 50}


class TestTotals:
    """Test cases for totals and profit."""

    def test_empty_input_is_zero(self):
        assert total_amount([]) == 0
        assert profit([], []) == 0
        assert reconcile_by_payment_method([], []) == {'cash_in_hand': 0, 'bank_balance': 0}

    def test_order_independent(self, sales):
        shuffled = list(sales)
        random.Random(7).shuffle(shuffled)

        assert total_amount(shuffled) == total_amount(sales)

    def test_default_amount_follows_record_shape(self, sales, expenses):
        assert total_amount(expenses) == total_expenses(expenses) == Decimal('408.33')
        assert total_amount(sales) == total_sales(sales)

    def test_sums_exactly(self):
        sales = [{'amount': 0.1}, {'amount': 0.2}]

        assert total_sales(sales) == Decimal('0.3')

    def test_profit_may_be_negative(self):
        result = profit([{'amount': 10}], [{'grand_total': 25.5}])

        assert result == Decimal('-15.5')

    def test_partition_reconciles_to_profit(self, sales, expenses):
        result = reconcile_by_payment_method(sales, expenses)

        assert result['cash_in_hand'] + result['bank_balance'] == profit(sales, expenses)

    def test_missing_payment_method_counts_as_bank(self):
        result = reconcile_by_payment_method([{'amount': 40}], [{'grand_total': 15}])

        assert result == {'cash_in_hand': 0, 'bank_balance': 25}

    def test_cash_match_is_exact(self):
        result = reconcile_by_payment_method([{'amount': 40, 'payment_type': 'cash'}], [])

        assert result['cash_in_hand'] == 0
        assert result['bank_balance'] == 40

    def test_expense_amount_prefers_items(self):
        expense = {
            'grand_total': 999,
            'items': [{'unit': 2, 'price_per_unit': 12.5}]
        }

        assert expense_amount(expense) == 25

    def test_expense_amount_without_items_uses_grand_total(self):
        assert expense_amount({'grand_total': 80.25, 'items': []}) == Decimal('80.25')

    def test_to_decimal_keeps_float_digits(self):
        assert to_decimal(45.67) == Decimal('45.67')
        assert to_decimal(None) == 0


class TestDerivedTotals:
    """Test cases for line and grand totals."""

    def test_changing_one_input_recomputes_line(self):
        assert recompute_line_total(Decimal('2.5'), 4) == 10
        assert recompute_line_total(Decimal('2.5'), 6) == 15

    def test_grand_total_matches_sum_of_lines(self):
        items = [
            {'unit': Decimal('0.333'), 'price_per_unit': Decimal('3.00')},
            {'unit': 7, 'price_per_unit': Decimal('19.99')}
        ]

        expected = sum(
            (recompute_line_total(item['unit'], item['price_per_unit']) for item in items),
            Decimal('0')
        )
        assert recompute_grand_total(items) == expected
        assert recompute_grand_total([]) == 0

    def test_sync_line_totals_replaces_stale_total(self):
        items = [{'item_name': 'Flour', 'unit': 3, 'price_per_unit': 50, 'total': 1}]

        synced = sync_line_totals(items)

        assert synced[0]['total'] == 150
        assert synced[0]['item_name'] == 'Flour'
        assert items[0]['total'] == 1


class TestGrouping:
    """Test cases for category, month and day grouping."""

    def test_uncategorised_sales_are_left_out(self, sales):
        result = group_by_category(sales)

        assert set(result) == {'Retail', 'Online'}
        assert result['Retail'] == Decimal('545.67')

    def test_group_by_month_is_ordered(self, sales):
        result = group_by_month(sales)

        assert list(result) == ['2024-03', '2024-04']
        assert result['2024-04'] == Decimal('12.4')

    def test_group_by_month_expenses(self, expenses):
        result = group_by_month(expenses, expense_amount)

        assert result == {'2024-03': 375, '2024-04': Decimal('33.33')}
        assert group_by_month(expenses) == result

    def test_bucket_by_day_folds_records(self, sales, expenses):
        buckets = bucket_by_day(sales, expenses, 3, date(2024, 3, 2))

        assert [bucket['date'] for bucket in buckets] == [
            date(2024, 2, 29), date(2024, 3, 1), date(2024, 3, 2)
        ]
        assert buckets[0]['sales_total'] == 0
        assert buckets[1]['sales_total'] == 500
        assert buckets[1]['expenses_total'] == 200
        assert buckets[2]['sales_total'] == Decimal('1045.67')
        assert buckets[2]['expenses_total'] == 175

    def test_bucket_by_day_ignores_records_outside_window(self):
        sales = [
            {'amount': 10, 'date': '2024-01-01'},
            {'amount': 10, 'date': '2024-02-01'},
            {'amount': 10, 'date': 'not a date'}
        ]

        buckets = bucket_by_day(sales, [], 1, date(2024, 1, 15))

        assert len(buckets) == 1
        assert buckets[0]['sales_total'] == 0

    def test_bucket_by_day_count_is_window(self):
        for window_days in (1, 7, 30, 366):
            buckets = bucket_by_day([], [], window_days, date(2024, 12, 31))

            assert len(buckets) == window_days
            days = [bucket['date'] for bucket in buckets]
            assert days[-1] == date(2024, 12, 31)
            assert all(b - a == timedelta(days=1) for a, b in zip(days, days[1:]))

    def test_bucket_by_day_empty_window(self):
        assert bucket_by_day([{'amount': 5, 'date': '2024-01-01'}], [], 0, date(2024, 1, 1)) == []


class TestSummarize:
    """Test cases for summarize."""

    def test_summary_is_consistent(self, sales, expenses):
        summary = summarize(sales, expenses)

        assert summary['total_sales'] == summary['cash_sales'] + summary['bank_sales']
        assert summary['total_expenses'] == summary['cash_expenses'] + summary['bank_expenses']
        assert summary['profit'] == summary['cash_in_hand'] + summary['bank_balance']
        assert summary['profit'] == profit(sales, expenses)
        assert summary['sale_count'] == 6
        assert summary['expense_count'] == 3

    def test_empty_summary(self):
        summary = summarize([], [])

        assert summary['profit'] == 0
        assert summary['sale_count'] == 0


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
