"""Report generation over a user's sales and expenses."""

import calendar
import csv
from datetime import date, datetime, timedelta
from io import StringIO
from typing import Dict, Any, List, Optional, Tuple
import logging

from shared.config import get_int_setting
from shared.validators import validate_date_range
from shared.exceptions import ValidationError
from sales.service import SaleService
from expenses.service import ExpenseService
from reports.aggregation import (
    bucket_by_day,
    expense_amount,
    group_by_category,
    group_by_month,
    record_date,
    sale_amount,
    summarize
)

logger = logging.getLogger(__name__)

TRANSACTION_TYPES = ('all', 'sale', 'expense')


def month_bounds(year: int, month: int) -> Tuple[str, str]:
    """First and last day of a month as ISO strings."""
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", field='month')
    if not 1 <= year <= 9999:
        raise ValidationError("Invalid year", field='year')

    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1).isoformat(), date(year, month, last_day).isoformat()


class ReportGenerator:
    """
    Builds dashboard and report figures.

    Rows are fetched once per report and every figure is computed from that
    same set. Repository errors propagate; nothing is aggregated from a
    partial fetch.
    """

    def __init__(self):
        """Initialize report generator."""
        self.sale_service = SaleService()
        self.expense_service = ExpenseService()

    def _fetch(
        self,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        sales = self.sale_service.list_all_sales(user_id, start_date, end_date)
        expenses = self.expense_service.list_all_transactions(user_id, start_date, end_date)
        return sales, expenses

    def generate_dashboard(
        self,
        user_id: str,
        reference_date: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Dashboard figures over the user's whole history.

        Args:
            user_id: User ID
            reference_date: Last day of the chart window (default: today, UTC)

        Returns:
            Totals, profit, cash/bank reconciliation, sales by category,
            monthly series and the daily chart
        """
        reference_date = reference_date or datetime.utcnow().date()
        window_days = get_int_setting('DASHBOARD_WINDOW_DAYS')

        sales, expenses = self._fetch(user_id)
        summary = summarize(sales, expenses)

        logger.info(
            f"Dashboard for user {user_id}: {summary['sale_count']} sales, "
            f"{summary['expense_count']} expenses"
        )

        return {
            'summary': summary,
            'sales_by_category': [
                {'category': category, 'amount': amount}
                for category, amount in group_by_category(sales).items()
            ],
            'by_month': {
                'sales': group_by_month(sales, sale_amount),
                'expenses': group_by_month(expenses, expense_amount)
            },
            'daily': bucket_by_day(sales, expenses, window_days, reference_date),
            'generated_at': datetime.utcnow().isoformat()
        }

    def generate_daily_chart(
        self,
        user_id: str,
        window_days: Optional[int] = None,
        reference_date: Optional[date] = None
    ) -> List[Dict[str, Any]]:
        """Sales and expenses per day for the trailing window."""
        reference_date = reference_date or datetime.utcnow().date()
        if window_days is None:
            window_days = get_int_setting('DASHBOARD_WINDOW_DAYS')
        if window_days < 1 or window_days > 366:
            raise ValidationError("Window must be between 1 and 366 days", field='days')

        start_date = (reference_date - timedelta(days=window_days - 1)).isoformat()
        sales, expenses = self._fetch(user_id, start_date, reference_date.isoformat())

        return bucket_by_day(sales, expenses, window_days, reference_date)

    def generate_monthly_report(self, user_id: str, year: int, month: int) -> Dict[str, Any]:
        """
        Cash/bank breakdown of one month.

        Args:
            user_id: User ID
            year: Calendar year
            month: Month number (1-12)

        Returns:
            Totals split by payment method, cash in hand and bank balance
        """
        start_date, end_date = month_bounds(year, month)
        sales, expenses = self._fetch(user_id, start_date, end_date)

        return {
            'year': year,
            'month': month,
            'start_date': start_date,
            'end_date': end_date,
            **summarize(sales, expenses)
        }

    def list_transactions(
        self,
        user_id: str,
        year: int,
        month: int,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        search: Optional[str] = None,
        transaction_type: str = 'all'
    ) -> List[Dict[str, Any]]:
        """
        Sales and expenses of a month as one table, newest first.

        The optional date range narrows the month. The search term matches
        sale notes, expense notes and expense item names, case-insensitively.
        """
        if transaction_type not in TRANSACTION_TYPES:
            raise ValidationError(
                f"Invalid type. Must be one of: {', '.join(TRANSACTION_TYPES)}",
                field='type'
            )

        month_start, month_end = month_bounds(year, month)
        start_date, end_date = validate_date_range(start_date, end_date)
        start_date = max(month_start, start_date or month_start)
        end_date = min(month_end, end_date or month_end)

        if start_date > end_date:
            return []

        term = (search or '').strip().lower()
        rows = []

        if transaction_type in ('all', 'sale'):
            sales = self.sale_service.list_all_sales(user_id, start_date, end_date)
            rows.extend(
                {**sale, 'type': 'sale'}
                for sale in sales
                if not term or term in (sale.get('note') or '').lower()
            )

        if transaction_type in ('all', 'expense'):
            expenses = self.expense_service.list_all_transactions(user_id, start_date, end_date)
            rows.extend(
                {**expense, 'type': 'expense', 'amount': expense['grand_total']}
                for expense in expenses
                if not term or self._expense_matches(expense, term)
            )

        rows.sort(key=lambda row: (row.get('date', ''), row.get('created_at', '')), reverse=True)
        return rows

    def export_to_csv(self, user_id: str, start_date: str, end_date: str) -> str:
        """
        Export sales and expenses to CSV format.

        Args:
            user_id: User ID
            start_date: Start date (YYYY-MM-DD)
            end_date: End date (YYYY-MM-DD)

        Returns:
            CSV content as string
        """
        start_date, end_date = validate_date_range(start_date, end_date)
        sales, expenses = self._fetch(user_id, start_date, end_date)

        rows = [
            (
                sale.get('date', ''),
                'Sale',
                sale.get('payment_type', ''),
                f"{sale_amount(sale):.2f}",
                sale.get('category', ''),
                '',
                sale.get('note', '')
            )
            for sale in sales
        ] + [
            (
                expense.get('date', ''),
                'Expense',
                expense.get('payment_mode', ''),
                f"{expense_amount(expense):.2f}",
                '',
                '; '.join(
                    f"{item['item_name']} x{item['unit']}" for item in expense.get('items', [])
                ),
                expense.get('note', '')
            )
            for expense in expenses
        ]

        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(['Date', 'Type', 'Payment Method', 'Amount', 'Category', 'Items', 'Note'])
        writer.writerows(sorted(rows, key=lambda row: row[0]))

        csv_content = output.getvalue()
        output.close()

        return csv_content

    @staticmethod
    def _expense_matches(expense: Dict[str, Any], term: str) -> bool:
        if term in (expense.get('note') or '').lower():
            return True
        return any(term in item.get('item_name', '').lower() for item in expense.get('items', []))


def parse_reference_date(value: Optional[str]) -> Optional[date]:
    """Parse an optional YYYY-MM-DD query value."""
    if not value:
        return None
    parsed = record_date({'date': value})
    if parsed is None:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD", field='date')
    return parsed
