"""
Aggregation of sale and expense records into dashboard and report figures.

All functions are pure folds over records that were already fetched for a
single owner (and usually a date range). Records are plain dicts shaped like
the DynamoDB rows. Money is summed as Decimal so partitions reconcile exactly.
Empty input always yields zero or empty results.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from shared.validators import CASH_PAYMENT_METHOD

ZERO = Decimal('0')

Record = Mapping[str, Any]


def to_decimal(value: Any) -> Decimal:
    """Convert a stored numeric value to Decimal; missing values count as 0."""
    if value is None or value == '':
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so 45.67 stays 45.67 instead of its binary expansion
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return ZERO


def recompute_line_total(unit: Any, price_per_unit: Any) -> Decimal:
    """Line total of an expense item: unit x price per unit."""
    return to_decimal(unit) * to_decimal(price_per_unit)


def recompute_grand_total(items: Iterable[Record]) -> Decimal:
    """Sum of line totals, always re-derived from unit and price."""
    return sum(
        (recompute_line_total(item.get('unit'), item.get('price_per_unit')) for item in items),
        ZERO
    )


def sync_line_totals(items: Iterable[Record]) -> List[Dict[str, Any]]:
    """Return copies of items with ``total`` recomputed from unit and price."""
    return [
        {**item, 'total': recompute_line_total(item.get('unit'), item.get('price_per_unit'))}
        for item in items
    ]


def sale_amount(sale: Record) -> Decimal:
    return to_decimal(sale.get('amount'))


def expense_amount(expense: Record) -> Decimal:
    """
    Amount of an expense transaction.

    Recomputed from its items when they are loaded; the stored grand_total
    is used only when no items are available.
    """
    items = expense.get('items')
    if items:
        return recompute_grand_total(items)
    return to_decimal(expense.get('grand_total'))


def record_amount(record: Record) -> Decimal:
    """Amount of a sale or an expense transaction, told apart by shape."""
    if 'items' in record or 'grand_total' in record:
        return expense_amount(record)
    return sale_amount(record)


def total_amount(
    records: Iterable[Record],
    amount: Callable[[Record], Decimal] = record_amount
) -> Decimal:
    """Sum the monetary field selected by ``amount`` over records."""
    return sum((amount(record) for record in records), ZERO)


def total_sales(sales: Iterable[Record]) -> Decimal:
    return total_amount(sales, sale_amount)


def total_expenses(expenses: Iterable[Record]) -> Decimal:
    return total_amount(expenses, expense_amount)


def profit(sales: Iterable[Record], expenses: Iterable[Record]) -> Decimal:
    """Total sales minus total expenses. Not clamped; may be negative."""
    return total_sales(sales) - total_expenses(expenses)


def is_cash(payment_method: Optional[str]) -> bool:
    return payment_method == CASH_PAYMENT_METHOD


def payment_split(
    records: Iterable[Record],
    method_field: str,
    amount: Callable[[Record], Decimal]
) -> Dict[str, Decimal]:
    """
    Partition record amounts into the cash and bank buckets.

    Only the exact value "Cash" is cash; every other method, including a
    missing one, is pooled into bank.
    """
    split = {'cash': ZERO, 'bank': ZERO}
    for record in records:
        bucket = 'cash' if is_cash(record.get(method_field)) else 'bank'
        split[bucket] += amount(record)
    return split


def reconcile_by_payment_method(
    sales: Iterable[Record],
    expenses: Iterable[Record]
) -> Dict[str, Decimal]:
    """Cash in hand and bank balance; together they always equal profit."""
    sales_split = payment_split(sales, 'payment_type', sale_amount)
    expenses_split = payment_split(expenses, 'payment_mode', expense_amount)

    return {
        'cash_in_hand': sales_split['cash'] - expenses_split['cash'],
        'bank_balance': sales_split['bank'] - expenses_split['bank']
    }


def group_by_category(sales: Iterable[Record]) -> Dict[str, Decimal]:
    """
    Sum sale amounts per category, in first-seen order.

    Sales without a category are left out.
    """
    totals: Dict[str, Decimal] = {}
    for sale in sales:
        category = sale.get('category')
        if not category:
            continue
        totals[category] = totals.get(category, ZERO) + sale_amount(sale)
    return totals


def record_date(record: Record) -> Optional[date]:
    """Calendar date of a record, or None when it has no parseable date."""
    value = record.get('date')
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def group_by_month(
    records: Iterable[Record],
    amount: Callable[[Record], Decimal] = record_amount
) -> Dict[str, Decimal]:
    """Sum amounts per YYYY-MM, ordered by month."""
    by_month = defaultdict(lambda: ZERO)
    for record in records:
        day = record_date(record)
        if day:
            by_month[day.strftime('%Y-%m')] += amount(record)
    return dict(sorted(by_month.items()))


def bucket_by_day(
    sales: Iterable[Record],
    expenses: Iterable[Record],
    window_days: int,
    reference_date: date
) -> List[Dict[str, Any]]:
    """
    Daily sales and expense totals for the window ending on reference_date.

    Every day in the window is present, oldest first, with zero totals when
    nothing happened that day. Records outside the window are ignored.
    """
    if isinstance(reference_date, datetime):
        reference_date = reference_date.date()
    if window_days < 1:
        return []

    buckets = {}
    for offset in range(window_days - 1, -1, -1):
        day = reference_date - timedelta(days=offset)
        buckets[day] = {'date': day, 'sales_total': ZERO, 'expenses_total': ZERO}

    for sale in sales:
        bucket = buckets.get(record_date(sale))
        if bucket:
            bucket['sales_total'] += sale_amount(sale)

    for expense in expenses:
        bucket = buckets.get(record_date(expense))
        if bucket:
            bucket['expenses_total'] += expense_amount(expense)

    return list(buckets.values())


def summarize(sales: List[Record], expenses: List[Record]) -> Dict[str, Any]:
    """
    Headline figures for one filtered set of sales and expenses.

    Every figure is derived from the same rows, so they stay consistent with
    each other.
    """
    sales_split = payment_split(sales, 'payment_type', sale_amount)
    expenses_split = payment_split(expenses, 'payment_mode', expense_amount)
    sales_total = sales_split['cash'] + sales_split['bank']
    expenses_total = expenses_split['cash'] + expenses_split['bank']

    return {
        'total_sales': sales_total,
        'total_expenses': expenses_total,
        'profit': sales_total - expenses_total,
        'cash_sales': sales_split['cash'],
        'bank_sales': sales_split['bank'],
        'cash_expenses': expenses_split['cash'],
        'bank_expenses': expenses_split['bank'],
        'cash_in_hand': sales_split['cash'] - expenses_split['cash'],
        'bank_balance': sales_split['bank'] - expenses_split['bank'],
        'sale_count': len(sales),
        'expense_count': len(expenses)
    }
