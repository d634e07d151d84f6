"""JSON export and import of a user's complete data set."""

import uuid
from collections import defaultdict
from datetime import datetime
from typing import Dict, Any, Optional, Set, Type
import logging

from pydantic import BaseModel

from shared.validators import parse_model
from shared.exceptions import ValidationError
from sales.models import SaleInput
from sales.service import SaleService
from expenses.models import ExpenseTransactionInput
from expenses.service import ExpenseService

logger = logging.getLogger(__name__)

SECTIONS = ('sales', 'expenseTransactions', 'expenseItems')


class DataTransferService:
    """
    Moves a user's sales and expenses in and out as one JSON document.

    The document has three lists: sales, expenseTransactions and
    expenseItems. Items point at their transaction through transaction_id.
    """

    def __init__(self):
        """Initialize data transfer service."""
        self.sale_service = SaleService()
        self.expense_service = ExpenseService()

    def export_data(self, user_id: str) -> Dict[str, Any]:
        """
        Export every sale and expense of a user.

        Returns:
            Dictionary with sales, expenseTransactions, expenseItems and exportDate
        """
        sales = self.sale_service.list_all_sales(user_id)
        transactions = self.expense_service.list_all_transactions(user_id)

        expense_items = []
        expense_transactions = []
        for transaction in transactions:
            expense_items.extend(transaction['items'])
            expense_transactions.append(
                {key: value for key, value in transaction.items() if key != 'items'}
            )

        logger.info(
            f"Exported {len(sales)} sales and {len(expense_transactions)} expenses "
            f"for user {user_id}"
        )

        return {
            'sales': sales,
            'expenseTransactions': expense_transactions,
            'expenseItems': expense_items,
            'exportDate': datetime.utcnow().isoformat()
        }

    def import_data(self, user_id: str, data: Dict[str, Any]) -> Dict[str, int]:
        """
        Import a previously exported document into a user's account.

        Every row is re-owned by user_id, validated and has its totals
        recomputed. Nothing is written unless the whole document is valid.
        Rows that carry an id keep it, so importing the same file twice
        overwrites instead of duplicating.

        Args:
            user_id: Importing user ID
            data: Document with sales, expenseTransactions and expenseItems lists

        Returns:
            Counts of imported sales, transactions and items

        Raises:
            ValidationError: With every failing row listed in ``errors``
            DatabaseError: If writing fails
        """
        if not isinstance(data, dict):
            raise ValidationError("Import data must be a JSON object")

        sections = {}
        for name in SECTIONS:
            rows = data.get(name) or []
            if not isinstance(rows, list):
                raise ValidationError(f"{name} must be a list", field=name)
            sections[name] = rows

        errors: Dict[str, str] = {}
        now = datetime.utcnow().isoformat()

        sale_records = []
        sale_ids = set()
        for index, raw in enumerate(sections['sales']):
            sale_input = self._validate(SaleInput, raw, f"sales.{index}", errors)
            if sale_input is None:
                continue
            if not self._check_id(raw.get('sale_id'), f"sales.{index}.sale_id", sale_ids, errors):
                continue
            sale_records.append(SaleService.build_record(
                user_id,
                raw.get('sale_id') or str(uuid.uuid4()),
                sale_input,
                raw.get('created_at') or now,
                now
            ))

        transaction_ids = set()
        rejected = set()
        for index, raw in enumerate(sections['expenseTransactions']):
            if not isinstance(raw, dict):
                continue
            field = f"expenseTransactions.{index}.transaction_id"
            if not self._check_id(raw.get('transaction_id'), field, transaction_ids, errors):
                rejected.add(index)

        items_by_transaction = defaultdict(list)
        item_ids = set()
        for index, item in enumerate(sections['expenseItems']):
            transaction_id = item.get('transaction_id') if isinstance(item, dict) else None
            if not isinstance(transaction_id, str) or transaction_id not in transaction_ids:
                errors[f"expenseItems.{index}.transaction_id"] = "Unknown expense transaction"
                continue
            if not self._check_id(item.get('item_id'), f"expenseItems.{index}.item_id", item_ids, errors):
                continue
            items_by_transaction[transaction_id].append(item)

        transaction_records = []
        for index, raw in enumerate(sections['expenseTransactions']):
            if not isinstance(raw, dict):
                errors[f"expenseTransactions.{index}"] = "Row must be an object"
                continue
            if index in rejected:
                continue

            transaction_id = raw.get('transaction_id') or str(uuid.uuid4())
            payload = {
                key: value for key, value in raw.items()
                if key not in ('receipt', 'bill_image_key')
            }
            payload['items'] = items_by_transaction.get(transaction_id, [])

            expense_input = self._validate(
                ExpenseTransactionInput, payload, f"expenseTransactions.{index}", errors
            )
            if expense_input is None:
                continue

            transaction_records.append(ExpenseService.build_record(
                user_id,
                transaction_id,
                expense_input,
                self._owned_image_key(user_id, raw.get('bill_image_key')),
                raw.get('created_at') or now,
                now
            ))

        if errors:
            field, message = next(iter(errors.items()))
            logger.warning(f"Rejected import for user {user_id}: {len(errors)} invalid fields")
            raise ValidationError(f"{field}: {message}", field=field, errors=errors)

        self.sale_service.sales_table.batch_write(sale_records)
        self.expense_service.transactions_table.batch_write(transaction_records)

        item_count = sum(len(record['items']) for record in transaction_records)
        logger.info(
            f"Imported {len(sale_records)} sales, {len(transaction_records)} expenses "
            f"and {item_count} items for user {user_id}"
        )

        return {
            'sales': len(sale_records),
            'expenseTransactions': len(transaction_records),
            'expenseItems': item_count
        }

    @staticmethod
    def _validate(
        model_cls: Type[BaseModel],
        raw: Any,
        prefix: str,
        errors: Dict[str, str]
    ) -> Optional[BaseModel]:
        """Validate one row, recording its field errors under prefix."""
        try:
            return parse_model(model_cls, raw)
        except ValidationError as e:
            if e.errors:
                for field, message in e.errors.items():
                    errors[f"{prefix}.{field}"] = message
            else:
                errors[prefix] = e.message
            return None

    @staticmethod
    def _owned_image_key(user_id: str, key: Optional[str]) -> Optional[str]:
        if isinstance(key, str) and key.startswith(f"{user_id}/"):
            return key
        if key:
            logger.warning(f"Dropped bill image {key} not owned by user {user_id}")
        return None

    @staticmethod
    def _check_id(value: Any, field: str, seen: Set[str], errors: Dict[str, str]) -> bool:
        """Record a non-string or repeated id; rows without an id get a new one."""
        if value is None or value == '':
            return True
        if not isinstance(value, str):
            errors[field] = "Id must be a string"
            return False
        if value in seen:
            errors[field] = "Duplicate id"
            return False
        seen.add(value)
        return True
