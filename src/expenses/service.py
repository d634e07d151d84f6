"""Expense service for managing expense transactions and their items."""

import uuid
from typing import Dict, Any, List, Optional
from datetime import datetime
import logging
from boto3.dynamodb.conditions import Attr

from shared.config import get_setting
from shared.dynamodb import DynamoDBClient, DATE_INDEX, date_key_condition
from shared.validators import parse_model, validate_date_range, validate_payment_method
from shared.exceptions import FinanceTrackerException, NotFoundError
from expenses.models import ExpenseTransaction, ExpenseTransactionInput
from receipts.upload import ReceiptStorage
from reports.aggregation import recompute_grand_total, sync_line_totals, to_decimal

logger = logging.getLogger(__name__)


class ExpenseService:
    """
    Service for managing expense transactions.

    Items live inside their transaction record, so a transaction and its
    items are always written together by a single put.
    """

    def __init__(self):
        """Initialize expense service."""
        self.transactions_table = DynamoDBClient(get_setting('EXPENSE_TRANSACTIONS_TABLE'))
        self.receipts = ReceiptStorage()

    def create_transaction(self, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an expense transaction with its items.

        Line totals and the grand total are computed here; totals sent by
        the client are ignored.

        Args:
            user_id: Owner user ID
            payload: date, payment_mode, note, items, optional receipt upload

        Returns:
            Created transaction

        Raises:
            ValidationError: If validation fails
            StorageError: If the bill image upload fails
        """
        expense_input = parse_model(ExpenseTransactionInput, payload)
        transaction_id = str(uuid.uuid4())

        uploaded_key = None
        if expense_input.receipt:
            uploaded_key = self.receipts.upload_image(user_id, expense_input.receipt.model_dump())
            bill_image_key = uploaded_key
        else:
            bill_image_key = expense_input.bill_image_key
            if bill_image_key:
                self.receipts.check_owner(user_id, bill_image_key)

        now = datetime.utcnow().isoformat()
        record = self.build_record(user_id, transaction_id, expense_input, bill_image_key, now, now)

        try:
            self.transactions_table.put_item(record)
        except FinanceTrackerException:
            self.receipts.discard_image(user_id, uploaded_key)
            raise

        logger.info(
            f"Created expense {transaction_id} with {len(record['items'])} items "
            f"for user {user_id}"
        )
        return record

    def get_transaction(self, user_id: str, transaction_id: str) -> Dict[str, Any]:
        """
        Get an expense transaction with its items.

        Raises:
            NotFoundError: If the transaction is not found
        """
        record = self.transactions_table.get_item({
            'user_id': user_id,
            'transaction_id': transaction_id
        })

        if not record:
            raise NotFoundError("Expense not found")

        return self._reconcile(record)

    def list_transactions(
        self,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        payment_mode: Optional[str] = None,
        limit: int = 50,
        last_evaluated_key: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        List one page of a user's expenses, most recent first.

        Returns:
            Dictionary with expenses and pagination key
        """
        start_date, end_date = validate_date_range(start_date, end_date)

        filter_expr = None
        if payment_mode:
            filter_expr = Attr('payment_mode').eq(validate_payment_method(payment_mode, field='payment_mode'))

        result = self.transactions_table.query(
            key_condition_expression=date_key_condition(user_id, start_date, end_date),
            filter_expression=filter_expr,
            index_name=DATE_INDEX,
            limit=limit,
            scan_forward=False,
            exclusive_start_key=last_evaluated_key
        )

        expenses = [self._reconcile(record) for record in result['items']]
        return {
            'expenses': expenses,
            'count': len(expenses),
            'last_evaluated_key': result['last_evaluated_key']
        }

    def list_all_transactions(
        self,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Every expense of a user in the range, oldest first."""
        start_date, end_date = validate_date_range(start_date, end_date)

        records = self.transactions_table.query_all(
            key_condition_expression=date_key_condition(user_id, start_date, end_date),
            index_name=DATE_INDEX
        )
        return [self._reconcile(record) for record in records]

    def list_items(self, user_id: str, transaction_ids: List[str]) -> List[Dict[str, Any]]:
        """
        Items of the given transactions.

        Only the user's own transactions are read; other ids yield nothing.
        """
        unique_ids = list(dict.fromkeys(transaction_ids))
        if not unique_ids:
            return []

        records = self.transactions_table.batch_get([
            {'user_id': user_id, 'transaction_id': transaction_id}
            for transaction_id in unique_ids
        ])

        items = []
        for record in records:
            items.extend(self._reconcile(record)['items'])
        return items

    def update_transaction(
        self,
        user_id: str,
        transaction_id: str,
        payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Replace a transaction's fields and its whole item list.

        The bill image is replaced when a new receipt is uploaded, removed
        when bill_image_key is sent empty, and kept otherwise.

        Raises:
            NotFoundError: If the transaction is not found
            ValidationError: If validation fails
        """
        existing = self.get_transaction(user_id, transaction_id)
        expense_input = parse_model(ExpenseTransactionInput, payload)

        old_key = existing.get('bill_image_key')
        new_key = old_key
        uploaded_key = None

        if expense_input.receipt:
            uploaded_key = self.receipts.upload_image(user_id, expense_input.receipt.model_dump())
            new_key = uploaded_key
        elif 'bill_image_key' in expense_input.model_fields_set:
            new_key = expense_input.bill_image_key or None
            if new_key:
                self.receipts.check_owner(user_id, new_key)

        record = self.build_record(
            user_id,
            transaction_id,
            expense_input,
            new_key,
            existing.get('created_at') or datetime.utcnow().isoformat(),
            datetime.utcnow().isoformat()
        )

        try:
            self.transactions_table.put_item(
                record,
                condition_expression=Attr('transaction_id').exists()
            )
        except FinanceTrackerException:
            self.receipts.discard_image(user_id, uploaded_key)
            raise

        if old_key and old_key != new_key:
            self.receipts.discard_image(user_id, old_key)

        logger.info(f"Updated expense {transaction_id} with {len(record['items'])} items")
        return record

    def delete_transaction(self, user_id: str, transaction_id: str) -> None:
        """
        Delete a transaction together with its items and bill image.

        Raises:
            NotFoundError: If the transaction is not found
        """
        existing = self.get_transaction(user_id, transaction_id)

        self.transactions_table.delete_item({
            'user_id': user_id,
            'transaction_id': transaction_id
        })

        self.receipts.discard_image(user_id, existing.get('bill_image_key'))

        logger.info(f"Deleted expense {transaction_id}")

    def get_receipt_url(self, user_id: str, transaction_id: str) -> str:
        """
        Presigned URL for a transaction's bill image.

        Raises:
            NotFoundError: If the transaction or its image is missing
        """
        record = self.get_transaction(user_id, transaction_id)
        key = record.get('bill_image_key')

        if not key:
            raise NotFoundError("Expense has no bill image")

        return self.receipts.image_url(user_id, key)

    @staticmethod
    def build_record(
        user_id: str,
        transaction_id: str,
        expense_input: ExpenseTransactionInput,
        bill_image_key: Optional[str],
        created_at: str,
        updated_at: str
    ) -> Dict[str, Any]:
        """Stored form of a validated expense, with totals derived from items."""
        items = sync_line_totals([
            {
                'item_id': item.item_id or str(uuid.uuid4()),
                'transaction_id': transaction_id,
                'user_id': user_id,
                'item_name': item.item_name,
                'unit': item.unit,
                'price_per_unit': item.price_per_unit
            }
            for item in expense_input.items
        ])

        return ExpenseTransaction(
            user_id=user_id,
            transaction_id=transaction_id,
            date=expense_input.date,
            payment_mode=expense_input.payment_mode,
            note=expense_input.note,
            bill_image_key=bill_image_key,
            grand_total=recompute_grand_total(items),
            items=items,
            created_at=created_at,
            updated_at=updated_at
        ).model_dump(exclude_none=True)

    @staticmethod
    def _reconcile(record: Dict[str, Any]) -> Dict[str, Any]:
        """Re-derive stored totals from units and prices."""
        items = record.get('items') or []
        if not items:
            record['items'] = []
            return record

        items = sync_line_totals(items)
        grand_total = recompute_grand_total(items)

        if to_decimal(record.get('grand_total')) != grand_total:
            logger.warning(
                f"Stored grand_total {record.get('grand_total')} of expense "
                f"{record.get('transaction_id')} differs from items; using {grand_total}"
            )

        record['items'] = items
        record['grand_total'] = grand_total
        return record
