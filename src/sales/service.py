"""Sale service for managing sale records."""

import uuid
from typing import Dict, Any, List, Optional
from datetime import datetime
import logging
from boto3.dynamodb.conditions import Attr

from shared.config import get_setting
from shared.dynamodb import DynamoDBClient, DATE_INDEX, date_key_condition
from shared.validators import parse_model, validate_date_range, validate_payment_method
from shared.exceptions import NotFoundError
from sales.models import Sale, SaleInput

logger = logging.getLogger(__name__)


class SaleService:
    """Service for managing sales."""

    def __init__(self):
        """Initialize sale service."""
        self.sales_table = DynamoDBClient(get_setting('SALES_TABLE'))

    def create_sale(self, user_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a sale for a user.

        Args:
            user_id: Owner user ID
            payload: Sale fields (date, amount, payment_type, note, category)

        Returns:
            Created sale

        Raises:
            ValidationError: If validation fails
        """
        sale_input = parse_model(SaleInput, payload)
        now = datetime.utcnow().isoformat()

        sale = self.build_record(user_id, str(uuid.uuid4()), sale_input, now, now)

        self.sales_table.put_item(sale)

        logger.info(f"Created sale {sale['sale_id']} for user {user_id}")
        return sale

    def get_sale(self, user_id: str, sale_id: str) -> Dict[str, Any]:
        """
        Get sale by ID.

        Raises:
            NotFoundError: If sale not found
        """
        sale = self.sales_table.get_item({
            'user_id': user_id,
            'sale_id': sale_id
        })

        if not sale:
            raise NotFoundError("Sale not found")

        return sale

    def list_sales(
        self,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        payment_type: Optional[str] = None,
        category: Optional[str] = None,
        limit: int = 50,
        last_evaluated_key: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        List one page of a user's sales, most recent first.

        Args:
            user_id: User ID
            start_date: Optional start date (YYYY-MM-DD)
            end_date: Optional end date (YYYY-MM-DD)
            payment_type: Optional payment type filter
            category: Optional category filter
            limit: Maximum number of results
            last_evaluated_key: Pagination key

        Returns:
            Dictionary with sales and pagination key
        """
        start_date, end_date = validate_date_range(start_date, end_date)

        result = self.sales_table.query(
            key_condition_expression=date_key_condition(user_id, start_date, end_date),
            filter_expression=self._build_filter(payment_type, category),
            index_name=DATE_INDEX,
            limit=limit,
            scan_forward=False,
            exclusive_start_key=last_evaluated_key
        )

        return {
            'sales': result['items'],
            'count': len(result['items']),
            'last_evaluated_key': result['last_evaluated_key']
        }

    def list_all_sales(
        self,
        user_id: str,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        """Every sale of a user in the range, oldest first."""
        start_date, end_date = validate_date_range(start_date, end_date)

        return self.sales_table.query_all(
            key_condition_expression=date_key_condition(user_id, start_date, end_date),
            index_name=DATE_INDEX
        )

    def update_sale(
        self,
        user_id: str,
        sale_id: str,
        payload: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Replace a sale with a new full record.

        Fields missing from the payload are cleared, not kept.

        Raises:
            NotFoundError: If sale not found
            ValidationError: If validation fails
        """
        existing = self.get_sale(user_id, sale_id)
        sale_input = parse_model(SaleInput, payload)

        sale = self.build_record(
            user_id,
            sale_id,
            sale_input,
            existing.get('created_at') or datetime.utcnow().isoformat(),
            datetime.utcnow().isoformat()
        )

        self.sales_table.put_item(sale, condition_expression=Attr('sale_id').exists())

        logger.info(f"Updated sale {sale_id}")
        return sale

    def delete_sale(self, user_id: str, sale_id: str) -> None:
        """
        Delete a sale.

        Raises:
            NotFoundError: If sale not found
        """
        self.get_sale(user_id, sale_id)

        self.sales_table.delete_item({
            'user_id': user_id,
            'sale_id': sale_id
        })

        logger.info(f"Deleted sale {sale_id}")

    @staticmethod
    def _build_filter(payment_type: Optional[str], category: Optional[str]):
        filter_expr = None

        if payment_type:
            filter_expr = Attr('payment_type').eq(validate_payment_method(payment_type, field='payment_type'))

        if category:
            category_expr = Attr('category').eq(category)
            filter_expr = category_expr if filter_expr is None else filter_expr & category_expr

        return filter_expr

    @staticmethod
    def build_record(
        user_id: str,
        sale_id: str,
        sale_input: SaleInput,
        created_at: str,
        updated_at: str
    ) -> Dict[str, Any]:
        """Stored form of a validated sale."""
        return Sale(
            **sale_input.model_dump(),
            user_id=user_id,
            sale_id=sale_id,
            created_at=created_at,
            updated_at=updated_at
        ).model_dump(exclude_none=True)
