"""DynamoDB utilities and helper functions."""

import boto3
from typing import Any, Dict, List, Optional
from decimal import Decimal
from boto3.dynamodb.conditions import Key
from botocore.exceptions import ClientError
import logging

from .config import aws_endpoint_url
from .exceptions import DatabaseError, NotFoundError

logger = logging.getLogger(__name__)

# BatchGetItem accepts at most 100 keys per request
BATCH_GET_LIMIT = 100
MAX_UNPROCESSED_RETRIES = 5

# GSI on (user_id, date) present on the sales and expense transaction tables
DATE_INDEX = 'user-date-index'


def date_key_condition(user_id: str, start_date: Optional[str] = None, end_date: Optional[str] = None):
    """Owner-scoped key condition on DATE_INDEX for an optional date range."""
    key_condition = Key('user_id').eq(user_id)

    if start_date and end_date:
        return key_condition & Key('date').between(start_date, end_date)
    if start_date:
        return key_condition & Key('date').gte(start_date)
    if end_date:
        return key_condition & Key('date').lte(end_date)
    return key_condition


class DynamoDBClient:
    """DynamoDB table wrapper used as the transaction repository backend."""

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name

        endpoint_url = aws_endpoint_url()
        if endpoint_url:
            self.dynamodb = boto3.resource('dynamodb', endpoint_url=endpoint_url)
        else:
            self.dynamodb = boto3.resource('dynamodb')

        self.table = self.dynamodb.Table(table_name)

    def put_item(
        self,
        item: Dict[str, Any],
        condition_expression: Optional[Any] = None
    ) -> Dict[str, Any]:
        """
        Put an item in the table.

        Args:
            item: Item to put
            condition_expression: Optional condition the existing item must meet

        Returns:
            The item that was put

        Raises:
            NotFoundError: If the condition did not hold
            DatabaseError: If the operation fails
        """
        try:
            item = self._python_to_dynamodb(item)
            kwargs = {'Item': item}
            if condition_expression is not None:
                kwargs['ConditionExpression'] = condition_expression

            self.table.put_item(**kwargs)
            return item
        except ClientError as e:
            if self._is_condition_failure(e):
                raise NotFoundError("Record no longer exists")
            logger.error(f"Error putting item into {self.table_name}: {e}")
            raise DatabaseError(f"Failed to put item: {str(e)}")

    def get_item(self, key: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Get an item from the table.

        Args:
            key: Primary key of the item

        Returns:
            The item if found, None otherwise

        Raises:
            DatabaseError: If the operation fails
        """
        try:
            response = self.table.get_item(Key=key)
            item = response.get('Item')
            if item:
                return self._dynamodb_to_python(item)
            return None
        except ClientError as e:
            logger.error(f"Error getting item from {self.table_name}: {e}")
            raise DatabaseError(f"Failed to get item: {str(e)}")

    def delete_item(self, key: Dict[str, Any]) -> None:
        """
        Delete an item from the table.

        Raises:
            DatabaseError: If the operation fails
        """
        try:
            self.table.delete_item(Key=key)
        except ClientError as e:
            logger.error(f"Error deleting item from {self.table_name}: {e}")
            raise DatabaseError(f"Failed to delete item: {str(e)}")

    def query(
        self,
        key_condition_expression: Any,
        filter_expression: Optional[Any] = None,
        index_name: Optional[str] = None,
        limit: Optional[int] = None,
        scan_forward: bool = True,
        exclusive_start_key: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Query one page of items from the table.

        Args:
            key_condition_expression: Key condition expression
            filter_expression: Optional filter expression
            index_name: Optional index name
            limit: Optional limit
            scan_forward: Sort order (default: True for ascending)
            exclusive_start_key: Optional pagination key

        Returns:
            Dictionary with items and optional last_evaluated_key

        Raises:
            DatabaseError: If the operation fails
        """
        try:
            kwargs = {
                'KeyConditionExpression': key_condition_expression,
                'ScanIndexForward': scan_forward
            }

            if filter_expression is not None:
                kwargs['FilterExpression'] = filter_expression
            if index_name:
                kwargs['IndexName'] = index_name
            if limit:
                kwargs['Limit'] = limit
            if exclusive_start_key:
                kwargs['ExclusiveStartKey'] = exclusive_start_key

            response = self.table.query(**kwargs)

            return {
                'items': [self._dynamodb_to_python(item) for item in response.get('Items', [])],
                'last_evaluated_key': response.get('LastEvaluatedKey')
            }
        except ClientError as e:
            logger.error(f"Error querying {self.table_name}: {e}")
            raise DatabaseError(f"Failed to query items: {str(e)}")

    def query_all(
        self,
        key_condition_expression: Any,
        filter_expression: Optional[Any] = None,
        index_name: Optional[str] = None,
        scan_forward: bool = True,
        page_size: int = 100
    ) -> List[Dict[str, Any]]:
        """
        Query every page for a key condition.

        A failure on any page raises; callers never see a partial result.
        """
        items = []
        last_key = None

        while True:
            result = self.query(
                key_condition_expression=key_condition_expression,
                filter_expression=filter_expression,
                index_name=index_name,
                limit=page_size,
                scan_forward=scan_forward,
                exclusive_start_key=last_key
            )

            items.extend(result['items'])
            last_key = result.get('last_evaluated_key')

            if not last_key:
                break

        return items

    def batch_get(self, keys: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Fetch many items by primary key.

        Args:
            keys: Primary keys to fetch; missing items are skipped

        Returns:
            Found items, in no particular order

        Raises:
            DatabaseError: If the operation fails or keys stay unprocessed
        """
        items = []

        for start in range(0, len(keys), BATCH_GET_LIMIT):
            request = {self.table_name: {'Keys': keys[start:start + BATCH_GET_LIMIT]}}
            attempts = 0

            while request:
                try:
                    response = self.dynamodb.batch_get_item(RequestItems=request)
                except ClientError as e:
                    logger.error(f"Error batch getting from {self.table_name}: {e}")
                    raise DatabaseError(f"Failed to batch get items: {str(e)}")

                items.extend(
                    self._dynamodb_to_python(item)
                    for item in response.get('Responses', {}).get(self.table_name, [])
                )
                request = response.get('UnprocessedKeys') or None

                attempts += 1
                if request and attempts > MAX_UNPROCESSED_RETRIES:
                    raise DatabaseError("Failed to batch get items: keys left unprocessed")

        return items

    def batch_write(self, items: List[Dict[str, Any]]) -> None:
        """
        Batch write items to the table.

        Raises:
            DatabaseError: If the operation fails
        """
        try:
            with self.table.batch_writer() as batch:
                for item in items:
                    batch.put_item(Item=self._python_to_dynamodb(item))
        except ClientError as e:
            logger.error(f"Error batch writing to {self.table_name}: {e}")
            raise DatabaseError(f"Failed to batch write items: {str(e)}")

    @staticmethod
    def _is_condition_failure(error: ClientError) -> bool:
        return error.response.get('Error', {}).get('Code') == 'ConditionalCheckFailedException'

    @staticmethod
    def _python_to_dynamodb(obj: Any) -> Any:
        """Convert Python objects to DynamoDB compatible format."""
        if isinstance(obj, dict):
            return {k: DynamoDBClient._python_to_dynamodb(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DynamoDBClient._python_to_dynamodb(item) for item in obj]
        elif isinstance(obj, float):
            return Decimal(str(obj))
        return obj

    @staticmethod
    def _dynamodb_to_python(obj: Any) -> Any:
        """Convert DynamoDB objects to Python format."""
        if isinstance(obj, dict):
            return {k: DynamoDBClient._dynamodb_to_python(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [DynamoDBClient._dynamodb_to_python(item) for item in obj]
        elif isinstance(obj, Decimal):
            if obj % 1 == 0:
                return int(obj)
            return float(obj)
        return obj
