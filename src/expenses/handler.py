"""Lambda handler for expense operations."""

import json
import os
import logging
from typing import Dict, Any
import sys

# Add parent directory to path for imports
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from shared.config import configure_logging
from shared.events import (
    get_user_id,
    parse_body,
    get_path_id,
    get_query_params,
    get_int_param,
    parse_last_key,
    exception_response
)
from shared.response import success_response, error_response, unauthorized_response
from shared.exceptions import FinanceTrackerException
from expenses.service import ExpenseService

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)

# Initialize service
expense_service = ExpenseService()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for expense operations.

    Handles:
    - POST /expenses - Create expense with items
    - GET /expenses - List expenses
    - GET /expenses/{id} - Get expense with items
    - GET /expenses/{id}/receipt - Get bill image URL
    - PUT /expenses/{id} - Replace expense and items
    - DELETE /expenses/{id} - Delete expense

    Args:
        event: Lambda event
        context: Lambda context

    Returns:
        API Gateway response
    """
    try:
        logger.info(f"Request: {event.get('httpMethod')} {event.get('path')}")

        user_id = get_user_id(event)
        if not user_id:
            return unauthorized_response()

        http_method = event.get('httpMethod')
        path = event.get('path') or ''

        if path == '/expenses' and http_method == 'POST':
            return handle_create(event, user_id)
        elif path == '/expenses' and http_method == 'GET':
            return handle_list(event, user_id)
        elif path.startswith('/expenses/') and path.endswith('/receipt') and http_method == 'GET':
            return handle_receipt(event, user_id)
        elif path.startswith('/expenses/') and http_method == 'GET':
            return handle_get(event, user_id)
        elif path.startswith('/expenses/') and http_method == 'PUT':
            return handle_update(event, user_id)
        elif path.startswith('/expenses/') and http_method == 'DELETE':
            return handle_delete(event, user_id)
        else:
            return error_response("Route not found", status_code=404)

    except FinanceTrackerException as e:
        return exception_response(e)
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response("Internal server error", status_code=500)


def handle_create(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    Handle create expense.

    The body carries date, payment_mode, note, a non-empty items list and
    optionally a receipt ({image_data, filename}) to store as the bill image.
    """
    expense = expense_service.create_transaction(user_id, parse_body(event))

    logger.info(f"Expense created successfully: {expense['transaction_id']}")

    return success_response(
        data=expense,
        message="Expense created successfully",
        status_code=201
    )


def handle_list(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    query_params = get_query_params(event)
    limit = get_int_param(query_params, 'limit', 50)

    result = expense_service.list_transactions(
        user_id=user_id,
        start_date=query_params.get('start_date'),
        end_date=query_params.get('end_date'),
        payment_mode=query_params.get('payment_mode'),
        limit=max(1, min(limit, 100)),  # Cap at 100
        last_evaluated_key=parse_last_key(query_params)
    )

    response_data = {
        'expenses': result['expenses'],
        'count': result['count']
    }

    if result['last_evaluated_key']:
        response_data['last_key'] = json.dumps(result['last_evaluated_key'])

    return success_response(data=response_data)


def handle_get(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    expense = expense_service.get_transaction(user_id, get_path_id(event))
    return success_response(data=expense)


def handle_receipt(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    url = expense_service.get_receipt_url(user_id, get_path_id(event))
    return success_response(data={'url': url})


def handle_update(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    Handle update expense.

    The stored item list is replaced by the one in the body.
    """
    expense_id = get_path_id(event)
    expense = expense_service.update_transaction(user_id, expense_id, parse_body(event))

    logger.info(f"Expense updated successfully: {expense_id}")

    return success_response(data=expense, message="Expense updated successfully")


def handle_delete(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    expense_id = get_path_id(event)
    expense_service.delete_transaction(user_id, expense_id)

    logger.info(f"Expense deleted successfully: {expense_id}")

    return success_response(message="Expense deleted successfully")
