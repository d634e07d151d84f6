"""Lambda handler for sale operations."""

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
from sales.service import SaleService

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)

# Initialize service
sale_service = SaleService()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for sale operations.

    Handles:
    - POST /sales - Create sale
    - GET /sales - List sales
    - GET /sales/{id} - Get sale
    - PUT /sales/{id} - Replace sale
    - DELETE /sales/{id} - Delete sale

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

        if path == '/sales' and http_method == 'POST':
            return handle_create(event, user_id)
        elif path == '/sales' and http_method == 'GET':
            return handle_list(event, user_id)
        elif path.startswith('/sales/') and http_method == 'GET':
            return handle_get(event, user_id)
        elif path.startswith('/sales/') and http_method == 'PUT':
            return handle_update(event, user_id)
        elif path.startswith('/sales/') and http_method == 'DELETE':
            return handle_delete(event, user_id)
        else:
            return error_response("Route not found", status_code=404)

    except FinanceTrackerException as e:
        return exception_response(e)
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response("Internal server error", status_code=500)


def handle_create(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    sale = sale_service.create_sale(user_id, parse_body(event))

    return success_response(
        data=sale,
        message="Sale created successfully",
        status_code=201
    )


def handle_list(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    Handle list sales.

    Query parameters: start_date, end_date, payment_type, category,
    limit (max 100) and last_key.
    """
    query_params = get_query_params(event)
    limit = get_int_param(query_params, 'limit', 50)

    result = sale_service.list_sales(
        user_id=user_id,
        start_date=query_params.get('start_date'),
        end_date=query_params.get('end_date'),
        payment_type=query_params.get('payment_type'),
        category=query_params.get('category'),
        limit=max(1, min(limit, 100)),  # Cap at 100
        last_evaluated_key=parse_last_key(query_params)
    )

    response_data = {
        'sales': result['sales'],
        'count': result['count']
    }

    if result['last_evaluated_key']:
        response_data['last_key'] = json.dumps(result['last_evaluated_key'])

    return success_response(data=response_data)


def handle_get(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    sale = sale_service.get_sale(user_id, get_path_id(event))
    return success_response(data=sale)


def handle_update(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    sale_id = get_path_id(event)
    sale = sale_service.update_sale(user_id, sale_id, parse_body(event))

    return success_response(data=sale, message="Sale updated successfully")


def handle_delete(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    sale_service.delete_sale(user_id, get_path_id(event))
    return success_response(message="Sale deleted successfully")
