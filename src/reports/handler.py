"""Lambda handler for report operations."""

import os
import logging
from datetime import datetime
from typing import Dict, Any
import sys

# Add parent directory to path for imports
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from shared.config import configure_logging
from shared.events import (
    get_user_id,
    parse_body,
    get_query_params,
    get_int_param,
    exception_response
)
from shared.response import (
    success_response,
    error_response,
    validation_error_response,
    unauthorized_response,
    csv_response
)
from shared.exceptions import FinanceTrackerException
from reports.generator import ReportGenerator, parse_reference_date
from data_transfer.service import DataTransferService

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)

# Initialize services
report_generator = ReportGenerator()
data_transfer_service = DataTransferService()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for report operations.

    Handles:
    - GET /reports/dashboard - Dashboard figures
    - GET /reports/monthly - Cash/bank breakdown of a month
    - GET /reports/transactions - Combined transaction table
    - GET /reports/chart - Daily sales vs expenses
    - GET /reports/export - Export as CSV
    - GET /reports/data - Export all data as JSON
    - POST /reports/data - Import data from JSON

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
        path = event.get('path')

        if path == '/reports/dashboard' and http_method == 'GET':
            return handle_dashboard(event, user_id)
        elif path == '/reports/monthly' and http_method == 'GET':
            return handle_monthly_report(event, user_id)
        elif path == '/reports/transactions' and http_method == 'GET':
            return handle_transactions(event, user_id)
        elif path == '/reports/chart' and http_method == 'GET':
            return handle_chart(event, user_id)
        elif path == '/reports/export' and http_method == 'GET':
            return handle_export(event, user_id)
        elif path == '/reports/data' and http_method == 'GET':
            return success_response(data=data_transfer_service.export_data(user_id))
        elif path == '/reports/data' and http_method == 'POST':
            return handle_import(event, user_id)
        else:
            return error_response("Route not found", status_code=404)

    except FinanceTrackerException as e:
        return exception_response(e)
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response("Internal server error", status_code=500)


def handle_dashboard(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    query_params = get_query_params(event)

    logger.info(f"Generating dashboard for user {user_id}")

    dashboard = report_generator.generate_dashboard(
        user_id,
        reference_date=parse_reference_date(query_params.get('date'))
    )
    return success_response(data=dashboard)


def _year_and_month(query_params: Dict[str, str]):
    """year and month query parameters, defaulting to the current month."""
    today = datetime.utcnow().date()
    year = get_int_param(query_params, 'year', today.year)
    month = get_int_param(query_params, 'month', today.month)
    return year, month


def handle_monthly_report(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    Handle monthly report request.

    Args:
        event: Lambda event
        user_id: User ID

    Returns:
        API Gateway response
    """
    year, month = _year_and_month(get_query_params(event))

    logger.info(f"Generating monthly report {year}-{month:02d} for user {user_id}")

    report = report_generator.generate_monthly_report(user_id, year, month)
    return success_response(data=report)


def handle_transactions(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    Handle transaction table request.

    Query parameters: year, month, start_date, end_date, search and
    type (all, sale or expense).
    """
    query_params = get_query_params(event)
    year, month = _year_and_month(query_params)

    rows = report_generator.list_transactions(
        user_id,
        year,
        month,
        start_date=query_params.get('start_date'),
        end_date=query_params.get('end_date'),
        search=query_params.get('search'),
        transaction_type=query_params.get('type') or 'all'
    )

    return success_response(data={'transactions': rows, 'count': len(rows)})


def handle_chart(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    query_params = get_query_params(event)

    chart = report_generator.generate_daily_chart(
        user_id,
        window_days=get_int_param(query_params, 'days'),
        reference_date=parse_reference_date(query_params.get('date'))
    )
    return success_response(data={'days': chart})


def handle_export(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    """
    Handle export report request.

    Args:
        event: Lambda event
        user_id: User ID

    Returns:
        API Gateway response with CSV file
    """
    query_params = get_query_params(event)
    start_date = query_params.get('start_date')
    end_date = query_params.get('end_date')

    if not start_date or not end_date:
        return validation_error_response("start_date and end_date are required")

    logger.info(f"Exporting transactions for user {user_id} from {start_date} to {end_date}")

    csv_content = report_generator.export_to_csv(user_id, start_date, end_date)

    return csv_response(csv_content, f"transactions_{start_date}_{end_date}.csv")


def handle_import(event: Dict[str, Any], user_id: str) -> Dict[str, Any]:
    counts = data_transfer_service.import_data(user_id, parse_body(event))

    return success_response(
        data=counts,
        message="Data imported successfully",
        status_code=201
    )
