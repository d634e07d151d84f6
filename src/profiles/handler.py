"""Lambda handler for profile operations."""

import os
import logging
from typing import Dict, Any
import sys

# Add parent directory to path for imports
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from shared.config import configure_logging
from shared.events import get_user_id, parse_body, exception_response
from shared.response import success_response, error_response, unauthorized_response
from shared.exceptions import FinanceTrackerException
from profiles.service import ProfileService

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)

# Initialize service
profile_service = ProfileService()


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda handler for profile operations.

    Handles:
    - GET /profile - Get profile
    - PUT /profile - Create or replace profile

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

        if path == '/profile' and http_method == 'GET':
            return success_response(data=profile_service.get_profile(user_id))
        elif path == '/profile' and http_method == 'PUT':
            profile = profile_service.update_profile(user_id, parse_body(event))
            return success_response(data=profile, message="Profile updated successfully")
        else:
            return error_response("Route not found", status_code=404)

    except FinanceTrackerException as e:
        return exception_response(e)
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}", exc_info=True)
        return error_response("Internal server error", status_code=500)
