"""Helpers for reading API Gateway proxy events."""

import json
import logging
from typing import Any, Dict, Optional

from .exceptions import (
    FinanceTrackerException,
    ValidationError,
    NotFoundError,
    DatabaseError
)
from .response import error_response, validation_error_response, not_found_response

logger = logging.getLogger(__name__)


def get_user_id(event: Dict[str, Any]) -> Optional[str]:
    """
    Extract user ID from Cognito authorizer claims.

    Args:
        event: Lambda event

    Returns:
        User ID (sub claim)
    """
    request_context = event.get('requestContext') or {}
    authorizer = request_context.get('authorizer') or {}
    claims = authorizer.get('claims') or {}
    return claims.get('sub')


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Decode the JSON request body.

    Raises:
        ValidationError: If the body is not a JSON object
    """
    raw = event.get('body') or '{}'
    try:
        body = json.loads(raw)
    except json.JSONDecodeError:
        raise ValidationError("Request body is not valid JSON")

    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")

    return body


def get_path_id(event: Dict[str, Any]) -> str:
    """Return the {id} path parameter, or raise ValidationError."""
    path_params = event.get('pathParameters') or {}
    record_id = path_params.get('id')

    if not record_id:
        raise ValidationError("Record ID is required", field='id')

    return record_id


def get_query_params(event: Dict[str, Any]) -> Dict[str, str]:
    return event.get('queryStringParameters') or {}


def get_int_param(params: Dict[str, str], name: str, default: Optional[int] = None) -> Optional[int]:
    """Parse an integer query parameter."""
    value = params.get(name)
    if value is None or value == '':
        return default

    try:
        return int(value)
    except ValueError:
        raise ValidationError(f"{name} must be an integer", field=name)


def parse_last_key(params: Dict[str, str]) -> Optional[Dict[str, Any]]:
    """Decode the last_key pagination token."""
    last_key = params.get('last_key')
    if not last_key:
        return None

    try:
        decoded = json.loads(last_key)
    except json.JSONDecodeError:
        raise ValidationError("Invalid last_key format", field='last_key')

    if not isinstance(decoded, dict):
        raise ValidationError("Invalid last_key format", field='last_key')
    return decoded


def exception_response(error: FinanceTrackerException) -> Dict[str, Any]:
    """Map an application exception to its API response."""
    if isinstance(error, ValidationError):
        return validation_error_response(error.message, details=error.errors or None)
    if isinstance(error, NotFoundError):
        return not_found_response(error.message)
    if isinstance(error, DatabaseError):
        logger.error(f"Repository error: {error.message}")
        return error_response(error.message, status_code=error.status_code, error_code="REPOSITORY_ERROR")

    logger.error(f"Application error: {error.message}")
    return error_response(error.message, status_code=error.status_code)
