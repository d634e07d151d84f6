"""Environment-driven configuration for the finance tracker functions."""

import os
import logging
from typing import Optional

DEFAULTS = {
    'SALES_TABLE': 'finance-tracker-sales',
    'EXPENSE_TRANSACTIONS_TABLE': 'finance-tracker-expense-transactions',
    'PROFILES_TABLE': 'finance-tracker-profiles',
    'RECEIPTS_BUCKET': 'finance-tracker-bill-images',
    'LOG_LEVEL': 'INFO',
    'DASHBOARD_WINDOW_DAYS': '7',
    'RECEIPT_URL_EXPIRATION': '3600'
}


def get_setting(name: str, default: Optional[str] = None) -> Optional[str]:
    """
    Read a setting from the environment.

    Args:
        name: Environment variable name
        default: Fallback when neither the environment nor DEFAULTS define it

    Returns:
        Setting value
    """
    return os.environ.get(name, DEFAULTS.get(name, default))


def get_int_setting(name: str) -> int:
    """Read an integer setting, falling back to the default on bad input."""
    value = get_setting(name)
    try:
        return int(value)
    except (TypeError, ValueError):
        logging.getLogger(__name__).warning(f"Invalid integer for {name}: {value!r}")
        return int(DEFAULTS[name])


def aws_endpoint_url() -> Optional[str]:
    """Endpoint override for LocalStack, or None for real AWS."""
    endpoint_url = os.environ.get('LOCALSTACK_ENDPOINT')
    if endpoint_url and os.environ.get('USE_LOCALSTACK', 'false').lower() == 'true':
        return endpoint_url
    return None


def configure_logging() -> logging.Logger:
    """Set the root logger level from LOG_LEVEL and return it."""
    logger = logging.getLogger()
    logger.setLevel(get_setting('LOG_LEVEL'))
    return logger
