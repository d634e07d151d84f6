"""Validation utilities for the finance tracker application."""

import base64
import binascii
from typing import Any, Dict, List, Optional, Type, TypeVar
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError

ModelT = TypeVar('ModelT', bound=BaseModel)

# Payment methods offered across the sale and expense forms.
# "Cash" is the cash bucket; everything else settles through the bank.
CASH_PAYMENT_METHOD = "Cash"
VALID_PAYMENT_METHODS = [
    "Cash",
    "Gpay",
    "Card",
    "Bank Transfer",
    "Cheque",
    "Other"
]

MAX_AMOUNT = Decimal('9999999999.99')
MAX_QUANTITY = Decimal('9999999.999')
DATE_FORMAT = '%Y-%m-%d'


def _to_decimal(value: Any, field: str, label: str) -> Decimal:
    if value is None or value == '':
        raise ValidationError(f"{label} is required", field=field)

    # bool is an int subclass; a checkbox value is never a price
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label.lower()} format", field=field)

    try:
        decimal_value = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(f"Invalid {label.lower()} format", field=field)

    if not decimal_value.is_finite():
        raise ValidationError(f"Invalid {label.lower()} format", field=field)

    return decimal_value


def validate_amount(amount: Any, field: str = 'amount', label: str = 'Amount') -> Decimal:
    """
    Validate monetary amount.

    Args:
        amount: Amount to validate
        field: Field name reported on failure
        label: Human-readable field label

    Returns:
        Validated amount as Decimal

    Raises:
        ValidationError: If amount is invalid
    """
    decimal_amount = _to_decimal(amount, field, label)

    if decimal_amount <= 0:
        raise ValidationError(f"{label} must be greater than 0", field=field)

    if decimal_amount > MAX_AMOUNT:
        raise ValidationError(f"{label} is too large", field=field)

    # Ensure at most 2 decimal places
    if decimal_amount.as_tuple().exponent < -2:
        raise ValidationError(f"{label} can have at most 2 decimal places", field=field)

    return decimal_amount


def validate_quantity(unit: Any, field: str = 'unit') -> Decimal:
    """
    Validate an item quantity.

    Args:
        unit: Quantity to validate
        field: Field name reported on failure

    Returns:
        Validated quantity as Decimal

    Raises:
        ValidationError: If quantity is invalid
    """
    quantity = _to_decimal(unit, field, 'Unit')

    if quantity <= 0:
        raise ValidationError("Unit must be a positive number", field=field)

    if quantity > MAX_QUANTITY:
        raise ValidationError("Unit is too large", field=field)

    if quantity.as_tuple().exponent < -3:
        raise ValidationError("Unit can have at most 3 decimal places", field=field)

    return quantity


def validate_total(total: Decimal, field: str, label: str) -> Decimal:
    """Reject a derived total that would exceed the largest storable amount."""
    if total > MAX_AMOUNT:
        raise ValidationError(f"{label} is too large", field=field)
    return total


def validate_date(value: Any, field: str = 'date') -> str:
    """
    Validate a calendar date (ISO 8601: YYYY-MM-DD).

    Args:
        value: Date string or date object

    Returns:
        Validated date string

    Raises:
        ValidationError: If date is invalid
    """
    if not value:
        raise ValidationError("Date is required", field=field)

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()

    try:
        return datetime.strptime(str(value).strip(), DATE_FORMAT).date().isoformat()
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD", field=field)


def validate_date_range(
    start_date: Optional[str],
    end_date: Optional[str]
) -> tuple:
    """Validate optional range bounds and check their order."""
    start = validate_date(start_date, 'start_date') if start_date else None
    end = validate_date(end_date, 'end_date') if end_date else None

    if start and end and start > end:
        raise ValidationError("Start date must not be after end date", field='start_date')

    return start, end


def validate_payment_method(method: Any, field: str = 'payment_method') -> str:
    """
    Validate a payment method selection.

    Raises:
        ValidationError: If the method is missing or not recognised
    """
    if not method or not isinstance(method, str) or not method.strip():
        raise ValidationError("Payment method is required", field=field)

    method = method.strip()

    if method not in VALID_PAYMENT_METHODS:
        raise ValidationError(
            f"Invalid payment method. Must be one of: {', '.join(VALID_PAYMENT_METHODS)}",
            field=field
        )

    return method


def validate_item_name(name: Any, field: str = 'item_name') -> str:
    """Validate an expense item name (non-empty free text)."""
    if name is None:
        raise ValidationError("Item name is required", field=field)

    name = sanitize_string(name, max_length=200, field=field)

    if not name:
        raise ValidationError("Item name is required", field=field)

    return name


def validate_optional_text(
    value: Any,
    max_length: int,
    field: str
) -> Optional[str]:
    """Validate optional free text; blank input becomes None."""
    if value is None:
        return None

    value = sanitize_string(value, max_length=max_length, field=field)
    return value or None


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> None:
    """
    Validate that required fields are present in data.

    Args:
        data: Data dictionary to validate
        required_fields: List of required field names

    Raises:
        ValidationError: If any required field is missing
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None]

    if missing_fields:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing_fields)}",
            errors={field: "Field required" for field in missing_fields}
        )


def validate_file_extension(filename: str, allowed_extensions: List[str]) -> str:
    """
    Validate file extension.

    Args:
        filename: Filename to validate
        allowed_extensions: List of allowed extensions (e.g., ['.jpg', '.png'])

    Returns:
        Lower-case extension without the dot

    Raises:
        ValidationError: If file extension is not allowed
    """
    if not filename:
        raise ValidationError("Filename is required", field='filename')

    extension = filename.lower().rsplit('.', 1)[-1] if '.' in filename else ''

    if not extension or f'.{extension}' not in [ext.lower() for ext in allowed_extensions]:
        raise ValidationError(
            f"Invalid file type. Allowed types: {', '.join(allowed_extensions)}",
            field='filename'
        )

    return extension


def validate_file_size(size_bytes: int, max_size_mb: int = 5) -> int:
    """Validate file size against a limit in MB."""
    max_size_bytes = max_size_mb * 1024 * 1024

    if size_bytes > max_size_bytes:
        raise ValidationError(f"File size exceeds {max_size_mb}MB limit", field='image_data')

    return size_bytes


def decode_base64_image(base64_string: str) -> bytes:
    """
    Decode a base64-encoded image, accepting an optional data URI prefix.

    Returns:
        Raw image bytes

    Raises:
        ValidationError: If the payload is not a base64 image
    """
    if not base64_string:
        raise ValidationError("Image data is required", field='image_data')

    # Remove data URI prefix if present
    if ',' in base64_string:
        header, base64_string = base64_string.split(',', 1)
        if not header.startswith('data:image/'):
            raise ValidationError("Invalid image format", field='image_data')

    try:
        return base64.b64decode(base64_string, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("Invalid base64 encoding", field='image_data')


def sanitize_string(value: Any, max_length: Optional[int] = None, field: str = 'value') -> str:
    """
    Trim string input and enforce a maximum length.

    Raises:
        ValidationError: If value is not a string or too long
    """
    if not isinstance(value, str):
        raise ValidationError("Value must be a string", field=field)

    value = value.strip()

    if max_length and len(value) > max_length:
        raise ValidationError(f"Value exceeds maximum length of {max_length}", field=field)

    return value


def parse_model(model_cls: Type[ModelT], data: Any) -> ModelT:
    """
    Validate a request payload against a pydantic model.

    Every failing field is reported; the first one becomes the headline message.

    Raises:
        ValidationError: With a field -> message mapping in ``errors``
    """
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")

    try:
        return model_cls.model_validate(data)
    except PydanticValidationError as e:
        errors: Dict[str, str] = {}
        for error in e.errors():
            field = '.'.join(str(part) for part in error['loc']) or 'body'
            original = error.get('ctx', {}).get('error')
            message = original.message if isinstance(original, ValidationError) else error['msg']
            errors.setdefault(field, message)

        field, message = next(iter(errors.items()))
        raise ValidationError(f"{field}: {message}", field=field, errors=errors)
