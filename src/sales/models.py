"""Sale data models."""

from typing import Optional
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, field_validator

from shared.validators import (
    validate_amount,
    validate_date,
    validate_payment_method,
    validate_optional_text
)


class SaleInput(BaseModel):
    """Sale create/update request model. Updates replace the whole record."""

    model_config = ConfigDict(extra='ignore')

    date: str
    amount: Decimal
    payment_type: str
    note: Optional[str] = None
    category: Optional[str] = None

    @field_validator('date', mode='before')
    @classmethod
    def _check_date(cls, value):
        return validate_date(value)

    @field_validator('amount', mode='before')
    @classmethod
    def _check_amount(cls, value):
        return validate_amount(value)

    @field_validator('payment_type', mode='before')
    @classmethod
    def _check_payment_type(cls, value):
        return validate_payment_method(value, field='payment_type')

    @field_validator('note', mode='before')
    @classmethod
    def _check_note(cls, value):
        return validate_optional_text(value, max_length=1000, field='note')

    @field_validator('category', mode='before')
    @classmethod
    def _check_category(cls, value):
        return validate_optional_text(value, max_length=100, field='category')


class Sale(SaleInput):
    """Stored sale record."""

    user_id: str
    sale_id: str
    created_at: str
    updated_at: str
