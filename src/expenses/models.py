"""Expense transaction data models."""

from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from shared.validators import (
    validate_amount,
    validate_quantity,
    validate_date,
    validate_item_name,
    validate_payment_method,
    validate_optional_text,
    validate_total
)
from receipts.models import ImageUpload
from reports.aggregation import recompute_grand_total, recompute_line_total


class ExpenseItemInput(BaseModel):
    """One line of an expense. Any client-sent total is ignored."""

    model_config = ConfigDict(extra='ignore')

    item_id: Optional[str] = None
    item_name: str
    unit: Decimal
    price_per_unit: Decimal

    @field_validator('item_name', mode='before')
    @classmethod
    def _check_name(cls, value):
        return validate_item_name(value)

    @field_validator('unit', mode='before')
    @classmethod
    def _check_unit(cls, value):
        return validate_quantity(value)

    @field_validator('price_per_unit', mode='before')
    @classmethod
    def _check_price(cls, value):
        return validate_amount(value, field='price_per_unit', label='Price per unit')

    @model_validator(mode='after')
    def _check_line_total(self):
        validate_total(
            recompute_line_total(self.unit, self.price_per_unit),
            field='total',
            label='Line total'
        )
        return self


class ExpenseTransactionInput(BaseModel):
    """Expense create/update request model. Updates replace fields and items."""

    model_config = ConfigDict(extra='ignore')

    date: str
    payment_mode: str
    note: Optional[str] = None
    items: List[ExpenseItemInput] = Field(..., min_length=1)
    bill_image_key: Optional[str] = None
    receipt: Optional[ImageUpload] = None

    @field_validator('date', mode='before')
    @classmethod
    def _check_date(cls, value):
        return validate_date(value)

    @field_validator('payment_mode', mode='before')
    @classmethod
    def _check_payment_mode(cls, value):
        return validate_payment_method(value, field='payment_mode')

    @field_validator('note', mode='before')
    @classmethod
    def _check_note(cls, value):
        return validate_optional_text(value, max_length=1000, field='note')

    @field_validator('items')
    @classmethod
    def _check_grand_total(cls, items):
        validate_total(
            recompute_grand_total(item.model_dump() for item in items),
            field='items',
            label='Grand total'
        )
        return items


class ExpenseItem(BaseModel):
    """Stored expense item, embedded in its transaction."""

    item_id: str
    transaction_id: str
    user_id: str
    item_name: str
    unit: Decimal
    price_per_unit: Decimal
    total: Decimal


class ExpenseTransaction(BaseModel):
    """Stored expense transaction."""

    user_id: str
    transaction_id: str
    date: str
    payment_mode: str
    note: Optional[str] = None
    bill_image_key: Optional[str] = None
    grand_total: Decimal
    items: List[ExpenseItem]
    created_at: str
    updated_at: str
