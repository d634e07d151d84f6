"""User profile data models."""

from typing import Optional
from pydantic import BaseModel, ConfigDict, field_validator

from shared.validators import validate_optional_text
from receipts.models import ImageUpload


class ProfileInput(BaseModel):
    """Profile update request model."""

    model_config = ConfigDict(extra='ignore')

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_key: Optional[str] = None
    avatar: Optional[ImageUpload] = None

    @field_validator('first_name', 'last_name', mode='before')
    @classmethod
    def _check_name(cls, value, info):
        return validate_optional_text(value, max_length=100, field=info.field_name)


class Profile(BaseModel):
    """Stored profile record."""

    user_id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar_key: Optional[str] = None
    created_at: str
    updated_at: str
