"""Image upload data models."""

from typing import Optional
from pydantic import BaseModel, Field


class ImageUpload(BaseModel):
    """Image sent inline with a record, as used for bills and avatars."""

    image_data: str = Field(..., description="Base64-encoded image data")
    filename: str = Field(..., description="Original filename")
    content_type: Optional[str] = Field(default=None, description="Image content type")
