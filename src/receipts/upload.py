"""Bill image and avatar storage on S3."""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional
import logging

from shared.config import get_setting, get_int_setting
from shared.s3 import S3Client
from shared.validators import (
    validate_required_fields,
    validate_file_extension,
    validate_file_size,
    decode_base64_image
)
from shared.exceptions import AuthorizationError, StorageError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ['.jpg', '.jpeg', '.png', '.gif', '.webp']

MAX_FILE_SIZE_MB = 5

CONTENT_TYPES = {
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
    'webp': 'image/webp'
}


class ReceiptStorage:
    """Stores user images under a per-user prefix in the bill images bucket."""

    def __init__(self):
        """Initialize image storage."""
        self.s3_client = S3Client(get_setting('RECEIPTS_BUCKET'))

    def upload_image(
        self,
        user_id: str,
        upload: Dict[str, Any],
        folder: str = 'expenses'
    ) -> str:
        """
        Upload an image for a user.

        Args:
            user_id: Owner user ID
            upload: Dict with image_data (base64), filename and optional content_type
            folder: Sub-folder under the user prefix

        Returns:
            S3 key of the stored image

        Raises:
            ValidationError: If the upload payload is invalid
            StorageError: If the upload fails
        """
        validate_required_fields(upload, ['image_data', 'filename'])

        filename = upload['filename']
        extension = validate_file_extension(filename, ALLOWED_EXTENSIONS)
        content = decode_base64_image(upload['image_data'])
        validate_file_size(len(content), MAX_FILE_SIZE_MB)

        key = f"{user_id}/{folder}/{uuid.uuid4()}.{extension}"

        self.s3_client.put_image(
            content=content,
            key=key,
            content_type=upload.get('content_type') or CONTENT_TYPES[extension],
            metadata={
                'user_id': user_id,
                'original_filename': filename,
                'uploaded_at': datetime.utcnow().isoformat()
            }
        )

        return key

    def delete_image(self, user_id: str, key: str) -> None:
        """
        Delete one of the user's images.

        Raises:
            AuthorizationError: If the key is outside the user's prefix
            StorageError: If deletion fails
        """
        self.check_owner(user_id, key)
        self.s3_client.remove_image(key)

    def discard_image(self, user_id: str, key: Optional[str]) -> None:
        """Delete an image that is no longer referenced; failures are only logged."""
        if not key:
            return

        try:
            self.delete_image(user_id, key)
        except StorageError as e:
            logger.warning(f"Left orphaned image {key}: {e.message}")

    def image_url(self, user_id: str, key: str) -> str:
        """Presigned download URL for one of the user's images."""
        self.check_owner(user_id, key)
        return self.s3_client.image_download_url(
            key,
            expiration=get_int_setting('RECEIPT_URL_EXPIRATION')
        )

    @staticmethod
    def check_owner(user_id: str, key: str) -> None:
        """Raise AuthorizationError unless key lies under the user prefix."""
        if not key.startswith(f"{user_id}/"):
            raise AuthorizationError("Image does not belong to this user")
