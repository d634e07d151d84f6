"""Bill image and avatar objects on S3."""

import boto3
from typing import Optional, Dict
from botocore.exceptions import ClientError
import logging

from .config import aws_endpoint_url
from .exceptions import StorageError

logger = logging.getLogger(__name__)


class S3Client:
    """
    Image bucket wrapper.

    Keys are always ``{user_id}/{folder}/{name}``; ownership is checked by
    the caller before any key reaches this class.
    """

    def __init__(self, bucket_name: str):
        self.bucket_name = bucket_name

        endpoint_url = aws_endpoint_url()
        if endpoint_url:
            self.s3 = boto3.client('s3', endpoint_url=endpoint_url)
        else:
            self.s3 = boto3.client('s3')

    def put_image(
        self,
        content: bytes,
        key: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> str:
        """
        Store an already validated image, encrypted at rest.

        Args:
            content: Decoded image bytes
            key: Owner-prefixed object key
            content_type: Image MIME type
            metadata: Owner and original filename

        Returns:
            The object key

        Raises:
            StorageError: If S3 rejects the write
        """
        request = {
            'Bucket': self.bucket_name,
            'Key': key,
            'Body': content,
            'ServerSideEncryption': 'AES256'
        }
        if content_type:
            request['ContentType'] = content_type
        if metadata:
            request['Metadata'] = metadata

        try:
            self.s3.put_object(**request)
        except ClientError as e:
            logger.error(f"Could not store image {key}: {e}")
            raise StorageError(f"Failed to store image: {str(e)}")

        logger.info(f"Stored image {key} ({len(content)} bytes)")
        return key

    def remove_image(self, key: str) -> None:
        """Remove an image; S3 treats a missing key as already removed."""
        try:
            self.s3.delete_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            logger.error(f"Could not remove image {key}: {e}")
            raise StorageError(f"Failed to remove image: {str(e)}")

        logger.info(f"Removed image {key}")

    def image_download_url(self, key: str, expiration: int) -> str:
        """Time-limited GET link so the browser can show a bill or avatar."""
        try:
            return self.s3.generate_presigned_url(
                'get_object',
                Params={'Bucket': self.bucket_name, 'Key': key},
                ExpiresIn=expiration
            )
        except ClientError as e:
            logger.error(f"Could not sign download link for image {key}: {e}")
            raise StorageError(f"Failed to create image link: {str(e)}")
