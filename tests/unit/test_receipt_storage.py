"""Unit tests for bill image and avatar storage."""

import base64
import pytest
from unittest.mock import patch
from botocore.exceptions import ClientError
import sys
import os

# Add src directory to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', 'src'))

from shared.config import get_setting, get_int_setting
from receipts.upload import ReceiptStorage
from shared.exceptions import AuthorizationError, StorageError, ValidationError

BUCKET = get_setting('RECEIPTS_BUCKET')


def client_error(operation):
    return ClientError({'Error': {'Code': 'AccessDenied', 'Message': 'Access Denied'}}, operation)


class TestReceiptStorage:
    """Test cases for ReceiptStorage and its S3 client."""

    @pytest.fixture
    def storage(self):
        """Create image storage with a mocked boto3 S3 client."""
        with patch('shared.s3.boto3'):
            storage = ReceiptStorage()
        return storage

    @pytest.fixture
    def upload(self):
        """PNG upload as sent by the client."""
        image = base64.b64encode(b'\x89PNG\r\n\x1a\nfake-image').decode()
        return {'image_data': f'data:image/png;base64,{image}', 'filename': 'bill.png'}

    def test_upload_image(self, storage, upload):
        """Test that uploads land under the owner prefix, encrypted."""
        key = storage.upload_image('user123', upload)

        assert key.startswith('user123/expenses/')
        assert key.endswith('.png')
        request = storage.s3_client.s3.put_object.call_args.kwargs
        assert request['Key'] == key
        assert request['Bucket'] == BUCKET
        assert request['ContentType'] == 'image/png'
        assert request['ServerSideEncryption'] == 'AES256'
        assert request['Metadata']['user_id'] == 'user123'
        assert request['Metadata']['original_filename'] == 'bill.png'

    def test_upload_avatar_folder(self, storage, upload):
        key = storage.upload_image('user123', upload, folder='avatars')

        assert key.startswith('user123/avatars/')

    def test_upload_rejects_bad_extension(self, storage, upload):
        upload['filename'] = 'bill.pdf'

        with pytest.raises(ValidationError):
            storage.upload_image('user123', upload)

        storage.s3_client.s3.put_object.assert_not_called()

    def test_upload_failure(self, storage, upload):
        storage.s3_client.s3.put_object.side_effect = client_error('PutObject')

        with pytest.raises(StorageError, match="Failed to store image"):
            storage.upload_image('user123', upload)

    def test_delete_image(self, storage):
        storage.delete_image('user123', 'user123/expenses/bill.png')

        storage.s3_client.s3.delete_object.assert_called_once_with(
            Bucket=BUCKET, Key='user123/expenses/bill.png'
        )

    def test_delete_foreign_image(self, storage):
        with pytest.raises(AuthorizationError):
            storage.delete_image('user123', 'other-user/expenses/bill.png')

        storage.s3_client.s3.delete_object.assert_not_called()

    def test_discard_image_logs_failure(self, storage):
        storage.s3_client.s3.delete_object.side_effect = client_error('DeleteObject')

        storage.discard_image('user123', 'user123/expenses/bill.png')

        storage.s3_client.s3.delete_object.assert_called_once()

    def test_discard_without_key(self, storage):
        storage.discard_image('user123', None)

        storage.s3_client.s3.delete_object.assert_not_called()

    def test_image_url(self, storage):
        storage.s3_client.s3.generate_presigned_url.return_value = 'https://example.com/signed'

        url = storage.image_url('user123', 'user123/avatars/me.png')

        assert url == 'https://example.com/signed'
        storage.s3_client.s3.generate_presigned_url.assert_called_once_with(
            'get_object',
            Params={'Bucket': BUCKET, 'Key': 'user123/avatars/me.png'},
            ExpiresIn=get_int_setting('RECEIPT_URL_EXPIRATION')
        )

    def test_image_url_failure(self, storage):
        storage.s3_client.s3.generate_presigned_url.side_effect = client_error('GetObject')

        with pytest.raises(StorageError, match="Failed to create image link"):
            storage.image_url('user123', 'user123/avatars/me.png')


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
