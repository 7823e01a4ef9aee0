"""
AWS S3 service for post attachment storage.
"""
import gzip
import logging
import os
from typing import Dict, Optional
from urllib.parse import quote

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from postboard.config import Config
from postboard.errors import StorageWriteError

logger = logging.getLogger(__name__)

DOWNLOAD_TOKEN_KEY = 'download-token'


class S3Service:
    """Service for AWS S3 operations."""

    def __init__(self, bucket_name: str, region: str, aws_access_key: str = None,
                 aws_secret_key: str = None, endpoint_url: str = None,
                 public_base_url: str = None, client=None):
        """Initialize S3 service."""
        self.bucket_name = bucket_name
        self.region = region
        self.endpoint_url = endpoint_url
        self.public_base_url = public_base_url

        if client is not None:
            self.s3_client = client
            return

        # Initialize S3 client
        session_kwargs = {'region_name': region}
        if aws_access_key and aws_secret_key:
            session_kwargs['aws_access_key_id'] = aws_access_key
            session_kwargs['aws_secret_access_key'] = aws_secret_key
        if endpoint_url:
            session_kwargs['endpoint_url'] = endpoint_url

        self.s3_client = boto3.client('s3', **session_kwargs)

    def upload_bytes(self, object_name: str, data: bytes, content_type: str,
                     cache_control: Optional[str] = None, use_gzip: bool = False,
                     metadata: Optional[Dict[str, str]] = None):
        """
        Write a byte buffer to the bucket.

        Args:
            object_name: Key of the object
            data: Raw bytes
            content_type: MIME type stored with the object
            cache_control: Optional Cache-Control header value
            use_gzip: Compress the body and mark it Content-Encoding: gzip
            metadata: User metadata stored with the object

        Raises:
            StorageWriteError: If the write fails
        """
        params = {
            'Bucket': self.bucket_name,
            'Key': object_name,
            'ContentType': content_type,
            'Metadata': metadata or {},
        }
        if cache_control:
            params['CacheControl'] = cache_control
        if use_gzip:
            # Fixed mtime keeps the compressed body deterministic
            params['Body'] = gzip.compress(data, mtime=0)
            params['ContentEncoding'] = 'gzip'
        else:
            params['Body'] = data

        try:
            self.s3_client.put_object(**params)
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to upload {object_name}: {e}") from e

        logger.debug(f"Uploaded {object_name} ({len(data)} bytes) to {self.bucket_name}")

    def get_download_url(self, object_name: str) -> str:
        """
        Resolve the public download URL of a stored object.

        The object must exist and carry a download token in its metadata.

        Raises:
            StorageWriteError: If the object is missing or has no token
        """
        try:
            response = self.s3_client.head_object(
                Bucket=self.bucket_name,
                Key=object_name
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to resolve download URL for {object_name}: {e}") from e

        if not response.get('Metadata', {}).get(DOWNLOAD_TOKEN_KEY):
            raise StorageWriteError(f"Object {object_name} has no download token")

        return self.public_url(object_name)

    def public_url(self, object_name: str) -> str:
        """Build the public URL of an object key."""
        key = quote(object_name, safe='/')
        if self.public_base_url:
            return f"{self.public_base_url.rstrip('/')}/{key}"
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{key}"
        return f"https://{self.bucket_name}.s3.{self.region}.amazonaws.com/{key}"

    def read_bytes(self, object_name: str) -> bytes:
        """
        Read an object back, undoing gzip content encoding.

        Raises:
            StorageWriteError: If the object cannot be read
        """
        try:
            response = self.s3_client.get_object(
                Bucket=self.bucket_name,
                Key=object_name
            )
            body = response['Body'].read()
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to read {object_name}: {e}") from e

        if response.get('ContentEncoding') == 'gzip':
            return gzip.decompress(body)
        return body

    def delete_file(self, object_name: str) -> bool:
        """
        Delete an object from the bucket.

        Returns:
            True if successful
        """
        try:
            self.s3_client.delete_object(
                Bucket=self.bucket_name,
                Key=object_name
            )
            return True
        except (ClientError, BotoCoreError) as e:
            raise StorageWriteError(f"Failed to delete {object_name}: {e}") from e


def get_s3_service(app=None) -> S3Service:
    """
    Factory function to create S3Service instance.

    Values from the service-account file fill in anything the app config
    or environment leaves unset.

    Args:
        app: Flask app instance (optional)

    Returns:
        S3Service instance
    """
    if app:
        settings = {
            'bucket': app.config.get('S3_BUCKET_NAME'),
            'region': app.config.get('AWS_REGION'),
            'aws_access_key_id': app.config.get('AWS_ACCESS_KEY_ID'),
            'aws_secret_access_key': app.config.get('AWS_SECRET_ACCESS_KEY'),
            'endpoint_url': app.config.get('S3_ENDPOINT_URL'),
            'public_base_url': app.config.get('STORAGE_PUBLIC_BASE_URL'),
        }
        credentials_file = app.config.get('STORAGE_CREDENTIALS_FILE')
    else:
        settings = {
            'bucket': os.getenv('S3_BUCKET_NAME'),
            'region': os.getenv('AWS_REGION'),
            'aws_access_key_id': os.getenv('AWS_ACCESS_KEY_ID'),
            'aws_secret_access_key': os.getenv('AWS_SECRET_ACCESS_KEY'),
            'endpoint_url': os.getenv('S3_ENDPOINT_URL'),
            'public_base_url': os.getenv('STORAGE_PUBLIC_BASE_URL'),
        }
        credentials_file = os.getenv('STORAGE_CREDENTIALS_FILE')

    if credentials_file:
        for key, value in Config.load_service_account(credentials_file).items():
            if not settings.get(key):
                settings[key] = value

    return S3Service(
        settings['bucket'],
        settings['region'] or 'us-east-1',
        settings['aws_access_key_id'],
        settings['aws_secret_access_key'],
        endpoint_url=settings['endpoint_url'],
        public_base_url=settings['public_base_url'],
    )
