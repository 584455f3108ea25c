"""
Object Storage Service for S3-compatible storage (MinIO, AWS S3, DigitalOcean Spaces).

Client documents are private objects: they are never linked publicly and
are only streamed back through the API after an access check.

Architecture:
- Uses boto3 (AWS SDK for Python)
- Compatible with MinIO (local), AWS S3, DigitalOcean Spaces
- Automatic bucket creation on init
"""
import logging
import mimetypes
from typing import Optional

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import ClientError
from flask import current_app
from werkzeug.datastructures import FileStorage

logger = logging.getLogger(__name__)


class StorageService:
    """
    S3-compatible object storage service.

    Usage:
        storage = StorageService()
        size = storage.upload_file(file, 'documents/<client>/<uuid>.pdf')
        data = storage.download_file('documents/<client>/<uuid>.pdf')
        storage.delete_file('documents/<client>/<uuid>.pdf')
    """

    def __init__(self):
        """Initialize S3 client from Flask config."""
        self.endpoint = current_app.config['S3_ENDPOINT']
        self.access_key = current_app.config['S3_ACCESS_KEY']
        self.secret_key = current_app.config['S3_SECRET_KEY']
        self.bucket = current_app.config['S3_BUCKET']
        self.region = current_app.config['S3_REGION']

        # Initialize boto3 S3 client
        self.client = boto3.client(
            's3',
            endpoint_url=self.endpoint,
            aws_access_key_id=self.access_key,
            aws_secret_access_key=self.secret_key,
            region_name=self.region,
            config=BotoConfig(signature_version='s3v4')
        )

        # Ensure bucket exists
        self._ensure_bucket_exists()

    def _ensure_bucket_exists(self):
        """Create bucket if it doesn't exist."""
        try:
            self.client.head_bucket(Bucket=self.bucket)
            logger.info(f"[STORAGE] Bucket '{self.bucket}' exists")
        except ClientError as e:
            error_code = e.response.get('Error', {}).get('Code')
            if error_code == '404':
                try:
                    self.client.create_bucket(Bucket=self.bucket)
                    logger.info(f"[STORAGE] Bucket '{self.bucket}' created")
                except ClientError as create_error:
                    logger.error(f"[STORAGE] Failed to create bucket: {create_error}")
                    raise
            else:
                logger.error(f"[STORAGE] Failed to check bucket: {e}")
                raise

    def upload_file(
        self,
        file: FileStorage,
        object_name: str,
        content_type: Optional[str] = None
    ) -> int:
        """
        Upload file to S3-compatible storage.

        Args:
            file: Werkzeug FileStorage object from request.files
            object_name: S3 object key (e.g., 'documents/<client_id>/<uuid>.pdf')
            content_type: MIME type stored with the object (detected if None)

        Returns:
            Size of the uploaded file in bytes

        Raises:
            ValueError: If file validation fails
            ClientError: If upload fails
        """
        size = self.validate_file(file)

        extra_args = {'ContentType': content_type or content_type_for(file)}

        try:
            file.seek(0)
            logger.info(f"[STORAGE] Uploading '{object_name}' to bucket '{self.bucket}'...")
            self.client.upload_fileobj(
                file.stream,
                self.bucket,
                object_name,
                ExtraArgs=extra_args
            )
            logger.info(f"[STORAGE] File uploaded: {object_name} ({size} bytes)")
            return size

        except ClientError as e:
            logger.exception(f"[STORAGE] Upload failed: {e}")
            raise

    def download_file(self, object_name: str) -> bytes:
        """
        Read an object's full body.

        Raises:
            ClientError: If the object is missing or the read fails
        """
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=object_name)
            return response['Body'].read()
        except ClientError as e:
            logger.exception(f"[STORAGE] Download failed for '{object_name}': {e}")
            raise

    def delete_file(self, object_name: str) -> bool:
        """
        Delete file from S3-compatible storage.

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            logger.info(f"[STORAGE] Deleting '{object_name}' from bucket '{self.bucket}'...")
            self.client.delete_object(Bucket=self.bucket, Key=object_name)
            return True
        except ClientError as e:
            logger.exception(f"[STORAGE] Delete failed: {e}")
            return False

    def validate_file(self, file: FileStorage) -> int:
        """
        Validate uploaded file (size, type).

        Returns:
            File size in bytes

        Raises:
            ValueError: If validation fails
        """
        return validate_upload(
            file,
            current_app.config.get('MAX_UPLOAD_SIZE', 10 * 1024 * 1024),
            current_app.config.get('ALLOWED_MIME_TYPES', set()),
        )


def content_type_for(file: FileStorage) -> str:
    """MIME type for an upload: the declared type, else guessed from the filename."""
    return file.mimetype or mimetypes.guess_type(file.filename or '')[0] or 'application/octet-stream'


def validate_upload(file: FileStorage, max_size: int, allowed_types) -> int:
    """
    Size and MIME type checks shared by every storage backend.

    Returns:
        File size in bytes

    Raises:
        ValueError: If validation fails
    """
    if not file or not file.filename:
        raise ValueError("No file provided")

    file.seek(0, 2)  # Seek to end
    file_size = file.tell()
    file.seek(0)  # Reset

    if file_size == 0:
        raise ValueError("The file is empty")

    if file_size > max_size:
        max_mb = max_size / (1024 * 1024)
        raise ValueError(f"File too large. Maximum {max_mb:.1f}MB")

    content_type = file.mimetype
    if allowed_types and content_type not in allowed_types:
        raise ValueError(f"File type not allowed: {content_type}")

    logger.info(f"[STORAGE] File validation passed: {file.filename} ({file_size} bytes, {content_type})")
    return file_size


# Singleton instance
_storage_service = None


def get_storage_service() -> StorageService:
    """
    Get or create StorageService singleton.

    Returns:
        StorageService instance
    """
    global _storage_service
    if _storage_service is None:
        _storage_service = StorageService()
    return _storage_service
