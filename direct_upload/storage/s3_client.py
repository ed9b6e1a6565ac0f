"""
S3-compatible storage client.

Uses boto3 against any S3-compatible API (AWS S3, MinIO, Cloudflare R2).

The API server only ever presigns requests here: clients PUT the bytes
straight to the bucket with the signed URL, so file content never passes
through the application server.
"""
import base64
import logging
from typing import Dict, Iterable, Optional
from urllib.parse import quote, urlsplit

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from direct_upload.config import settings

logger = logging.getLogger(__name__)


def build_object_key(folder: str, filename: str) -> str:
    """Object key for ``filename`` inside ``folder`` (bucket root when empty)."""
    folder = folder.strip("/")
    return f"{folder}/{filename}" if folder else filename


def checksum_to_base64(checksum_hex: str) -> str:
    """S3 expects the SHA-256 checksum as base64 of the raw digest."""
    return base64.b64encode(bytes.fromhex(checksum_hex)).decode("ascii")


class S3Client:
    """
    S3-compatible client for presigned uploads.

    Any argument left as None falls back to the application settings.
    """

    def __init__(
        self,
        endpoint: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        region: Optional[str] = None,
        bucket: Optional[str] = None,
        force_path_style: Optional[bool] = None,
    ):
        self._client = None
        self._configured = False

        self.endpoint = (endpoint or settings.s3_endpoint or "").rstrip("/") or None
        self.region = region or settings.s3_region
        self.default_bucket = bucket or settings.s3_bucket
        self.force_path_style = (
            settings.s3_force_path_style if force_path_style is None else force_path_style
        )
        access_key = access_key or settings.s3_access_key
        secret_key = secret_key or settings.s3_secret_key

        if not all([access_key, secret_key]):
            logger.warning(
                "S3 storage not configured. "
                "Set S3_ACCESS_KEY and S3_SECRET_KEY (and S3_ENDPOINT for non-AWS stores)."
            )
            return

        try:
            self._client = boto3.client(
                's3',
                endpoint_url=self.endpoint,
                aws_access_key_id=access_key,
                aws_secret_access_key=secret_key,
                region_name=self.region,
                config=Config(
                    signature_version='s3v4',
                    s3={'addressing_style': 'path' if self.force_path_style else 'virtual'},
                    # Only the SHA-256 we bind explicitly, no SDK default checksums
                    request_checksum_calculation='when_required',
                )
            )
            self._configured = True
            logger.info(f"S3 client initialized for bucket: {self.default_bucket}")
        except BotoCoreError as e:
            logger.error(f"Failed to initialize S3 client: {e}")

    @property
    def is_configured(self) -> bool:
        """Check if the client is properly configured."""
        return self._configured and self._client is not None

    @staticmethod
    def upload_headers(
        content_type: str,
        checksum_hex: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Dict[str, str]:
        """
        Headers a client must send with the PUT for the signature to match.

        Content-Length is left to the HTTP client.
        """
        headers = {"Content-Type": content_type}
        if checksum_hex:
            headers["x-amz-checksum-sha256"] = checksum_to_base64(checksum_hex)
        for key, value in (metadata or {}).items():
            headers[f"x-amz-meta-{key.lower()}"] = value
        return headers

    def generate_presigned_upload_url(
        self,
        object_key: str,
        content_type: str,
        content_length: Optional[int] = None,
        checksum_hex: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
        expiration: Optional[int] = None,
        bucket: Optional[str] = None,
    ) -> Optional[str]:
        """
        Generate a presigned PUT URL for direct upload.

        Args:
            object_key: The S3 object key (path in bucket)
            content_type: MIME type the client declared
            content_length: Declared size in bytes
            checksum_hex: Hex SHA-256 of the content; storage rejects other bytes
            metadata: User metadata stored with the object
            expiration: URL lifetime in seconds (default from settings)
            bucket: Target bucket (default from settings)

        Returns:
            Presigned URL string, or None if generation fails
        """
        if not self.is_configured:
            logger.error("Cannot generate presigned URL: S3 not configured")
            return None

        if expiration is None:
            expiration = settings.upload_expires

        params = {
            'Bucket': bucket or self.default_bucket,
            'Key': object_key,
            'ContentType': content_type,
        }
        if content_length is not None:
            params['ContentLength'] = content_length
        if checksum_hex:
            params['ChecksumSHA256'] = checksum_to_base64(checksum_hex)
        if metadata:
            params['Metadata'] = dict(metadata)

        try:
            url = self._client.generate_presigned_url(
                ClientMethod='put_object',
                Params=params,
                ExpiresIn=expiration
            )
            logger.debug(f"Generated presigned URL for {object_key}")
            return url
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to generate presigned URL for {object_key}: {e}")
            return None

    def object_url(self, object_key: str, bucket: Optional[str] = None) -> str:
        """Public URL the object will have once written."""
        bucket = bucket or self.default_bucket
        key = quote(object_key)
        if self.endpoint is None:
            return f"https://{bucket}.s3.{self.region}.amazonaws.com/{key}"
        if self.force_path_style:
            return f"{self.endpoint}/{bucket}/{key}"
        parts = urlsplit(self.endpoint)
        return f"{parts.scheme}://{bucket}.{parts.netloc}/{key}"

    def check_object_exists(self, object_key: str, bucket: Optional[str] = None) -> bool:
        """
        Check if an object exists in the bucket.

        Used to verify that a confirmed upload actually landed.
        """
        if not self.is_configured:
            return False

        try:
            self._client.head_object(Bucket=bucket or self.default_bucket, Key=object_key)
            return True
        except ClientError as e:
            if e.response['Error']['Code'] in ('404', 'NoSuchKey', 'NotFound'):
                return False
            logger.error(f"Error checking object existence: {e}")
            return False
        except BotoCoreError as e:
            logger.error(f"Error checking object existence: {e}")
            return False

    def delete_objects_batch(self, object_keys: Iterable[str], bucket: Optional[str] = None) -> tuple[int, int]:
        """
        Delete multiple objects from the bucket in batch.

        Missing keys count as deleted. S3 accepts at most 1000 keys per call.

        Returns:
            Tuple of (successful_count, failed_count)
        """
        object_keys = list(object_keys)
        if not self.is_configured:
            logger.warning("Cannot delete objects: S3 not configured")
            return (0, len(object_keys))

        if not object_keys:
            return (0, 0)

        successful = 0
        failed = 0
        BATCH_SIZE = 1000

        for i in range(0, len(object_keys), BATCH_SIZE):
            batch = object_keys[i:i + BATCH_SIZE]
            try:
                response = self._client.delete_objects(
                    Bucket=bucket or self.default_bucket,
                    Delete={
                        'Objects': [{'Key': key} for key in batch],
                        'Quiet': True  # Only return errors
                    }
                )
                errors = response.get('Errors', [])
                for error in errors[:5]:
                    logger.warning(
                        f"Failed to delete {error.get('Key')}: "
                        f"{error.get('Code')} - {error.get('Message')}"
                    )
                failed += len(errors)
                successful += len(batch) - len(errors)
            except (ClientError, BotoCoreError) as e:
                logger.error(f"Batch delete failed: {e}")
                failed += len(batch)

        return (successful, failed)


# Singleton instance
_s3_client: Optional[S3Client] = None


def get_s3_client() -> S3Client:
    """
    Get the singleton S3 client instance.

    Returns:
        S3Client instance (may or may not be configured)
    """
    global _s3_client
    if _s3_client is None:
        _s3_client = S3Client()
    return _s3_client
