"""
Storage module for S3-compatible object storage.

Clients upload directly to the bucket using presigned URLs.
The backend NEVER receives file bytes.
"""
from direct_upload.storage.s3_client import S3Client, get_s3_client, build_object_key

__all__ = ["S3Client", "get_s3_client", "build_object_key"]
