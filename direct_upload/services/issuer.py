"""
Signed URL issuance.

Flow:
1. Client sends the file descriptor and its SHA-256 checksum
2. Descriptor is checked against the upload policy
3. A random storage name is generated, keeping the original extension
4. A presigned PUT URL is created with type, length, checksum and metadata
   bound into the signature
5. A PendingUpload is recorded; without it no URL is handed out
6. Client PUTs the bytes straight to storage, then confirms
"""
import logging
import time
import uuid
from datetime import datetime, timedelta, timezone

from direct_upload.repositories.base import RecordStore
from direct_upload.schemas.upload import (
    FileDescriptor,
    PendingUploadRecord,
    UploadErrorKind,
    UploadOutcome,
    UploadPolicy,
)
from direct_upload.services import policy as upload_policy
from direct_upload.storage.s3_client import S3Client, build_object_key
from direct_upload.utils.logging import log_upload_issued, log_upload_rejected
from direct_upload.utils.metrics import (
    upload_issue_duration_seconds,
    uploads_issued_total,
    uploads_rejected_total,
)

logger = logging.getLogger(__name__)

STORAGE_UNAVAILABLE_MESSAGE = "Failed to generate upload URL"
RECORD_FAILED_MESSAGE = "Failed to record the upload"


def get_extension(filename: str) -> str:
    """
    Extension of ``filename`` including the dot, as written.

    ``photo.PNG`` -> ``.PNG``, ``README`` -> ``""``.
    """
    if "." not in filename:
        return ""
    return "." + filename.rsplit(".", 1)[1]


def generate_filename(original_filename: str) -> str:
    """Random storage name: ``<uuid4><extension>``."""
    return f"{uuid.uuid4()}{get_extension(original_filename)}"


class SignedUrlIssuer:
    """
    Mints presigned PUT URLs and records them as pending uploads.

    Every failure is returned as an UploadOutcome so the caller can show
    it without special control flow.
    """

    def __init__(self, storage: S3Client, store: RecordStore):
        self.storage = storage
        self.store = store

    def _reject(self, descriptor: FileDescriptor, kind: UploadErrorKind, message: str) -> UploadOutcome:
        uploads_rejected_total.labels(reason=kind.value).inc()
        log_upload_rejected(logger, original_filename=descriptor.name, reason=kind.value, error=message)
        return UploadOutcome.failure(kind, message)

    async def issue(
        self,
        descriptor: FileDescriptor,
        checksum: str,
        policy: UploadPolicy
    ) -> UploadOutcome:
        """
        Create a signed upload for ``descriptor``.

        Args:
            descriptor: Client-declared file metadata
            checksum: Hex SHA-256 of the file content
            policy: Constraints and destination for this upload

        Returns:
            UploadOutcome with signed_url, object_url and generated_filename
            on success, or error and error_kind on failure
        """
        start = time.perf_counter()

        result = upload_policy.validate(descriptor, policy)
        if not result.valid:
            return self._reject(descriptor, result.error_kind, result.error)

        if not self.storage.is_configured:
            logger.error("S3 storage not configured, cannot generate presigned URL")
            return self._reject(descriptor, UploadErrorKind.ISSUANCE_FAILED, "Storage service not configured")

        filename = generate_filename(descriptor.name)
        object_key = build_object_key(policy.folder, filename)

        signed_url = self.storage.generate_presigned_upload_url(
            object_key,
            content_type=descriptor.mime_type,
            content_length=descriptor.size,
            checksum_hex=checksum.lower(),
            metadata=policy.metadata,
            expiration=policy.expiry_seconds,
            bucket=policy.bucket,
        )
        if not signed_url:
            return self._reject(descriptor, UploadErrorKind.ISSUANCE_FAILED, STORAGE_UNAVAILABLE_MESSAGE)

        object_url = self.storage.object_url(object_key, bucket=policy.bucket)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=policy.expiry_seconds)

        pending = PendingUploadRecord(
            generated_filename=filename,
            original_filename=descriptor.name,
            bucket=policy.bucket,
            folder=policy.folder,
            size=descriptor.size,
            mime_type=descriptor.mime_type,
            signed_url=signed_url,
            object_url=object_url,
            expires_at=expires_at,
        )

        try:
            await self.store.create_pending(pending)
        except Exception:
            logger.exception(f"Failed to record pending upload {filename}")
            return self._reject(descriptor, UploadErrorKind.ISSUANCE_FAILED, RECORD_FAILED_MESSAGE)

        duration = time.perf_counter() - start
        uploads_issued_total.inc()
        upload_issue_duration_seconds.observe(duration)
        log_upload_issued(
            logger,
            filename=filename,
            original_filename=descriptor.name,
            size=descriptor.size,
            mime_type=descriptor.mime_type,
            duration_ms=duration * 1000,
        )

        return UploadOutcome(
            success=True,
            signed_url=signed_url,
            object_url=object_url,
            generated_filename=filename,
            expires_at=expires_at,
            upload_headers=self.storage.upload_headers(
                descriptor.mime_type,
                checksum_hex=checksum.lower(),
                metadata=policy.metadata,
            ),
        )
