"""
Caller-facing upload API.

Wraps policy validation, signed URL issuance, confirmation and the expiry
sweep behind one object bound to a storage client and a record store.
"""
import asyncio
import logging
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Optional

from direct_upload.repositories.base import RecordStore
from direct_upload.schemas.upload import FileDescriptor, UploadOutcome, UploadPolicy
from direct_upload.services import policy as upload_policy
from direct_upload.services.confirmer import UploadConfirmer
from direct_upload.services.issuer import SignedUrlIssuer
from direct_upload.storage.s3_client import S3Client, build_object_key
from direct_upload.utils.logging import log_pending_swept
from direct_upload.utils.metrics import pending_uploads_swept_total

logger = logging.getLogger(__name__)


class UploadService:
    """Server side of the direct upload protocol."""

    def __init__(
        self,
        storage: S3Client,
        store: RecordStore,
        verify_object: bool = False,
    ):
        self.storage = storage
        self.store = store
        self.issuer = SignedUrlIssuer(storage, store)
        self.confirmer = UploadConfirmer(
            store,
            storage=storage,
            verify_object=verify_object,
        )

    @staticmethod
    def validate(policy: UploadPolicy, descriptor: FileDescriptor) -> bool:
        """True if ``descriptor`` satisfies ``policy``."""
        return upload_policy.validate(descriptor, policy).valid

    async def issue_signed_upload(
        self,
        policy: UploadPolicy,
        descriptor: FileDescriptor,
        checksum: str
    ) -> UploadOutcome:
        """Validate, presign and record a pending upload."""
        return await self.issuer.issue(descriptor, checksum, policy)

    async def confirm_upload(self, filename: str) -> bool:
        """Promote the pending upload ``filename``."""
        return await self.confirmer.confirm(filename)

    async def sweep_expired(
        self,
        now: Optional[datetime] = None,
        delete_objects: bool = True
    ) -> int:
        """
        Delete pending uploads whose signed URL expired unconfirmed.

        Objects a client may have written without confirming are removed
        from storage as well when ``delete_objects`` is set.

        Returns:
            Number of pending uploads deleted
        """
        start = time.perf_counter()
        expired = await self.store.delete_expired_pending(now or datetime.now(timezone.utc))

        objects_deleted = None
        if expired and delete_objects and self.storage.is_configured:
            keys_by_bucket = defaultdict(list)
            for pending in expired:
                keys_by_bucket[pending.bucket].append(
                    build_object_key(pending.folder, pending.generated_filename)
                )
            objects_deleted = 0
            for bucket, keys in keys_by_bucket.items():
                deleted, _ = await asyncio.to_thread(
                    self.storage.delete_objects_batch, keys, bucket=bucket
                )
                objects_deleted += deleted

        pending_uploads_swept_total.inc(len(expired))
        log_pending_swept(
            logger,
            count=len(expired),
            duration_ms=(time.perf_counter() - start) * 1000,
            objects_deleted=objects_deleted,
        )
        return len(expired)
