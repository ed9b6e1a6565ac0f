"""
Upload confirmation: promotes a pending upload to a completed one.

Called by the client after its PUT to storage succeeded. By default the
client's word is trusted; with ``verify_object`` the object is HEAD-checked
in storage before promotion.
"""
import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Optional

from direct_upload.repositories.base import RecordStore
from direct_upload.storage.s3_client import S3Client, build_object_key
from direct_upload.utils.logging import log_confirmation_failed, log_upload_confirmed
from direct_upload.utils.metrics import (
    upload_confirmations_failed_total,
    uploads_confirmed_total,
)

logger = logging.getLogger(__name__)


class UploadConfirmer:
    """Turns a PendingUpload into a CompletedUpload."""

    def __init__(
        self,
        store: RecordStore,
        storage: Optional[S3Client] = None,
        verify_object: bool = False,
    ):
        if verify_object and storage is None:
            raise ValueError("verify_object requires a storage client")
        self.store = store
        self.storage = storage
        self.verify_object = verify_object

    def _fail(self, filename: str, reason: str, error: Optional[str] = None) -> bool:
        upload_confirmations_failed_total.labels(reason=reason).inc()
        log_confirmation_failed(logger, filename=filename, reason=reason, error=error)
        return False

    async def confirm(self, generated_filename: str) -> bool:
        """
        Confirm the upload stored as ``generated_filename``.

        Returns:
            True if a completed record now exists and the pending one is gone.
            False if there was no matching pending upload, it had expired,
            the object is missing (with verify_object), or the store failed.
        """
        start = time.perf_counter()

        try:
            pending = await self.store.find_pending(generated_filename)
        except Exception as e:
            logger.exception(f"Failed to look up pending upload {generated_filename}")
            return self._fail(generated_filename, "store_error", str(e))

        if pending is None:
            return self._fail(generated_filename, "not_found")

        if pending.is_expired(datetime.now(timezone.utc)):
            # Left in place: the sweep deletes the row together with any object
            return self._fail(generated_filename, "expired")

        if self.verify_object:
            object_key = build_object_key(pending.folder, pending.generated_filename)
            exists = await asyncio.to_thread(
                self.storage.check_object_exists, object_key, bucket=pending.bucket
            )
            if not exists:
                return self._fail(generated_filename, "object_missing")

        try:
            await self.store.promote(pending)
        except Exception as e:
            logger.exception(f"Failed to promote pending upload {generated_filename}")
            return self._fail(generated_filename, "store_error", str(e))

        uploads_confirmed_total.inc()
        log_upload_confirmed(
            logger,
            filename=generated_filename,
            duration_ms=(time.perf_counter() - start) * 1000,
        )
        return True
