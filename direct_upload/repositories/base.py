"""
Record store interface for upload bookkeeping.
The issuer and confirmer depend only on this interface.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from direct_upload.schemas.upload import CompletedUploadRecord, PendingUploadRecord


class RecordStore(ABC):
    """
    Abstract store for pending and completed uploads.

    Pending uploads are keyed by generated filename, completed uploads by
    stored name (the same value). Implementations must make
    ``create_completed`` a no-op for an existing key and ``delete_pending``
    a no-op for a missing key.
    """

    @abstractmethod
    async def create_pending(self, pending: PendingUploadRecord) -> None:
        """
        Persist a pending upload.

        Raises:
            Exception: If the record could not be stored
        """
        pass

    @abstractmethod
    async def find_pending(self, generated_filename: str) -> Optional[PendingUploadRecord]:
        """Return the pending upload for a filename, or None."""
        pass

    @abstractmethod
    async def delete_pending(self, generated_filename: str) -> None:
        """Delete a pending upload (idempotent)."""
        pass

    @abstractmethod
    async def create_completed(self, completed: CompletedUploadRecord) -> None:
        """Persist a completed upload (no-op if one with that name exists)."""
        pass

    @abstractmethod
    async def find_completed(self, stored_name: str) -> Optional[CompletedUploadRecord]:
        """Return the completed upload for a name, or None."""
        pass

    @abstractmethod
    async def delete_expired_pending(self, now: datetime) -> List[PendingUploadRecord]:
        """Delete pending uploads whose signed URL expired before ``now``."""
        pass

    async def promote(self, pending: PendingUploadRecord) -> CompletedUploadRecord:
        """
        Replace a pending upload with its completed record.

        Stores with transactions should override this so both effects commit
        together. This fallback relies on both steps being idempotent, so a
        failed promotion can simply be retried.
        """
        completed = CompletedUploadRecord.from_pending(pending)
        await self.create_completed(completed)
        await self.delete_pending(pending.generated_filename)
        return completed
