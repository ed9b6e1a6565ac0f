"""
SQLAlchemy implementation of the upload record store.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from direct_upload.models.upload import CompletedUpload, PendingUpload
from direct_upload.repositories.base import RecordStore
from direct_upload.schemas.upload import CompletedUploadRecord, PendingUploadRecord

logger = logging.getLogger(__name__)


class UploadRepository(RecordStore):
    """Record store backed by the pending_uploads / completed_uploads tables."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_pending(self, pending: PendingUploadRecord) -> None:
        self.db.add(PendingUpload(**pending.model_dump()))
        try:
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

    async def find_pending(self, generated_filename: str) -> Optional[PendingUploadRecord]:
        result = await self.db.execute(
            select(PendingUpload).where(PendingUpload.generated_filename == generated_filename)
        )
        row = result.scalar_one_or_none()
        return PendingUploadRecord.model_validate(row) if row else None

    async def delete_pending(self, generated_filename: str) -> None:
        await self.db.execute(
            delete(PendingUpload).where(PendingUpload.generated_filename == generated_filename)
        )
        await self.db.commit()

    async def create_completed(self, completed: CompletedUploadRecord) -> None:
        if await self.db.get(CompletedUpload, completed.stored_name) is None:
            self.db.add(CompletedUpload(**completed.model_dump()))
        await self.db.commit()

    async def find_completed(self, stored_name: str) -> Optional[CompletedUploadRecord]:
        row = await self.db.get(CompletedUpload, stored_name)
        return CompletedUploadRecord.model_validate(row) if row else None

    async def promote(self, pending: PendingUploadRecord) -> CompletedUploadRecord:
        """
        Create the completed record and delete the pending one in a single
        transaction. A retried promotion finds the completed row and only
        removes whatever pending row is left.
        """
        completed = CompletedUploadRecord.from_pending(pending)
        try:
            if await self.db.get(CompletedUpload, completed.stored_name) is None:
                self.db.add(CompletedUpload(**completed.model_dump()))
            await self.db.execute(
                delete(PendingUpload).where(
                    PendingUpload.generated_filename == pending.generated_filename
                )
            )
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        return completed

    async def delete_expired_pending(self, now: datetime) -> List[PendingUploadRecord]:
        result = await self.db.execute(
            select(PendingUpload).where(PendingUpload.expires_at < now)
        )
        expired = [PendingUploadRecord.model_validate(row) for row in result.scalars().all()]
        if not expired:
            return []

        await self.db.execute(
            delete(PendingUpload).where(
                PendingUpload.generated_filename.in_([p.generated_filename for p in expired])
            )
        )
        await self.db.commit()
        logger.debug(f"Deleted {len(expired)} expired pending uploads")
        return expired

