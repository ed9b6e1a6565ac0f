"""
Celery task deleting pending uploads whose signed URL expired.

A client that receives a signed URL and never confirms leaves a pending
record behind (and possibly an unconfirmed object). Confirmation already
refuses expired entries; this task clears them out.
"""
import asyncio
import logging
from typing import Optional

from direct_upload.config import settings
from direct_upload.database import create_engine, create_session_factory
from direct_upload.repositories.upload_repository import UploadRepository
from direct_upload.services.upload_service import UploadService
from direct_upload.storage.s3_client import S3Client, get_s3_client
from direct_upload.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


async def run_sweep(database_url: str, storage: Optional[S3Client] = None) -> int:
    """
    Sweep expired pending uploads using a private engine.

    The engine is created inside the running loop to avoid event loop
    conflicts with Celery worker threads.
    """
    engine = create_engine(database_url)
    try:
        session_factory = create_session_factory(engine)
        async with session_factory() as db:
            service = UploadService(storage or get_s3_client(), UploadRepository(db))
            return await service.sweep_expired()
    finally:
        await engine.dispose()


@celery_app.task(name="sweep_expired_uploads", bind=True, max_retries=3)
def sweep_expired_uploads_task(self):
    """Delete expired pending uploads; retried on database errors."""
    try:
        deleted = asyncio.run(run_sweep(settings.database_url))
    except Exception as exc:
        logger.error(f"Expiry sweep failed: {exc}")
        raise self.retry(exc=exc, countdown=60)
    return {"deleted": deleted}
