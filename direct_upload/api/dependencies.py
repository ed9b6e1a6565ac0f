"""
FastAPI dependencies wiring the upload services to the request.
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from direct_upload.config import settings
from direct_upload.database import get_db
from direct_upload.repositories.upload_repository import UploadRepository
from direct_upload.schemas.upload import UploadPolicy
from direct_upload.services.upload_service import UploadService
from direct_upload.storage.s3_client import S3Client, get_s3_client


def get_upload_policy() -> UploadPolicy:
    """Deployment upload policy. Override to scope policies per caller."""
    return UploadPolicy.from_settings(settings)


def get_storage() -> S3Client:
    return get_s3_client()


def get_upload_service(
    db: AsyncSession = Depends(get_db),
    storage: S3Client = Depends(get_storage),
) -> UploadService:
    return UploadService(
        storage=storage,
        store=UploadRepository(db),
        verify_object=settings.upload_verify_object,
    )
