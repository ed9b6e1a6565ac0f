"""
Repository layer for database operations.
"""
from direct_upload.repositories.base import RecordStore
from direct_upload.repositories.upload_repository import UploadRepository

__all__ = ["RecordStore", "UploadRepository"]
