"""
Database models package.
"""
from direct_upload.models.base import Base
from direct_upload.models.upload import PendingUpload, CompletedUpload

__all__ = [
    "Base",
    "PendingUpload",
    "CompletedUpload",
]
