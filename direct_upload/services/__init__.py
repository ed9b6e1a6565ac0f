"""
Upload protocol services.
"""
from direct_upload.services.confirmer import UploadConfirmer
from direct_upload.services.issuer import SignedUrlIssuer
from direct_upload.services.upload_service import UploadService

__all__ = [
    "SignedUrlIssuer",
    "UploadConfirmer",
    "UploadService",
]
