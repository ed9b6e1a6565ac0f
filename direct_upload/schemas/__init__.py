"""
Pydantic schemas for the upload protocol and API request/response validation.
"""
from direct_upload.schemas.upload import (
    UploadErrorKind,
    FileDescriptor,
    UploadPolicy,
    ValidationResult,
    PendingUploadRecord,
    CompletedUploadRecord,
    UploadOutcome,
    ValidateRequest,
    ValidateResponse,
    SignRequest,
    ConfirmRequest,
    ConfirmResponse,
)

__all__ = [
    "UploadErrorKind",
    "FileDescriptor",
    "UploadPolicy",
    "ValidationResult",
    "PendingUploadRecord",
    "CompletedUploadRecord",
    "UploadOutcome",
    "ValidateRequest",
    "ValidateResponse",
    "SignRequest",
    "ConfirmRequest",
    "ConfirmResponse",
]
