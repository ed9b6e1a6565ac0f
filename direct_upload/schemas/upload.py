"""
Pydantic schemas for the upload protocol.

Domain values (descriptor, policy, records, outcome) and the request/response
bodies of the upload endpoints.
"""
import enum
from datetime import datetime, timezone
from typing import Dict, FrozenSet, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class UploadErrorKind(str, enum.Enum):
    """Why an upload attempt failed."""
    TOO_LARGE = "too_large"
    UNSUPPORTED_TYPE = "unsupported_type"
    ISSUANCE_FAILED = "issuance_failed"
    HASHING_FAILED = "hashing_failed"
    TRANSFER_FAILED = "transfer_failed"
    CONFIRMATION_FAILED = "confirmation_failed"
    PROTOCOL_VIOLATION = "protocol_violation"


class FileDescriptor(BaseModel):
    """Client-declared file metadata. Untrusted until validated."""
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, description="Original file name")
    size: int = Field(..., ge=0, description="Size in bytes")
    mime_type: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("mime_type", "mimeType", "type"),
        description="Declared MIME type"
    )


class UploadPolicy(BaseModel):
    """
    Size/type/expiry constraints for one deployment.

    Accepts the short configuration names (``maxSize``, ``types``,
    ``expires``) as well as the field names.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bucket: str = Field(..., min_length=1)
    folder: str = ""
    expiry_seconds: int = Field(60, gt=0, alias="expires")
    max_size_bytes: int = Field(..., ge=0, alias="maxSize")
    allowed_mime_types: FrozenSet[str] = Field(..., alias="types")
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("folder")
    @classmethod
    def strip_slashes(cls, value: str) -> str:
        return value.strip("/")

    @field_validator("allowed_mime_types")
    @classmethod
    def lowercase_types(cls, value: FrozenSet[str]) -> FrozenSet[str]:
        return frozenset(t.lower() for t in value)

    @classmethod
    def from_settings(cls, settings) -> "UploadPolicy":
        """Build the deployment policy from application settings."""
        return cls(
            bucket=settings.s3_bucket,
            folder=settings.upload_folder,
            expires=settings.upload_expires,
            maxSize=settings.upload_max_size,
            types=settings.upload_types,
            metadata=settings.upload_metadata,
        )


class ValidationResult(BaseModel):
    """Result of checking a descriptor against a policy."""
    valid: bool
    error_kind: Optional[UploadErrorKind] = None
    error: Optional[str] = None


class PendingUploadRecord(BaseModel):
    """A signed URL was issued; the write has not been confirmed yet."""
    model_config = ConfigDict(from_attributes=True)

    generated_filename: str
    original_filename: str
    bucket: Optional[str] = None
    folder: str = ""
    size: int
    mime_type: str
    signed_url: str
    object_url: str
    expires_at: datetime

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        # SQLite hands back naive datetimes; they are stored as UTC
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return now >= expires_at


class CompletedUploadRecord(BaseModel):
    """Permanent record of a confirmed upload."""
    model_config = ConfigDict(from_attributes=True)

    stored_name: str
    original_filename: str
    size: int
    mime_type: str
    object_url: str

    @classmethod
    def from_pending(cls, pending: PendingUploadRecord) -> "CompletedUploadRecord":
        return cls(
            stored_name=pending.generated_filename,
            original_filename=pending.original_filename,
            size=pending.size,
            mime_type=pending.mime_type,
            object_url=pending.object_url,
        )


class UploadOutcome(BaseModel):
    """
    Result of requesting a signed upload.

    On success ``signed_url`` is always set; ``upload_headers`` lists the
    headers the client must send with its PUT so the request matches what
    was signed.
    """
    success: bool
    error: Optional[str] = None
    error_kind: Optional[UploadErrorKind] = None
    signed_url: Optional[str] = None
    object_url: Optional[str] = None
    generated_filename: Optional[str] = None
    expires_at: Optional[datetime] = None
    upload_headers: Dict[str, str] = Field(default_factory=dict)

    @classmethod
    def failure(cls, kind: UploadErrorKind, message: str) -> "UploadOutcome":
        return cls(success=False, error=message, error_kind=kind)


# ============================================================================
# Request/Response bodies
# ============================================================================

class ValidateRequest(BaseModel):
    """Request schema for policy validation."""
    file: FileDescriptor

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "file": {"name": "cat.png", "size": 1000, "mime_type": "image/png"}
            }
        }
    )


class ValidateResponse(BaseModel):
    """Response schema for policy validation."""
    valid: bool
    error: Optional[str] = None
    error_kind: Optional[UploadErrorKind] = None


class SignRequest(BaseModel):
    """Request schema for signed URL issuance."""
    file: FileDescriptor
    checksum: str = Field(
        ...,
        pattern=r"^[0-9a-fA-F]{64}$",
        description="Hex-encoded SHA-256 of the file content"
    )

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "file": {"name": "cat.png", "size": 1000, "mime_type": "image/png"},
                "checksum": "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
            }
        }
    )


class ConfirmRequest(BaseModel):
    """Request schema for upload confirmation."""
    filename: str = Field(..., min_length=1, description="Generated filename from the sign response")


class ConfirmResponse(BaseModel):
    """Response schema for upload confirmation."""
    success: bool
    filename: str
