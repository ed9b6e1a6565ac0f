"""
Upload policy validation.

Pure checks of a client-declared descriptor against the deployment policy.
Never touches storage or the database.
"""
from direct_upload.schemas.upload import (
    FileDescriptor,
    UploadErrorKind,
    UploadPolicy,
    ValidationResult,
)

TOO_LARGE_MESSAGE = "The file is too big!"
UNSUPPORTED_TYPE_MESSAGE = "The format of the file is wrong!"


def validate(descriptor: FileDescriptor, policy: UploadPolicy) -> ValidationResult:
    """
    Check size first, then type; the first failing check wins.

    Args:
        descriptor: File metadata declared by the client
        policy: Deployment constraints

    Returns:
        ValidationResult with ``valid`` False and an error kind on failure
    """
    if descriptor.size > policy.max_size_bytes:
        return ValidationResult(
            valid=False,
            error_kind=UploadErrorKind.TOO_LARGE,
            error=TOO_LARGE_MESSAGE,
        )

    if descriptor.mime_type.lower() not in policy.allowed_mime_types:
        return ValidationResult(
            valid=False,
            error_kind=UploadErrorKind.UNSUPPORTED_TYPE,
            error=UNSUPPORTED_TYPE_MESSAGE,
        )

    return ValidationResult(valid=True)
