"""
Upload endpoints for presigned URL generation.

Implements the server side of the direct-to-storage upload flow:
1. POST /uploads/validate - Check a file descriptor against the policy
2. POST /uploads/sign - Get a presigned PUT URL (records a pending upload)
3. POST /uploads/confirm - Promote the pending upload after the PUT

The backend never handles file bytes. Business failures (policy rejection,
storage or database trouble, unknown filenames) are answered with 200 and
``success``/``valid`` set to false; only malformed bodies get 422.
"""
from fastapi import APIRouter, Depends

from direct_upload.api.dependencies import get_upload_policy, get_upload_service
from direct_upload.schemas.upload import (
    ConfirmRequest,
    ConfirmResponse,
    SignRequest,
    UploadOutcome,
    UploadPolicy,
    ValidateRequest,
    ValidateResponse,
)
from direct_upload.services import policy as upload_policy
from direct_upload.services.upload_service import UploadService

router = APIRouter()


@router.post("/validate", response_model=ValidateResponse)
async def validate_upload(
    request: ValidateRequest,
    policy: UploadPolicy = Depends(get_upload_policy),
):
    """
    Check size and type against the upload policy.

    No record is created and storage is not contacted.
    """
    result = upload_policy.validate(request.file, policy)
    return ValidateResponse(
        valid=result.valid,
        error=result.error,
        error_kind=result.error_kind,
    )


@router.post("/sign", response_model=UploadOutcome)
async def sign_upload(
    request: SignRequest,
    policy: UploadPolicy = Depends(get_upload_policy),
    service: UploadService = Depends(get_upload_service),
):
    """
    Generate a presigned URL for direct upload to storage.

    Flow:
    1. Validate the descriptor against the policy
    2. Generate a random storage name keeping the extension
    3. Presign a PUT bound to type, length and checksum
    4. Store a pending upload record
    5. Return the URL, the object URL and the generated filename

    Client then:
    1. PUTs the file to signed_url with upload_headers
    2. Calls /uploads/confirm with generated_filename
    """
    return await service.issue_signed_upload(policy, request.file, request.checksum)


@router.post("/confirm", response_model=ConfirmResponse)
async def confirm_upload(
    request: ConfirmRequest,
    service: UploadService = Depends(get_upload_service),
):
    """
    Confirm that an upload has completed.

    Promotes the pending upload to a completed one. Unknown or expired
    filenames give ``success: false``; confirming again after success also
    gives false since the pending record is gone.
    """
    success = await service.confirm_upload(request.filename)
    return ConfirmResponse(success=success, filename=request.filename)
