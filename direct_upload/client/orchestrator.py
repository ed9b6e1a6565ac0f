r"""
Client-side upload state machine.

    idle -> hashing -> requesting_url -> transferring -> confirming -> done
                 \            \                \               \
                  +------------+----------------+---------------+--> error

``done`` and ``error`` end an attempt; the next ``start_upload`` begins a
new one from ``idle``. Only one attempt may run at a time.
"""
import enum
import logging
from typing import Awaitable, Callable, Optional

from direct_upload.client.files import ClientFile
from direct_upload.client.transfer import ProgressCallback, TransferExecutor
from direct_upload.schemas.upload import FileDescriptor, UploadErrorKind, UploadOutcome, UploadPolicy

logger = logging.getLogger(__name__)

RequestUpload = Callable[[FileDescriptor, str], Awaitable[UploadOutcome]]
ConfirmUpload = Callable[[str], Awaitable[bool]]

TRANSFER_FAILED_MESSAGE = "The upload to storage failed."
CONFIRMATION_FAILED_MESSAGE = "Something went wrong!"
MISSING_URL_MESSAGE = "URL is missing although success is true"
MISSING_FILENAME_MESSAGE = "Filename is missing although success is true"
UNEXPECTED_ERROR_MESSAGE = "Unexpected error during upload"


class UploadState(str, enum.Enum):
    """Where an upload attempt currently is."""
    IDLE = "idle"
    HASHING = "hashing"
    REQUESTING_URL = "requesting_url"
    TRANSFERRING = "transferring"
    CONFIRMING = "confirming"
    DONE = "done"
    ERROR = "error"


class UploadInProgressError(RuntimeError):
    """start_upload was called while another attempt was still running."""


class UploadOrchestrator:
    """
    Sequences hashing, signing, transfer and confirmation for one file.

    Observable state: ``state``, ``error`` (empty when none), ``error_kind``,
    ``is_uploading``, ``progress`` (0-100) and ``object_url``.
    """

    def __init__(
        self,
        request_upload: RequestUpload,
        transfer: Optional[TransferExecutor] = None,
        confirm_upload: Optional[ConfirmUpload] = None,
        on_success: Optional[Callable[[str], None]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.request_upload = request_upload
        self.transfer = transfer or TransferExecutor()
        self.confirm_upload = confirm_upload
        self.on_success = on_success
        self.on_progress = on_progress

        self.state = UploadState.IDLE
        self.error = ""
        self.error_kind: Optional[UploadErrorKind] = None
        self.is_uploading = False
        self.progress = 0
        self.object_url: Optional[str] = None

    @classmethod
    def for_service(cls, service, policy: UploadPolicy, **kwargs) -> "UploadOrchestrator":
        """Orchestrator wired straight to an in-process UploadService."""
        async def request_upload(descriptor: FileDescriptor, checksum: str) -> UploadOutcome:
            return await service.issue_signed_upload(policy, descriptor, checksum)

        kwargs.setdefault("confirm_upload", service.confirm_upload)
        return cls(request_upload, **kwargs)

    def _set_state(self, state: UploadState):
        logger.debug(f"Upload state {self.state.value} -> {state.value}")
        self.state = state

    def _update_progress(self, percent: int):
        self.progress = max(self.progress, min(100, percent))
        if self.on_progress:
            self.on_progress(self.progress)

    def _fail(self, kind: UploadErrorKind, message: str) -> bool:
        self.error = message
        self.error_kind = kind
        self.is_uploading = False
        self.progress = 0
        self._set_state(UploadState.ERROR)
        logger.warning(f"Upload failed ({kind.value}): {message}")
        return False

    def _begin(self):
        self.state = UploadState.IDLE
        self.error = ""
        self.error_kind = None
        self.progress = 0
        self.object_url = None
        self.is_uploading = True

    async def start_upload(self, file: ClientFile) -> bool:
        """
        Run one upload attempt for ``file``.

        Returns:
            True when the attempt reached ``done``

        Raises:
            UploadInProgressError: If an attempt is already running
        """
        if self.is_uploading:
            raise UploadInProgressError("An upload is already in progress")

        self._begin()
        try:
            return await self._run(file)
        except Exception:
            self._fail(UploadErrorKind.PROTOCOL_VIOLATION, UNEXPECTED_ERROR_MESSAGE)
            raise

    async def _run(self, file: ClientFile) -> bool:
        self._set_state(UploadState.HASHING)
        try:
            checksum = await file.checksum()
        except OSError as e:
            return self._fail(UploadErrorKind.HASHING_FAILED, f"Could not read {file.name}: {e.strerror or e}")

        self._set_state(UploadState.REQUESTING_URL)
        outcome = await self.request_upload(file.descriptor(), checksum)
        if not outcome.success:
            return self._fail(
                outcome.error_kind or UploadErrorKind.ISSUANCE_FAILED,
                outcome.error or "The upload could not be started.",
            )

        self._set_state(UploadState.TRANSFERRING)
        if not outcome.signed_url:
            return self._fail(UploadErrorKind.PROTOCOL_VIOLATION, MISSING_URL_MESSAGE)

        result = await self.transfer.transfer(
            outcome.signed_url,
            file,
            content_type=file.mime_type,
            on_progress=self._update_progress,
            headers=outcome.upload_headers,
        )
        if not result.success:
            return self._fail(UploadErrorKind.TRANSFER_FAILED, TRANSFER_FAILED_MESSAGE)

        if self.confirm_upload is not None:
            if not outcome.generated_filename:
                return self._fail(UploadErrorKind.PROTOCOL_VIOLATION, MISSING_FILENAME_MESSAGE)
            self._set_state(UploadState.CONFIRMING)
            if not await self.confirm_upload(outcome.generated_filename):
                return self._fail(UploadErrorKind.CONFIRMATION_FAILED, CONFIRMATION_FAILED_MESSAGE)

        self.object_url = outcome.object_url
        self.is_uploading = False
        self.error = ""
        self._update_progress(100)
        self._set_state(UploadState.DONE)
        if self.on_success and self.object_url:
            self.on_success(self.object_url)
        return True
