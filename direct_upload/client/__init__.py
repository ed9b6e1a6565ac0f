"""
Client side of the direct upload protocol: hashing, the direct PUT to
storage and the state machine that drives an attempt.
"""
from direct_upload.client.api_client import UploadApiClient
from direct_upload.client.files import ClientFile
from direct_upload.client.orchestrator import UploadInProgressError, UploadOrchestrator, UploadState
from direct_upload.client.transfer import TransferExecutor, TransferResult

__all__ = [
    "ClientFile",
    "TransferExecutor",
    "TransferResult",
    "UploadApiClient",
    "UploadInProgressError",
    "UploadOrchestrator",
    "UploadState",
]
