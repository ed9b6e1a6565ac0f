"""
HTTP gateway to the upload API.

Gives the orchestrator its ``request_upload`` and ``confirm_upload``
callables when the server runs in another process.
"""
import logging
from typing import Optional

import httpx

from direct_upload.schemas.upload import FileDescriptor, UploadErrorKind, UploadOutcome

logger = logging.getLogger(__name__)


class UploadApiClient:
    """
    Thin async client for ``/api/uploads``.

    Transport problems come back as failure values, like every other
    error on the upload path.
    """

    def __init__(
        self,
        base_url: str = "",
        client: Optional[httpx.AsyncClient] = None,
        prefix: str = "/api/uploads",
    ):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=30.0)
        self._owns_client = client is None
        self.prefix = prefix.rstrip("/")

    async def aclose(self):
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def validate(self, descriptor: FileDescriptor) -> bool:
        response = await self._client.post(
            f"{self.prefix}/validate",
            json={"file": descriptor.model_dump()},
        )
        response.raise_for_status()
        return response.json()["valid"]

    async def request_upload(self, descriptor: FileDescriptor, checksum: str) -> UploadOutcome:
        """Ask the server for a signed URL."""
        try:
            response = await self._client.post(
                f"{self.prefix}/sign",
                json={"file": descriptor.model_dump(), "checksum": checksum},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Sign request for {descriptor.name} failed: {e}")
            return UploadOutcome.failure(
                UploadErrorKind.ISSUANCE_FAILED,
                "Could not reach the upload service",
            )
        return UploadOutcome.model_validate(response.json())

    async def confirm_upload(self, filename: str) -> bool:
        """Tell the server the PUT succeeded."""
        try:
            response = await self._client.post(
                f"{self.prefix}/confirm",
                json={"filename": filename},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Confirm request for {filename} failed: {e}")
            return False
        return bool(response.json()["success"])
