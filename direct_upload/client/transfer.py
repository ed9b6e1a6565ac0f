"""
Direct byte transfer to a presigned URL.

This is the only component that moves file content, and it talks to the
storage service, never to the application server.
"""
import logging
from dataclasses import dataclass
from typing import AsyncIterator, Callable, Dict, Optional

import httpx

from direct_upload.client.files import ClientFile
from direct_upload.services.hasher import CHUNK_SIZE

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int], None]


@dataclass
class TransferResult:
    """Outcome of one PUT to storage."""
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None


class TransferExecutor:
    """
    PUTs a file to a signed URL, reporting percent progress per chunk.

    Pass an ``httpx.AsyncClient`` to share connections (or to swap the
    transport in tests); otherwise one client is opened per transfer.
    """

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[httpx.Timeout] = None,
        chunk_size: int = CHUNK_SIZE,
    ):
        self._client = client
        self.timeout = timeout or httpx.Timeout(60.0, connect=10.0)
        self.chunk_size = chunk_size

    async def _body(
        self,
        file: ClientFile,
        on_progress: Optional[ProgressCallback],
    ) -> AsyncIterator[bytes]:
        sent = 0
        last = 0
        async for chunk in file.iter_chunks(self.chunk_size):
            yield chunk
            sent += len(chunk)
            percent = min(100, round(sent * 100 / file.size)) if file.size else 100
            last = max(last, percent)
            if on_progress:
                on_progress(last)

    async def transfer(
        self,
        signed_url: str,
        file: ClientFile,
        content_type: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> TransferResult:
        """
        Upload ``file`` to ``signed_url``.

        Args:
            signed_url: Presigned PUT URL
            file: The content to send
            content_type: Overrides the file's own MIME type
            on_progress: Called with 0-100, never decreasing
            headers: Extra headers that were signed with the URL

        Returns:
            TransferResult; any network error or non-2xx response is a failure
        """
        request_headers = dict(headers or {})
        request_headers["Content-Type"] = content_type or file.mime_type
        request_headers["Content-Length"] = str(file.size)

        client = self._client or httpx.AsyncClient(timeout=self.timeout)
        try:
            response = await client.put(
                signed_url,
                content=self._body(file, on_progress),
                headers=request_headers,
            )
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Transfer of {file.name} failed: {e}")
            return TransferResult(success=False, error=str(e))
        finally:
            if self._client is None:
                await client.aclose()

        if not response.is_success:
            logger.error(
                f"Storage rejected {file.name}: {response.status_code} {response.text[:200]}"
            )
            return TransferResult(
                success=False,
                status_code=response.status_code,
                error=f"Storage responded with {response.status_code}",
            )

        if on_progress:
            on_progress(100)
        return TransferResult(success=True, status_code=response.status_code)
