"""
Tests for the client-side upload state machine.
"""
import asyncio

import pytest

from direct_upload.client.files import ClientFile
from direct_upload.client.orchestrator import (
    UploadInProgressError,
    UploadOrchestrator,
    UploadState,
)
from direct_upload.client.transfer import TransferExecutor, TransferResult
from direct_upload.schemas.upload import UploadErrorKind, UploadOutcome, UploadPolicy
from direct_upload.services.upload_service import UploadService

OBJECT_URL = "http://localhost:9000/test-bucket/uploads/abc.png"


def signed_outcome(**overrides) -> UploadOutcome:
    data = dict(
        success=True,
        signed_url="http://localhost:9000/test-bucket/uploads/abc.png?X-Amz-Signature=x",
        object_url=OBJECT_URL,
        generated_filename="abc.png",
    )
    data.update(overrides)
    return UploadOutcome(**data)


class RecordingTransfer(TransferExecutor):
    """Transfer stub that reports progress and records the orchestrator's state."""

    def __init__(self, orchestrator_ref: list, succeed: bool = True):
        super().__init__()
        self.orchestrator_ref = orchestrator_ref
        self.succeed = succeed
        self.states = []

    async def transfer(self, signed_url, file, content_type=None, on_progress=None, headers=None):
        self.states.append(self.orchestrator_ref[0].state)
        if on_progress:
            on_progress(60)
        if self.succeed:
            return TransferResult(success=True, status_code=200)
        return TransferResult(success=False, status_code=403, error="Storage responded with 403")


def make_orchestrator(request_upload, succeed_transfer=True, confirm_upload=None, **kwargs):
    ref = []
    transfer = RecordingTransfer(ref, succeed=succeed_transfer)
    orchestrator = UploadOrchestrator(
        request_upload,
        transfer=transfer,
        confirm_upload=confirm_upload,
        **kwargs,
    )
    ref.append(orchestrator)
    return orchestrator, transfer


@pytest.fixture
def cat_file(png_bytes: bytes) -> ClientFile:
    return ClientFile.from_bytes("cat.png", png_bytes)


class TestHappyPath:
    """Successful attempts."""

    @pytest.mark.asyncio
    async def test_full_flow(self, service: UploadService, policy: UploadPolicy, fake_storage, cat_file, repository):
        urls = []
        progress = []

        async with fake_storage.client() as http:
            orchestrator = UploadOrchestrator.for_service(
                service,
                policy,
                transfer=TransferExecutor(client=http, chunk_size=100),
                on_success=urls.append,
                on_progress=progress.append,
            )
            assert await orchestrator.start_upload(cat_file) is True

        assert orchestrator.state == UploadState.DONE
        assert orchestrator.error == ""
        assert orchestrator.is_uploading is False
        assert orchestrator.progress == 100
        assert urls == [orchestrator.object_url]
        assert progress == sorted(progress)

        stored_name = orchestrator.object_url.rsplit("/", 1)[1]
        assert fake_storage.objects[f"uploads/{stored_name}"] == cat_file.data
        assert await repository.find_completed(stored_name) is not None
        assert await repository.find_pending(stored_name) is None

    @pytest.mark.asyncio
    async def test_states_in_order(self, cat_file):
        seen = []

        async def request_upload(descriptor, checksum):
            seen.append(orchestrator.state)
            assert descriptor.name == "cat.png"
            assert len(checksum) == 64
            return signed_outcome()

        async def confirm_upload(filename):
            seen.append(orchestrator.state)
            assert orchestrator.is_uploading is True
            return filename == "abc.png"

        orchestrator, transfer = make_orchestrator(request_upload, confirm_upload=confirm_upload)

        assert await orchestrator.start_upload(cat_file) is True
        assert seen == [UploadState.REQUESTING_URL, UploadState.CONFIRMING]
        assert transfer.states == [UploadState.TRANSFERRING]
        assert orchestrator.state == UploadState.DONE

    @pytest.mark.asyncio
    async def test_without_confirmation(self, cat_file):
        async def request_upload(descriptor, checksum):
            return signed_outcome(generated_filename=None)

        orchestrator, _ = make_orchestrator(request_upload)

        assert await orchestrator.start_upload(cat_file) is True
        assert orchestrator.state == UploadState.DONE
        assert orchestrator.object_url == OBJECT_URL

    @pytest.mark.asyncio
    async def test_new_attempt_resets_error(self, cat_file):
        outcomes = [
            UploadOutcome.failure(UploadErrorKind.TOO_LARGE, "The file is too big!"),
            signed_outcome(),
        ]

        async def request_upload(descriptor, checksum):
            return outcomes.pop(0)

        orchestrator, _ = make_orchestrator(request_upload)

        assert await orchestrator.start_upload(cat_file) is False
        assert orchestrator.error == "The file is too big!"

        assert await orchestrator.start_upload(cat_file) is True
        assert orchestrator.error == ""
        assert orchestrator.error_kind is None


class TestFailures:
    """Failed attempts end in the error state."""

    @pytest.mark.asyncio
    async def test_issuer_message_shown_verbatim(self, cat_file):
        async def request_upload(descriptor, checksum):
            return UploadOutcome.failure(UploadErrorKind.UNSUPPORTED_TYPE, "The format of the file is wrong!")

        orchestrator, transfer = make_orchestrator(request_upload)

        assert await orchestrator.start_upload(cat_file) is False
        assert orchestrator.state == UploadState.ERROR
        assert orchestrator.error == "The format of the file is wrong!"
        assert orchestrator.error_kind == UploadErrorKind.UNSUPPORTED_TYPE
        assert orchestrator.is_uploading is False
        assert transfer.states == []

    @pytest.mark.asyncio
    async def test_missing_url_is_protocol_violation(self, cat_file):
        async def request_upload(descriptor, checksum):
            return signed_outcome(signed_url=None)

        orchestrator, transfer = make_orchestrator(request_upload)

        assert await orchestrator.start_upload(cat_file) is False
        assert orchestrator.error == "URL is missing although success is true"
        assert orchestrator.error_kind == UploadErrorKind.PROTOCOL_VIOLATION
        assert transfer.states == []

    @pytest.mark.asyncio
    async def test_transfer_failure_skips_confirmation(self, cat_file):
        confirmed = []

        async def request_upload(descriptor, checksum):
            return signed_outcome()

        async def confirm_upload(filename):
            confirmed.append(filename)
            return True

        orchestrator, _ = make_orchestrator(
            request_upload, succeed_transfer=False, confirm_upload=confirm_upload
        )

        assert await orchestrator.start_upload(cat_file) is False
        assert orchestrator.error_kind == UploadErrorKind.TRANSFER_FAILED
        assert orchestrator.object_url is None
        assert confirmed == []

    @pytest.mark.asyncio
    async def test_failed_transfer_resets_progress(self, cat_file):
        reported = []

        async def request_upload(descriptor, checksum):
            return signed_outcome()

        orchestrator, _ = make_orchestrator(
            request_upload, succeed_transfer=False, on_progress=reported.append
        )

        assert await orchestrator.start_upload(cat_file) is False
        assert reported == [60]
        assert orchestrator.state == UploadState.ERROR
        assert orchestrator.is_uploading is False
        assert orchestrator.progress == 0

    @pytest.mark.asyncio
    async def test_confirmation_failure_resets_progress(self, cat_file):
        async def request_upload(descriptor, checksum):
            return signed_outcome()

        async def confirm_upload(filename):
            return False

        orchestrator, _ = make_orchestrator(request_upload, confirm_upload=confirm_upload)

        assert await orchestrator.start_upload(cat_file) is False
        assert orchestrator.progress == 0

    @pytest.mark.asyncio
    async def test_confirmation_failure(self, cat_file):
        urls = []

        async def request_upload(descriptor, checksum):
            return signed_outcome()

        async def confirm_upload(filename):
            return False

        orchestrator, _ = make_orchestrator(
            request_upload, confirm_upload=confirm_upload, on_success=urls.append
        )

        assert await orchestrator.start_upload(cat_file) is False
        assert orchestrator.error == "Something went wrong!"
        assert orchestrator.error_kind == UploadErrorKind.CONFIRMATION_FAILED
        assert urls == []

    @pytest.mark.asyncio
    async def test_hashing_failure(self, tmp_path):
        path = tmp_path / "cat.png"
        path.write_bytes(b"data")
        file = ClientFile.from_path(path)
        path.unlink()
        requested = []

        async def request_upload(descriptor, checksum):
            requested.append(descriptor)
            return signed_outcome()

        orchestrator, _ = make_orchestrator(request_upload)

        assert await orchestrator.start_upload(file) is False
        assert orchestrator.error_kind == UploadErrorKind.HASHING_FAILED
        assert requested == []

    @pytest.mark.asyncio
    async def test_unexpected_error_resets_and_raises(self, cat_file):
        async def request_upload(descriptor, checksum):
            raise RuntimeError("boom")

        orchestrator, _ = make_orchestrator(request_upload)

        with pytest.raises(RuntimeError):
            await orchestrator.start_upload(cat_file)
        assert orchestrator.state == UploadState.ERROR
        assert orchestrator.is_uploading is False


class TestReentrancy:
    """Only one attempt may run at a time."""

    @pytest.mark.asyncio
    async def test_second_start_raises(self, cat_file):
        release = asyncio.Event()

        async def request_upload(descriptor, checksum):
            await release.wait()
            return signed_outcome()

        orchestrator, _ = make_orchestrator(request_upload)
        first = asyncio.create_task(orchestrator.start_upload(cat_file))
        await asyncio.sleep(0)

        assert orchestrator.is_uploading is True
        with pytest.raises(UploadInProgressError):
            await orchestrator.start_upload(cat_file)

        release.set()
        assert await first is True
        assert orchestrator.state == UploadState.DONE


class TestModuleSource:
    """The module must import without warnings."""

    def test_module_docstring_compiles_cleanly(self):
        import warnings

        import direct_upload.client.orchestrator as module

        with open(module.__file__, encoding="utf-8") as f:
            source = f.read()
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            compile(source, module.__file__, "exec")
