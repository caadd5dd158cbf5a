"""Tests for UploadPipeline orchestration."""

from __future__ import annotations

import re
from pathlib import Path

import pytest

from stowage.errors import (
    EncodingFailed,
    QuotaExceeded,
    QuotaUnavailable,
    ReferenceIssuanceFailed,
    TransferFailed,
    ValidationFailed,
)
from stowage.interfaces import BinaryEncoder
from stowage.models.config import MB, Config
from stowage.models.upload import UploadRequest, UploadResult
from stowage.pipeline import BinaryDecodeError, DirectBytesEncoder, UploadPipeline
from tests.stowage.mocks import MockCodec, MockLedger, MockObjectStore


class _BrokenEncoder(BinaryEncoder):
    name = "broken"

    async def encode(self, source: Path) -> bytes:
        raise BinaryDecodeError("Malformed base64 input: bad padding")


def _pipeline(
    config: Config,
    store: MockObjectStore,
    ledger: MockLedger,
    codec: MockCodec,
    fake_sleep,
    encoder: BinaryEncoder | None = None,
) -> UploadPipeline:
    return UploadPipeline(config, store, ledger, codec, encoder, sleep=fake_sleep)


def _write(path: Path, size: int) -> Path:
    with path.open("wb") as fh:
        fh.write(b"\x01" * min(size, 1024))
        fh.truncate(size)
    return path


class TestPipelineScenarios:
    """End-to-end scenarios over mocks."""

    @pytest.mark.asyncio
    async def test_oversized_jpeg_fails_validation(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        # Given: A 20MB JPEG and a 10MB ceiling
        source = _write(tmp_path / "huge.jpg", 20 * MB)
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        # When: Running the pipeline
        result = await pipeline.run(UploadRequest(local_path=source, owner_id="u1"))

        # Then: Validation fails before any store call
        assert isinstance(result, ValidationFailed)
        assert "20.00MB" in result.message
        assert "10MB" in result.message
        assert mock_store.put_count == 0
        assert mock_codec.reencode_calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("owner_id", ["..", ".", "/abs", "u1/../u2"])
    async def test_unsafe_owner_id_fails_validation(
        self,
        tmp_path: Path,
        config: Config,
        mock_store,
        mock_ledger,
        mock_codec,
        fake_sleep,
        owner_id: str,
    ) -> None:
        # Given: An owner id that would escape or collapse the owner folder
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        # When: Running the pipeline
        result = await pipeline.run(UploadRequest(local_path=source, owner_id=owner_id))

        # Then: A ValidationFailed value is returned and nothing is processed
        assert isinstance(result, ValidationFailed)
        assert "Invalid owner id" in result.message
        assert mock_store.put_count == 0
        assert mock_codec.reencode_calls == []

    @pytest.mark.asyncio
    async def test_container_defaults_from_config(
        self, tmp_path: Path, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        # Given: A configured default container and a request without one
        config = Config.model_validate(
            {"upload": {"workdir": str(tmp_path / "work"), "default_container": "avatars"}}
        )
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        # When: Uploading
        result = await pipeline.upload(UploadRequest(local_path=source, owner_id="u1"))

        # Then: The object lands in the configured container
        assert result.container == "avatars"
        assert ("avatars", result.path) in mock_store.objects

    @pytest.mark.asyncio
    async def test_explicit_container_overrides_default(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        result = await pipeline.upload(
            UploadRequest(local_path=source, owner_id="u1", container="covers")
        )

        assert result.container == "covers"

    @pytest.mark.asyncio
    async def test_near_quota_upload_is_allowed_with_warning(
        self, tmp_path: Path, config: Config, mock_store, fake_sleep
    ) -> None:
        # Given: Owner at 95MB and a codec producing a 3MB image
        ledger = MockLedger(totals={"u1": 95 * MB})
        codec = MockCodec(output=b"\x00" * (3 * MB))
        source = _write(tmp_path / "photo.jpg", 5 * MB)
        pipeline = _pipeline(config, mock_store, ledger, codec, fake_sleep)

        # When: Uploading
        result = await pipeline.run(UploadRequest(local_path=source, owner_id="u1"))

        # Then: Allowed, compressed, with a headroom warning
        assert isinstance(result, UploadResult)
        assert result.was_compressed is True
        assert result.byte_size == 3 * MB
        assert result.quota_warning == (
            "After this upload, you'll have 2.00 MB remaining (2% free)."
        )

    @pytest.mark.asyncio
    async def test_transient_store_errors_are_retried(
        self, tmp_path: Path, config: Config, mock_ledger, mock_codec, fake_sleep, sleeps
    ) -> None:
        # Given: A store failing twice before succeeding
        store = MockObjectStore(fail_times=2)
        source = _write(tmp_path / "photo.jpg", 1000)
        pipeline = _pipeline(config, store, mock_ledger, mock_codec, fake_sleep)

        # When: Uploading with 3 attempts
        result = await pipeline.run(
            UploadRequest(local_path=source, owner_id="u1", max_attempts=3)
        )

        # Then: Success after exactly 3 calls and 1s, 2s backoff
        assert isinstance(result, UploadResult)
        assert store.put_count == 3
        assert sleeps == [1.0, 2.0]
        assert len({call[1] for call in store.put_calls}) == 1

    @pytest.mark.asyncio
    async def test_compression_failure_falls_back_to_original(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, fake_sleep
    ) -> None:
        # Given: A codec that cannot read the image
        codec = MockCodec(fail=True)
        source = tmp_path / "corrupt.png"
        source.write_bytes(b"original-bytes")
        pipeline = _pipeline(config, mock_store, mock_ledger, codec, fake_sleep)

        # When: Uploading with compression enabled
        result = await pipeline.run(UploadRequest(local_path=source, owner_id="u1"))

        # Then: Original bytes and type are uploaded uncompressed
        assert isinstance(result, UploadResult)
        assert result.was_compressed is False
        assert result.content_type == "image/png"
        assert result.path.endswith(".png")
        assert mock_store.objects[(result.container, result.path)] == b"original-bytes"


class TestPipelineStages:
    """Stage-level behavior."""

    @pytest.mark.asyncio
    async def test_success_result_and_path_format(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        # Given: A JPEG with compression enabled
        source = _write(tmp_path / "photo.jpg", 2000)
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        # When: Uploading
        result = await pipeline.upload(UploadRequest(local_path=source, owner_id="u1"))

        # Then: JPEG result under the owner's folder with a signed URL
        assert re.fullmatch(r"u1/image-\d+-\d+\.jpg", result.path)
        assert result.container == "storage-images"
        assert result.content_type == "image/jpeg"
        assert result.byte_size == len(mock_codec.output)
        assert result.access_reference.startswith("https://mock.local/storage-images/u1/")
        assert mock_store.sign_calls[0][2] == 86400
        assert mock_store.content_types[(result.container, result.path)] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_declared_name_is_sanitized(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        source = _write(tmp_path / "capture", 100)
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        result = await pipeline.upload(
            UploadRequest(
                local_path=source,
                owner_id="u1",
                declared_file_name="My Photo!.PNG",
                compression_enabled=False,
            )
        )

        assert re.fullmatch(r"u1/My-Photo--\d+\.png", result.path)
        assert result.content_type == "image/png"
        assert result.was_compressed is False

    @pytest.mark.asyncio
    async def test_progress_sequence(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        # Given: A progress recorder
        seen: list[float] = []
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        # When: Uploading with 2 attempts allowed
        await pipeline.upload(
            UploadRequest(
                local_path=source, owner_id="u1", max_attempts=2, progress_sink=seen.append
            )
        )

        # Then: Fixed stage marks plus the scaled transfer progress
        assert seen == [10, 30, 40, 50, 60, 67.5, 90, 90, 100]

    @pytest.mark.asyncio
    async def test_missing_file_fails_validation(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        result = await pipeline.run(
            UploadRequest(local_path=tmp_path / "gone.jpg", owner_id="u1")
        )

        assert isinstance(result, ValidationFailed)
        assert result.message.startswith("File not found")

    @pytest.mark.asyncio
    async def test_declared_mime_type_checked_before_reading(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        result = await pipeline.run(
            UploadRequest(
                local_path=tmp_path / "never-created.jpg",
                owner_id="u1",
                declared_mime_type="video/mp4",
            )
        )

        assert isinstance(result, ValidationFailed)
        assert result.message == "Invalid MIME type: video/mp4"

    @pytest.mark.asyncio
    async def test_compressed_output_is_revalidated(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, fake_sleep
    ) -> None:
        # Given: A compressor that inflates the file past the ceiling
        codec = MockCodec(output=b"\x00" * (11 * MB))
        source = _write(tmp_path / "photo.png", 1 * MB)
        pipeline = _pipeline(config, mock_store, mock_ledger, codec, fake_sleep)

        # When: Uploading
        result = await pipeline.run(UploadRequest(local_path=source, owner_id="u1"))

        # Then: The second validation rejects the actual size
        assert isinstance(result, ValidationFailed)
        assert result.message == "File too large (11.00MB). Maximum: 10MB"
        assert mock_store.put_count == 0

    @pytest.mark.asyncio
    async def test_quota_exceeded_short_circuits(
        self, tmp_path: Path, config: Config, mock_store, mock_codec, fake_sleep
    ) -> None:
        ledger = MockLedger(totals={"u1": 100 * MB})
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, mock_store, ledger, mock_codec, fake_sleep)

        result = await pipeline.run(UploadRequest(local_path=source, owner_id="u1"))

        assert isinstance(result, QuotaExceeded)
        assert result.deficit_bytes == len(mock_codec.output)
        assert mock_store.put_count == 0

    @pytest.mark.asyncio
    async def test_ledger_outage_surfaces_quota_unavailable(
        self, tmp_path: Path, config: Config, mock_store, mock_codec, fake_sleep
    ) -> None:
        ledger = MockLedger(simulate_failure=True)
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, mock_store, ledger, mock_codec, fake_sleep)

        result = await pipeline.run(UploadRequest(local_path=source, owner_id="u1"))

        assert isinstance(result, QuotaUnavailable)
        assert mock_store.put_count == 0

    @pytest.mark.asyncio
    async def test_decode_error_is_fatal(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        # Given: An encoder whose decode step fails
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(
            config, mock_store, mock_ledger, mock_codec, fake_sleep, encoder=_BrokenEncoder()
        )

        # When: Uploading
        result = await pipeline.run(UploadRequest(local_path=source, owner_id="u1"))

        # Then: EncodingFailed, nothing is uploaded
        assert isinstance(result, EncodingFailed)
        assert isinstance(result.__cause__, BinaryDecodeError)
        assert mock_store.put_count == 0

    @pytest.mark.asyncio
    async def test_transfer_failure_after_all_attempts(
        self, tmp_path: Path, config: Config, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        store = MockObjectStore(simulate_failure=True)
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, store, mock_ledger, mock_codec, fake_sleep)

        with pytest.raises(TransferFailed) as exc_info:
            await pipeline.upload(UploadRequest(local_path=source, owner_id="u1"))

        assert exc_info.value.attempts == 3
        assert store.put_count == 3

    @pytest.mark.asyncio
    async def test_reference_failure_allows_reissue(
        self, tmp_path: Path, config: Config, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        # Given: A store that uploads but cannot sign
        store = MockObjectStore(sign_failure=True)
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, store, mock_ledger, mock_codec, fake_sleep)

        # When: Uploading
        result = await pipeline.run(UploadRequest(local_path=source, owner_id="u1"))

        # Then: The object is stored and the error names it
        assert isinstance(result, ReferenceIssuanceFailed)
        assert (result.container, result.path) in store.objects
        assert result.byte_size == len(mock_codec.output)

        # When: Signing recovers and the reference is reissued
        store.sign_failure = False
        url = await pipeline.reissue_reference(result.container, result.path)

        # Then: A URL is returned without another upload
        assert url.startswith("https://mock.local/")
        assert store.put_count == 1

    @pytest.mark.asyncio
    async def test_direct_encoder_uploads_same_bytes(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        source = tmp_path / "photo.gif"
        source.write_bytes(b"GIF89a-bytes")
        pipeline = _pipeline(
            config, mock_store, mock_ledger, mock_codec, fake_sleep, encoder=DirectBytesEncoder()
        )

        result = await pipeline.upload(
            UploadRequest(local_path=source, owner_id="u1", compression_enabled=False)
        )

        assert mock_store.objects[(result.container, result.path)] == b"GIF89a-bytes"
        assert result.content_type == "image/gif"

    @pytest.mark.asyncio
    async def test_workdir_is_cleaned_up(
        self, tmp_path: Path, config: Config, mock_store, mock_ledger, mock_codec, fake_sleep
    ) -> None:
        source = _write(tmp_path / "photo.jpg", 100)
        pipeline = _pipeline(config, mock_store, mock_ledger, mock_codec, fake_sleep)

        await pipeline.upload(UploadRequest(local_path=source, owner_id="u1"))

        assert list((tmp_path / "work").iterdir()) == []
