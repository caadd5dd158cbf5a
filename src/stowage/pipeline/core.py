"""UploadPipeline orchestrator."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from stowage.errors import (
    CompressionFailed,
    EncodingFailed,
    QuotaExceeded,
    QuotaUnavailable,
    TransferFailed,
    UploadPipelineError,
    ValidationFailed,
)
from stowage.models.config import Config
from stowage.models.upload import QuotaDecision, UploadRequest, UploadResult
from stowage.pipeline.compressor import Compressor
from stowage.pipeline.encoder import create_encoder
from stowage.pipeline.quota import QuotaGuard
from stowage.pipeline.reference import issue_access_reference
from stowage.pipeline.retry import RetryUploader, Sleep, notify_progress
from stowage.pipeline.validator import Validator, content_type_for, extension_of
from stowage.storage_paths import build_object_path, validate_owner_id

if TYPE_CHECKING:
    from stowage.interfaces import BinaryEncoder, ImageCodec, ObjectStore, UsageLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Processed:
    path: Path
    was_compressed: bool


class UploadPipeline:
    """Runs one UploadRequest through every stage.

    Stage helpers return `value | UploadPipelineError` instead of raising, and
    the orchestrator matches on the result. The first error ends the call.
    """

    def __init__(
        self,
        config: Config,
        store: ObjectStore,
        ledger: UsageLedger,
        codec: ImageCodec,
        encoder: BinaryEncoder | None = None,
        *,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._config = config
        self._store = store
        self._validator = Validator(config.validation)
        self._compressor = Compressor(codec, config.compression)
        self._encoder = encoder or create_encoder(config.upload.encoder)
        self._quota = QuotaGuard(ledger, config.quota)
        self._uploader = RetryUploader(store, config.retry, sleep=sleep)

    async def upload(self, request: UploadRequest) -> UploadResult:
        """Run the pipeline, raising the first stage error."""
        result = await self.run(request)
        if isinstance(result, UploadPipelineError):
            raise result
        return result

    async def run(self, request: UploadRequest) -> UploadResult | UploadPipelineError:
        """Run the pipeline and return the result or the error as a value."""
        workdir = await asyncio.to_thread(self._make_workdir)
        try:
            return await self._run(request, workdir)
        finally:
            await asyncio.to_thread(shutil.rmtree, workdir, True)

    async def reissue_reference(
        self,
        container: str,
        path: str,
        ttl_seconds: int | None = None,
        *,
        owner_id: str | None = None,
    ) -> str:
        """Sign a fresh URL for an object that is already stored."""
        ttl = ttl_seconds or self._config.upload.reference_ttl_s
        return await issue_access_reference(
            self._store, container, path, ttl, owner_id=owner_id
        )

    async def _run(
        self, request: UploadRequest, workdir: Path
    ) -> UploadResult | UploadPipelineError:
        owner_id = request.owner_id
        source = request.local_path
        logger.info("Starting upload for %s: %s", owner_id, source.name)

        # Stage 1: cheap validation from declared metadata or stat
        pre_check = await self._pre_validate(request)
        if pre_check is not None:
            return pre_check
        self._progress(request, 10)

        # Stage 2: compression (recovers to the original file)
        processed = await self._compress_stage(request, workdir)
        self._progress(request, 30)

        # Stage 3: type resolution
        if processed.was_compressed:
            reference_name = processed.path.name
        else:
            reference_name = request.declared_file_name or source.name
        ext = extension_of(reference_name)
        try:
            content_type = content_type_for(ext or "")
        except ValueError as exc:
            return ValidationFailed(owner_id, str(exc))
        self._progress(request, 40)

        # Stage 4: materialize bytes
        encoded = await self._encode_stage(request, processed.path)
        match encoded:
            case EncodingFailed() as encode_err:
                return encode_err
            case bytes() as data:
                pass
            case _:
                raise TypeError(f"Unexpected encode result type: {type(encoded).__name__}")

        # Stage 5: re-validate actual size alongside the quota check
        revalidation, quota_result = await asyncio.gather(
            self._revalidate(reference_name, len(data), content_type, owner_id),
            self._quota.check(owner_id, len(data)),
        )
        if revalidation is not None:
            return revalidation
        match quota_result:
            case QuotaExceeded() | QuotaUnavailable() as quota_err:
                return quota_err
            case QuotaDecision() as decision:
                pass
            case _:
                raise TypeError(f"Unexpected quota result type: {type(quota_result).__name__}")
        self._progress(request, 50)

        # Stage 6: transfer with retry
        container = request.container or self._config.upload.default_container
        path = build_object_path(owner_id, request.declared_file_name, ext or "")
        self._progress(request, 60)

        def on_transfer_progress(fraction: float) -> None:
            self._progress(request, 60 + fraction * 30)

        try:
            await self._uploader.upload_with_retry(
                container,
                path,
                data,
                content_type,
                request.max_attempts,
                on_transfer_progress,
                owner_id=owner_id,
            )
        except TransferFailed as transfer_err:
            return transfer_err
        self._progress(request, 90)

        # Stage 7: access reference
        try:
            reference = await issue_access_reference(
                self._store,
                container,
                path,
                self._config.upload.reference_ttl_s,
                owner_id=owner_id,
                byte_size=len(data),
            )
        except UploadPipelineError as ref_err:
            return ref_err
        self._progress(request, 100)

        logger.info(
            "Upload complete for %s: %s/%s (%d bytes, compressed=%s)",
            owner_id,
            container,
            path,
            len(data),
            processed.was_compressed,
        )
        return UploadResult(
            access_reference=reference,
            byte_size=len(data),
            was_compressed=processed.was_compressed,
            container=container,
            path=path,
            content_type=content_type,
            quota_warning=decision.warning,
        )

    async def _pre_validate(self, request: UploadRequest) -> ValidationFailed | None:
        try:
            validate_owner_id(request.owner_id)
        except ValueError as exc:
            logger.info("Rejected owner id: %s", exc)
            return ValidationFailed(request.owner_id, f"Invalid owner id: {request.owner_id!r}")

        reference = request.declared_file_name or str(request.local_path)
        failure = self._validator.validate(
            reference,
            None,
            request.declared_mime_type,
            owner_id=request.owner_id,
        )
        if failure is not None:
            return failure

        size = request.declared_size_bytes
        if size is None:
            try:
                stat = await asyncio.to_thread(os.stat, request.local_path)
            except OSError as exc:
                logger.info("Cannot stat %s: %s", request.local_path, exc)
                return ValidationFailed(request.owner_id, f"File not found: {request.local_path}")
            size = stat.st_size
        return self._validator.validate(reference, size, owner_id=request.owner_id)

    async def _revalidate(
        self, reference_name: str, size: int, content_type: str, owner_id: str
    ) -> ValidationFailed | None:
        return self._validator.validate(reference_name, size, content_type, owner_id=owner_id)

    async def _compress_stage(self, request: UploadRequest, workdir: Path) -> _Processed:
        if not request.compression_enabled:
            return _Processed(path=request.local_path, was_compressed=False)
        try:
            compressed = await self._compressor.compress(request.local_path, workdir)
        except Exception as exc:
            failure = CompressionFailed(request.owner_id, exc, recovered=True)
            logger.warning(
                "%s; continuing with original file",
                failure.message,
                extra={"stage": failure.stage, "recovered": failure.recovered},
            )
            return _Processed(path=request.local_path, was_compressed=False)
        return _Processed(path=compressed.path, was_compressed=True)

    async def _encode_stage(self, request: UploadRequest, source: Path) -> bytes | EncodingFailed:
        try:
            return await self._encoder.encode(source)
        except Exception as exc:
            logger.error(
                "Encoding failed for %s: %s", request.owner_id, exc, exc_info=exc
            )
            return EncodingFailed(request.owner_id, exc)

    def _make_workdir(self) -> Path:
        base = self._config.upload.workdir
        if base:
            Path(base).mkdir(parents=True, exist_ok=True)
        return Path(tempfile.mkdtemp(prefix="stowage-", dir=base))

    @staticmethod
    def _progress(request: UploadRequest, percent: float) -> None:
        notify_progress(request.progress_sink, percent)
