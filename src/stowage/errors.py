"""Error hierarchy for upload pipeline stages."""

from __future__ import annotations


class UploadPipelineError(Exception):
    """Base exception for all upload pipeline errors.

    Compatible with error-as-value pattern: instances can be returned as values
    instead of raised. Preserves stack traces via exception chaining.
    """

    def __init__(
        self,
        message: str,
        stage: str,
        owner_id: str | None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.owner_id = owner_id
        self.cause = cause
        self.__cause__ = cause  # Python's exception chaining


class ValidationFailed(UploadPipelineError):
    """Candidate file rejected by validation policy (user-correctable)."""

    def __init__(self, owner_id: str | None, reason: str) -> None:
        super().__init__(reason, stage="validate", owner_id=owner_id)
        self.reason = reason


class CompressionFailed(UploadPipelineError):
    """Image compression failed; the pipeline recovers with the original bytes."""

    def __init__(self, owner_id: str | None, cause: Exception, recovered: bool = True) -> None:
        super().__init__(
            f"Compression failed for {owner_id}: {cause}",
            stage="compress",
            owner_id=owner_id,
            cause=cause,
        )
        self.recovered = recovered


class EncodingFailed(UploadPipelineError):
    """Source could not be materialized into a byte buffer."""

    def __init__(self, owner_id: str | None, cause: Exception) -> None:
        super().__init__(
            "Failed to process image data for upload",
            stage="encode",
            owner_id=owner_id,
            cause=cause,
        )


class QuotaExceeded(UploadPipelineError):
    """Upload would exceed a per-object or total storage ceiling."""

    def __init__(self, owner_id: str, message: str, deficit_bytes: int) -> None:
        super().__init__(message, stage="quota", owner_id=owner_id)
        self.deficit_bytes = deficit_bytes


class QuotaUnavailable(UploadPipelineError):
    """Current usage could not be read from the usage ledger."""

    def __init__(self, owner_id: str, cause: Exception) -> None:
        super().__init__(
            f"Could not determine storage usage for {owner_id}",
            stage="quota",
            owner_id=owner_id,
            cause=cause,
        )


class TransferFailed(UploadPipelineError):
    """Object store upload failed after all retry attempts."""

    def __init__(self, owner_id: str | None, path: str, attempts: int, cause: Exception) -> None:
        super().__init__(
            f"Upload failed after {attempts} attempts: {cause}",
            stage="upload",
            owner_id=owner_id,
            cause=cause,
        )
        self.path = path
        self.attempts = attempts


class ReferenceIssuanceFailed(UploadPipelineError):
    """Access URL could not be issued; the object itself is already stored."""

    def __init__(
        self,
        owner_id: str | None,
        container: str,
        path: str,
        cause: Exception,
        byte_size: int | None = None,
    ) -> None:
        super().__init__(
            f"Failed to generate signed URL for {container}/{path}",
            stage="reference",
            owner_id=owner_id,
            cause=cause,
        )
        self.container = container
        self.path = path
        self.byte_size = byte_size
