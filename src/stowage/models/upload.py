"""Upload request/result models."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

ProgressSink = Callable[[float], None]


class UploadRequest(BaseModel):
    """Single upload invocation. Created by the caller, discarded after the call."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    local_path: Path
    owner_id: str = Field(min_length=1)
    container: str | None = None  # upload.default_container when unset
    declared_file_name: str | None = None
    compression_enabled: bool = True
    max_attempts: int = Field(default=3, ge=1)
    progress_sink: ProgressSink | None = None

    # Cheap pre-compression validation inputs (stat size is used when absent)
    declared_size_bytes: int | None = Field(default=None, ge=0)
    declared_mime_type: str | None = None


class UploadResult(BaseModel):
    """Outcome of a successful upload."""

    model_config = ConfigDict(frozen=True)

    access_reference: str
    byte_size: int
    was_compressed: bool
    container: str
    path: str
    content_type: str
    quota_warning: str | None = None


class CompressedImage(BaseModel):
    """Re-encoded image produced by the compressor."""

    path: Path
    width: int
    height: int
    resized: bool = False


class QuotaSnapshot(BaseModel):
    """Owner usage computed fresh for one request."""

    owner_id: str
    current_bytes: int = Field(ge=0)
    ceiling_bytes: int = Field(ge=0)

    @property
    def available_bytes(self) -> int:
        return self.ceiling_bytes - self.current_bytes


class QuotaDecision(BaseModel):
    """Result of a quota check. `allowed=False` carries the deficit."""

    allowed: bool
    snapshot: QuotaSnapshot
    candidate_bytes: int
    message: str | None = None
    warning: str | None = None
    deficit_bytes: int = 0
