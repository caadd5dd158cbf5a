"""Configuration models for the upload pipeline."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from stowage.units import MB

DEFAULT_EXTENSIONS = ["jpg", "jpeg", "png", "webp", "gif"]
DEFAULT_MIME_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"]


class ValidationPolicy(BaseModel):
    """Process-wide file acceptance policy."""

    max_bytes: int = Field(default=10 * MB, gt=0)
    allowed_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    allowed_mime_types: list[str] = Field(default_factory=lambda: list(DEFAULT_MIME_TYPES))

    @field_validator("allowed_extensions", mode="before")
    @classmethod
    def _normalize_extensions(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item).lower().lstrip(".") for item in value]
        return value

    @field_validator("allowed_mime_types", mode="before")
    @classmethod
    def _normalize_mime_types(cls, value: Any) -> Any:
        if isinstance(value, list):
            return [str(item).lower() for item in value]
        return value


class CompressionProfile(BaseModel):
    """Resize bounds and re-encode quality."""

    max_width: int = Field(default=1920, ge=1)
    max_height: int = Field(default=1920, ge=1)
    quality: float = Field(default=0.8, gt=0.0, le=1.0)


class QuotaConfig(BaseModel):
    """Per-owner storage ceilings."""

    max_object_bytes: int = Field(default=10 * MB, gt=0)
    max_total_bytes: int = Field(default=100 * MB, gt=0)
    warning_threshold_percent: float = Field(default=80.0, ge=0.0, le=100.0)


class RetryConfig(BaseModel):
    """Backoff settings for object store uploads."""

    max_attempts: int = Field(default=3, ge=1)
    base_delay_ms: int = Field(default=1000, ge=0)
    max_delay_ms: int = Field(default=5000, ge=0)


class UploadConfig(BaseModel):
    """Pipeline-level upload defaults."""

    default_container: str = "storage-images"
    reference_ttl_s: int = Field(default=86400, ge=1)
    encoder: Literal["base64", "direct"] = "base64"
    workdir: str | None = None


class LocalStorageConfig(BaseModel):
    """Local filesystem object store configuration."""

    root: str = "./storage"
    signing_key_env: str = "STOWAGE_SIGNING_KEY"
    base_url: str | None = None


class SupabaseStorageConfig(BaseModel):
    """Supabase Storage configuration using env var names for secrets."""

    url_env: str = "SUPABASE_URL"
    key_env: str = "SUPABASE_ANON_KEY"
    request_timeout_s: float = Field(default=30.0, gt=0.0)


class MemoryLedgerConfig(BaseModel):
    """In-process usage ledger (development and tests)."""


class SqlLedgerConfig(BaseModel):
    """SQLAlchemy usage ledger configuration."""

    dsn_env: str | None = None
    dsn: str | None = None
    create_tables: bool = True

    @model_validator(mode="after")
    def _validate_dsn(self) -> SqlLedgerConfig:
        if not (self.dsn_env or self.dsn):
            raise ValueError("ledger.config.dsn_env or ledger.config.dsn required for sql ledger")
        return self


class StorageConfig(BaseModel):
    """Object store backend selection.

    Backend names are validated against the plugin registry when the config is
    loaded, so third-party stores can register via entry points.
    """

    backend: str = "local"
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value


class LedgerConfig(BaseModel):
    """Usage ledger backend selection."""

    backend: str = "memory"
    config: dict[str, Any] = Field(default_factory=dict)

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.lower()
        return value


class Config(BaseModel):
    """Main configuration."""

    version: int = 1
    storage: StorageConfig = Field(default_factory=StorageConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    validation: ValidationPolicy = Field(default_factory=ValidationPolicy)
    compression: CompressionProfile = Field(default_factory=CompressionProfile)
    quota: QuotaConfig = Field(default_factory=QuotaConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    upload: UploadConfig = Field(default_factory=UploadConfig)

    @model_validator(mode="after")
    def _validate_ceilings(self) -> Config:
        if self.quota.max_object_bytes > self.quota.max_total_bytes:
            raise ValueError("quota.max_object_bytes must not exceed quota.max_total_bytes")
        return self
