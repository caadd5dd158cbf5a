"""Stowage data models."""

from stowage.models.config import (
    CompressionProfile,
    Config,
    LedgerConfig,
    LocalStorageConfig,
    MemoryLedgerConfig,
    QuotaConfig,
    RetryConfig,
    SqlLedgerConfig,
    StorageConfig,
    SupabaseStorageConfig,
    UploadConfig,
    ValidationPolicy,
)
from stowage.models.storage import LedgerEntry, StoreAck, StoredObjectInfo
from stowage.models.upload import (
    CompressedImage,
    ProgressSink,
    QuotaDecision,
    QuotaSnapshot,
    UploadRequest,
    UploadResult,
)

__all__ = [
    "CompressedImage",
    "CompressionProfile",
    "Config",
    "LedgerConfig",
    "LedgerEntry",
    "LocalStorageConfig",
    "MemoryLedgerConfig",
    "ProgressSink",
    "QuotaConfig",
    "QuotaDecision",
    "QuotaSnapshot",
    "RetryConfig",
    "SqlLedgerConfig",
    "StorageConfig",
    "StoreAck",
    "StoredObjectInfo",
    "SupabaseStorageConfig",
    "UploadConfig",
    "UploadRequest",
    "UploadResult",
    "ValidationPolicy",
]
