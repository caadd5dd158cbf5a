"""Pipeline module - upload orchestration and its stages."""

from stowage.pipeline.compressor import Compressor, target_dimensions
from stowage.pipeline.core import UploadPipeline
from stowage.pipeline.encoder import (
    Base64RoundTripEncoder,
    BinaryDecodeError,
    DirectBytesEncoder,
    create_encoder,
    decode_base64,
)
from stowage.pipeline.quota import QuotaGuard, evaluate_quota
from stowage.pipeline.reference import issue_access_reference
from stowage.pipeline.retry import RetryUploader, next_delay
from stowage.pipeline.validator import Validator, content_type_for, extension_of

__all__ = [
    "Base64RoundTripEncoder",
    "BinaryDecodeError",
    "Compressor",
    "DirectBytesEncoder",
    "QuotaGuard",
    "RetryUploader",
    "UploadPipeline",
    "Validator",
    "content_type_for",
    "create_encoder",
    "decode_base64",
    "evaluate_quota",
    "extension_of",
    "issue_access_reference",
    "next_delay",
    "target_dimensions",
]
