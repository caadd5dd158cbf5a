"""Stowage media upload pipeline."""

__version__ = "0.1.0"

# Export commonly used types
from stowage.errors import UploadPipelineError
from stowage.models.upload import UploadRequest, UploadResult
from stowage.pipeline import UploadPipeline

__all__ = [
    "UploadPipeline",
    "UploadPipelineError",
    "UploadRequest",
    "UploadResult",
    "__version__",
]
