"""Candidate file validation."""

from __future__ import annotations

import logging

from stowage.errors import ValidationFailed
from stowage.models.config import ValidationPolicy
from stowage.units import MB

logger = logging.getLogger(__name__)

_CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "webp": "image/webp",
    "gif": "image/gif",
}


def extension_of(local_reference: str) -> str | None:
    """Lower-cased extension of the trailing path segment, or None."""
    segment = str(local_reference).replace("\\", "/").rsplit("/", 1)[-1]
    segment = segment.split("?", 1)[0]
    if "." not in segment:
        return None
    ext = segment.rsplit(".", 1)[-1].lower()
    return ext or None


def content_type_for(extension: str) -> str:
    """MIME type for an allowed image extension.

    Raises:
        ValueError: If the extension has no known image type
    """
    try:
        return _CONTENT_TYPES[extension.lower().lstrip(".")]
    except KeyError:
        raise ValueError(f"No content type for extension: {extension}") from None


class Validator:
    """Applies a ValidationPolicy. Never reads file contents."""

    def __init__(self, policy: ValidationPolicy) -> None:
        self._policy = policy

    @property
    def policy(self) -> ValidationPolicy:
        return self._policy

    def validate(
        self,
        local_reference: str,
        declared_size_bytes: int | None = None,
        declared_mime_type: str | None = None,
        *,
        owner_id: str | None = None,
    ) -> ValidationFailed | None:
        """Return None if the candidate passes, else the first failure."""
        policy = self._policy

        ext = extension_of(local_reference)
        if ext is None or ext not in policy.allowed_extensions:
            return self._fail(
                owner_id,
                f"Invalid file format. Allowed: {', '.join(policy.allowed_extensions)}",
            )

        if declared_mime_type is not None:
            if declared_mime_type.lower() not in policy.allowed_mime_types:
                return self._fail(owner_id, f"Invalid MIME type: {declared_mime_type}")

        if declared_size_bytes is not None:
            if declared_size_bytes == 0:
                return self._fail(owner_id, "File is empty (0 bytes)")
            if declared_size_bytes > policy.max_bytes:
                size_mb = declared_size_bytes / MB
                max_mb = policy.max_bytes / MB
                return self._fail(
                    owner_id,
                    f"File too large ({size_mb:.2f}MB). Maximum: {max_mb:g}MB",
                )

        return None

    @staticmethod
    def _fail(owner_id: str | None, reason: str) -> ValidationFailed:
        logger.info("Validation failed: %s", reason)
        return ValidationFailed(owner_id, reason)
