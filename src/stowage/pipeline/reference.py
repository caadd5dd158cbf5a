"""Time-limited access reference issuance."""

from __future__ import annotations

import logging

from stowage.errors import ReferenceIssuanceFailed
from stowage.interfaces import ObjectStore

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 86400


async def issue_access_reference(
    store: ObjectStore,
    container: str,
    path: str,
    ttl_seconds: int = DEFAULT_TTL_S,
    *,
    owner_id: str | None = None,
    byte_size: int | None = None,
) -> str:
    """Sign a URL for an uploaded object. Single attempt.

    Raises:
        ReferenceIssuanceFailed: If the store cannot sign; the object stays stored
    """
    try:
        url = await store.create_signed_url(container, path, ttl_seconds)
    except Exception as exc:
        logger.error("Signed URL failed for %s/%s: %s", container, path, exc, exc_info=exc)
        raise ReferenceIssuanceFailed(owner_id, container, path, exc, byte_size) from exc
    if not url:
        exc = RuntimeError("Object store returned an empty signed URL")
        raise ReferenceIssuanceFailed(owner_id, container, path, exc, byte_size) from exc
    return url
