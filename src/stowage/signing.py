"""Expiring URL signatures for locally stored objects.

A signed URL carries two query parameters: `expires` (unix seconds) and
`signature`, an HMAC-SHA256 over `{object_key}\\n{expires}`. The HMAC key is
derived from the configured secret so the raw secret never signs directly.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from urllib.parse import parse_qs, urlencode

_KEY_CONTEXT = b"stowage-signed-url:v1"


class SignatureErrorCode(StrEnum):
    MALFORMED = "MALFORMED"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    EXPIRED = "EXPIRED"


class SignatureError(ValueError):
    """Raised when a signed URL query does not verify."""

    def __init__(self, code: SignatureErrorCode, message: str) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True, slots=True)
class SignedQuery:
    expires: int
    signature: str

    @property
    def expires_at(self) -> datetime:
        return datetime.fromtimestamp(self.expires, UTC)

    def as_query(self) -> str:
        return urlencode({"expires": self.expires, "signature": self.signature})


def sign_object_url(
    *,
    secret: str,
    object_key: str,
    ttl_s: int,
    now: datetime | None = None,
) -> SignedQuery:
    """Sign read access to object_key for ttl_s seconds."""
    expires = int(((now or datetime.now(UTC)) + timedelta(seconds=ttl_s)).timestamp())
    return SignedQuery(expires=expires, signature=_signature(secret, object_key, expires))


def verify_object_signature(
    *,
    secret: str,
    object_key: str,
    query: str,
    now: datetime | None = None,
) -> SignedQuery:
    """Check a URL query string produced by `SignedQuery.as_query`.

    Raises:
        SignatureError: If the query is malformed, forged, for another object,
            or expired
    """
    signed = _parse_query(query)
    expected = _signature(secret, object_key, signed.expires)
    if not hmac.compare_digest(signed.signature, expected):
        raise SignatureError(SignatureErrorCode.INVALID_SIGNATURE, "Signature is invalid")
    if signed.expires <= int((now or datetime.now(UTC)).timestamp()):
        raise SignatureError(SignatureErrorCode.EXPIRED, "Signed URL has expired")
    return signed


def _parse_query(query: str) -> SignedQuery:
    params = parse_qs(query)
    expires_values = params.get("expires", [])
    signature_values = params.get("signature", [])
    if len(expires_values) != 1 or len(signature_values) != 1:
        raise SignatureError(SignatureErrorCode.MALFORMED, "Signed URL query is malformed")
    try:
        expires = int(expires_values[0])
    except ValueError as exc:
        raise SignatureError(
            SignatureErrorCode.MALFORMED, "Signed URL expiry is not an integer"
        ) from exc
    return SignedQuery(expires=expires, signature=signature_values[0])


def _signature(secret: str, object_key: str, expires: int) -> str:
    key = hmac.new(secret.encode("utf-8"), _KEY_CONTEXT, hashlib.sha256).digest()
    message = f"{object_key}\n{expires}".encode()
    digest = hmac.new(key, message, hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
