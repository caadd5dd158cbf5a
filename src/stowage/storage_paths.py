"""Helpers for building upload destination paths."""

from __future__ import annotations

import re
import time
from pathlib import PurePosixPath

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")


def now_ms() -> int:
    return int(time.time() * 1000)


def sanitize_base_name(name: str) -> str:
    """Replace every character outside `[A-Za-z0-9_-]` with `-`."""
    return _UNSAFE_CHARS.sub("-", name)


def base_name_of(file_name: str | None, timestamp_ms: int) -> str:
    """Strip the extension from a declared file name, or default to image-<ts>."""
    if file_name:
        stem = file_name.rsplit("/", 1)[-1]
        if "." in stem:
            stem = stem.rsplit(".", 1)[0]
        if stem:
            return stem
    return f"image-{timestamp_ms}"


def validate_owner_id(owner_id: str) -> None:
    """Owner ids become the leading folder of every object path.

    Raises:
        ValueError: If owner_id is absolute or has an empty, `.` or `..` segment
    """
    if owner_id.startswith("/"):
        raise ValueError(f"owner_id must be relative, got {owner_id!r}")
    # Checked on the raw string; PurePosixPath would collapse "." and "//".
    for part in owner_id.split("/"):
        if part in ("", ".", ".."):
            raise ValueError(f"owner_id contains invalid segment: {owner_id!r}")


def _normalize_dest_path(path: PurePosixPath) -> str:
    if path.is_absolute():
        raise ValueError(f"dest_path must be relative, got {path}")
    for part in path.parts:
        if part in ("", ".", ".."):
            raise ValueError(f"dest_path contains invalid segment: {path}")
    return str(path)


def build_object_path(
    owner_id: str,
    file_name: str | None,
    extension: str,
    timestamp_ms: int | None = None,
) -> str:
    """Build `{owner_id}/{sanitized_base_name}-{timestamp_ms}.{ext}`."""
    validate_owner_id(owner_id)
    ts = now_ms() if timestamp_ms is None else timestamp_ms
    base = sanitize_base_name(base_name_of(file_name, ts))
    path = PurePosixPath(owner_id) / f"{base}-{ts}.{extension.lower().lstrip('.')}"
    return _normalize_dest_path(path)
