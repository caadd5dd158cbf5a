"""Byte size formatting used in user-facing messages."""

from __future__ import annotations

MB = 1024 * 1024

_UNITS = ("Bytes", "KB", "MB", "GB")


def to_mb(num_bytes: int | float) -> float:
    return num_bytes / MB


def format_mb(num_bytes: int | float, digits: int = 2) -> str:
    """Megabytes with fixed decimals, e.g. `20.00`."""
    return f"{to_mb(num_bytes):.{digits}f}"


def format_bytes(num_bytes: int, decimals: int = 2) -> str:
    """Human readable size with the largest fitting unit, e.g. `1.5 MB`."""
    if num_bytes <= 0:
        return "0 Bytes"
    index = 0
    scaled = float(num_bytes)
    while scaled >= 1024 and index < len(_UNITS) - 1:
        scaled /= 1024
        index += 1
    value = round(scaled, max(decimals, 0))
    return f"{value:g} {_UNITS[index]}"


def usage_percent(used_bytes: int, total_bytes: int) -> float:
    if total_bytes <= 0:
        return 100.0
    return used_bytes / total_bytes * 100


def format_storage_message(used_bytes: int, total_bytes: int) -> str:
    """`Using X MB of N MB (P%)`."""
    percent = round(usage_percent(used_bytes, total_bytes))
    return (
        f"Using {format_mb(used_bytes)} MB of {format_mb(total_bytes, 0)} MB ({percent}%)"
    )
