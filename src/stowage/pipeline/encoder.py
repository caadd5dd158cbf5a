"""Transport byte buffer production."""

from __future__ import annotations

import asyncio
import base64
import binascii
from pathlib import Path

from stowage.interfaces import BinaryEncoder


class BinaryDecodeError(ValueError):
    """Base64 text could not be decoded."""


def decode_base64(text: str) -> bytes:
    """Strictly decode base64 text. Malformed input raises, it never yields b""."""
    try:
        return base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise BinaryDecodeError(f"Malformed base64 input: {exc}") from exc


def _read_base64(source: Path) -> str:
    return base64.b64encode(source.read_bytes()).decode("ascii")


class Base64RoundTripEncoder(BinaryEncoder):
    """Reads the file as base64 text and decodes it back to raw bytes.

    Portable path for runtimes whose file APIs only hand out text.
    """

    name = "base64"

    async def encode(self, source: Path) -> bytes:
        text = await asyncio.to_thread(_read_base64, source)
        return decode_base64(text)


class DirectBytesEncoder(BinaryEncoder):
    """Reads the file bytes directly."""

    name = "direct"

    async def encode(self, source: Path) -> bytes:
        return await asyncio.to_thread(source.read_bytes)


_ENCODERS: dict[str, type[BinaryEncoder]] = {
    Base64RoundTripEncoder.name: Base64RoundTripEncoder,
    DirectBytesEncoder.name: DirectBytesEncoder,
}


def create_encoder(name: str) -> BinaryEncoder:
    """Instantiate an encoder by config name."""
    try:
        return _ENCODERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown encoder: {name} (available: {', '.join(sorted(_ENCODERS))})"
        ) from None
