"""Image downscaling and re-encoding."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from stowage.interfaces import ImageCodec
from stowage.models.config import CompressionProfile
from stowage.models.upload import CompressedImage

logger = logging.getLogger(__name__)


def target_dimensions(
    width: int, height: int, profile: CompressionProfile
) -> tuple[int, int] | None:
    """Return the resize target, or None when the image already fits.

    Aspect ratio is preserved with a single uniform ratio. Never upscales.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid image dimensions: {width}x{height}")
    if width <= profile.max_width and height <= profile.max_height:
        return None
    ratio = min(profile.max_width / width, profile.max_height / height)
    return max(1, round(width * ratio)), max(1, round(height * ratio))


class Compressor:
    """Re-encodes images as JPEG, downscaling to the profile bounds."""

    def __init__(self, codec: ImageCodec, profile: CompressionProfile) -> None:
        self._codec = codec
        self._profile = profile

    async def compress(self, source: Path, workdir: Path) -> CompressedImage:
        """Write a compressed copy of source into workdir.

        Raises whatever the codec raises; the caller decides how to recover.
        """
        return await asyncio.to_thread(self._compress_sync, source, workdir)

    def _compress_sync(self, source: Path, workdir: Path) -> CompressedImage:
        width, height = self._codec.probe(source)
        size = target_dimensions(width, height, self._profile)
        dest = workdir / f"{source.stem}-compressed.jpg"
        out_w, out_h = self._codec.reencode(source, dest, size, self._profile.quality)
        logger.info(
            "Compressed %s: %dx%d -> %dx%d",
            source.name,
            width,
            height,
            out_w,
            out_h,
        )
        return CompressedImage(path=dest, width=out_w, height=out_h, resized=size is not None)
