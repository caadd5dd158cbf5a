"""Pillow-backed image codec."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageOps

from stowage.interfaces import ImageCodec

logger = logging.getLogger(__name__)


def pillow_quality(quality: float) -> int:
    """Map a 0-1 quality to Pillow's 1-100 JPEG scale."""
    return max(1, min(100, round(quality * 100)))


class PillowCodec(ImageCodec):
    """Blocking Pillow operations. All outputs are baseline JPEG."""

    def probe(self, source: Path) -> tuple[int, int]:
        with Image.open(source) as img:
            oriented = ImageOps.exif_transpose(img)
            return oriented.size

    def reencode(
        self, source: Path, dest: Path, size: tuple[int, int] | None, quality: float
    ) -> tuple[int, int]:
        with Image.open(source) as img:
            out = ImageOps.exif_transpose(img)
            if size is not None and size != out.size:
                out = out.resize(size, Image.Resampling.LANCZOS)
            self._save_jpeg(out, dest, quality)
            return out.size

    def rotate(self, source: Path, dest: Path, degrees: float, quality: float = 0.9) -> None:
        with Image.open(source) as img:
            out = ImageOps.exif_transpose(img).rotate(-degrees, expand=True)
            self._save_jpeg(out, dest, quality)

    def thumbnail(self, source: Path, dest: Path, size: int = 200, quality: float = 0.7) -> None:
        with Image.open(source) as img:
            out = ImageOps.exif_transpose(img).resize((size, size), Image.Resampling.LANCZOS)
            self._save_jpeg(out, dest, quality)

    @staticmethod
    def _save_jpeg(img: Image.Image, dest: Path, quality: float) -> None:
        if img.mode != "RGB":
            img = img.convert("RGB")
        dest.parent.mkdir(parents=True, exist_ok=True)
        img.save(dest, format="JPEG", quality=pillow_quality(quality))
        logger.debug("Wrote JPEG %s (%dx%d)", dest, img.width, img.height)
