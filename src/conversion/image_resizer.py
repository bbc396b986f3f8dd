# src/conversion/image_resizer.py (v1)
"""Downscale images so their longest edge fits the vision input limit."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from wireflow.conversion.base_converter import BaseConverter, ConversionError

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = [".png", ".jpg", ".jpeg", ".webp", ".gif"]

# Pillow format names keyed by extension.
_FORMATS: dict[str, str] = {
    ".png": "PNG",
    ".jpg": "JPEG",
    ".jpeg": "JPEG",
    ".webp": "WEBP",
    ".gif": "GIF",
}


class ImageResizer(BaseConverter):
    """Resample images whose longest edge exceeds `max_dimension`.

    Aspect ratio is preserved. Images already within bounds are re-encoded
    unchanged so the cache always holds a usable artifact.
    """

    def __init__(self, max_dimension: int = 1568) -> None:
        self._max_dimension = max_dimension

    @property
    def kind(self) -> str:
        return "image-resize"

    @property
    def supported_extensions(self) -> list[str]:
        return list(IMAGE_EXTENSIONS)

    def output_extension(self, source: Path) -> str:
        return source.suffix.lower().lstrip(".") or "png"

    async def convert(self, source: Path, destination: Path) -> None:
        await asyncio.to_thread(self._resize, source, destination)

    def _resize(self, source: Path, destination: Path) -> None:
        try:
            with Image.open(source) as img:
                width, height = img.size
                longest = max(width, height)
                if longest > self._max_dimension:
                    scale = self._max_dimension / longest
                    new_size = (max(1, round(width * scale)), max(1, round(height * scale)))
                    img = img.resize(new_size, Image.Resampling.LANCZOS)
                    logger.debug(
                        "Resized %s from %dx%d to %dx%d",
                        source, width, height, new_size[0], new_size[1],
                    )
                fmt = _FORMATS.get(destination.suffix.lower(), img.format or "PNG")
                if fmt == "JPEG" and img.mode not in ("RGB", "L"):
                    img = img.convert("RGB")
                destination.parent.mkdir(parents=True, exist_ok=True)
                img.save(destination, format=fmt)
        except (UnidentifiedImageError, OSError) as exc:
            raise ConversionError(f"Cannot resize image {source}: {exc}") from exc
