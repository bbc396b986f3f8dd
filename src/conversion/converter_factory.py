# src/conversion/converter_factory.py (v1)
"""Factory: pick a converter by kind or by source extension."""

from __future__ import annotations

from pathlib import Path

from wireflow.config.settings import Settings
from wireflow.conversion.base_converter import BaseConverter
from wireflow.conversion.image_resizer import IMAGE_EXTENSIONS, ImageResizer
from wireflow.conversion.office_converter import OFFICE_EXTENSIONS, OfficeToPdfConverter


class UnsupportedConversionError(ValueError):
    """Raised when no converter handles a kind or extension."""


def create_converter(kind: str, settings: Settings | None = None) -> BaseConverter:
    """Instantiate the converter for a conversion kind.

    Args:
        kind: "office-pdf" or "image-resize".
        settings: Process settings; defaults apply when None.

    Raises:
        UnsupportedConversionError: For unknown kinds.
    """
    if kind == "office-pdf":
        soffice = "soffice" if settings is None else settings.soffice_path
        return OfficeToPdfConverter(soffice_path=soffice)

    if kind == "image-resize":
        max_dim = 1568 if settings is None else settings.image_max_dimension
        return ImageResizer(max_dimension=max_dim)

    raise UnsupportedConversionError(f"Unsupported conversion kind: {kind!r}")


def converter_for(path: Path, settings: Settings | None = None) -> BaseConverter | None:
    """Converter needed before `path` can be sent to the model, if any."""
    ext = path.suffix.lower()
    if ext in OFFICE_EXTENSIONS:
        return create_converter("office-pdf", settings)
    if ext in IMAGE_EXTENSIONS:
        return create_converter("image-resize", settings)
    return None
