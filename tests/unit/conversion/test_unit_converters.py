# tests/unit/conversion/test_unit_converters.py (v1)
"""Tests for conversion/: image resizer, office converter, factory."""

from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from wireflow.config.settings import Settings
from wireflow.conversion.base_converter import ConversionError, ConversionToolUnavailable
from wireflow.conversion.converter_factory import (
    UnsupportedConversionError,
    converter_for,
    create_converter,
)
from wireflow.conversion.image_resizer import ImageResizer
from wireflow.conversion.office_converter import OfficeToPdfConverter


def _image(path: Path, size: tuple[int, int], mode: str = "RGB") -> Path:
    Image.new(mode, size, color=0).save(path)
    return path


class TestImageResizer:
    @pytest.mark.asyncio
    async def test_downscales_longest_edge(self, tmp_path):
        src = _image(tmp_path / "wide.png", (400, 100))
        dst = tmp_path / "out" / "wide.png"
        await ImageResizer(max_dimension=200).convert(src, dst)
        with Image.open(dst) as img:
            assert img.size == (200, 50)

    @pytest.mark.asyncio
    async def test_small_image_unchanged(self, tmp_path):
        src = _image(tmp_path / "small.png", (50, 80))
        dst = tmp_path / "small_out.png"
        await ImageResizer(max_dimension=200).convert(src, dst)
        with Image.open(dst) as img:
            assert img.size == (50, 80)

    @pytest.mark.asyncio
    async def test_jpeg_stays_jpeg(self, tmp_path):
        src = tmp_path / "photo.jpg"
        Image.new("RGB", (300, 300)).save(src, format="JPEG")
        dst = tmp_path / "photo_out.jpg"
        await ImageResizer(max_dimension=100).convert(src, dst)
        with Image.open(dst) as img:
            assert img.format == "JPEG"
            assert img.size == (100, 100)

    @pytest.mark.asyncio
    async def test_not_an_image(self, tmp_path):
        src = tmp_path / "fake.png"
        src.write_text("not an image")
        with pytest.raises(ConversionError):
            await ImageResizer().convert(src, tmp_path / "out.png")

    def test_output_extension_keeps_suffix(self):
        assert ImageResizer().output_extension(Path("a.JPG")) == "jpg"


class TestOfficeConverter:
    def test_unavailable(self):
        conv = OfficeToPdfConverter(soffice_path="definitely-not-soffice-xyz")
        assert conv.is_available() is False

    @pytest.mark.asyncio
    async def test_convert_without_tool(self, tmp_path):
        src = tmp_path / "a.docx"
        src.write_bytes(b"PK")
        conv = OfficeToPdfConverter(soffice_path="definitely-not-soffice-xyz")
        with pytest.raises(ConversionToolUnavailable):
            await conv.convert(src, tmp_path / "a.pdf")

    def test_output_extension(self):
        assert OfficeToPdfConverter().output_extension(Path("deck.pptx")) == "pdf"


class TestFactory:
    def test_create_by_kind(self):
        assert isinstance(create_converter("office-pdf"), OfficeToPdfConverter)
        assert isinstance(create_converter("image-resize"), ImageResizer)

    def test_unknown_kind(self):
        with pytest.raises(UnsupportedConversionError):
            create_converter("video-gif")

    def test_by_extension(self):
        assert converter_for(Path("a.DOCX")).kind == "office-pdf"
        assert converter_for(Path("a.png")).kind == "image-resize"
        assert converter_for(Path("notes.md")) is None

    def test_settings_applied(self):
        settings = Settings(_env_file=None, soffice_path="/opt/lo/soffice", image_max_dimension=512)
        office = create_converter("office-pdf", settings)
        assert office._soffice == "/opt/lo/soffice"
        assert create_converter("image-resize", settings)._max_dimension == 512
