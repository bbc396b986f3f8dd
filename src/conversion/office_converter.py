# src/conversion/office_converter.py (v1)
"""Office documents to PDF via LibreOffice (`soffice --headless`).

The conversion runs as an asyncio subprocess writing into a scratch
directory; the produced PDF is then moved to the requested destination.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path

from wireflow.conversion.base_converter import (
    BaseConverter,
    ConversionError,
    ConversionToolUnavailable,
)

logger = logging.getLogger(__name__)

OFFICE_EXTENSIONS = [
    ".doc", ".docx", ".odt", ".rtf",
    ".ppt", ".pptx", ".odp",
    ".xls", ".xlsx", ".ods",
]


class OfficeToPdfConverter(BaseConverter):
    """Convert Word/PowerPoint/Excel/OpenDocument files to PDF."""

    def __init__(self, soffice_path: str = "soffice") -> None:
        self._soffice = soffice_path

    @property
    def kind(self) -> str:
        return "office-pdf"

    @property
    def supported_extensions(self) -> list[str]:
        return list(OFFICE_EXTENSIONS)

    def output_extension(self, source: Path) -> str:
        return "pdf"

    def is_available(self) -> bool:
        return shutil.which(self._soffice) is not None

    async def convert(self, source: Path, destination: Path) -> None:
        binary = shutil.which(self._soffice)
        if binary is None:
            raise ConversionToolUnavailable(
                f"LibreOffice ({self._soffice}) not available; "
                "install LibreOffice to enable Office file support"
            )

        with tempfile.TemporaryDirectory(prefix="wireflow-soffice-") as scratch:
            proc = await asyncio.create_subprocess_exec(
                binary,
                "--headless",
                "--convert-to",
                "pdf",
                "--outdir",
                scratch,
                str(source),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate()
            if proc.returncode != 0:
                raise ConversionError(
                    f"soffice exited with {proc.returncode} for {source}: "
                    f"{stderr.decode(errors='replace').strip()}"
                )

            produced = Path(scratch) / f"{source.stem}.pdf"
            if not produced.is_file():
                raise ConversionError(
                    f"soffice reported success but produced no PDF for {source}: "
                    f"{stdout.decode(errors='replace').strip()}"
                )
            destination.parent.mkdir(parents=True, exist_ok=True)
            shutil.move(str(produced), str(destination))

        logger.debug("Converted %s to PDF", source)
