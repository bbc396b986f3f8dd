# src/conversion/base_converter.py (v1)
"""Abstract converter interface for expensive, deterministic file conversions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class ConversionError(Exception):
    """Raised when a conversion fails."""


class ConversionToolUnavailable(ConversionError):
    """Raised when the external tool a conversion needs is not installed."""


class BaseConverter(ABC):
    """Unified interface for cached file conversions."""

    @property
    @abstractmethod
    def kind(self) -> str:
        """Conversion kind; also the cache sub-directory (e.g. 'office-pdf')."""

    @property
    @abstractmethod
    def supported_extensions(self) -> list[str]:
        """Source extensions this converter handles (e.g., ['.docx'])."""

    @abstractmethod
    def output_extension(self, source: Path) -> str:
        """Extension of the converted artifact, without the dot."""

    @abstractmethod
    async def convert(self, source: Path, destination: Path) -> None:
        """Convert `source` and write the result to `destination`."""

    def is_available(self) -> bool:
        """Whether the tools this converter needs are installed."""
        return True
