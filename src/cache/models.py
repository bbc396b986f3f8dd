# src/cache/models.py (v1)
"""Conversion cache domain models: CacheEntry.

A CacheEntry is the content of the `.meta` sidecar stored next to every
cached artifact.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field

# Recorded instead of a content hash for sources above the size limit.
HASH_SKIPPED = "skipped"


class CacheEntry(BaseModel):
    """Metadata describing one cached conversion artifact."""

    cache_id: str
    source_path: str
    source_mtime: float
    source_size: int
    source_hash: str = HASH_SKIPPED
    conversion_type: str
    artifact_path: str
    artifact_size: int | None = None
    created_at: datetime | None = None

    @property
    def has_content_hash(self) -> bool:
        return self.source_hash != HASH_SKIPPED

    @property
    def artifact(self) -> Path:
        return Path(self.artifact_path)

    @property
    def source(self) -> Path:
        return Path(self.source_path)


class CacheStats(BaseModel):
    """Hit/miss counters for one cache instance."""

    hits: int = 0
    misses: int = 0
    conversions: int = 0
    skipped: int = 0
    invalidated: list[str] = Field(default_factory=list)
