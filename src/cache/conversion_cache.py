# src/cache/conversion_cache.py (v1)
"""Path-addressed cache for expensive file conversions.

Artifacts live under `<cache_root>/<kind>/<id>.<ext>` with a JSON sidecar
`<id>.<ext>.meta`. The id is derived from the canonical absolute source
path, so one logical location maps to one slot; the sidecar decides
whether the artifact still matches the file currently at that path.

Validity rules, cheapest first:
  - source, artifact and sidecar must all exist
  - artifact size and source size must match the sidecar
  - a recorded content hash must match the source's current hash,
    whatever its mtime
  - sources above the size limit were never hashed: valid only while
    their mtime is unchanged, so any mtime change invalidates them

With `identity="content"` the id is the content hash instead and every
source is hashed regardless of size, which removes the touch-versus-edit
ambiguity for large files at the price of hashing every source on every
lookup.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Literal

from pydantic import ValidationError

from wireflow.cache.models import HASH_SKIPPED, CacheEntry, CacheStats
from wireflow.config.settings import Settings
from wireflow.conversion.base_converter import (
    BaseConverter,
    ConversionError,
    ConversionToolUnavailable,
)
from wireflow.core.hashing import DEFAULT_DIGEST_LENGTH, hash_file, hash_text
from wireflow.storage import layout
from wireflow.storage.atomic import atomic_write_text

logger = logging.getLogger(__name__)

DEFAULT_HASH_SIZE_LIMIT = 10 * 1024 * 1024


class ConversionCache:
    """Cache of converted artifacts for one project."""

    def __init__(
        self,
        cache_root: Path,
        hash_size_limit: int = DEFAULT_HASH_SIZE_LIMIT,
        identity: Literal["path", "content"] = "path",
        digest_length: int = DEFAULT_DIGEST_LENGTH,
    ) -> None:
        self._root = Path(cache_root).expanduser()
        self._hash_size_limit = hash_size_limit
        self._identity = identity
        self._digest_length = digest_length
        self.stats = CacheStats()

    @classmethod
    def for_project(
        cls, project_root: Path, settings: Settings | None = None
    ) -> ConversionCache:
        root = layout.conversions_dir(project_root)
        if settings is None:
            return cls(root)
        return cls(
            root,
            hash_size_limit=settings.hash_size_limit_bytes,
            identity=settings.cache_identity,
            digest_length=settings.digest_length,
        )

    @property
    def root(self) -> Path:
        return self._root

    # --- Identity / locations ---

    def id_for(self, source: Path) -> str:
        """Cache identity of a source file."""
        canonical = Path(source).expanduser().resolve()
        if self._identity == "content":
            return hash_file(canonical, self._digest_length)
        return hash_text(str(canonical), self._digest_length)

    def artifact_path(self, source: Path, kind: str, extension: str) -> Path:
        return self._root / kind / f"{self.id_for(source)}.{extension.lstrip('.')}"

    # --- Metadata ---

    def build_entry(
        self,
        source: Path,
        kind: str,
        artifact: Path,
        artifact_size: int | None = None,
    ) -> CacheEntry:
        """Describe the current state of `source` for a cached artifact."""
        canonical = Path(source).expanduser().resolve()
        st = canonical.stat()
        if self._identity == "content" or st.st_size <= self._hash_size_limit:
            source_hash = hash_file(canonical, self._digest_length)
        else:
            source_hash = HASH_SKIPPED
        return CacheEntry(
            cache_id=artifact.name.split(".", 1)[0],
            source_path=str(canonical),
            source_mtime=st.st_mtime,
            source_size=st.st_size,
            source_hash=source_hash,
            conversion_type=kind,
            artifact_path=str(artifact),
            artifact_size=artifact_size,
            created_at=datetime.now(timezone.utc),
        )

    def write_metadata(self, entry: CacheEntry, path: Path | None = None) -> Path:
        """Persist the sidecar next to the artifact (or at `path`)."""
        target = path or layout.metadata_path(entry.artifact)
        atomic_write_text(target, entry.model_dump_json(indent=2))
        return target

    def read_metadata(self, artifact: Path) -> CacheEntry | None:
        meta = layout.metadata_path(artifact)
        if not meta.is_file():
            return None
        try:
            return CacheEntry.model_validate(json.loads(meta.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError, ValidationError) as exc:
            logger.warning("Ignoring unreadable cache metadata %s: %s", meta, exc)
            return None

    def lookup(self, source: Path, kind: str, extension: str) -> CacheEntry | None:
        """Sidecar of the slot for `source`, if one exists."""
        try:
            artifact = self.artifact_path(source, kind, extension)
        except OSError:
            return None
        return self.read_metadata(artifact)

    # --- Validation ---

    def validate(self, entry: CacheEntry) -> bool:
        """Whether a cached artifact may be reused for its source."""
        source = entry.source
        artifact = entry.artifact
        if not source.is_file():
            return False
        if not artifact.is_file() or not layout.metadata_path(artifact).is_file():
            return False
        if entry.artifact_size is not None and artifact.stat().st_size != entry.artifact_size:
            return False

        st = source.stat()
        if st.st_size != entry.source_size:
            return False
        if entry.has_content_hash:
            return hash_file(source, self._digest_length) == entry.source_hash
        # Large sources were never hashed: a touch cannot be told from an edit.
        return st.st_mtime == entry.source_mtime

    # --- Usage ---

    async def get_or_convert(
        self, source: Path, converter: BaseConverter
    ) -> Path | None:
        """Return a valid artifact for `source`, converting if needed.

        Returns None (after logging a warning) when the source is gone, the
        conversion tool is unavailable or the conversion fails; callers skip
        that artifact.
        """
        source = Path(source).expanduser().resolve()
        kind = converter.kind
        if not source.is_file():
            self.stats.skipped += 1
            logger.warning("Skipping %s: source file not found", source)
            return None
        artifact = self.artifact_path(source, kind, converter.output_extension(source))

        entry = self.read_metadata(artifact)
        if (
            entry is not None
            and entry.source_path == str(source)
            and entry.conversion_type == kind
            and entry.artifact == artifact
        ):
            if self.validate(entry):
                self.stats.hits += 1
                logger.debug("Conversion cache hit: %s -> %s", source, artifact)
                return artifact
            self.stats.invalidated.append(str(source))
            logger.info("Cached %s conversion of %s is stale; reconverting", kind, source)

        self.stats.misses += 1
        if not converter.is_available():
            self.stats.skipped += 1
            logger.warning("Skipping %s: %s conversion tool not available", source, kind)
            return None

        artifact.parent.mkdir(parents=True, exist_ok=True)
        scratch = Path(tempfile.mkdtemp(prefix=".tmp-", dir=str(artifact.parent)))
        try:
            # Source state as of before the conversion started.
            new_entry = self.build_entry(source, kind, artifact)
            tmp_artifact = scratch / artifact.name
            await converter.convert(source, tmp_artifact)
            new_entry = new_entry.model_copy(
                update={"artifact_size": tmp_artifact.stat().st_size}
            )
            tmp_meta = self.write_metadata(new_entry, scratch / layout.metadata_path(artifact).name)

            # Artifact first, sidecar last. Between the two renames the old
            # sidecar's artifact_size (or source hash) rejects the new
            # artifact, so a reader sees a miss and never a mismatched hit.
            os.replace(tmp_artifact, artifact)
            os.replace(tmp_meta, layout.metadata_path(artifact))
        except ConversionToolUnavailable as exc:
            self.stats.skipped += 1
            logger.warning("Skipping %s: %s", source, exc)
            return None
        except ConversionError as exc:
            logger.warning("Failed to convert %s (%s): %s", source, kind, exc)
            return None
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

        self.stats.conversions += 1
        logger.info("Converted %s (%s) -> %s", source, kind, artifact)
        return artifact
