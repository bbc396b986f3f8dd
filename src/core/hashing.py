# src/core/hashing.py (v1)
"""Deterministic hashing helpers shared by staleness checks and the cache.

All digests are SHA-256 rendered as lowercase hex and truncated to a fixed
length, so they are stable across machines and Python runs.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Iterable, Mapping

DEFAULT_DIGEST_LENGTH = 16
_CHUNK_SIZE = 2**20


def hash_bytes(data: bytes, length: int = DEFAULT_DIGEST_LENGTH) -> str:
    """SHA-256 of raw bytes, truncated to `length` hex characters."""
    return hashlib.sha256(data).hexdigest()[:length]


def hash_text(text: str, length: int = DEFAULT_DIGEST_LENGTH) -> str:
    return hash_bytes(text.encode("utf-8"), length)


def hash_file(path: Path, length: int = DEFAULT_DIGEST_LENGTH) -> str:
    """SHA-256 of a file's contents, read in 1 MiB blocks.

    Raises:
        OSError: If the file is missing or unreadable.
    """
    h = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            h.update(chunk)
    return h.hexdigest()[:length]


def canonical_json(payload: Any) -> str:
    """JSON with sorted keys and no insignificant whitespace."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def compute_execution_hash(
    config: Mapping[str, Any],
    task_hash: str,
    files: Iterable[tuple[str, str]],
    dependencies: Iterable[tuple[str, str]],
    length: int = DEFAULT_DIGEST_LENGTH,
) -> str:
    """Combine every input of a workflow run into one digest.

    Canonical order: config pairs sorted by key, the task hash, tracked
    `(path, hash)` pairs sorted by path, then `(dependency, output_hash)`
    pairs sorted by name. No wall-clock value enters the payload.
    """
    payload = {
        "config": [[key, config[key]] for key in sorted(config)],
        "task": task_hash,
        "files": sorted([path, digest] for path, digest in files),
        "depends_on": sorted([name, digest] for name, digest in dependencies),
    }
    return hash_text(canonical_json(payload), length)
