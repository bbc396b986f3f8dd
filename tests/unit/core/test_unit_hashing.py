# tests/unit/core/test_unit_hashing.py (v1)
"""Tests for core/hashing.py: digests and the execution hash."""

from __future__ import annotations

import hashlib

from wireflow.core.hashing import (
    canonical_json,
    compute_execution_hash,
    hash_bytes,
    hash_file,
    hash_text,
)

CONFIG = {"model": "m", "temperature": 1.0, "system_prompts": ["base"]}
FILES = [("notes/a.md", "aaaa"), ("notes/b.md", "bbbb")]
DEPS = [("outline", "1111")]


class TestDigests:
    def test_truncated_sha256(self):
        assert hash_bytes(b"abc") == hashlib.sha256(b"abc").hexdigest()[:16]

    def test_custom_length(self):
        assert len(hash_text("abc", 32)) == 32

    def test_file_matches_bytes(self, tmp_path):
        path = tmp_path / "f.bin"
        data = b"x" * (3 * 2**20 + 7)
        path.write_bytes(data)
        assert hash_file(path) == hash_bytes(data)

    def test_canonical_json_sorted(self):
        assert canonical_json({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


class TestExecutionHash:
    def test_deterministic(self):
        a = compute_execution_hash(CONFIG, "task", FILES, DEPS)
        b = compute_execution_hash(dict(reversed(list(CONFIG.items()))), "task", FILES, DEPS)
        assert a == b
        assert len(a) == 16

    def test_file_order_irrelevant(self):
        a = compute_execution_hash(CONFIG, "task", FILES, DEPS)
        b = compute_execution_hash(CONFIG, "task", list(reversed(FILES)), DEPS)
        assert a == b

    def test_each_input_matters(self):
        base = compute_execution_hash(CONFIG, "task", FILES, DEPS)
        assert compute_execution_hash({**CONFIG, "temperature": 0.5}, "task", FILES, DEPS) != base
        assert compute_execution_hash(CONFIG, "task2", FILES, DEPS) != base
        assert compute_execution_hash(CONFIG, "task", [("notes/a.md", "aaab")], DEPS) != base
        assert compute_execution_hash(CONFIG, "task", FILES, [("outline", "2222")]) != base

    def test_path_is_part_of_identity(self):
        a = compute_execution_hash(CONFIG, "t", [("a.md", "h")], [])
        b = compute_execution_hash(CONFIG, "t", [("b.md", "h")], [])
        assert a != b
