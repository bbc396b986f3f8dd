# tests/unit/config/test_settings.py (v1)
"""Tests for config/settings.py: typed Settings and validation rules."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from wireflow.config.settings import ConfigurationError, Settings, load_settings


class TestSettingsDefaults:
    def test_default_global_config(self):
        s = Settings(_env_file=None)
        assert s.global_config_file == Path("~/.config/wireflow").expanduser() / "config"

    def test_default_hashing(self):
        s = Settings(_env_file=None)
        assert s.digest_length == 16
        assert s.hash_size_limit_bytes == 10 * 1024 * 1024
        assert s.cache_identity == "path"

    def test_default_logging(self):
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.log_format == "text"
        assert s.log_file is None

    def test_default_conversion_tools(self):
        s = Settings(_env_file=None)
        assert s.soffice_path == "soffice"
        assert s.image_max_dimension == 1568


class TestSettingsValidation:
    def test_runner_needs_colon(self):
        with pytest.raises(ConfigurationError, match="RUNNER"):
            Settings(_env_file=None, runner="mypkg.runner")

    def test_runner_ok(self):
        s = Settings(_env_file=None, runner="mypkg.runner:run")
        assert s.runner == "mypkg.runner:run"

    def test_image_dimension_positive(self):
        with pytest.raises(ConfigurationError, match="IMAGE_MAX_DIMENSION"):
            Settings(_env_file=None, image_max_dimension=0)

    def test_digest_length_bounds(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, digest_length=4)

    def test_negative_hash_limit(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, hash_size_limit_mb=-1)

    def test_unknown_cache_identity(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, cache_identity="inode")


class TestSettingsEnvironment:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("WIREFLOW_HASH_SIZE_LIMIT_MB", "0.5")
        monkeypatch.setenv("WIREFLOW_CACHE_IDENTITY", "content")
        s = Settings(_env_file=None)
        assert s.hash_size_limit_bytes == 512 * 1024
        assert s.cache_identity == "content"

    def test_load_settings_overrides(self, monkeypatch):
        monkeypatch.delenv("WIREFLOW_LOG_LEVEL", raising=False)
        s = load_settings(log_level="DEBUG", _env_file=None)
        assert s.log_level == "DEBUG"
