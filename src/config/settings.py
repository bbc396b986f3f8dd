# src/config/settings.py (v1)
"""Typed process settings loaded from the environment via pydantic-settings.

Covers everything that is not part of a workflow's own configuration:
where the global config lives, logging, hashing thresholds and the
conversion tools used by the conversion cache.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is invalid or internally inconsistent."""


class Settings(BaseSettings):
    """Process-level settings, read from WIREFLOW_* variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="WIREFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === Global configuration tier ===
    global_config_dir: Path = Path("~/.config/wireflow")

    # === Execution ===
    runner: str = ""
    digest_length: int = 16

    # === Hashing / conversion cache ===
    hash_size_limit_mb: float = 10.0
    cache_identity: Literal["path", "content"] = "path"
    soffice_path: str = "soffice"
    image_max_dimension: int = 1568

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "text"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 5

    # --- Validators ---

    @field_validator("digest_length")
    @classmethod
    def validate_digest_length(cls, v: int) -> int:  # noqa: N805
        if not 8 <= v <= 64:
            raise ValueError("digest_length must be between 8 and 64")
        return v

    @field_validator("hash_size_limit_mb")
    @classmethod
    def validate_hash_size_limit(cls, v: float) -> float:  # noqa: N805
        if v < 0:
            raise ValueError("hash_size_limit_mb must be >= 0")
        return v

    @model_validator(mode="after")
    def validate_consistency(self) -> Settings:
        errors: list[str] = []

        if self.image_max_dimension <= 0:
            errors.append("IMAGE_MAX_DIMENSION must be positive")

        if self.runner and ":" not in self.runner:
            errors.append("RUNNER must look like 'package.module:callable'")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def global_config_file(self) -> Path:
        """Path of the global workflow config file."""
        return self.global_config_dir.expanduser() / "config"

    @property
    def hash_size_limit_bytes(self) -> int:
        """Sources larger than this are not content-hashed by the cache."""
        return int(self.hash_size_limit_mb * 1024 * 1024)


def load_settings(**overrides: object) -> Settings:
    """Load settings from the environment with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or CLI flags).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
