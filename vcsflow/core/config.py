"""Unified configuration via pydantic-settings."""

import tempfile
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def default_backup_directory() -> Path:
    return Path(tempfile.gettempdir()) / "vcsflow" / "backups"


class VcsflowConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="VCSFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Git invocation
    git_binary: str = "git"
    default_repo_path: Path | None = None
    command_timeout_seconds: float | None = 300.0
    serialize_operations: bool = True

    # Output caps
    diff_max_chars: int = 10_000
    conflict_preview_max_chars: int = 5_000

    # Conflict resolution writes
    backup_on_write: bool = True
    backup_directory: Path = default_backup_directory()

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None
    log_max_bytes: int = 10_485_760
    log_backup_count: int = 5

    @field_validator("default_repo_path")
    @classmethod
    def resolve_default_repo_path(cls, v: Path | None) -> Path | None:
        if v is None:
            return None
        resolved = v.expanduser().resolve()
        if not resolved.is_dir():
            raise ValueError(f"default repo path does not exist: {resolved}")
        return resolved

    @field_validator("command_timeout_seconds")
    @classmethod
    def check_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError("command_timeout_seconds must be positive")
        return v

    @field_validator("diff_max_chars", "conflict_preview_max_chars")
    @classmethod
    def check_cap(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("output caps must be positive")
        return v

    @field_validator("backup_directory")
    @classmethod
    def expand_backup_directory(cls, v: Path) -> Path:
        return v.expanduser()
