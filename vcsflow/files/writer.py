"""File writes with backup-on-write, used to apply manual conflict resolutions."""

import shutil
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import BaseModel, ConfigDict

logger = structlog.get_logger()


class WriteResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    message: str
    path: Path | None = None
    backup_path: Path | None = None


class FileWriteService:
    def __init__(self, backup_directory: Path, *, create_backups: bool = True) -> None:
        self._backup_directory = backup_directory
        self._create_backups = create_backups

    def write_resolved_content(self, path: Path, content: str) -> WriteResult:
        """Overwrite *path* with *content*, backing up the previous version first."""
        full_path = path.resolve()
        if not full_path.is_file():
            return WriteResult(success=False, message=f"File not found: {full_path}")

        backup_path = None
        try:
            if self._create_backups:
                backup_path = self._backup(full_path)
            full_path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error("resolved_write_failed", path=str(full_path), error=str(e))
            return WriteResult(
                success=False,
                message=f"Error writing file: {e}",
                path=full_path,
                backup_path=backup_path,
            )

        logger.info(
            "resolved_content_written",
            path=str(full_path),
            lines=content.count("\n") + 1,
            backup_path=str(backup_path) if backup_path else None,
        )
        return WriteResult(
            success=True,
            message=f"Wrote resolved content to {full_path}",
            path=full_path,
            backup_path=backup_path,
        )

    def _backup(self, path: Path) -> Path:
        self._backup_directory.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        backup_path = self._backup_directory / f"{path.stem}_{timestamp}{path.suffix}"
        shutil.copy2(path, backup_path)
        logger.info("backup_created", source=str(path), backup_path=str(backup_path))
        return backup_path
