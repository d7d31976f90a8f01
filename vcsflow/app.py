"""Bootstrap: wires the git service together and configures logging."""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path

import structlog
from pydantic import ValidationError

from vcsflow.core.config import VcsflowConfig
from vcsflow.exceptions import ConfigError
from vcsflow.files.writer import FileWriteService
from vcsflow.git.locking import RepositoryLocks
from vcsflow.git.runner import CommandRunner
from vcsflow.git.service import GitService

logger = structlog.get_logger()


LOG_FILE_NAME = "vcsflow.log"

# Applied to structlog events and to records from plain stdlib loggers alike
_PRE_CHAIN: list[structlog.types.Processor] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.processors.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def _formatter(renderer: structlog.types.Processor) -> logging.Formatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=_PRE_CHAIN,
    )


def _configure_logging(config: VcsflowConfig, *, log_dir: Path | None = None) -> None:
    """Route structlog through stdlib logging.

    Human-readable events go to stderr, coloured only on a terminal, so that
    command output on stdout can be piped. With a log_dir, the same events are
    also appended as JSON lines to a rotating ``vcsflow.log``.
    """
    handlers: list[logging.Handler] = []

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(
        _formatter(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))
    )
    handlers.append(console)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        log_file = logging.handlers.RotatingFileHandler(
            log_dir / LOG_FILE_NAME,
            maxBytes=config.log_max_bytes,
            backupCount=config.log_backup_count,
            encoding="utf-8",
        )
        log_file.setFormatter(
            _formatter(structlog.processors.JSONRenderer(ensure_ascii=False))
        )
        handlers.append(log_file)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    for handler in handlers:
        root_logger.addHandler(handler)
    root_logger.setLevel(config.log_level)

    structlog.configure(
        processors=[
            *_PRE_CHAIN,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def load_config() -> VcsflowConfig:
    """Load settings from the environment, wrapping validation failures."""
    try:
        return VcsflowConfig()
    except ValidationError as e:
        raise ConfigError(str(e)) from e


def build_service(
    config: VcsflowConfig | None = None, *, configure_logging: bool = True
) -> GitService:
    if config is None:
        config = load_config()

    if configure_logging:
        _configure_logging(config, log_dir=config.log_dir)

    logger.info(
        "service_building",
        git_binary=config.git_binary,
        timeout=config.command_timeout_seconds,
        serialize_operations=config.serialize_operations,
        default_repo_path=str(config.default_repo_path)
        if config.default_repo_path
        else None,
    )

    runner = CommandRunner(
        binary=config.git_binary, timeout=config.command_timeout_seconds
    )
    writer = FileWriteService(
        config.backup_directory, create_backups=config.backup_on_write
    )
    return GitService(
        runner,
        writer=writer,
        locks=RepositoryLocks(enabled=config.serialize_operations),
        default_repo_path=config.default_repo_path,
        diff_max_chars=config.diff_max_chars,
        conflict_preview_max_chars=config.conflict_preview_max_chars,
    )
