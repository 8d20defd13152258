"""Logging setup for Registrar.

All components log through ``logging.getLogger(__name__)`` under the
``registrar`` namespace. ``setup_logging`` attaches one rotating file handler
(and optionally a console handler) to that namespace from a LoggingConfig.
"""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from registrar.config import LoggingConfig

ROOT_LOGGER = "registrar"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_log_dir(config: LoggingConfig, root_path: Path | None = None) -> Path:
    """Log directory, relative paths taken from the config file's directory."""
    log_dir = Path(config.dir)
    if not log_dir.is_absolute() and root_path is not None:
        log_dir = root_path / log_dir
    return log_dir


def setup_logging(
    config: LoggingConfig,
    root_path: Path | None = None,
    verbose: bool = False,
) -> logging.Logger:
    """Route the registrar loggers to a rotating file.

    Calling it again replaces the handlers from the previous call.

    Args:
        config: Log directory, file name, level and rotation settings.
        root_path: Base for a relative ``config.dir`` (the config file's directory).
        verbose: Also log DEBUG and up to the console.

    Returns:
        The ``registrar`` logger.
    """
    log_dir = resolve_log_dir(config, root_path)
    log_dir.mkdir(parents=True, exist_ok=True)
    file_level = logging.getLevelName(config.level)

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG if verbose else file_level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    log_path = log_dir / config.file
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=config.max_bytes,
        backupCount=config.backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if verbose:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.info("Logging to %s at %s", log_path, config.level)
    return logger
