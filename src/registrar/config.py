"""Configuration loading for Registrar."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

CONFIG_FILE_NAME = "registrar.yaml"

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when configuration is invalid or missing."""


@dataclass
class DatabaseConfig:
    """Database location."""

    path: str = "registrar.db"


@dataclass
class EnrollmentConfig:
    """Enrollment policy settings.

    Attributes:
        drop_window_days: Days after enrollment during which a drop is allowed.
        allow_schedule_conflicts: Report conflicts but let enrollment proceed.
        lock_timeout_seconds: Default bound on waiting for the section lock.
    """

    drop_window_days: int = 28
    allow_schedule_conflicts: bool = False
    lock_timeout_seconds: float = 5.0


@dataclass
class GradingConfig:
    """Grade component weights used when homework is present."""

    weights: dict[str, float] = field(
        default_factory=lambda: {"midterm": 0.30, "final": 0.50, "homework": 0.20}
    )


@dataclass
class LoggingConfig:
    """Log destination, level and rotation."""

    dir: str = "logs"
    level: str = "INFO"
    file: str = "registrar.log"
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5


@dataclass
class RegistrarConfig:
    """Registrar configuration."""

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    enrollment: EnrollmentConfig = field(default_factory=EnrollmentConfig)
    grading: GradingConfig = field(default_factory=GradingConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    root_path: Path = field(default_factory=Path)

    @classmethod
    def from_dict(cls, data: dict[str, Any], root_path: Path) -> RegistrarConfig:
        """Create config from dictionary.

        Args:
            data: Configuration dictionary from YAML.
            root_path: Root directory containing the config file.

        Returns:
            Parsed configuration object.

        Raises:
            ConfigError: If a section or value has the wrong type.
        """
        database_data = _section(data, "database")
        database = DatabaseConfig(path=str(database_data.get("path", "registrar.db")))

        enrollment_data = _section(data, "enrollment")
        enrollment = EnrollmentConfig(
            drop_window_days=_as_int(
                enrollment_data.get("drop_window_days", 28), "enrollment.drop_window_days"
            ),
            allow_schedule_conflicts=_as_bool(
                enrollment_data.get("allow_schedule_conflicts", False),
                "enrollment.allow_schedule_conflicts",
            ),
            lock_timeout_seconds=_as_float(
                enrollment_data.get("lock_timeout_seconds", 5.0),
                "enrollment.lock_timeout_seconds",
            ),
        )
        if enrollment.drop_window_days < 0:
            raise ConfigError("enrollment.drop_window_days must not be negative")

        grading_data = _section(data, "grading")
        grading = GradingConfig()
        if "weights" in grading_data:
            grading.weights = _parse_weights(grading_data["weights"])

        logging_data = _section(data, "logging")
        log_config = LoggingConfig(
            dir=str(logging_data.get("dir", "logs")),
            level=_as_level(logging_data.get("level", "INFO"), "logging.level"),
            file=str(logging_data.get("file", "registrar.log")),
            max_bytes=_as_int(
                logging_data.get("max_bytes", LoggingConfig.max_bytes), "logging.max_bytes"
            ),
            backup_count=_as_int(logging_data.get("backup_count", 5), "logging.backup_count"),
        )
        if log_config.max_bytes < 0 or log_config.backup_count < 0:
            raise ConfigError("logging.max_bytes and logging.backup_count must not be negative")

        return cls(
            database=database,
            enrollment=enrollment,
            grading=grading,
            logging=log_config,
            root_path=root_path,
        )

    def apply_env(self, environ: dict[str, str] | None = None) -> RegistrarConfig:
        """Override settings from REGISTRAR_* environment variables.

        Args:
            environ: Environment mapping. Defaults to os.environ.

        Returns:
            This config, for chaining.
        """
        env = os.environ if environ is None else environ

        if "REGISTRAR_DB_PATH" in env:
            self.database.path = env["REGISTRAR_DB_PATH"]
        if "REGISTRAR_DROP_WINDOW_DAYS" in env:
            self.enrollment.drop_window_days = _as_int(
                env["REGISTRAR_DROP_WINDOW_DAYS"], "REGISTRAR_DROP_WINDOW_DAYS"
            )
        if "REGISTRAR_ALLOW_SCHEDULE_CONFLICTS" in env:
            self.enrollment.allow_schedule_conflicts = _as_bool(
                env["REGISTRAR_ALLOW_SCHEDULE_CONFLICTS"], "REGISTRAR_ALLOW_SCHEDULE_CONFLICTS"
            )
        if "REGISTRAR_LOG_DIR" in env:
            self.logging.dir = env["REGISTRAR_LOG_DIR"]
        if "REGISTRAR_LOG_LEVEL" in env:
            self.logging.level = _as_level(env["REGISTRAR_LOG_LEVEL"], "REGISTRAR_LOG_LEVEL")
        return self

    def get_db_path(self) -> str:
        """Get database path, resolved against the config directory."""
        if self.database.path == ":memory:":
            return self.database.path
        path = Path(self.database.path)
        if not path.is_absolute():
            path = self.root_path / path
        return str(path)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _as_int(value: Any, name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _as_float(value: Any, name: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def _as_bool(value: Any, name: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")


def _as_level(value: Any, name: str) -> str:
    level = str(value).strip().upper()
    if level not in LOG_LEVELS:
        raise ConfigError(f"{name} must be one of {', '.join(LOG_LEVELS)}, got {value!r}")
    return level


def _parse_weights(raw: Any) -> dict[str, float]:
    if not isinstance(raw, dict):
        raise ConfigError("grading.weights must be a mapping")
    required = ("midterm", "final", "homework")
    missing = [k for k in required if k not in raw]
    if missing:
        raise ConfigError(f"grading.weights missing: {', '.join(missing)}")
    weights = {k: _as_float(raw[k], f"grading.weights.{k}") for k in required}
    if abs(sum(weights.values()) - 1.0) > 1e-9:
        raise ConfigError(f"grading.weights must sum to 1.0, got {sum(weights.values())}")
    return weights


def load_config(config_path: Path | str | None = None) -> RegistrarConfig:
    """Load Registrar configuration from a YAML file.

    Args:
        config_path: Path to registrar.yaml. None returns defaults.

    Returns:
        Parsed configuration object with environment overrides applied.

    Raises:
        ConfigError: If file doesn't exist or is invalid.
    """
    if config_path is None:
        return RegistrarConfig(root_path=Path.cwd()).apply_env()

    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        with open(config_path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration must be a YAML mapping, got {type(data).__name__}")

    return RegistrarConfig.from_dict(data, config_path.parent).apply_env()


def find_config(start_path: Path | str | None = None) -> Path | None:
    """Find registrar.yaml by walking up directory tree.

    Args:
        start_path: Starting directory. Defaults to current directory.

    Returns:
        Path to registrar.yaml, or None when there is none.
    """
    current = (Path.cwd() if start_path is None else Path(start_path)).resolve()

    while True:
        config_path = current / CONFIG_FILE_NAME
        if config_path.exists():
            return config_path
        if current == current.parent:
            return None
        current = current.parent
