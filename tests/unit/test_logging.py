"""Unit tests for Registrar logging configuration."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from registrar.config import LoggingConfig, load_config
from registrar.logging import resolve_log_dir, setup_logging


@pytest.fixture(autouse=True)
def reset_registrar_logger():
    """Detach handlers so one test's log file doesn't leak into the next."""
    yield
    logger = logging.getLogger("registrar")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()


@pytest.mark.unit
class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_creates_nested_log_directory(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "var" / "logs"

        setup_logging(LoggingConfig(dir=str(log_dir)))

        assert (log_dir / "registrar.log").exists()

    def test_relative_dir_resolved_against_root(self, tmp_path: Path) -> None:
        setup_logging(LoggingConfig(dir="logs"), root_path=tmp_path)

        assert (tmp_path / "logs" / "registrar.log").exists()

    def test_format_has_level_and_component(self, tmp_path: Path) -> None:
        """Entries look like '2024-09-02 09:00:00 | INFO     | registrar.grading | ...'."""
        setup_logging(LoggingConfig(dir=str(tmp_path)))

        logging.getLogger("registrar.grading.engine").info("graded enrollment e-1")

        content = (tmp_path / "registrar.log").read_text()
        assert " | INFO     | registrar.grading.engine | graded enrollment e-1" in content

    def test_components_share_one_file(self, tmp_path: Path) -> None:
        setup_logging(LoggingConfig(dir=str(tmp_path)))

        for name in ("store", "enrollment.orchestrator", "prerequisites.resolver"):
            logging.getLogger(f"registrar.{name}").warning("%s says hi", name)

        content = (tmp_path / "registrar.log").read_text()
        assert "store says hi" in content
        assert "enrollment.orchestrator says hi" in content
        assert "prerequisites.resolver says hi" in content

    def test_level_filters(self, tmp_path: Path) -> None:
        setup_logging(LoggingConfig(dir=str(tmp_path), level="WARNING"))
        logger = logging.getLogger("registrar")

        logger.info("seat taken")
        logger.warning("section full")

        content = (tmp_path / "registrar.log").read_text()
        assert "seat taken" not in content
        assert "section full" in content

    def test_custom_file_name(self, tmp_path: Path) -> None:
        setup_logging(LoggingConfig(dir=str(tmp_path), file="enrollment.log"))

        assert (tmp_path / "enrollment.log").exists()

    def test_quiet_by_default(self, tmp_path: Path) -> None:
        logger = setup_logging(LoggingConfig(dir=str(tmp_path)))

        assert [type(h) for h in logger.handlers] == [RotatingFileHandler]
        assert logger.level == logging.INFO

    def test_verbose_adds_debug_console(self, tmp_path: Path) -> None:
        """Verbose mode shows DEBUG on the console while the file keeps its level."""
        logger = setup_logging(LoggingConfig(dir=str(tmp_path)), verbose=True)
        file_handler, console_handler = logger.handlers

        logger.debug("lock acquired")

        assert logger.level == logging.DEBUG
        assert file_handler.level == logging.INFO
        assert console_handler.level == logging.DEBUG
        assert "lock acquired" not in (tmp_path / "registrar.log").read_text()

    def test_repeated_setup_replaces_handlers(self, tmp_path: Path) -> None:
        setup_logging(LoggingConfig(dir=str(tmp_path)))
        logger = setup_logging(LoggingConfig(dir=str(tmp_path)), verbose=True)

        assert logger.name == "registrar"
        assert len(logger.handlers) == 2

    def test_settings_from_config_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("REGISTRAR_LOG_DIR", raising=False)
        monkeypatch.setenv("REGISTRAR_LOG_LEVEL", "DEBUG")
        path = tmp_path / "registrar.yaml"
        path.write_text("logging:\n  dir: var/log\n  file: audit.log\n")
        config = load_config(path)

        logger = setup_logging(config.logging, config.root_path)

        assert logger.level == logging.DEBUG
        assert (tmp_path / "var" / "log" / "audit.log").exists()


@pytest.mark.unit
class TestResolveLogDir:
    """Tests for resolve_log_dir."""

    def test_absolute_dir_kept(self, tmp_path: Path) -> None:
        config = LoggingConfig(dir=str(tmp_path / "logs"))

        assert resolve_log_dir(config, Path("/elsewhere")) == tmp_path / "logs"

    def test_relative_without_root(self) -> None:
        assert resolve_log_dir(LoggingConfig(dir="logs")) == Path("logs")


@pytest.mark.unit
class TestRotation:
    """Tests for log rotation."""

    def test_handler_settings(self, tmp_path: Path) -> None:
        logger = setup_logging(LoggingConfig(dir=str(tmp_path), max_bytes=2048, backup_count=2))

        handler = logger.handlers[0]
        assert isinstance(handler, RotatingFileHandler)
        assert handler.maxBytes == 2048
        assert handler.backupCount == 2

    def test_rotates_at_max_size(self, tmp_path: Path) -> None:
        logger = setup_logging(LoggingConfig(dir=str(tmp_path), max_bytes=500, backup_count=2))

        for i in range(50):
            logger.info("Enrollment %d recorded for section CS101-1 in fall 2024", i)

        assert (tmp_path / "registrar.log.1").exists()
