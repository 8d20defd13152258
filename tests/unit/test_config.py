"""Unit tests for Registrar configuration loading."""

from pathlib import Path

import pytest

from registrar.config import ConfigError, RegistrarConfig, find_config, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the caller's REGISTRAR_* variables out of these tests."""
    for name in (
        "REGISTRAR_DB_PATH",
        "REGISTRAR_DROP_WINDOW_DAYS",
        "REGISTRAR_ALLOW_SCHEDULE_CONFLICTS",
        "REGISTRAR_LOG_DIR",
        "REGISTRAR_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def write_config(directory: Path, text: str) -> Path:
    path = directory / "registrar.yaml"
    path.write_text(text)
    return path


@pytest.mark.unit
class TestLoadConfig:
    """Tests for load_config."""

    def test_defaults_without_file(self) -> None:
        config = load_config()

        assert config.database.path == "registrar.db"
        assert config.enrollment.drop_window_days == 28
        assert config.enrollment.allow_schedule_conflicts is False
        assert config.grading.weights == {"midterm": 0.30, "final": 0.50, "homework": 0.20}

    def test_full_file(self, tmp_path: Path) -> None:
        path = write_config(
            tmp_path,
            """
database:
  path: data/registrar.db
enrollment:
  drop_window_days: 14
  allow_schedule_conflicts: yes
  lock_timeout_seconds: 2.5
grading:
  weights: {midterm: 0.25, final: 0.45, homework: 0.30}
logging:
  dir: var/log
  level: debug
""",
        )

        config = load_config(path)

        assert config.enrollment.drop_window_days == 14
        assert config.enrollment.allow_schedule_conflicts is True
        assert config.enrollment.lock_timeout_seconds == 2.5
        assert config.grading.weights["homework"] == 0.30
        assert config.logging.level == "DEBUG"
        assert config.logging.file == "registrar.log"
        assert config.get_db_path() == str(tmp_path / "data" / "registrar.db")

    def test_empty_file_uses_defaults(self, tmp_path: Path) -> None:
        config = load_config(write_config(tmp_path, ""))

        assert config.enrollment.drop_window_days == 28

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path / "registrar.yaml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(write_config(tmp_path, "database: [unclosed"))

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="mapping"):
            load_config(write_config(tmp_path, "- just\n- a list\n"))

    @pytest.mark.parametrize(
        "text",
        [
            "enrollment:\n  drop_window_days: soon\n",
            "enrollment:\n  drop_window_days: -1\n",
            "enrollment:\n  allow_schedule_conflicts: maybe\n",
            "grading:\n  weights: {midterm: 0.5, final: 0.5}\n",
            "grading:\n  weights: {midterm: 0.5, final: 0.5, homework: 0.5}\n",
            "enrollment: 3\n",
            "logging:\n  level: chatty\n",
            "logging:\n  backup_count: -1\n",
        ],
    )
    def test_invalid_values(self, tmp_path: Path, text: str) -> None:
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, text))


@pytest.mark.unit
class TestEnvironmentOverrides:
    """Tests for REGISTRAR_* environment overrides."""

    def test_overrides(self) -> None:
        config = RegistrarConfig().apply_env(
            {
                "REGISTRAR_DB_PATH": ":memory:",
                "REGISTRAR_DROP_WINDOW_DAYS": "10",
                "REGISTRAR_ALLOW_SCHEDULE_CONFLICTS": "true",
                "REGISTRAR_LOG_DIR": "/var/log/registrar",
                "REGISTRAR_LOG_LEVEL": "warning",
            }
        )

        assert config.get_db_path() == ":memory:"
        assert config.enrollment.drop_window_days == 10
        assert config.enrollment.allow_schedule_conflicts is True
        assert config.logging.dir == "/var/log/registrar"
        assert config.logging.level == "WARNING"

    def test_invalid_log_level(self) -> None:
        with pytest.raises(ConfigError, match="REGISTRAR_LOG_LEVEL"):
            RegistrarConfig().apply_env({"REGISTRAR_LOG_LEVEL": "loud"})

    def test_env_beats_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = write_config(tmp_path, "enrollment:\n  drop_window_days: 14\n")
        monkeypatch.setenv("REGISTRAR_DROP_WINDOW_DAYS", "7")

        assert load_config(path).enrollment.drop_window_days == 7


@pytest.mark.unit
class TestFindConfig:
    """Tests for find_config."""

    def test_walks_up(self, tmp_path: Path) -> None:
        path = write_config(tmp_path, "")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)

        assert find_config(nested) == path.resolve()

    def test_none_when_absent(self, tmp_path: Path) -> None:
        # tmp_path lives under the system temp dir, which has no registrar.yaml
        assert find_config(tmp_path) is None
