"""
Configuration Tests
===================

Tests for YAML loading, environment overrides and conversion to the
estimator's per-call configuration.
"""

import pytest
from pydantic import ValidationError

from riverflow.config import Settings, load_config
from riverflow.flow.estimator import EstimatorConfig


ENV_VARS = [
    "RIVERFLOW_GRID_SIZE",
    "RIVERFLOW_WINDOW_SIZE",
    "RIVERFLOW_CALIBRATION_FACTOR",
    "RIVERFLOW_MAX_SPEED",
    "RIVERFLOW_LIVE_ENABLED",
    "RIVERFLOW_LIVE_SOURCE",
    "RIVERFLOW_LIVE_INTERVAL",
    "RIVERFLOW_PORT",
    "RIVERFLOW_LOG_LEVEL",
    "PORT",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Make sure no ambient override leaks into a test."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    """Write a small config.yaml and return its path."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "estimator:\n"
        "  grid_size: 12\n"
        "  calibration_factor: 0.25\n"
        "live:\n"
        "  source: rtsp://camera/stream\n"
        "  interval_seconds: 2.5\n"
        "server:\n"
        "  port: 9000\n"
    )
    return str(path)


class TestDefaults:
    """Tests for default settings."""

    def test_estimator_defaults_match(self):
        """Verify YAML-level defaults equal the estimator defaults."""
        assert Settings().estimator.to_estimator_config() == EstimatorConfig()

    def test_missing_file_uses_defaults(self, tmp_path):
        """Verify a missing file falls back to defaults."""
        settings = load_config(str(tmp_path / "absent.yaml"))

        assert settings.estimator.grid_size == 10
        assert settings.live.enabled is False
        assert settings.server.port == 8002


class TestYamlLoading:
    """Tests for load_config with a file."""

    def test_values_loaded(self, config_file):
        settings = load_config(config_file)

        assert settings.estimator.grid_size == 12
        assert settings.estimator.calibration_factor == 0.25
        assert settings.estimator.window_size == 15
        assert settings.live.source == "rtsp://camera/stream"
        assert settings.live.interval_seconds == 2.5
        assert settings.server.port == 9000

    def test_invalid_value_rejected(self, tmp_path):
        """Verify out-of-range values fail validation."""
        path = tmp_path / "config.yaml"
        path.write_text("estimator:\n  grid_size: 0\n")

        with pytest.raises(ValidationError):
            load_config(str(path))

    def test_empty_file(self, tmp_path):
        """Verify an empty file is treated as all defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(str(path)).estimator.grid_size == 10


class TestEnvOverrides:
    """Tests for environment variable precedence."""

    def test_env_beats_file(self, config_file, monkeypatch):
        monkeypatch.setenv("RIVERFLOW_GRID_SIZE", "8")
        monkeypatch.setenv("RIVERFLOW_MAX_SPEED", "3.5")

        settings = load_config(config_file)

        assert settings.estimator.grid_size == 8
        assert settings.estimator.max_speed == 3.5
        assert settings.estimator.calibration_factor == 0.25

    def test_live_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RIVERFLOW_LIVE_ENABLED", "true")
        monkeypatch.setenv("RIVERFLOW_LIVE_SOURCE", "river.mp4")
        monkeypatch.setenv("RIVERFLOW_LIVE_INTERVAL", "1.5")

        settings = load_config(str(tmp_path / "absent.yaml"))

        assert settings.live.enabled is True
        assert settings.live.source == "river.mp4"
        assert settings.live.interval_seconds == 1.5

    def test_port_precedence(self, config_file, monkeypatch):
        """Verify PORT wins over RIVERFLOW_PORT."""
        monkeypatch.setenv("RIVERFLOW_PORT", "7000")
        assert load_config(config_file).server.port == 7000

        monkeypatch.setenv("PORT", "8080")
        assert load_config(config_file).server.port == 8080

    def test_log_level(self, tmp_path, monkeypatch):
        monkeypatch.setenv("RIVERFLOW_LOG_LEVEL", "DEBUG")
        assert load_config(str(tmp_path / "absent.yaml")).logging.level == "DEBUG"
