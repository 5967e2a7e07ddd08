"""
Tests for shared Gate utilities.
"""

import logging
import pytest
from dataclasses import dataclass

from pydantic import BaseModel, ValidationError

from vestry.shared.gate import (
    GateLogger,
    build_health_status,
    ConfigLoader,
)


class TestGateLogger:
    """Tests for GateLogger."""

    def test_get_returns_logger(self):
        """Should return a namespaced logger instance."""
        logger = GateLogger.get("TestGate")

        assert isinstance(logger, logging.Logger)
        assert logger.name == "vestry.TestGate"

    def test_get_same_logger_for_same_name(self):
        """Should return same logger for same gate name."""
        assert GateLogger.get("SameGate") is GateLogger.get("SameGate")

    def test_root_logger_has_single_handler(self):
        """Repeated lookups should not stack handlers on the vestry root."""
        GateLogger.get("Gate1")
        GateLogger.get("Gate2")

        assert len(logging.getLogger("vestry").handlers) == 1


class TestGateHealth:
    """Tests for build_health_status."""

    def test_build_health_status_healthy(self):
        """Should build healthy status dict."""
        status = build_health_status(
            gate_name="TestGate",
            initialized=True,
            dependencies=["filesystem"],
            checks={"root_exists": True},
            details={"root": "/srv"},
        )

        assert status["gate"] == "TestGate"
        assert status["healthy"] is True
        assert status["dependencies"] == ["filesystem"]
        assert status["details"]["root"] == "/srv"

    def test_build_health_status_unhealthy_not_initialized(self):
        """Should be unhealthy if not initialized."""
        status = build_health_status("TestGate", False, [], {"check1": True})

        assert status["healthy"] is False

    def test_build_health_status_unhealthy_check_failed(self):
        """Should be unhealthy if any check fails."""
        status = build_health_status("TestGate", True, [], {"a": True, "b": False})

        assert status["healthy"] is False
        assert status["details"] == {}


@dataclass
class SampleConfig:
    """Plain class config for testing ConfigLoader."""
    name: str = "default"
    value: int = 0


class SampleModel(BaseModel):
    """Pydantic config for testing ConfigLoader."""
    name: str = "default"
    value: int = 0


class TestConfigLoader:
    """Tests for ConfigLoader."""

    def test_load_creates_default_when_file_missing(self, tmp_path):
        """Should create default config when file doesn't exist."""
        result = ConfigLoader.load(tmp_path / "missing.json", SampleConfig, create_default=True)

        assert result == SampleConfig()

    def test_load_returns_none_when_file_missing_and_no_default(self, tmp_path):
        """Should return None when file doesn't exist and create_default=False."""
        result = ConfigLoader.load(tmp_path / "missing.json", SampleConfig, create_default=False)

        assert result is None

    def test_load_parses_json_into_dataclass(self, tmp_path):
        """Should pass JSON fields as keyword arguments."""
        config_path = tmp_path / "config.json"
        config_path.write_text('{"name": "loaded", "value": 42}')

        result = ConfigLoader.load(config_path, SampleConfig)

        assert result.name == "loaded"
        assert result.value == 42

    def test_load_validates_pydantic_model(self, tmp_path):
        """Pydantic models should be built with model_validate."""
        config_path = tmp_path / "config.json"
        config_path.write_text('{"name": "loaded", "value": "7"}')

        result = ConfigLoader.load(config_path, SampleModel)

        assert result.value == 7

    def test_load_propagates_validation_errors(self, tmp_path):
        """Invalid field values should raise."""
        config_path = tmp_path / "config.json"
        config_path.write_text('{"value": "not a number"}')

        with pytest.raises(ValidationError):
            ConfigLoader.load(config_path, SampleModel)

    def test_load_handles_invalid_json(self, tmp_path, caplog):
        """Should handle invalid JSON gracefully."""
        config_path = tmp_path / "invalid.json"
        config_path.write_text("not valid json {{{")

        with caplog.at_level(logging.ERROR):
            result = ConfigLoader.load(config_path, SampleConfig, create_default=False)

        assert result is None
        assert "Failed to load config" in caplog.text

    def test_load_json_rejects_non_object(self, tmp_path):
        """A top-level JSON array is not a config document."""
        config_path = tmp_path / "list.json"
        config_path.write_text("[1, 2, 3]")

        assert ConfigLoader.load_json(config_path) is None
