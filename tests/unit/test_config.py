"""
Unit tests for bootstrap/

Tests configuration sources and logging setup.
"""

import json
import logging

import pytest

from pdsd.bootstrap import config as config_module
from pdsd.bootstrap.config import CalculationConfig, PDSDConfig, get_config, load_config
from pdsd.bootstrap.logging_setup import configure_logging, setup_logging


class TestPDSDConfig:
    """Test configuration loading."""

    def test_defaults(self):
        config = PDSDConfig()

        assert config.calculation.single_phase_voltage_v == 220.0
        assert config.calculation.line_voltage_v == 380.0
        assert config.calculation.balance_tolerance == 0.01
        assert config.calculation.balance_max_iterations == 100
        assert config.execution.parallel is False

    def test_from_env(self, monkeypatch):
        """Test environment variables override defaults."""
        monkeypatch.setenv("PDSD_LINE_VOLTAGE", "400")
        monkeypatch.setenv("PDSD_PARALLEL", "true")
        monkeypatch.setenv("PDSD_MAX_WORKERS", "8")
        monkeypatch.setenv("PDSD_LOG_LEVEL", "DEBUG")

        config = PDSDConfig.from_env()

        assert config.calculation.line_voltage_v == 400.0
        assert config.execution.parallel is True
        assert config.execution.max_workers == 8
        assert config.logging.level == "DEBUG"

    def test_from_file(self, tmp_path):
        """Test file sections are applied over defaults."""
        path = tmp_path / "pdsd.json"
        path.write_text(json.dumps({
            "environment": "test",
            "calculation": {"balance_tolerance": 0.05},
            "execution": {"parallel": True},
        }))

        config = PDSDConfig.from_file(str(path))

        assert config.environment == "test"
        assert config.calculation.balance_tolerance == 0.05
        assert config.execution.parallel is True
        assert config.calculation.line_voltage_v == 380.0

    def test_unknown_key_ignored(self, tmp_path, caplog):
        """Test unknown keys are logged, not applied."""
        path = tmp_path / "pdsd.json"
        path.write_text(json.dumps({"calculation": {"frequency": 60}}))

        with caplog.at_level(logging.WARNING, logger="bootstrap.config"):
            config = PDSDConfig.from_file(str(path))

        assert not hasattr(config.calculation, "frequency")
        assert "calculation.frequency" in caplog.text

    def test_missing_file(self, tmp_path):
        """Test a missing file falls back to defaults."""
        config = PDSDConfig.from_file(str(tmp_path / "missing.json"))
        assert config.calculation == CalculationConfig.from_env()

    def test_load_config_sets_global(self, tmp_path, monkeypatch):
        """Test load_config with a path becomes the process-wide config."""
        path = tmp_path / "pdsd.json"
        path.write_text(json.dumps({"environment": "staging"}))
        monkeypatch.setattr(config_module, "_config", None)

        loaded = load_config(str(path))

        assert loaded.environment == "staging"
        assert get_config() is loaded

    def test_to_dict(self):
        data = PDSDConfig().to_dict()
        assert data["calculation"]["box_power_factor"] == 0.85
        assert data["execution"]["change_history_size"] == 1000


class TestLoggingSetup:
    """Test logging configuration."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        level = root.level
        yield
        for handler in self._ours():
            root.removeHandler(handler)
            handler.close()
        root.setLevel(level)

    def _ours(self):
        return [h for h in logging.getLogger().handlers if getattr(h, "_pdsd_handler", False)]

    def test_no_handler_stacking(self):
        """Test repeated setup replaces its own handlers."""
        setup_logging("INFO")
        setup_logging("DEBUG")

        assert len(self._ours()) == 1
        assert logging.getLogger().level == logging.DEBUG

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "pdsd.log"
        setup_logging("INFO", log_file=str(log_file))

        handlers = self._ours()
        assert len(handlers) == 2
        assert any(isinstance(h, logging.FileHandler) for h in handlers)

        setup_logging("INFO")
        assert len(self._ours()) == 1

    def test_configure_from_section(self):
        config = PDSDConfig()
        config.logging.level = "WARNING"

        configure_logging(config.logging)
        assert logging.getLogger().level == logging.WARNING
