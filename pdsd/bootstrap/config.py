"""
bootstrap/config.py - Engine configuration

Provides configuration loading from files, environment variables, and defaults.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
from pathlib import Path
import os
import json
import logging

from pdsd.core import constants

logger = logging.getLogger("bootstrap.config")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class CalculationConfig:
    """Constants fed to the domain calculators."""

    single_phase_voltage_v: float = constants.SINGLE_PHASE_VOLTAGE_V
    line_voltage_v: float = constants.LINE_VOLTAGE_V
    box_power_factor: float = constants.BOX_POWER_FACTOR
    incoming_safety_factor: float = constants.INCOMING_SAFETY_FACTOR

    balance_tolerance: float = constants.BALANCE_TOLERANCE
    balance_max_iterations: int = constants.BALANCE_MAX_ITERATIONS

    @classmethod
    def from_env(cls) -> "CalculationConfig":
        return cls(
            single_phase_voltage_v=float(os.getenv("PDSD_SINGLE_PHASE_VOLTAGE", str(constants.SINGLE_PHASE_VOLTAGE_V))),
            line_voltage_v=float(os.getenv("PDSD_LINE_VOLTAGE", str(constants.LINE_VOLTAGE_V))),
            box_power_factor=float(os.getenv("PDSD_BOX_POWER_FACTOR", str(constants.BOX_POWER_FACTOR))),
            incoming_safety_factor=float(os.getenv("PDSD_INCOMING_SAFETY_FACTOR", str(constants.INCOMING_SAFETY_FACTOR))),
            balance_tolerance=float(os.getenv("PDSD_BALANCE_TOLERANCE", str(constants.BALANCE_TOLERANCE))),
            balance_max_iterations=int(os.getenv("PDSD_BALANCE_MAX_ITERATIONS", str(constants.BALANCE_MAX_ITERATIONS))),
        )


@dataclass
class ExecutionConfig:
    """Evaluation pass settings."""

    parallel: bool = False
    max_workers: int = 4
    change_history_size: int = 1000

    @classmethod
    def from_env(cls) -> "ExecutionConfig":
        return cls(
            parallel=_env_bool("PDSD_PARALLEL", "false"),
            max_workers=int(os.getenv("PDSD_MAX_WORKERS", "4")),
            change_history_size=int(os.getenv("PDSD_CHANGE_HISTORY", "1000")),
        )


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None

    @classmethod
    def from_env(cls) -> "LoggingConfig":
        return cls(
            level=os.getenv("PDSD_LOG_LEVEL", "INFO"),
            format=os.getenv("PDSD_LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("PDSD_LOG_FILE"),
        )


@dataclass
class PDSDConfig:
    """Root configuration for the engine."""

    environment: str = "development"
    debug: bool = False
    version: str = "0.1.0"

    calculation: CalculationConfig = field(default_factory=CalculationConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_env(cls) -> "PDSDConfig":
        """Create configuration from environment variables."""
        return cls(
            environment=os.getenv("PDSD_ENVIRONMENT", "development"),
            debug=_env_bool("PDSD_DEBUG", "false"),
            calculation=CalculationConfig.from_env(),
            execution=ExecutionConfig.from_env(),
            logging=LoggingConfig.from_env(),
        )

    @classmethod
    def from_file(cls, filepath: str) -> "PDSDConfig":
        """Load configuration from JSON file."""
        path = Path(filepath)
        if not path.exists():
            logger.warning(f"Config file not found: {filepath}, using defaults")
            return cls.from_env()

        with open(path) as f:
            data = json.load(f)

        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "PDSDConfig":
        """Create config from dictionary, file values over environment."""
        config = cls.from_env()

        if "environment" in data:
            config.environment = data["environment"]
        if "debug" in data:
            config.debug = data["debug"]

        for section in ("calculation", "execution", "logging"):
            target = getattr(config, section)
            for key, value in data.get(section, {}).items():
                if hasattr(target, key):
                    setattr(target, key, value)
                else:
                    logger.warning(f"Ignoring unknown config key: {section}.{key}")

        return config

    def to_dict(self) -> Dict[str, Any]:
        """Serialize config to dictionary."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "version": self.version,
            "calculation": {
                "single_phase_voltage_v": self.calculation.single_phase_voltage_v,
                "line_voltage_v": self.calculation.line_voltage_v,
                "box_power_factor": self.calculation.box_power_factor,
                "incoming_safety_factor": self.calculation.incoming_safety_factor,
                "balance_tolerance": self.calculation.balance_tolerance,
                "balance_max_iterations": self.calculation.balance_max_iterations,
            },
            "execution": {
                "parallel": self.execution.parallel,
                "max_workers": self.execution.max_workers,
                "change_history_size": self.execution.change_history_size,
            },
            "logging": {
                "level": self.logging.level,
                "log_file": self.logging.log_file,
            },
        }


# Global config instance
_config: Optional[PDSDConfig] = None


def load_config(filepath: str = None) -> PDSDConfig:
    """
    Load configuration from file or environment.

    Args:
        filepath: Optional path to JSON config file

    Returns:
        PDSDConfig instance
    """
    global _config

    if filepath:
        _config = PDSDConfig.from_file(filepath)
    else:
        default_paths = [
            "./pdsd.json",
            "./config/pdsd.json",
            os.path.expanduser("~/.pdsd/config.json"),
        ]

        for path in default_paths:
            if Path(path).exists():
                logger.info(f"Loading config from: {path}")
                _config = PDSDConfig.from_file(path)
                return _config

        _config = PDSDConfig.from_env()

    logger.info(f"Configuration loaded: environment={_config.environment}")
    return _config


def get_config() -> PDSDConfig:
    """Get current configuration, loading if needed."""
    global _config
    if _config is None:
        _config = load_config()
    return _config
