"""
bootstrap/ - Configuration and logging setup.
"""

from .config import (
    PDSDConfig,
    CalculationConfig,
    ExecutionConfig,
    LoggingConfig,
    load_config,
    get_config,
)

from .logging_setup import (
    setup_logging,
    configure_logging,
)


__all__ = [
    # Config
    "PDSDConfig",
    "CalculationConfig",
    "ExecutionConfig",
    "LoggingConfig",
    "load_config",
    "get_config",
    # Logging
    "setup_logging",
    "configure_logging",
]
