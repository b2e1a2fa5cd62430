"""Utility functions."""

from .config_loader import ConfigError, HistoriadorConfig, load_config
from .structured_logging import setup_logging, write_formatted_output

__all__ = [
    "ConfigError",
    "HistoriadorConfig",
    "load_config",
    "setup_logging",
    "write_formatted_output",
]
