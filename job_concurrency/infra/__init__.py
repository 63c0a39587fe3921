"""
Infrastructure module - configuration and logging.
"""

from .config import ConfigError, Settings, load_settings
from .logging_config import setup_logging

__all__ = [
    # config
    "ConfigError",
    "Settings",
    "load_settings",
    # logging
    "setup_logging",
]
