# stagecoach/config/__init__.py
"""Configuration management."""

# Local imports
from ..core.exceptions import ConfigError
from .base import BaseConfig, ExecutionConfig
from .factory import clear_config, get_config
from .paths import clear_root, get_root

__all__ = [
    "BaseConfig",
    "ExecutionConfig",
    "get_config",
    "clear_config",
    "ConfigError",
    "get_root",
    "clear_root",
]
