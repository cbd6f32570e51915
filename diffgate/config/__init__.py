"""Configuration module for diffgate."""

from .defaults import get_default_config
from .logging_config import get_logging_config
from .manager import ConfigManager, create_config_manager, get_config_manager
from .providers import ConfigProvider, LocalFileConfigProvider
from .schema import ConfigValidationError
from .settings import Settings, settings

__all__ = [
    "settings",
    "Settings",
    "ConfigManager",
    "ConfigValidationError",
    "create_config_manager",
    "get_config_manager",
    "get_logging_config",
    "ConfigProvider",
    "LocalFileConfigProvider",
    "get_default_config",
]
