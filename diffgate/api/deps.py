from __future__ import annotations

from fastapi import Request

from diffgate.config.manager import ConfigManager
from diffgate.core.errors import ConfigurationError
from diffgate.core.runtime import DiffGateRuntime


def get_runtime(request: Request) -> DiffGateRuntime:
    """Runtime context created by ``create_app`` for this server instance."""
    return request.app.state.runtime


def get_config_manager(request: Request) -> ConfigManager:
    """Config manager bound by ``main.py``; absent when the app is built bare."""
    manager = getattr(request.app.state, "config_manager", None)
    if manager is None:
        raise ConfigurationError("Configuration manager not initialized")
    return manager
