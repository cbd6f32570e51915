"""Configuration settings for diffgate.

Wraps the ConfigManager with property-based access; every value falls back to
an environment variable and then to a built-in default.
"""

from __future__ import annotations

import os
from typing import Any

from diffgate.config.manager import ConfigManager


class Settings:
    """Application settings with hot-reload support."""

    def __init__(self, config_manager: ConfigManager | None = None):
        self._config_manager = config_manager

    def _get(
        self,
        key: str,
        default: Any,
        env_key: str | None = None,
    ) -> Any:
        """Get config value from manager, fallback to env, then default."""
        if self._config_manager:
            value: Any = self._config_manager.get_all()
            for part in key.split("."):
                if isinstance(value, dict) and part in value:
                    value = value[part]
                else:
                    value = None
                    break
            if value is not None:
                return value
        if env_key and (env_val := os.getenv(env_key)):
            if isinstance(default, bool):
                return env_val.lower() in ("true", "1", "yes", "on")
            elif isinstance(default, int):
                return int(env_val)
            elif isinstance(default, float):
                return float(env_val)
            elif isinstance(default, list):
                return [item.strip() for item in env_val.split(",") if item.strip()]
            return env_val
        return default

    # Repository
    @property
    def repo_path(self) -> str | None:
        return self._get("repo_path", None, "DIFF_REPO_PATH")

    # Server Configuration
    @property
    def server_host(self) -> str:
        return self._get("server_host", "localhost", "SERVER_HOST")

    @property
    def server_port(self) -> int:
        return self._get("server_port", 3001, "SERVER_PORT")

    @property
    def cors_origins(self) -> list[str]:
        return self._get("cors_origins", ["http://localhost:5173"], "CORS_ORIGIN")

    # Watcher
    @property
    def debounce_ms(self) -> int:
        return self._get("debounce_ms", 150, "DIFF_DEBOUNCE_MS")

    @property
    def watch_ignore_dirs(self) -> list[str]:
        return self._get("watch_ignore_dirs", ["node_modules", "dist", "build"])

    @property
    def discard_stale_refreshes(self) -> bool:
        return self._get("discard_stale_refreshes", False, "DISCARD_STALE_REFRESHES")

    @property
    def git_timeout_s(self) -> float | None:
        value = self._get("git_timeout_s", None, "GIT_TIMEOUT_S")
        return float(value) if value is not None else None

    # Client
    @property
    def poll_interval_s(self) -> float:
        return self._get("poll_interval_s", 1.0, "POLL_INTERVAL_S")

    # Text generation
    def get_provider_config(self, provider: str) -> dict:
        prov = self._get(f"providers.{provider}", None)
        return prov if isinstance(prov, dict) else {}

    @property
    def openai_api_key(self) -> str | None:
        prov = self.get_provider_config("openai")
        if prov.get("api_key"):
            return prov["api_key"]
        return os.getenv("OPENAI_API_KEY")

    @property
    def openai_base_url(self) -> str | None:
        prov = self.get_provider_config("openai")
        if prov.get("base_url"):
            return prov["base_url"]
        return os.getenv("OPENAI_BASE_URL")

    @property
    def quiz_model(self) -> str:
        return self._get("models.quiz", "gpt-5-mini", "QUIZ_MODEL")

    @property
    def commit_message_model(self) -> str:
        return self._get("models.commit_message", "gpt-5-mini", "COMMIT_MESSAGE_MODEL")

    @property
    def review_model(self) -> str:
        return self._get("models.review", "gpt-5-mini", "REVIEW_MODEL")

    # Logging Configuration
    @property
    def log_level(self) -> str:
        return self._get("log_level", "INFO", "LOG_LEVEL")

    @property
    def log_format(self) -> str:
        return self._get("log_format", "pretty", "LOG_FORMAT")

    @property
    def log_colors(self) -> bool:
        return self._get("log_colors", True, "LOG_COLORS")


# Global settings instance (bound to the config manager at startup)
settings = Settings()
