"""Default configuration values for diffgate."""

from typing import Any


def get_default_config() -> dict[str, Any]:
    """Return the default configuration dictionary."""
    return {
        # Repository root; None means "take it from DIFF_REPO_PATH or --repo"
        "repo_path": None,
        # Server Configuration
        "server_host": "localhost",
        "server_port": 3001,
        "cors_origins": ["http://localhost:5173"],
        # Watcher
        "debounce_ms": 150,
        "watch_ignore_dirs": ["node_modules", "dist", "build"],
        "discard_stale_refreshes": False,
        "git_timeout_s": None,
        # Client
        "poll_interval_s": 1.0,
        # Text generation
        "providers": {
            "openai": {
                "api_key": None,
                "base_url": "https://api.openai.com/v1",
                "options": {},
            },
        },
        "models": {
            "quiz": "gpt-5-mini",
            "commit_message": "gpt-5-mini",
            "review": "gpt-5-mini",
        },
        # Logging Configuration
        "log_level": "INFO",
        "log_format": "pretty",
        "log_colors": True,
    }
