from __future__ import annotations

from copy import deepcopy
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator


def deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge updates into base without mutating inputs.

    - Keys present in updates with non-None values are merged/overwritten
    - Keys present in updates with None values are skipped (preserve base value)
    - Keys not present in updates are preserved from base
    """
    result = deepcopy(base)
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        elif key in result and value is None:
            continue
        else:
            result[key] = value
    return result


class ProviderConfig(BaseModel):
    api_key: str | None = None
    base_url: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")


class ModelsConfig(BaseModel):
    quiz: str | None = None
    commit_message: str | None = None
    review: str | None = None

    model_config = ConfigDict(extra="ignore")


class AppConfig(BaseModel):
    repo_path: str | None = None
    server_host: str = "localhost"
    server_port: int = 3001
    cors_origins: list[str] = Field(default_factory=list)

    debounce_ms: int = 150
    watch_ignore_dirs: list[str] = Field(default_factory=list)
    discard_stale_refreshes: bool = False
    git_timeout_s: float | None = None

    poll_interval_s: float = 1.0

    providers: dict[str, ProviderConfig] = Field(default_factory=dict)
    models: ModelsConfig = Field(default_factory=ModelsConfig)

    log_level: str = "INFO"
    log_format: str = "pretty"
    log_colors: bool = True

    model_config = ConfigDict(extra="ignore")

    @field_validator("debounce_ms")
    @classmethod
    def _non_negative_debounce(cls, value: int) -> int:
        if value < 0:
            raise ValueError("debounce_ms must be >= 0")
        return value

    @field_validator("poll_interval_s")
    @classmethod
    def _positive_poll_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("poll_interval_s must be > 0")
        return value


class ConfigValidationError(Exception):
    """Structured configuration validation error."""

    def __init__(self, errors: list[str]):
        self.errors = errors
        super().__init__("; ".join(errors))


def validate_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate configuration using the pydantic schema.

    Raises:
        ConfigValidationError: With a list of human-readable error messages.
    """
    try:
        app_config = AppConfig.model_validate(config)
        return app_config.model_dump(mode="json")
    except ValidationError as e:
        raise ConfigValidationError(_extract_validation_errors(e)) from e


def normalize_config(config: dict[str, Any]) -> dict[str, Any]:
    """Validate config shape and return it unchanged (unknown keys are kept).

    Raises ValueError so providers can refuse to save or load broken files.
    """
    try:
        validate_config(config)
    except ConfigValidationError as exc:
        raise ValueError(str(exc)) from exc
    return config


def _extract_validation_errors(exc: ValidationError) -> list[str]:
    """Convert pydantic ValidationError to list of human-readable messages."""
    errors = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err["loc"]) if err["loc"] else "config"
        msg = err["msg"]

        if msg.startswith("Value error, "):
            msg = msg[len("Value error, ") :]

        if err["type"] == "missing":
            errors.append(f"Missing required field: {loc}")
        elif err["type"] == "string_type":
            errors.append(f"Expected string at '{loc}'")
        elif err["type"] == "int_type" or err["type"] == "int_parsing":
            errors.append(f"Expected integer at '{loc}'")
        elif err["type"] == "bool_type" or err["type"] == "bool_parsing":
            errors.append(f"Expected boolean at '{loc}'")
        elif err["type"] == "dict_type":
            errors.append(f"Expected object at '{loc}'")
        elif err["type"] == "list_type":
            errors.append(f"Expected list at '{loc}'")
        else:
            errors.append(f"{loc}: {msg}")

    return errors if errors else ["Invalid configuration"]
