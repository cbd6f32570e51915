"""Configuration read/update routes.

Keys are the snake_case names used in ``config.json``. Updates are validated
against the merged result before anything is written; a saved change reaches
the running watcher through the config manager's change callbacks.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from diffgate.api.deps import get_config_manager
from diffgate.api.schemas import ConfigResponse, ConfigUpdateRequest
from diffgate.config.manager import ConfigManager
from diffgate.config.schema import ConfigValidationError, deep_merge, validate_config
from diffgate.core.errors import ValidationError
from diffgate.utils.logger import api_logger

router = APIRouter()


@router.get("/config", response_model=ConfigResponse)
async def get_config(
    config_manager: ConfigManager = Depends(get_config_manager),  # noqa: B008
):
    return ConfigResponse(config=config_manager.get_all())


@router.put("/config", response_model=ConfigResponse)
async def update_config(
    payload: ConfigUpdateRequest | None = None,
    config_manager: ConfigManager = Depends(get_config_manager),  # noqa: B008
):
    updates = payload.config if payload else None
    if not updates:
        raise ValidationError("config is required")

    try:
        validate_config(deep_merge(config_manager.get_all(), updates))
    except ConfigValidationError as e:
        raise ValidationError(f"Invalid configuration: {e}") from e

    await config_manager.update(updates)
    api_logger.info("Configuration updated", keys=list(updates.keys()))
    return ConfigResponse(config=config_manager.get_all())
