"""uvicorn ``log_config`` that renders through the application's structlog setup."""

import logging
import os
from typing import Any

import structlog

from diffgate.utils.logger import LIBRARY_LEVELS, build_renderer

UVICORN_LOGGERS = ("uvicorn", "uvicorn.access", "uvicorn.error")

# uvicorn.error carries lifecycle messages, not errors
LOGGER_ALIASES = {
    "uvicorn.error": "uvicorn.server",
    "uvicorn.access": "uvicorn.http",
}


def get_uvicorn_log_level() -> int:
    level = os.getenv("UVICORN_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level, logging.INFO)


def rename_logger(logger, method_name, event_dict):
    name = event_dict.get("logger")
    if name in LOGGER_ALIASES:
        event_dict["logger"] = LOGGER_ALIASES[name]
    return event_dict


def get_logging_config() -> dict[str, Any]:
    """dictConfig for uvicorn plus the third-party loggers it would otherwise reset."""
    uvicorn_level = get_uvicorn_log_level()
    levels = {name: uvicorn_level for name in UVICORN_LOGGERS}
    levels.update(
        (name, logging.getLevelName(level))
        for name, level in LIBRARY_LEVELS.items()
        if name != "openai"
    )
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": structlog.stdlib.ProcessorFormatter,
                "processor": build_renderer(),
                "foreign_pre_chain": [
                    structlog.stdlib.add_logger_name,
                    structlog.stdlib.add_log_level,
                    rename_logger,
                    structlog.stdlib.PositionalArgumentsFormatter(),
                    structlog.processors.TimeStamper(fmt="iso"),
                    structlog.processors.StackInfoRenderer(),
                    structlog.processors.UnicodeDecoder(),
                ],
            },
        },
        "handlers": {
            "default": {
                "formatter": "default",
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
            },
        },
        "loggers": {
            name: {"handlers": ["default"], "level": level, "propagate": False}
            for name, level in levels.items()
        },
    }
